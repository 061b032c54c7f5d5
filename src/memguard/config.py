"""Configuration loading from environment variables and memguard.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_MEMORY_DIR = Path.home() / ".memguard" / "memory"
_CONFIG_FILENAME = "memguard.toml"


@dataclass
class ScoringConfig:
    """Relevance weights. Only their relative ordering matters."""

    critical_bonus: float = 100.0
    related_file: float = 50.0
    tag_match: float = 10.0
    name_match: float = 5.0
    import_match: float = 3.0
    keyword_match: float = 2.0
    word_overlap: float = 1.0
    high_multiplier: float = 1.5
    medium_multiplier: float = 1.2


@dataclass
class SelectionConfig:
    """Which scored records make it into the selection."""

    threshold: float = 10.0
    max_selected: int = 20


@dataclass
class CompressionConfig:
    """Context bundle budget and elision sizes."""

    token_budget: int = 2000
    critical_cap: int = 20
    aggressive_trigger: int = 200
    head_chars: int = 100
    tail_chars: int = 100


@dataclass
class PatternConfig:
    """Pattern-similarity thresholds."""

    min_occurrences: int = 3
    min_files: int = 2
    common_frequency: int = 5
    similarity_threshold: float = 0.3
    signature_lines: int = 5
    signature_chars: int = 100
    min_snippet_length: int = 20
    max_files_per_language: int = 50


@dataclass
class WatchConfig:
    """Editor-event debounce."""

    debounce_ms: int = 500


@dataclass
class MemguardConfig:
    """Top-level memguard configuration."""

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    compression: CompressionConfig = field(default_factory=CompressionConfig)
    patterns: PatternConfig = field(default_factory=PatternConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    memory_dir: Path = _DEFAULT_MEMORY_DIR
    default_language: str = ""
    log_level: str = "INFO"


def _section(data: dict, cls: type, **overrides):
    """Build a config section from a TOML table, ignoring unknown keys."""
    known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
    known.update({k: v for k, v in overrides.items() if v is not None})
    return cls(**known)


def load_config(config_path: Path | None = None) -> MemguardConfig:
    """Load configuration from environment variables and optional memguard.toml.

    Priority: environment variables > memguard.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.memguard/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".memguard" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    budget = os.getenv("MEMGUARD_TOKEN_BUDGET")
    max_selected = os.getenv("MEMGUARD_MAX_SELECTED")
    debounce = os.getenv("MEMGUARD_DEBOUNCE_MS")

    config = MemguardConfig(
        scoring=_section(file_data.get("scoring", {}), ScoringConfig),
        selection=_section(
            file_data.get("selection", {}),
            SelectionConfig,
            max_selected=int(max_selected) if max_selected else None,
        ),
        compression=_section(
            file_data.get("compression", {}),
            CompressionConfig,
            token_budget=int(budget) if budget else None,
        ),
        patterns=_section(file_data.get("patterns", {}), PatternConfig),
        watch=_section(
            file_data.get("watch", {}),
            WatchConfig,
            debounce_ms=int(debounce) if debounce else None,
        ),
        memory_dir=Path(
            os.getenv("MEMGUARD_MEMORY_DIR", file_data.get("memory_dir", str(_DEFAULT_MEMORY_DIR)))
        ),
        default_language=file_data.get("default_language", ""),
        log_level=os.getenv("MEMGUARD_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
