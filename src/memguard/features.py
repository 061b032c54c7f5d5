"""Shallow lexical feature extraction for a source file."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePath

from memguard.languages import LanguageProfile, detect_language, get_profile, line_of

logger = logging.getLogger(__name__)

MAX_FEATURES = 20

DOMAIN_KEYWORDS = [
    "api", "endpoint", "route", "handler", "controller", "service",
    "model", "entity", "database", "db", "query", "sql",
    "config", "setting", "environment", "env",
    "error", "exception", "validation", "validate",
    "auth", "authentication", "authorization", "security",
    "cache", "redis", "session", "cookie",
    "async", "await", "promise", "callback",
    "test", "unit", "integration", "mock",
]


@dataclass
class FeatureSet:
    """What a file looks like to the relevance scorer. Recomputed per call."""

    file_path: str
    file_name: str
    file_dir: str
    language: str
    functions: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    text: str = ""


@dataclass(frozen=True)
class ImportEdge:
    """A dependency from the current file to `target`."""

    target: str
    line: int


def _unique(items, limit: int = MAX_FEATURES) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item and item not in seen:
            seen.append(item)
            if len(seen) >= limit:
                break
    return seen


def _scan(patterns: tuple[re.Pattern, ...], text: str) -> list[tuple[int, str]]:
    """(offset, capture) pairs for every pattern, in text order."""
    hits = [(m.start(1), m.group(1)) for p in patterns for m in p.finditer(text)]
    hits.sort(key=lambda h: h[0])
    return hits


def extract_imports(text: str, profile: LanguageProfile) -> list[ImportEdge]:
    """Dependency edges in source order, grouped import blocks included."""
    hits = _scan(profile.import_patterns, text)
    if profile.import_block and profile.import_block_item:
        for block in profile.import_block.finditer(text):
            base = block.start(1)
            for item in profile.import_block_item.finditer(block.group(1)):
                hits.append((base + item.start(1), item.group(1)))
        hits.sort(key=lambda h: h[0])
    return [ImportEdge(target=target, line=line_of(text, offset)) for offset, target in hits]


def extract_keywords(text: str) -> list[str]:
    lower = text.lower()
    return [k for k in DOMAIN_KEYWORDS if k in lower][:MAX_FEATURES]


def _path_keywords(path: str) -> list[str]:
    parts = [p for p in re.split(r"[/\\]", path) if p]
    return _unique(parts + [PurePath(path).name])


def extract_features(text: str, path: str, language: str | None = None) -> FeatureSet:
    """Feature set for already-loaded source text."""
    language = detect_language(path, language)
    profile = get_profile(language)
    pure = PurePath(path)
    return FeatureSet(
        file_path=path,
        file_name=pure.name,
        file_dir=str(pure.parent),
        language=language,
        functions=_unique(name for _, name in _scan(profile.function_patterns, text)),
        types=_unique(name for _, name in _scan(profile.type_patterns, text)),
        imports=_unique(edge.target for edge in extract_imports(text, profile)),
        keywords=extract_keywords(text),
        text=text,
    )


def extract_features_from_file(path: str | Path, language: str | None = None) -> FeatureSet:
    """Read a file and extract its features; unreadable files fall back to path keywords."""
    path_str = str(path)
    try:
        raw = Path(path).read_bytes()
        if b"\x00" in raw:
            raise UnicodeDecodeError("utf-8", raw[:1], 0, 1, "binary content")
        text = raw.decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Cannot read %s (%s), using path keywords only", path_str, e)
        pure = PurePath(path_str)
        return FeatureSet(
            file_path=path_str,
            file_name=pure.name,
            file_dir=str(pure.parent),
            language=detect_language(path_str, language),
            keywords=_path_keywords(path_str),
        )
    return extract_features(text, path_str, language)
