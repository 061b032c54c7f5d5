"""MemGuard orchestrator: the entry point editors, tools and the CLI call into.

Responsibilities:
1. Take a fresh corpus snapshot from the store on every call
2. Selection: score the corpus against a file and pick what to expose
3. Context: compress the selection into the injected bundle
4. Validation: run every check (plus learned patterns) over a file
5. Learning: scan a workspace for recurring code shapes and store them

Nothing here caches the corpus: callers decide how often to call.
"""

from __future__ import annotations

import logging
from pathlib import Path

from memguard.config import MemguardConfig
from memguard.context import ContextCompressor
from memguard.features import extract_features_from_file
from memguard.memory.models import MemoryRecord
from memguard.memory.store import MemoryStore
from memguard.patterns import PatternRecognizer
from memguard.relevance import select, select_without_file
from memguard.validator import ValidationResult, Validator

logger = logging.getLogger(__name__)


class MemGuard:
    """Ties the memory store to the selection and validation pipelines."""

    def __init__(self, config: MemguardConfig, store: MemoryStore | None = None) -> None:
        self.config = config
        self.store = store or MemoryStore(config.memory_dir)
        self.patterns = PatternRecognizer(config.patterns)
        self.compressor = ContextCompressor(config.compression)
        self.validator = Validator(patterns=self.patterns)

    def _language(self, language: str | None) -> str | None:
        return language or self.config.default_language or None

    # ── Selection & context ──────────────────────────────────

    def relevant_records(self, path: str | Path | None = None) -> list[MemoryRecord]:
        corpus = self.store.load_all()
        if path is None:
            return select_without_file(corpus)
        features = extract_features_from_file(path, self._language(None))
        return select(corpus, features, self.config.scoring, self.config.selection)

    def context_for(self, path: str | Path | None = None, budget: int | None = None) -> str:
        """The compressed memory bundle for a file ("" when nothing is relevant)."""
        return self.compressor.compress(self.relevant_records(path), budget)

    # ── Validation ───────────────────────────────────────────

    def validate_text(self, code: str, path: str | Path, language: str | None = None) -> ValidationResult:
        corpus = self.store.load_all()
        # patterns learned by another process live only in the store
        self.patterns.restore(corpus)
        return self.validator.validate(code, str(path), self._language(language), corpus)

    def validate_file(self, path: str | Path) -> ValidationResult:
        try:
            code = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot validate %s: %s", path, e)
            return ValidationResult.from_diagnostics([])
        return self.validate_text(code, path)

    # ── Pattern learning ─────────────────────────────────────

    def learn_patterns(self, root: str | Path, save: bool = True) -> list[MemoryRecord]:
        """Scan a workspace and (optionally) store recognized patterns as memories."""
        self.patterns.scan_workspace(root)
        records = self.patterns.to_records()
        if save:
            for record in records:
                if self.store.get(record.id) is not None:
                    self.store.update(
                        record.id,
                        content=record.content,
                        related_files=record.related_files,
                        confidence=record.confidence,
                    )
                else:
                    self.store.add(record)
            logger.info("Stored %d learned patterns", len(records))
        return records
