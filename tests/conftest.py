"""Shared fixtures."""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from memguard.config import MemguardConfig
from memguard.core import MemGuard
from memguard.memory.models import Category, Importance, MemoryRecord


@pytest.fixture
def make_record():
    """Factory for records; ids are sequential unless given."""
    counter = itertools.count(1)

    def _make(
        content: str,
        category: str = "other",
        importance: str = "medium",
        tags=(),
        record_id: str | None = None,
        related_files=None,
        confidence: float | None = None,
    ) -> MemoryRecord:
        return MemoryRecord(
            id=record_id or f"mem-{next(counter)}",
            content=content,
            category=Category.parse(category),
            importance=Importance(importance),
            tags=frozenset(tags),
            related_files=frozenset(related_files) if related_files else None,
            confidence=confidence,
        )

    return _make


@pytest.fixture
def config(tmp_path: Path) -> MemguardConfig:
    return MemguardConfig(memory_dir=tmp_path / "memory")


@pytest.fixture
def guard(config: MemguardConfig) -> MemGuard:
    return MemGuard(config)
