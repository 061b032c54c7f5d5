"""Memory record types shared by the store and the analysis core."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class MalformedRecordError(ValueError):
    """A stored corpus entry is missing a required field or has an invalid value."""


class Category(str, Enum):
    ARCHITECTURE = "architecture"
    CODE_STYLE = "code-style"
    BUSINESS_RULE = "business-rule"
    API_SPEC = "api-spec"
    DATABASE = "database"
    CONFIG = "config"
    CONSTRAINT = "constraint"
    DOCUMENTATION = "documentation"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> Category:
        """Accept both `code-style` and the legacy `code_style` spelling."""
        return cls(str(value).strip().lower().replace("_", "-"))


class Importance(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """0 for critical, 3 for low."""
        return _IMPORTANCE_ORDER.index(self)


_IMPORTANCE_ORDER = [Importance.CRITICAL, Importance.HIGH, Importance.MEDIUM, Importance.LOW]


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Legacy JSON stores epoch milliseconds
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    raise MalformedRecordError(f"invalid timestamp: {value!r}")


@dataclass(frozen=True)
class MemoryRecord:
    """A natural-language rule or fact about the project.

    Immutable by convention: the store replaces records on update instead of
    mutating them, so a corpus snapshot stays stable for the whole call.
    """

    id: str
    content: str
    category: Category
    importance: Importance
    tags: frozenset[str] = field(default_factory=frozenset)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    related_files: frozenset[str] | None = None
    confidence: float | None = None  # None means unknown, not zero

    @classmethod
    def from_dict(cls, data: dict) -> MemoryRecord:
        """Build a record from stored data, accepting the legacy camelCase shape."""
        if not isinstance(data, dict):
            raise MalformedRecordError(f"expected a mapping, got {type(data).__name__}")
        for key in ("id", "content", "category", "importance"):
            if data.get(key) in (None, ""):
                raise MalformedRecordError(f"missing required field '{key}'")

        try:
            category = Category.parse(data["category"])
            importance = Importance(str(data["importance"]).lower())
        except ValueError as e:
            raise MalformedRecordError(str(e)) from e

        related = data.get("related_files", data.get("relatedFiles"))
        confidence = data.get("confidence")
        if confidence is not None:
            confidence = float(confidence)
            if not 0.0 <= confidence <= 1.0:
                raise MalformedRecordError(f"confidence out of range: {confidence}")

        timestamp = data.get("timestamp")
        return cls(
            id=str(data["id"]),
            content=str(data["content"]),
            category=category,
            importance=importance,
            tags=frozenset(str(t) for t in data.get("tags") or []),
            timestamp=_parse_timestamp(timestamp) if timestamp is not None else datetime.now(timezone.utc),
            related_files=frozenset(str(f) for f in related) if related else None,
            confidence=confidence,
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "category": self.category.value,
            "importance": self.importance.value,
            "tags": sorted(self.tags),
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
        }
        if self.related_files is not None:
            data["related_files"] = sorted(self.related_files)
        if self.confidence is not None:
            data["confidence"] = self.confidence
        return data

    def excerpt(self, limit: int = 80) -> str:
        text = " ".join(self.content.split())
        return text if len(text) <= limit else text[:limit] + "..."


def coerce_records(items: Iterable[MemoryRecord | dict]) -> list[MemoryRecord]:
    """Normalize a corpus snapshot, skipping malformed entries instead of failing the run."""
    records: list[MemoryRecord] = []
    for item in items:
        if isinstance(item, MemoryRecord):
            records.append(item)
            continue
        try:
            records.append(MemoryRecord.from_dict(item))
        except (MalformedRecordError, TypeError, ValueError) as e:
            ident = item.get("id", "?") if isinstance(item, dict) else "?"
            logger.warning("Skipping malformed memory record %s: %s", ident, e)
    return records
