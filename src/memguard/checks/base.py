"""Check protocol and shared diagnostic types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from memguard.features import FeatureSet
from memguard.memory.models import Category, Importance, MemoryRecord


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class Diagnostic:
    """One finding against a document, in the shape editors and sinks expect."""

    severity: Severity
    message: str
    line: int | None = None
    column: int | None = None
    record_id: str | None = None
    excerpt: str = ""
    source: str = "memguard"
    suggestion: str | None = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "record_id": self.record_id,
            "excerpt": self.excerpt,
            "source": self.source,
            "suggestion": self.suggestion,
        }

    def __str__(self) -> str:
        where = f"{self.line}:{self.column or 1}" if self.line else "-"
        return f"{where} {self.severity.value}: {self.message}"


def severity_for(importance: Importance) -> Severity:
    """Default mapping from a record's importance to a diagnostic severity."""
    if importance is Importance.CRITICAL:
        return Severity.ERROR
    if importance is Importance.HIGH:
        return Severity.WARNING
    return Severity.INFO


ARCHITECTURE_TAGS = {"architecture", "arch", "structure", "module", "layer"}


def is_architecture_record(record: MemoryRecord) -> bool:
    """Architecture and constraint records, plus anything tagged as structural."""
    if record.category in (Category.ARCHITECTURE, Category.CONSTRAINT):
        return True
    return any(t.lower() in ARCHITECTURE_TAGS for t in record.tags)


def soften(severity: Severity) -> Severity:
    """One level down; INFO stays INFO."""
    if severity is Severity.ERROR:
        return Severity.WARNING
    return Severity.INFO


def diagnostic_for(
    record: MemoryRecord,
    severity: Severity,
    message: str,
    *,
    line: int | None = None,
    column: int | None = None,
    source: str = "memguard",
    suggestion: str | None = None,
) -> Diagnostic:
    return Diagnostic(
        severity=severity,
        message=message,
        line=line,
        column=column,
        record_id=record.id,
        excerpt=record.excerpt(),
        source=source,
        suggestion=suggestion,
    )


@runtime_checkable
class Check(Protocol):
    """One independent validation stage."""

    @property
    def name(self) -> str: ...

    def run(self, features: FeatureSet, records: list[MemoryRecord]) -> list[Diagnostic]:
        """Diagnostics for the file described by `features`. Must not raise on any text."""
        ...
