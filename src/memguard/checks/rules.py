"""Checks driven by constraints extracted from record prose."""

from __future__ import annotations

import logging
import re

from memguard.checks.base import (
    Diagnostic,
    Severity,
    diagnostic_for,
    is_architecture_record,
    severity_for,
    soften,
)
from memguard.checks.dependencies import is_dependency_constraint
from memguard.constraints import (
    ConstraintExtractor,
    ConstraintType,
    extract_constraints,
    extract_keywords,
    find_violations,
)
from memguard.features import FeatureSet
from memguard.memory.models import Category, Importance, MemoryRecord

logger = logging.getLogger(__name__)


class ConstraintCheck:
    """Forbidden/required/conditional constraints from architecture and constraint records.

    A forbidden pattern present in the code maps straight to the record's
    importance (critical -> error, high -> warning). Required-but-missing and
    conditional findings are one level softer, since absence over free text
    is a weaker signal than presence.
    """

    name = "constraints"

    def __init__(self, extractor: ConstraintExtractor = extract_constraints) -> None:
        self.extractor = extractor

    def run(self, features: FeatureSet, records: list[MemoryRecord]) -> list[Diagnostic]:
        diagnostics = []
        for record in records:
            if record.importance not in (Importance.CRITICAL, Importance.HIGH):
                continue
            if not is_architecture_record(record):
                continue
            base = severity_for(record.importance)
            for constraint in self.extractor(record.content):
                if is_dependency_constraint(constraint):
                    continue  # matched against import edges by DependencyCheck
                severity = base if constraint.type is ConstraintType.FORBIDDEN else soften(base)
                for v in find_violations(constraint, features.text):
                    diagnostics.append(
                        diagnostic_for(
                            record,
                            severity,
                            f"Architecture rule violated: {v.message}",
                            line=v.line,
                            column=v.column,
                            source="memguard.constraints",
                        )
                    )
        return diagnostics


class BusinessRuleCheck:
    """Critical business rules, applied only to code that mentions the rule's subject."""

    name = "business-rules"

    def __init__(self, extractor: ConstraintExtractor = extract_constraints) -> None:
        self.extractor = extractor

    def run(self, features: FeatureSet, records: list[MemoryRecord]) -> list[Diagnostic]:
        code = features.text.lower()
        diagnostics = []
        for record in records:
            if record.category is not Category.BUSINESS_RULE or record.importance is not Importance.CRITICAL:
                continue
            keywords = extract_keywords(record.content)
            if keywords and not any(k in code for k in keywords):
                logger.debug("Business rule %s does not concern %s", record.id, features.file_path)
                continue
            for constraint in self.extractor(record.content):
                for v in find_violations(constraint, features.text):
                    diagnostics.append(
                        diagnostic_for(
                            record,
                            Severity.ERROR,
                            f"Business rule violated: {v.message}",
                            line=v.line,
                            column=v.column,
                            source="memguard.business",
                        )
                    )
        return diagnostics


_DIRECTORY_MARKER = re.compile(r"(?:目录结构|directory structure)\s*[:：]\s*([^\n。;；]+)", re.IGNORECASE)


def expected_directories(content: str) -> list[str]:
    m = _DIRECTORY_MARKER.search(content)
    if not m:
        return []
    dirs = [d.strip().strip("/\\`'\"").lower() for d in re.split(r"[,，、]", m.group(1))]
    return [d for d in dirs if d]


class DirectoryCheck:
    """Warns when a file sits outside the directories a critical record lays out."""

    name = "directories"

    def run(self, features: FeatureSet, records: list[MemoryRecord]) -> list[Diagnostic]:
        file_dir = features.file_dir.replace("\\", "/").lower()
        if file_dir in ("", "."):
            return []
        diagnostics = []
        for record in records:
            if record.category is not Category.ARCHITECTURE or record.importance is not Importance.CRITICAL:
                continue
            dirs = expected_directories(record.content)
            if dirs and not any(d in file_dir for d in dirs):
                diagnostics.append(
                    diagnostic_for(
                        record,
                        Severity.WARNING,
                        f"File is outside the expected directories ({', '.join(dirs)})",
                        line=1,
                        column=1,
                        source="memguard.structure",
                    )
                )
        return diagnostics
