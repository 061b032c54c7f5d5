"""Validation pipeline: every check runs independently over one file."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from memguard.checks.base import Check, Diagnostic, Severity
from memguard.checks.dependencies import DependencyCheck
from memguard.checks.naming import NamingCheck
from memguard.checks.rules import BusinessRuleCheck, ConstraintCheck, DirectoryCheck
from memguard.checks.style import StyleCheck
from memguard.constraints import ConstraintExtractor, extract_constraints
from memguard.features import extract_features
from memguard.memory.models import MemoryRecord, coerce_records
from memguard.patterns import PatternRecognizer

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    passed: bool
    diagnostics: list[Diagnostic] = field(default_factory=list)
    summary: str = ""

    def count(self, severity: Severity) -> int:
        return sum(1 for d in self.diagnostics if d.severity is severity)

    @classmethod
    def from_diagnostics(cls, diagnostics: list[Diagnostic]) -> ValidationResult:
        counts = Counter(d.severity for d in diagnostics)
        passed = counts[Severity.ERROR] == 0
        summary = (
            f"Validation {'passed' if passed else 'failed'}"
            f" | errors: {counts[Severity.ERROR]}"
            f" | warnings: {counts[Severity.WARNING]}"
            f" | info: {counts[Severity.INFO]}"
        )
        return cls(passed=passed, diagnostics=diagnostics, summary=summary)


def default_checks(extractor: ConstraintExtractor = extract_constraints) -> list[Check]:
    return [
        ConstraintCheck(extractor),
        NamingCheck(),
        BusinessRuleCheck(extractor),
        DependencyCheck(extractor),
        DirectoryCheck(),
        StyleCheck(),
    ]


class Validator:
    """Runs each check over a fresh feature set and a corpus snapshot.

    The result depends only on (code, path, language, corpus, learned
    patterns), so repeated calls on unchanged input give identical output.
    """

    def __init__(
        self,
        checks: list[Check] | None = None,
        patterns: PatternRecognizer | None = None,
        extractor: ConstraintExtractor = extract_constraints,
    ) -> None:
        self.checks = checks if checks is not None else default_checks(extractor)
        self.patterns = patterns

    def validate(
        self,
        code: str,
        path: str,
        language: str | None,
        corpus: Iterable[MemoryRecord | dict],
    ) -> ValidationResult:
        features = extract_features(code, path, language)
        records = coerce_records(corpus)

        diagnostics: list[Diagnostic] = []
        for check in self.checks:
            found = check.run(features, records)
            if found:
                logger.debug("%s: %d diagnostics for %s", check.name, len(found), path)
            diagnostics.extend(found)
        if self.patterns is not None:
            diagnostics.extend(self.patterns.check(code, features.language))

        result = ValidationResult.from_diagnostics(diagnostics)
        logger.debug("%s: %s", path, result.summary)
        return result
