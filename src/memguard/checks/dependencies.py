"""Dependency and layering rules checked against a file's import edges."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePath

from memguard.checks.base import Diagnostic, Severity, diagnostic_for, is_architecture_record
from memguard.constraints import (
    Constraint,
    ConstraintExtractor,
    ConstraintType,
    extract_constraints,
    has_trigger,
)
from memguard.features import FeatureSet, ImportEdge, extract_imports
from memguard.languages import get_profile
from memguard.memory.models import Importance, MemoryRecord

logger = logging.getLogger(__name__)

# English words only count as whole words: "important" and "independent" are not about imports.
_DEPENDENCY_WORD = re.compile(
    r"依赖|引入|导入|引用"
    r"|(?<![A-Za-z])(?:import(?:s|ed|ing)?|depend(?:s|ed|ing)?\s+on|dependenc(?:y|ies))(?![A-Za-z])",
    re.IGNORECASE,
)

_LAYER_RULES = [
    re.compile(
        r"([A-Za-z][A-Za-z0-9_-]*)(?:\s+layer)?\s+"
        r"(?:must not|should not|cannot|can't|may not|is not allowed to|shall not)\s+"
        r"(?:directly\s+)?(?:depend on|import|call|use|access|reference)\s+(?:the\s+)?([A-Za-z][A-Za-z0-9_-]*)",
        re.IGNORECASE,
    ),
    re.compile(
        r"([A-Za-z][A-Za-z0-9_-]*)\s*层?\s*(?:不能|不允许|禁止|不得|不可)\s*(?:直接)?\s*"
        r"(?:依赖|引用|调用|导入|访问)\s*([A-Za-z][A-Za-z0-9_-]*)",
        re.IGNORECASE,
    ),
]


@dataclass(frozen=True)
class LayerRule:
    source: str
    target: str


def mentions_dependency(text: str) -> bool:
    return bool(_DEPENDENCY_WORD.search(text))


def is_dependency_rule(record: MemoryRecord) -> bool:
    """An architecture record that forbids some dependency."""
    if not is_architecture_record(record):
        return False
    return has_trigger(record.content, ConstraintType.FORBIDDEN) and mentions_dependency(record.content)


def is_dependency_constraint(constraint: Constraint) -> bool:
    """A forbidden constraint read from a sentence about imports, checked against import edges only."""
    return constraint.type is ConstraintType.FORBIDDEN and mentions_dependency(constraint.segment)


def layer_rules(content: str) -> list[LayerRule]:
    rules = []
    for pattern in _LAYER_RULES:
        for m in pattern.finditer(content):
            rules.append(LayerRule(source=m.group(1), target=m.group(2)))
    return rules


def _layer_key(layer: str) -> str:
    key = layer.lower()
    # "controllers" names the same layer as "controller"
    if len(key) > 3 and key.endswith("s") and not key.endswith("ss"):
        key = key[:-1]
    return key


def in_layer(file_name: str, layer: str) -> bool:
    return _layer_key(layer) in PurePath(file_name).stem.lower()


class DependencyCheck:
    """Flags imports of forbidden modules and imports that cross a forbidden layer boundary."""

    name = "dependencies"

    def __init__(self, extractor: ConstraintExtractor = extract_constraints) -> None:
        self.extractor = extractor

    def run(self, features: FeatureSet, records: list[MemoryRecord]) -> list[Diagnostic]:
        rules = [
            r
            for r in records
            if r.importance in (Importance.CRITICAL, Importance.HIGH) and is_dependency_rule(r)
        ]
        if not rules:
            return []
        edges = extract_imports(features.text, get_profile(features.language))
        if not edges:
            return []
        logger.debug(
            "%d dependency rules against %d imports in %s", len(rules), len(edges), features.file_path
        )

        diagnostics: list[Diagnostic] = []
        for record in rules:
            layers = layer_rules(record.content)
            if layers:
                diagnostics.extend(self._check_layers(record, layers, features, edges))
            diagnostics.extend(self._check_forbidden(record, edges))
        return diagnostics

    def _check_layers(
        self,
        record: MemoryRecord,
        layers: list[LayerRule],
        features: FeatureSet,
        edges: list[ImportEdge],
    ) -> list[Diagnostic]:
        out = []
        for rule in layers:
            if not in_layer(features.file_name, rule.source):
                continue
            target = _layer_key(rule.target)
            for edge in edges:
                if target in edge.target.lower():
                    out.append(
                        diagnostic_for(
                            record,
                            Severity.ERROR,
                            f'Layer violation: {rule.source} must not depend on {rule.target} '
                            f'(imports "{edge.target}")',
                            line=edge.line,
                            column=1,
                            source="memguard.dependencies",
                        )
                    )
        return out

    def _check_forbidden(self, record: MemoryRecord, edges: list[ImportEdge]) -> list[Diagnostic]:
        patterns: list[str] = []
        for constraint in self.extractor(record.content):
            # layer sentences are handled by _check_layers
            if is_dependency_constraint(constraint) and not layer_rules(constraint.segment):
                patterns.extend(p for p in constraint.patterns if p not in patterns)

        out = []
        for edge in edges:
            hit = next((p for p in patterns if p.lower() in edge.target.lower()), None)
            if hit:
                out.append(
                    diagnostic_for(
                        record,
                        Severity.ERROR,
                        f'Forbidden dependency "{edge.target}" (matches "{hit}")',
                        line=edge.line,
                        column=1,
                        source="memguard.dependencies",
                    )
                )
        return out
