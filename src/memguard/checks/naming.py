"""Naming-convention check over declared identifiers."""

from __future__ import annotations

import logging
import re

from memguard.checks.base import Diagnostic, Severity, severity_for
from memguard.features import FeatureSet
from memguard.languages import Convention, NamingRules, get_profile, line_of, matches_convention
from memguard.memory.models import MemoryRecord

logger = logging.getLogger(__name__)

EXCLUDED_NAMES = {
    "String", "Int", "Bool", "Error", "Context", "Request", "Response",
    "true", "false", "nil", "null", "undefined", "this", "self",
}

# Longest spellings first so "upper_snake_case" is not also read as "snake_case".
STYLE_WORDS = [
    ("upper_snake_case", Convention.UPPER_SNAKE),
    ("screaming_snake", Convention.UPPER_SNAKE),
    ("camelcase", Convention.CAMEL),
    ("pascalcase", Convention.PASCAL),
    ("snake_case", Convention.SNAKE),
    ("大驼峰", Convention.PASCAL),
    ("帕斯卡", Convention.PASCAL),
    ("驼峰", Convention.CAMEL),
    ("蛇形", Convention.SNAKE),
    ("下划线", Convention.SNAKE),
]

_NAMING_WORDS = ("命名", "naming")
_KINDS = ("constant", "type", "function", "variable")
_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|_+")


def style_of(content: str) -> Convention | None:
    """The convention a naming record asks for, if it names one."""
    text = content.lower()
    hits = []
    for word, conv in STYLE_WORDS:
        pos = text.find(word)
        if pos >= 0:
            hits.append((pos, conv))
            text = text.replace(word, " " * len(word))
    return min(hits, key=lambda h: h[0])[1] if hits else None


def is_naming_record(record: MemoryRecord) -> bool:
    lower = record.content.lower()
    return (
        any(t.lower() == "naming" for t in record.tags)
        or any(w in lower for w in _NAMING_WORDS)
        or style_of(record.content) is not None
    )


def convert(name: str, convention: Convention) -> str:
    words = [w.lower() for w in _WORD_BOUNDARY.split(name) if w]
    if not words:
        return name
    if convention is Convention.SNAKE:
        return "_".join(words)
    if convention is Convention.UPPER_SNAKE:
        return "_".join(words).upper()
    if convention is Convention.PASCAL:
        return "".join(w.capitalize() for w in words)
    return words[0] + "".join(w.capitalize() for w in words[1:])


def _describe(allowed: frozenset[Convention]) -> str:
    return " or ".join(sorted(c.value for c in allowed))


class NamingCheck:
    """Flags declarations whose case shape is not one the rules allow for their kind.

    The most important naming record in the corpus drives both the rules and
    the severity. Without one, the language's default conventions apply at
    warning severity.
    """

    name = "naming"

    def run(self, features: FeatureSet, records: list[MemoryRecord]) -> list[Diagnostic]:
        profile = get_profile(features.language)
        naming_records = sorted(
            (r for r in records if is_naming_record(r)), key=lambda r: r.importance.rank
        )
        record = naming_records[0] if naming_records else None

        rules: NamingRules | None = profile.default_naming
        style = style_of(record.content) if record else None
        if style:
            rules = (rules or NamingRules(variable=frozenset(), function=frozenset())).with_style(style)
        if rules is None:
            return []
        severity = severity_for(record.importance) if record else Severity.WARNING
        if record:
            logger.debug("Naming rules for %s come from %s (%s)", features.file_path, record.id, style)

        patterns = {
            "constant": profile.constant_patterns,
            "type": profile.type_patterns,
            "function": profile.function_patterns,
            "variable": profile.variable_patterns,
        }
        seen: set[tuple[int, str]] = set()
        diagnostics = []
        for kind in _KINDS:
            allowed = rules.allowed(kind)
            if not allowed:
                continue
            for pattern in patterns[kind]:
                for m in pattern.finditer(features.text):
                    raw = m.group(1)
                    line = line_of(features.text, m.start(1))
                    if (line, raw) in seen:
                        continue
                    seen.add((line, raw))
                    name = raw.lstrip("_")
                    if not name or raw in EXCLUDED_NAMES:
                        continue
                    if any(matches_convention(name, c) for c in allowed):
                        continue
                    column = m.start(1) - (features.text.rfind("\n", 0, m.start(1)) + 1) + 1
                    message = f'{kind.capitalize()} "{raw}" should be {_describe(allowed)}'
                    suggestion = convert(name, next(c for c in Convention if c in allowed))
                    diagnostics.append(
                        Diagnostic(
                            severity=severity,
                            message=message,
                            line=line,
                            column=column,
                            record_id=record.id if record else None,
                            excerpt=record.excerpt() if record else "",
                            source="memguard.naming",
                            suggestion=suggestion,
                        )
                    )
        diagnostics.sort(key=lambda d: (d.line or 0, d.column or 0))
        return diagnostics
