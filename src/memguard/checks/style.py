"""Soft code-style suggestions from high-importance style records."""

from __future__ import annotations

from memguard.checks.base import Diagnostic, Severity, diagnostic_for
from memguard.features import FeatureSet
from memguard.languages import get_profile
from memguard.memory.models import Category, Importance, MemoryRecord
from memguard.patterns import extract_snippets

MIN_COMMENTED_LENGTH = 100
MAX_FUNCTION_LINES = 50

_COMMENT_WORDS = ("注释", "comment")
_LENGTH_WORDS = ("函数长度", "代码长度", "function length", "function size", "long function")


class StyleCheck:
    name = "style"

    def run(self, features: FeatureSet, records: list[MemoryRecord]) -> list[Diagnostic]:
        style_records = [
            r for r in records if r.category is Category.CODE_STYLE and r.importance is Importance.HIGH
        ]
        diagnostics = []

        comment_rule = next((r for r in style_records if _mentions(r, _COMMENT_WORDS)), None)
        if comment_rule and self._lacks_comments(features):
            diagnostics.append(
                diagnostic_for(
                    comment_rule,
                    Severity.INFO,
                    "Code has no comments",
                    line=1,
                    column=1,
                    source="memguard.style",
                    suggestion="Document the non-obvious parts of this file",
                )
            )

        length_rule = next((r for r in style_records if _mentions(r, _LENGTH_WORDS)), None)
        if length_rule:
            snippets = extract_snippets(features.text, features.language)
            if snippets and snippets[0].line_count > MAX_FUNCTION_LINES:
                first = snippets[0]
                diagnostics.append(
                    diagnostic_for(
                        length_rule,
                        Severity.INFO,
                        f"Function is {first.line_count} lines long (limit {MAX_FUNCTION_LINES})",
                        line=first.line,
                        column=1,
                        source="memguard.style",
                        suggestion="Split it into smaller functions",
                    )
                )
        return diagnostics

    def _lacks_comments(self, features: FeatureSet) -> bool:
        if len(features.text) <= MIN_COMMENTED_LENGTH:
            return False
        markers = get_profile(features.language).comment_markers
        return not any(m in features.text for m in markers)


def _mentions(record: MemoryRecord, words: tuple[str, ...]) -> bool:
    lower = record.content.lower()
    return any(w in lower for w in words)
