"""Heuristic extraction of machine-checkable constraints from memory prose.

A memory such as "禁止：panic(、os.Exit" or "Never call `panic(` in
handlers" becomes a `Constraint` the validator can match against code. The
extraction is keyword-driven and deliberately permissive: a sentence with no
recognised trigger simply yields nothing. Validators only depend on the
`Constraint` shape, so a stricter rule language can replace
`extract_constraints` later without touching them.

Three shapes are recognised, in Chinese and English:

- forbidden:   <forbid trigger> item, item, ...
- required:    <require trigger> item, item, ...
- conditional: 如果 X 则 Y / 当 X 时，必须 Y / if X then Y / when X, must Y
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

MAX_ITEM_LENGTH = 60

FORBID_TRIGGERS = {
    "zh": ["禁止", "不允许", "不能", "不得", "严禁", "不要", "不可", "避免"],
    "en": [
        "must not", "mustn't", "should not", "shouldn't", "do not use", "don't use",
        "do not", "don't", "never use", "never", "cannot", "can't", "may not",
        "forbidden", "forbid", "not allowed", "prohibited", "banned", "avoid",
    ],
}

REQUIRE_TRIGGERS = {
    "zh": ["必须", "应该", "应当", "要求", "务必", "需要"],
    "en": ["must always", "must", "should always", "should", "always use", "always", "required", "require", "need to"],
}


class ConstraintType(str, Enum):
    FORBIDDEN = "forbidden"
    REQUIRED = "required"
    CONDITIONAL = "conditional"


@dataclass(frozen=True)
class Constraint:
    type: ConstraintType
    patterns: tuple[str, ...] = ()
    # conditional only: if `condition` occurs, one of `requirement` must too
    condition: str | None = None
    requirement: tuple[str, ...] = ()
    # the sentence the constraint was read from
    segment: str = ""


@dataclass(frozen=True)
class Violation:
    constraint: Constraint
    pattern: str
    line: int | None = None
    column: int | None = None

    @property
    def message(self) -> str:
        kind = self.constraint.type
        if kind is ConstraintType.FORBIDDEN:
            return f'uses forbidden "{self.pattern}"'
        if kind is ConstraintType.REQUIRED:
            return f'missing required "{self.pattern}"'
        return f'uses "{self.constraint.condition}" without "{self.pattern}"'


ConstraintExtractor = Callable[[str], list[Constraint]]


def _trigger_regex(words: list[str]) -> str:
    parts = []
    for word in sorted(words, key=len, reverse=True):
        escaped = re.escape(word)
        if word.isascii():
            escaped = rf"(?<![A-Za-z]){escaped}(?![A-Za-z])"
        parts.append(escaped)
    return "|".join(parts)


_FORBID_WORDS = FORBID_TRIGGERS["zh"] + FORBID_TRIGGERS["en"]
_REQUIRE_WORDS = REQUIRE_TRIGGERS["zh"] + REQUIRE_TRIGGERS["en"]
_TRIGGER = re.compile(
    rf"(?P<forbid>{_trigger_regex(_FORBID_WORDS)})|(?P<require>{_trigger_regex(_REQUIRE_WORDS)})",
    re.IGNORECASE,
)

_SEGMENT_SPLIT = re.compile(r"[。！？!?\n]+|\.(?=\s|$)")
_ITEM_SPLIT = re.compile(r"[,，、;；]|\s+or\s+|\s+and\s+|或者|或", re.IGNORECASE)
_QUOTED = re.compile(r"[`\"“「]([^`\"”」]+)[`\"”」]")
_LEADING_NOISE = re.compile(
    r"^(?:[\s:：\-–]|use\b|using\b|call\b|calling\b|import\b|importing\b|include\b|be\b|"
    r"the\b|any\b|directly\b|depend(?:ing)?\s+on\b|rely\s+on\b|直接|依赖|使用|调用|引入|导入|出现|包含)+",
    re.IGNORECASE,
)
_TRAILING_NOISE = re.compile(r"[\s.。!！?？:：]+$")

_CONDITIONALS = [
    re.compile(
        r"(?:如果|若|假如)\s*(?P<cond>.+?)\s*[，,]?\s*(?:则|那么|就)\s*(?:必须|需要|应该|要)?\s*[:：]?\s*(?P<req>.+)"
    ),
    re.compile(r"当\s*(?P<cond>.+?)\s*时\s*[，,]?\s*(?:必须|需要|应该|要|则)\s*[:：]?\s*(?P<req>.+)"),
    re.compile(
        r"\bif\s+(?P<cond>.+?)\s*,?\s*then\s+(?:(?:you\s+)?(?:must|should)\s+)?(?:also\s+)?[:：]?\s*(?P<req>.+)",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:when|whenever)\s+(?P<cond>.+?)\s*,?\s*(?:(?:you|it|code)\s+)?(?:must|should|always)\s+(?!not\b)"
        r"(?:also\s+)?[:：]?\s*(?P<req>.+)",
        re.IGNORECASE,
    ),
]
_CONDITION_NOISE = re.compile(
    r"^(?:you\s+use|using|calling|the\s+code\s+uses|code\s+contains|使用|调用|用到|出现|包含)\s*"
    r"|\s*(?:is\s+used|are\s+used|is\s+called|is\s+present|appears|被使用|出现)$",
    re.IGNORECASE,
)


def split_segments(content: str) -> list[str]:
    """Sentence-like segments: split on terminal punctuation and newlines."""
    return [s.strip() for s in _SEGMENT_SPLIT.split(content) if s and s.strip()]


def _clean(item: str) -> str:
    item = _LEADING_NOISE.sub("", item.strip())
    item = _TRAILING_NOISE.sub("", item)
    return item.strip().strip("'‘’")


def split_items(clause: str) -> tuple[str, ...]:
    """Literal items of an enumeration; quoted literals win when present."""
    quoted = _QUOTED.findall(clause)
    raw = quoted if quoted else _ITEM_SPLIT.split(_LEADING_NOISE.sub("", clause))
    items: list[str] = []
    for part in raw:
        item = part.strip() if quoted else _clean(part)
        if item and len(item) <= MAX_ITEM_LENGTH and item not in items:
            items.append(item)
    return tuple(items)


def _conditional(segment: str) -> Constraint | None:
    for pattern in _CONDITIONALS:
        m = pattern.search(segment)
        if not m:
            continue
        cond_text = m.group("cond")
        quoted = _QUOTED.findall(cond_text)
        condition = quoted[0].strip() if quoted else _clean(_CONDITION_NOISE.sub("", cond_text.strip()))
        requirement = split_items(m.group("req"))
        if condition and len(condition) <= MAX_ITEM_LENGTH and requirement:
            return Constraint(
                ConstraintType.CONDITIONAL, condition=condition, requirement=requirement, segment=segment
            )
    return None


def extract_constraints(content: str) -> list[Constraint]:
    """All constraints found in a memory's text, in reading order."""
    constraints: list[Constraint] = []
    for segment in split_segments(content):
        conditional = _conditional(segment)
        if conditional:
            constraints.append(conditional)
            continue

        triggers = list(_TRIGGER.finditer(segment))
        for i, m in enumerate(triggers):
            end = triggers[i + 1].start() if i + 1 < len(triggers) else len(segment)
            items = split_items(segment[m.end() : end])
            if not items:
                continue
            kind = ConstraintType.FORBIDDEN if m.group("forbid") else ConstraintType.REQUIRED
            constraints.append(Constraint(kind, patterns=items, segment=segment))
    return constraints


def has_trigger(content: str, kind: ConstraintType) -> bool:
    group = "forbid" if kind is ConstraintType.FORBIDDEN else "require"
    return any(m.group(group) for m in _TRIGGER.finditer(content))


_STOPWORDS = {
    "的", "和", "或", "是", "在", "有", "the", "and", "for", "with", "that", "this",
    "use", "using", "when", "then", "all", "any", "are", "from", "into", "only",
}
_WORD_SPLIT = re.compile(r"[\s，。；;、,:：!?！？()（）\[\]{}\"“”'`]+")


def extract_keywords(content: str, limit: int = 5) -> list[str]:
    """A few salient words used to decide whether a rule concerns some code at all."""
    text = _TRIGGER.sub(" ", content)
    keywords: list[str] = []
    for word in _WORD_SPLIT.split(text):
        w = word.strip(".").lower()
        if len(w) > 2 and w not in _STOPWORDS and w not in keywords:
            keywords.append(w)
            if len(keywords) >= limit:
                break
    return keywords


def _locate(code: str, needle: str) -> tuple[int, int] | None:
    """1-based (line, column) of the first case-insensitive occurrence."""
    offset = code.lower().find(needle.lower())
    if offset < 0:
        return None
    line = code.count("\n", 0, offset) + 1
    column = offset - (code.rfind("\n", 0, offset) + 1) + 1
    return line, column


def find_violations(constraint: Constraint, code: str) -> list[Violation]:
    """Where `code` breaks `constraint`. Matching is case-insensitive substring search."""
    if constraint.type is ConstraintType.FORBIDDEN:
        violations = []
        for pattern in constraint.patterns:
            loc = _locate(code, pattern)
            if loc:
                violations.append(Violation(constraint, pattern, *loc))
        return violations

    if constraint.type is ConstraintType.REQUIRED:
        if constraint.patterns and not any(_locate(code, p) for p in constraint.patterns):
            return [Violation(constraint, '" or "'.join(constraint.patterns))]
        return []

    loc = _locate(code, constraint.condition or "")
    if constraint.condition and loc and not any(_locate(code, r) for r in constraint.requirement):
        return [Violation(constraint, '" or "'.join(constraint.requirement), *loc)]
    return []
