"""Context bundle assembly under a token budget.

The bundle is a plain text block framed by fixed header/footer markers, with
one sub-section per importance tier:

    ========================================
    CURSOR MEMORY CONTEXT - PROJECT RULES
    ========================================
    ...
    [CRITICAL] MUST FOLLOW - DO NOT VIOLATE:
    ----------------------------------------
    ✓ <rule>
    ...
    ========================================
    END OF MEMORY CONTEXT
    ========================================

The header marker doubles as the idempotence check for injection: a document
that already contains it is never injected again.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable

from memguard.config import CompressionConfig
from memguard.languages import get_profile
from memguard.memory.models import Importance, MemoryRecord, coerce_records

logger = logging.getLogger(__name__)

HEADER_MARKER = "CURSOR MEMORY CONTEXT - PROJECT RULES"
FOOTER_MARKER = "END OF MEMORY CONTEXT"
LEGACY_MARKER = "--- 项目记忆上下文 ---"
ELISION = " ... "

_RULE = "=" * 40
_SEPARATOR = "-" * 40

HEADER = "\n".join(
    [
        _RULE,
        HEADER_MARKER,
        _RULE,
        "These are the project memories and rules that MUST be followed.",
        "DO NOT modify or ignore these rules.",
        _RULE,
    ]
)
FOOTER = "\n".join([_RULE, FOOTER_MARKER, _RULE])

TIER_ORDER = (Importance.CRITICAL, Importance.HIGH, Importance.MEDIUM)

TIER_HEADERS = {
    Importance.CRITICAL: "[CRITICAL] MUST FOLLOW - DO NOT VIOLATE:",
    Importance.HIGH: "[HIGH] STRONGLY RECOMMENDED:",
    Importance.MEDIUM: "[MEDIUM] RECOMMENDED:",
}

_BULLETS = {
    Importance.CRITICAL: "✓",
    Importance.HIGH: "•",
    Importance.MEDIUM: "-",
}

_CJK = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]")
_WORDISH = re.compile(r"[A-Za-z0-9]")

_ZH_FILLERS = ["以及", "还有", "的", "了", "和", "或"]
_EN_FILLERS = re.compile(
    r"\b(?:the|a|an|please|that|very|really|just|also|basically|actually)\b\s*",
    re.IGNORECASE,
)


def estimate_tokens(text: str) -> int:
    """Approximate token cost: 1.5 per CJK character plus 1 per other word."""
    cjk = len(_CJK.findall(text))
    words = sum(1 for w in _CJK.sub(" ", text).split() if _WORDISH.search(w))
    return math.ceil(cjk * 1.5 + words)


def compress_light(content: str) -> str:
    """Collapse runs of whitespace."""
    return " ".join(content.split())


class ContextCompressor:
    """Turns a selected, importance-ordered record list into the injected bundle."""

    def __init__(self, config: CompressionConfig | None = None) -> None:
        self.config = config or CompressionConfig()

    def compress_aggressive(self, content: str) -> str:
        """Drop filler words, then keep only a head and tail slice."""
        text = compress_light(content)
        if _CJK.search(text):
            for word in _ZH_FILLERS:
                text = text.replace(word, "")
        text = compress_light(_EN_FILLERS.sub("", text))
        cfg = self.config
        if len(text) > cfg.aggressive_trigger:
            text = text[: cfg.head_chars].rstrip() + ELISION + text[-cfg.tail_chars :].lstrip()
        return text

    def compress(self, selected: Iterable[MemoryRecord | dict], token_budget: int | None = None) -> str:
        """Render the bundle; an empty selection renders as an empty string.

        Records are taken tier by tier (critical → high → medium), keeping
        their order within a tier. Once the budget would be exceeded, all
        remaining non-critical records are skipped, while remaining critical
        records are still emitted in aggressively compressed form, up to
        `critical_cap` critical entries in total.
        """
        records = coerce_records(selected)
        if not records:
            return ""
        budget = self.config.token_budget if token_budget is None else token_budget

        used = estimate_tokens(HEADER) + estimate_tokens(FOOTER)
        sections: dict[Importance, list[str]] = {}
        exhausted = False
        critical_count = 0
        forced = 0

        for tier in TIER_ORDER:
            for record in (r for r in records if r.importance is tier):
                if tier is Importance.CRITICAL and critical_count >= self.config.critical_cap:
                    logger.warning(
                        "Critical memory cap (%d) reached, dropping the rest", self.config.critical_cap
                    )
                    break

                if not exhausted:
                    line = f"{_BULLETS[tier]} {compress_light(record.content)}"
                    cost = estimate_tokens(line)
                    if tier not in sections:
                        cost += estimate_tokens(TIER_HEADERS[tier])
                    if used + cost <= budget:
                        sections.setdefault(tier, []).append(line)
                        used += cost
                        if tier is Importance.CRITICAL:
                            critical_count += 1
                        continue
                    exhausted = True
                    logger.info("Token budget %d reached at %s memory %s", budget, tier.value, record.id)

                if tier is not Importance.CRITICAL:
                    break
                sections.setdefault(tier, []).append(
                    f"{_BULLETS[tier]} {self.compress_aggressive(record.content)}"
                )
                critical_count += 1
                forced += 1

        if not sections:
            return ""
        if forced:
            logger.info("Force-included %d critical memories beyond the budget", forced)
        return self._render(sections)

    def _render(self, sections: dict[Importance, list[str]]) -> str:
        parts = [HEADER, ""]
        for tier in TIER_ORDER:
            lines = sections.get(tier)
            if not lines:
                continue
            parts.extend([TIER_HEADERS[tier], _SEPARATOR, *lines, ""])
        parts.append(FOOTER)
        return "\n".join(parts) + "\n"


# ── Injection into a document ─────────────────────────────────

_HASH_COMMENT_LANGUAGES = {"ruby", "shell", "shellscript", "perl", "r", "yaml", "toml"}
_XML_COMMENT_LANGUAGES = {"html", "xml", "vue", "markdown"}


def is_injected(text: str) -> bool:
    """True if the document already carries a memory context block."""
    return HEADER_MARKER in text or LEGACY_MARKER in text


def render_as_comment(bundle: str, language: str | None) -> str:
    """Comment out every non-blank bundle line using the language's syntax."""
    lang = (language or "").lower()
    if lang in _XML_COMMENT_LANGUAGES:
        prefix, suffix = "<!-- ", " -->"
    elif lang in _HASH_COMMENT_LANGUAGES:
        prefix, suffix = "# ", ""
    else:
        profile = get_profile(lang)
        prefix, suffix = profile.comment_prefix, profile.comment_suffix
    return "\n".join(
        f"{prefix}{line}{suffix}" if line.strip() else "" for line in bundle.rstrip("\n").split("\n")
    )


def inject(document_text: str, bundle: str, language: str | None) -> str:
    """Prepend the commented bundle unless the document already has one."""
    if not bundle or is_injected(document_text):
        return document_text
    return render_as_comment(bundle, language) + "\n\n" + document_text
