"""Relevance scoring and selection of memory records for a file.

Signals are additive and weighted so that a higher-priority signal dominates
the ones below it: critical bonus >> related file > tag > declared name >
import > domain keyword > plain word overlap. Exact weights live in
`ScoringConfig` and can be tuned without changing this module.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from memguard.config import ScoringConfig, SelectionConfig
from memguard.features import FeatureSet
from memguard.memory.models import Importance, MemoryRecord, coerce_records

logger = logging.getLogger(__name__)


def _related(record: MemoryRecord, file_path: str) -> bool:
    if not record.related_files or not file_path:
        return False
    return any(f in file_path or file_path in f for f in record.related_files if f)


def _tag_matches(tag: str, features: FeatureSet) -> bool:
    t = tag.lower()
    if not t:
        return False
    return (
        t in features.file_name.lower()
        or t in features.file_dir.lower()
        or any(t in f.lower() for f in features.functions)
        or any(t in c.lower() for c in features.types)
        or any(t in k.lower() for k in features.keywords)
    )


def _in_content_or_tags(name: str, content: str, tags: list[str]) -> bool:
    n = name.lower()
    return n in content or any(n in t for t in tags)


def score(record: MemoryRecord, features: FeatureSet, weights: ScoringConfig | None = None) -> float:
    """Relevance of one record to the file described by `features`."""
    w = weights or ScoringConfig()
    content = record.content.lower()
    tags = [t.lower() for t in record.tags]
    total = 0.0

    if record.importance is Importance.CRITICAL:
        total += w.critical_bonus

    if _related(record, features.file_path):
        total += w.related_file

    total += w.tag_match * sum(1 for t in record.tags if _tag_matches(t, features))
    total += w.name_match * sum(1 for f in features.functions if _in_content_or_tags(f, content, tags))
    total += w.name_match * sum(1 for c in features.types if _in_content_or_tags(c, content, tags))
    total += w.import_match * sum(1 for i in features.imports if i.lower() in content)
    total += w.keyword_match * sum(1 for k in features.keywords if _in_content_or_tags(k, content, tags))

    words = " ".join(features.functions + features.types + features.keywords).lower().split()
    total += w.word_overlap * sum(1 for word in words if len(word) > 3 and word in content)

    if record.importance is Importance.HIGH:
        total *= w.high_multiplier
    elif record.importance is Importance.MEDIUM:
        total *= w.medium_multiplier
    return total


def select(
    corpus: Iterable[MemoryRecord | dict],
    features: FeatureSet,
    weights: ScoringConfig | None = None,
    selection: SelectionConfig | None = None,
) -> list[MemoryRecord]:
    """Records to expose for a file: every critical record, then the best of the rest.

    Critical records keep their corpus order and count toward the cap first.
    The rest must beat the threshold and are ranked by score; ties keep
    corpus order because the sort is stable.
    """
    sel = selection or SelectionConfig()
    records = coerce_records(corpus)

    critical = [r for r in records if r.importance is Importance.CRITICAL]
    scored = [
        (score(r, features, weights), r) for r in records if r.importance is not Importance.CRITICAL
    ]
    candidates = [pair for pair in scored if pair[0] > sel.threshold]
    candidates.sort(key=lambda pair: pair[0], reverse=True)

    remaining = max(0, sel.max_selected - len(critical))
    chosen = critical + [r for _, r in candidates[:remaining]]
    logger.debug(
        "Selected %d/%d memories for %s (%d critical)",
        len(chosen),
        len(records),
        features.file_path,
        len(critical),
    )
    return chosen


def select_without_file(corpus: Iterable[MemoryRecord | dict]) -> list[MemoryRecord]:
    """With no file to score against, expose all critical and high records."""
    return [
        r
        for r in coerce_records(corpus)
        if r.importance in (Importance.CRITICAL, Importance.HIGH)
    ]
