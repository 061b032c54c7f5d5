"""Markdown memory store: one record per file, metadata in YAML frontmatter.

Markdown files are the source of truth. An in-memory index (built once at
startup, updated incrementally on writes) maps record ids to their files so
lookups never rescan the directory.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import frontmatter

from memguard.memory.models import (
    Category,
    Importance,
    MalformedRecordError,
    MemoryRecord,
    coerce_records,
)

logger = logging.getLogger(__name__)

MAX_VERSIONS = 10

_UPDATABLE = {"content", "category", "importance", "tags", "related_files", "confidence"}


class MemoryStore:
    """Read/write access to the project memory corpus."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._index: dict[str, Path] = {}
        self._ensure_initialized()
        self._build_index()

    # ── Initialization ────────────────────────────────────────

    def _ensure_initialized(self) -> None:
        """Ensure base directories exist. Idempotent."""
        for d in ["records", ".versions"]:
            (self.root / d).mkdir(parents=True, exist_ok=True)

    @property
    def records_dir(self) -> Path:
        return self.root / "records"

    # ── In-memory index ───────────────────────────────────────

    def _build_index(self) -> None:
        """Scan records/ once at startup, build id → path index."""
        self._index.clear()
        for md_file in sorted(self.records_dir.glob("*.md")):
            meta = self._parse_frontmatter(md_file)
            record_id = meta.get("id")
            if record_id:
                self._index[str(record_id)] = md_file

    def _parse_frontmatter(self, path: Path) -> dict:
        """Parse YAML frontmatter from a markdown file."""
        try:
            post = frontmatter.load(str(path))
            return dict(post.metadata)
        except Exception:
            return {}

    def _read_record(self, path: Path) -> MemoryRecord:
        post = frontmatter.load(str(path))
        data = dict(post.metadata)
        data["content"] = post.content
        return MemoryRecord.from_dict(data)

    # ── File naming & paths ───────────────────────────────────

    def _slugify(self, name: str) -> str:
        """Minimal slug: strip illegal chars, spaces to hyphens, keep CJK."""
        slug = re.sub(r'[<>:"/\\|?*\n\r\t]', "", name)
        slug = slug.strip().replace(" ", "-")
        return slug or "unnamed"

    def _resolve_path(self, record_id: str) -> Path:
        """Existing file for the id, or a fresh collision-free path."""
        if record_id in self._index:
            return self._index[record_id]
        slug = self._slugify(record_id)
        path = self.records_dir / f"{slug}.md"
        counter = 2
        while path.exists():
            path = self.records_dir / f"{slug}-{counter}.md"
            counter += 1
        return path

    def _write_record(self, path: Path, record: MemoryRecord) -> None:
        metadata = record.to_dict()
        content = metadata.pop("content")
        post = frontmatter.Post(content, **metadata)
        path.write_text(frontmatter.dumps(post) + "\n", encoding="utf-8")
        self._index[record.id] = path

    def _backup(self, path: Path) -> None:
        """Backup to .versions/, keep at most MAX_VERSIONS per record."""
        if not path.exists():
            return
        versions_dir = self.root / ".versions"
        versions_dir.mkdir(exist_ok=True)
        ts = datetime.now().strftime("%Y%m%dT%H%M%S%f")
        (versions_dir / f"{path.stem}-{ts}.md").write_text(
            path.read_text(encoding="utf-8"), encoding="utf-8"
        )
        # exact stem match, so "auth" never prunes the backups of "auth-rules"
        own = re.compile(rf"{re.escape(path.stem)}-\d{{8}}T\d{{12}}\.md")
        old = sorted(f for f in versions_dir.glob(f"{path.stem}-*.md") if own.fullmatch(f.name))
        for f in old[:-MAX_VERSIONS]:
            f.unlink()

    # ── CRUD ──────────────────────────────────────────────────

    def load_all(self) -> list[MemoryRecord]:
        """Snapshot of every readable record, in id-index order. Malformed files are skipped."""
        records: list[MemoryRecord] = []
        for record_id, path in self._index.items():
            try:
                records.append(self._read_record(path))
            except (MalformedRecordError, OSError, ValueError) as e:
                logger.warning("Skipping unreadable memory %s (%s): %s", record_id, path, e)
        return records

    def get(self, record_id: str) -> MemoryRecord | None:
        path = self._index.get(record_id)
        if not path:
            return None
        try:
            return self._read_record(path)
        except (MalformedRecordError, OSError, ValueError) as e:
            logger.warning("Memory %s unreadable: %s", record_id, e)
            return None

    def add(self, record: MemoryRecord) -> None:
        """Store a new record. An existing id is overwritten (with backup)."""
        path = self._resolve_path(record.id)
        self._backup(path)
        self._write_record(path, record)
        logger.info("Added memory: %s (%s/%s)", record.id, record.category.value, record.importance.value)

    def update(self, record_id: str, **fields) -> bool:
        """Apply partial updates to a record and refresh its timestamp."""
        current = self.get(record_id)
        if current is None:
            logger.warning("Memory %s not found for update", record_id)
            return False
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise TypeError(f"cannot update fields: {sorted(unknown)}")

        if "category" in fields:
            fields["category"] = Category.parse(fields["category"])
        if "importance" in fields:
            fields["importance"] = Importance(fields["importance"])
        if "tags" in fields:
            fields["tags"] = frozenset(fields["tags"])
        if fields.get("related_files") is not None:
            fields["related_files"] = frozenset(fields["related_files"])

        updated = replace(current, timestamp=datetime.now(timezone.utc), **fields)
        path = self._index[record_id]
        self._backup(path)
        self._write_record(path, updated)
        logger.info("Updated memory: %s", record_id)
        return True

    def delete(self, record_id: str) -> bool:
        """Delete a record file (auto-backup)."""
        path = self._index.get(record_id)
        if not path:
            logger.warning("Memory %s not found for deletion", record_id)
            return False
        self._backup(path)
        path.unlink(missing_ok=True)
        self._index.pop(record_id, None)
        logger.info("Deleted memory: %s", record_id)
        return True

    # ── Queries ───────────────────────────────────────────────

    def search(self, text: str) -> list[MemoryRecord]:
        """Case-insensitive substring match over content, tags and related files."""
        q = text.lower()
        results = []
        for record in self.load_all():
            if q in record.content.lower():
                results.append(record)
            elif any(q in tag.lower() for tag in record.tags):
                results.append(record)
            elif record.related_files and any(q in f.lower() for f in record.related_files):
                results.append(record)
        return results

    def fuzzy_search(self, text: str) -> list[MemoryRecord]:
        """Records sharing at least one word with the query, best overlap first."""
        words = [w for w in text.lower().split() if w]
        records = self.load_all()
        if not words:
            return records

        scored: list[tuple[float, MemoryRecord]] = []
        for record in records:
            content = record.content.lower()
            tags = " ".join(sorted(record.tags)).lower()
            if not any(w in content or w in tags for w in words):
                continue
            scored.append((self._match_score(record, content, tags, words), record))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [record for _, record in scored]

    def _match_score(self, record: MemoryRecord, content: str, tags: str, words: list[str]) -> float:
        score = 0.0
        for word in words:
            if word in content:
                score += 2
            if word in tags:
                score += 3
            if record.importance is Importance.CRITICAL:
                score += 1
            elif record.importance is Importance.HIGH:
                score += 0.5
        return score

    def by_category(self, category: Category | str) -> list[MemoryRecord]:
        category = Category.parse(category) if isinstance(category, str) else category
        return [r for r in self.load_all() if r.category is category]

    def by_importance(self, importance: Importance | str) -> list[MemoryRecord]:
        importance = Importance(importance)
        return [r for r in self.load_all() if r.importance is importance]

    def all_tags(self) -> list[str]:
        tags: set[str] = set()
        for record in self.load_all():
            tags.update(record.tags)
        return sorted(tags)

    # ── Maintenance ───────────────────────────────────────────

    def cleanup_expired(self, max_age_days: int = 90) -> int:
        """Delete medium/low records older than max_age_days. Returns count removed."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=max_age_days)
        removed = 0
        for record in self.load_all():
            if record.importance in (Importance.CRITICAL, Importance.HIGH):
                continue
            ts = record.timestamp
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=timezone.utc)
            if ts < cutoff and self.delete(record.id):
                removed += 1
        return removed

    def import_json(self, path: Path) -> int:
        """Import a legacy memories.json array. Returns count imported."""
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Cannot import %s: %s", path, e)
            return 0
        if not isinstance(raw, list):
            logger.warning("Cannot import %s: expected a JSON array", path)
            return 0
        records = coerce_records(raw)
        for record in records:
            self.add(record)
        logger.info("Imported %d memories from %s", len(records), path)
        return len(records)
