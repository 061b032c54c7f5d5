"""Project memory: rule records plus their markdown store.

Layout:
    <memory_dir>/
    ├── records/
    │   └── <id>.md          # One record per file, YAML frontmatter + content body
    └── .versions/           # Timestamped backups (10 per record)

The analysis core only ever reads a snapshot via `MemoryStore.load_all()`.
"""

from memguard.memory.models import (
    Category,
    Importance,
    MalformedRecordError,
    MemoryRecord,
    coerce_records,
)

__all__ = [
    "Category",
    "Importance",
    "MalformedRecordError",
    "MemoryRecord",
    "coerce_records",
]
