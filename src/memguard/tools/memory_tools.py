"""Tools for agent access to project memories.

These functions are designed to be exposed as tools to an AI agent, letting
it look up project rules and check its own edits against them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from memguard.core import MemGuard
    from memguard.memory.models import MemoryRecord


def _format(records: list[MemoryRecord], limit: int = 10) -> str:
    lines = [
        f"- [{r.importance.value}/{r.category.value}] {r.id}: {r.excerpt(120)}" for r in records[:limit]
    ]
    if len(records) > limit:
        lines.append(f"... and {len(records) - limit} more")
    return "\n".join(lines)


def get_memory_tools(guard: MemGuard) -> dict[str, callable]:
    """Return a dict of tool_name -> callable for memory operations.

    These can be registered as MCP tools or called directly.
    """

    def recall(query: str) -> str:
        """Find memories whose content, tags or related files contain `query`."""
        records = guard.store.search(query)
        return _format(records) if records else f"(no memories match '{query}')"

    def fuzzy_recall(query: str) -> str:
        """Find memories sharing words with `query`, best matches first."""
        records = guard.store.fuzzy_search(query)
        return _format(records) if records else f"(no memories resemble '{query}')"

    def get_context(file_path: str | None = None) -> str:
        """The compressed project rules relevant to a file (or all key rules)."""
        return guard.context_for(file_path) or "(no relevant memories)"

    def validate_file(file_path: str) -> str:
        """Check a file against the project rules and report every finding."""
        result = guard.validate_file(file_path)
        lines = [result.summary]
        lines.extend(str(d) for d in result.diagnostics)
        return "\n".join(lines)

    return {
        "recall": recall,
        "fuzzy_recall": fuzzy_recall,
        "get_context": get_context,
        "validate_file": validate_file,
    }
