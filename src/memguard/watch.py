"""Editor-event driver: debounced re-validation per document.

Change events arrive far faster than validation is useful, so each document
keeps at most one pending validation. A new change cancels the pending one
and schedules a fresh run after the debounce delay (latest call wins). Open
and save events validate immediately. Every run replaces the document's
diagnostics in the sink wholesale.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from memguard.checks.base import Diagnostic
from memguard.validator import ValidationResult

if TYPE_CHECKING:
    from memguard.core import MemGuard

logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticsSink(Protocol):
    """Where diagnostics for a document end up (an editor, a language server, a test)."""

    def publish(self, doc_id: str, diagnostics: list[Diagnostic]) -> None:
        """Replace all diagnostics for `doc_id`."""
        ...

    def clear(self, doc_id: str) -> None: ...


class DocumentWatcher:
    def __init__(self, guard: MemGuard, sink: DiagnosticsSink, debounce_ms: int | None = None) -> None:
        self.guard = guard
        self.sink = sink
        if debounce_ms is None:
            debounce_ms = guard.config.watch.debounce_ms
        self.debounce = debounce_ms / 1000
        self._pending: dict[str, asyncio.Task] = {}  # doc_id → scheduled validation

    @property
    def pending(self) -> list[str]:
        return [doc_id for doc_id, task in self._pending.items() if not task.done()]

    def _cancel(self, doc_id: str) -> None:
        task = self._pending.pop(doc_id, None)
        if task and not task.done():
            task.cancel()
            logger.debug("Cancelled pending validation for %s", doc_id)

    async def _validate(self, doc_id: str, path: str, text: str, language: str | None) -> ValidationResult:
        result = await asyncio.to_thread(self.guard.validate_text, text, path, language)
        self.sink.publish(doc_id, result.diagnostics)
        return result

    async def _debounced(self, doc_id: str, path: str, text: str, language: str | None) -> None:
        await asyncio.sleep(self.debounce)
        try:
            await self._validate(doc_id, path, text, language)
        except Exception as e:
            logger.error("Validation of %s failed: %s", doc_id, e)
        finally:
            if self._pending.get(doc_id) is asyncio.current_task():
                del self._pending[doc_id]

    # ── Editor events ────────────────────────────────────────

    def on_change(self, doc_id: str, path: str, text: str, language: str | None = None) -> asyncio.Task:
        """Schedule a validation after the debounce delay. Must be called from the event loop."""
        self._cancel(doc_id)
        task = asyncio.get_running_loop().create_task(self._debounced(doc_id, path, text, language))
        self._pending[doc_id] = task
        return task

    async def on_open(self, doc_id: str, path: str, text: str, language: str | None = None) -> ValidationResult:
        self._cancel(doc_id)
        return await self._validate(doc_id, path, text, language)

    async def on_save(self, doc_id: str, path: str, text: str, language: str | None = None) -> ValidationResult:
        self._cancel(doc_id)
        return await self._validate(doc_id, path, text, language)

    def on_close(self, doc_id: str) -> None:
        self._cancel(doc_id)
        self.sink.clear(doc_id)

    async def close(self) -> None:
        """Cancel every pending validation and wait for the cancellations to land."""
        tasks = [t for t in self._pending.values() if not t.done()]
        self._pending.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("DocumentWatcher stopped (%d pending validations cancelled)", len(tasks))
