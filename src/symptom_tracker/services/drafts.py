"""Coalescing of rapid successive edits into single writes."""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from functools import partial
from typing import Generic, TypeVar

from symptom_tracker.services.entries import SymptomEntryService

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DebouncedWriter(Generic[T]):
    """Single-slot writer that flushes after an idle interval.

    Each ``submit`` replaces the pending value and restarts the timer, so only
    the latest value is written. ``close`` always flushes what is pending.
    """

    write: Callable[[T], None]
    delay_seconds: float = 0.5
    _pending: T | None = field(default=None, init=False)
    _has_pending: bool = field(default=False, init=False)
    _timer: asyncio.Task[None] | None = field(default=None, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    @property
    def idle(self) -> bool:
        """Return true when nothing is pending, scheduled or being written."""
        return (
            not self._has_pending and self._timer is None and not self._lock.locked()
        )

    def submit(self, value: T) -> None:
        """Replace the pending value and restart the idle timer."""
        self._pending = value
        self._has_pending = True
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._flush_later())

    async def flush(self) -> None:
        """Write the pending value now, if there is one.

        Waits for a write already in progress, so writes never overlap. When
        the write fails the value stays pending unless a newer one replaced it.
        """
        async with self._lock:
            if not self._has_pending:
                return
            value = self._pending
            self._pending = None
            self._has_pending = False
            try:
                await asyncio.to_thread(self.write, value)
            except Exception:
                if not self._has_pending:
                    self._pending = value
                    self._has_pending = True
                raise

    async def close(self) -> None:
        """Cancel the timer and flush the last pending value."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        await self.flush()

    async def _flush_later(self) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._timer = None
        try:
            await self.flush()
        except Exception:
            logger.exception("Debounced write failed")


@dataclass
class DraftService:
    """Debounced per-day entry saves for in-progress edits."""

    entry_service: SymptomEntryService
    delay_seconds: float = 0.5
    _writers: dict[tuple[str, date], DebouncedWriter[dict[str, object]]] = field(
        default_factory=dict, init=False
    )

    def submit(self, user_id: str, day: date, values: Mapping[str, object]) -> None:
        """Queue the latest values for a day, replacing any pending draft.

        Values are validated immediately so errors reach the caller; the write
        itself happens after the idle interval.
        """
        self.entry_service.validate_values(user_id, day, values)
        self._prune()
        key = (user_id, day)
        writer = self._writers.get(key)
        if writer is None:
            writer = DebouncedWriter(
                write=partial(self.entry_service.save_for_day, user_id, day),
                delay_seconds=self.delay_seconds,
            )
            self._writers[key] = writer
        writer.submit(dict(values))

    async def flush(self, user_id: str, day: date) -> None:
        """Write a pending draft immediately."""
        writer = self._writers.get((user_id, day))
        if writer is not None:
            await writer.close()

    async def close(self) -> None:
        """Flush every pending draft."""
        writers = list(self._writers.values())
        self._writers.clear()
        for writer in writers:
            try:
                await writer.close()
            except Exception:
                logger.exception("Failed to flush pending draft")
        if writers:
            logger.info("Flushed pending drafts", extra={"count": len(writers)})

    def _prune(self) -> None:
        for key in [key for key, writer in self._writers.items() if writer.idle]:
            del self._writers[key]
