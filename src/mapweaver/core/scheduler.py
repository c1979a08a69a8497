"""Timer utilities for debounced document work.

The document never sleeps; it hands callbacks to a ``Scheduler``. ``AsyncioScheduler`` runs them
on an event loop, ``ManualScheduler`` keeps a virtual clock that callers advance explicitly (tests,
synchronous hosts). ``SingleSlotTimer`` gives each concern one pending callback at most.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable

from mapweaver.logging import get_logger, log_exception

logger = get_logger(__name__)


class TimerHandle(ABC):
    """A scheduled callback that can be cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        """Cancel the callback. Cancelling twice, or after it ran, is harmless."""

    @property
    @abstractmethod
    def cancelled(self) -> bool: ...


class Scheduler(ABC):
    """Runs callbacks after a delay expressed in milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule ``callback`` to run once after ``delay_ms``."""


@dataclass(order=True)
class _ManualEntry:
    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class _ManualHandle(TimerHandle):
    def __init__(self, entry: _ManualEntry):
        self._entry = entry

    def cancel(self) -> None:
        self._entry.cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._entry.cancelled


class ManualScheduler(Scheduler):
    """Deterministic scheduler driven by a virtual clock."""

    def __init__(self) -> None:
        self._now = 0.0
        self._queue: list[_ManualEntry] = []
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        """Current virtual time in milliseconds."""
        return self._now

    @property
    def pending(self) -> int:
        """Number of callbacks waiting to run."""
        return sum(1 for entry in self._queue if not entry.cancelled)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        entry = _ManualEntry(due=self._now + max(0.0, delay_ms), seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, entry)
        return _ManualHandle(entry)

    def advance(self, ms: float) -> int:
        """Move the clock forward, running every callback that becomes due.

        Callbacks scheduled while advancing run too when they fall inside the window.

        Returns:
            Number of callbacks executed.
        """

        deadline = self._now + ms
        ran = 0
        while self._queue and self._queue[0].due <= deadline:
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            self._now = max(self._now, entry.due)
            entry.cancelled = True
            entry.callback()
            ran += 1
        self._now = deadline
        return ran

    def run_all(self, limit: int = 10_000) -> int:
        """Run callbacks until the queue is empty."""

        ran = 0
        while self._queue:
            if ran >= limit:
                raise RuntimeError(f"scheduler did not settle after {limit} callbacks")
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            self._now = max(self._now, entry.due)
            entry.cancelled = True
            entry.callback()
            ran += 1
        return ran


class _AsyncioHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by ``loop.call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop or asyncio.get_running_loop()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return _AsyncioHandle(self._loop.call_later(max(0.0, delay_ms) / 1000, callback))


def default_scheduler() -> Scheduler:
    """An ``AsyncioScheduler`` when called inside a running loop, else a ``ManualScheduler``."""

    try:
        return AsyncioScheduler(asyncio.get_running_loop())
    except RuntimeError:
        return ManualScheduler()


class SingleSlotTimer:
    """At most one pending callback; rescheduling replaces the previous one."""

    def __init__(self, scheduler: Scheduler, name: str):
        self._scheduler = scheduler
        self._name = name
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            try:
                callback()
            except Exception:
                log_exception(logger, "Timer callback failed", timer=self._name)

        self._handle = self._scheduler.call_later(delay_ms, fire)

    def cancel(self) -> bool:
        """Cancel the pending callback; returns whether one was pending."""

        handle, self._handle = self._handle, None
        if handle is None or handle.cancelled:
            return False
        handle.cancel()
        return True
