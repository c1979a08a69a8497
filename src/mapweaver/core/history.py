"""Snapshot-based undo/redo with debounced and grouped commits.

History is a list of denormalized forests plus a pointer. Commits compare the candidate with the
snapshot at the pointer while ignoring layout fields, so layout passes never add steps. Bursts of
edits are coalesced by a single-slot debounce timer, and compound operations are wrapped in
groups: a reentrant depth counter with a dirty flag that yields at most one commit when the
outermost group ends.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from mapweaver.core.normalized import strip_layout
from mapweaver.core.scheduler import SingleSlotTimer
from mapweaver.logging import get_logger
from mapweaver.models.node import MindMapNode

logger = get_logger(__name__)

Snapshot = list[MindMapNode]


def _copy(snapshot: Snapshot) -> Snapshot:
    return [root.model_copy(deep=True) for root in snapshot]


@dataclass(frozen=True)
class HistoryState:
    """Read-only view of the history list and pointer."""

    index: int
    history: tuple[Snapshot, ...]

    def __len__(self) -> int:
        return len(self.history)


class HistoryEngine:
    """Undo/redo stack for one document.

    Args:
        capture: Returns a fresh denormalized copy of the live forest.
        timer: Debounce slot for scheduled commits.
        debounce_ms: Coalescing window for ``schedule_commit_snapshot``.
        max_history: Keep at most this many snapshots (0 keeps all).
        on_commit: Called with the new index after each stored snapshot.
    """

    def __init__(
        self,
        capture: Callable[[], Snapshot],
        timer: SingleSlotTimer,
        debounce_ms: float = 120,
        max_history: int = 0,
        on_commit: Callable[[int], None] | None = None,
    ):
        self._capture = capture
        self._timer = timer
        self._debounce_ms = debounce_ms
        self._max_history = max_history
        self._on_commit = on_commit

        self._history: list[Snapshot] = []
        self._index = -1
        self._depth = 0
        self._dirty = False
        self._group_label: str | None = None

    @property
    def index(self) -> int:
        return self._index

    @property
    def group_depth(self) -> int:
        return self._depth

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def commit_pending(self) -> bool:
        return self._timer.pending

    def state(self) -> HistoryState:
        return HistoryState(index=self._index, history=tuple(self._history))

    def reset(self, baseline: Snapshot | None = None) -> None:
        """Drop all history; ``baseline`` becomes the only snapshot."""

        self._timer.cancel()
        self._depth = 0
        self._dirty = False
        self._group_label = None
        if baseline is None:
            self._history = []
            self._index = -1
        else:
            self._history = [_copy(baseline)]
            self._index = 0

    def commit_snapshot(self) -> bool:
        """Store the live forest unless it only differs from the current step in layout.

        Returns:
            True when a snapshot was appended.
        """

        candidate = self._capture()
        if 0 <= self._index < len(self._history):
            if strip_layout(self._history[self._index]) == strip_layout(candidate):
                logger.debug("Skipping layout-only snapshot")
                return False

        self._history = [*self._history[: self._index + 1], candidate]
        if self._max_history and len(self._history) > self._max_history:
            del self._history[: len(self._history) - self._max_history]
        self._index = len(self._history) - 1
        logger.debug("Committed history step %d", self._index)
        if self._on_commit is not None:
            self._on_commit(self._index)
        return True

    def schedule_commit_snapshot(self) -> None:
        """Debounce a commit; a newer call replaces a pending one."""

        self._timer.schedule(self._debounce_ms, self.commit_snapshot)

    def cancel_pending_commit(self) -> bool:
        return self._timer.cancel()

    def begin_group(self, label: str | None = None) -> None:
        if self._depth == 0:
            self._dirty = False
            self._group_label = label
            self._timer.cancel()
        self._depth += 1

    def end_group(self, commit: bool = True) -> bool:
        """Leave a group; the outermost exit commits once if anything changed.

        Returns:
            True when a snapshot was stored.
        """

        if self._depth == 0:
            logger.debug("end_group called without an open group")
            return False
        self._depth -= 1
        if self._depth > 0:
            return False

        dirty, label = self._dirty, self._group_label
        self._dirty = False
        self._group_label = None
        if not (commit and dirty):
            if dirty:
                logger.debug("Discarding history group %s", label or "-")
            return False
        return self.commit_snapshot()

    def note_change(self) -> None:
        """Record a structural change: mark the open group dirty or debounce a commit."""

        if self._depth > 0:
            self._dirty = True
        else:
            self.schedule_commit_snapshot()

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._history) - 1

    def undo(self) -> Snapshot | None:
        """Step back; returns a copy of the snapshot to restore, or None at the start."""

        self._timer.cancel()
        if not self.can_undo():
            return None
        self._index -= 1
        return _copy(self._history[self._index])

    def redo(self) -> Snapshot | None:
        """Step forward; returns a copy of the snapshot to restore, or None at the end."""

        self._timer.cancel()
        if not self.can_redo():
            return None
        self._index += 1
        return _copy(self._history[self._index])
