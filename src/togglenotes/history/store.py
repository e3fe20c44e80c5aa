"""Bounded undo/redo stacks of validated note snapshots."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from ..errors import ValidationError
from ..notes.model import Note, clone_note, coerce_note, validate_state

__all__ = ["HistoryEntry", "HistoryListener", "HistorySize", "HistoryState", "HistoryStore"]

LOGGER = logging.getLogger(__name__)
DEFAULT_MAX_SIZE = 100
# Timestamp given to payload snapshots that carry none.
_UNSTAMPED = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(slots=True)
class HistoryEntry:
    """A detached note snapshot plus the moment it was recorded."""

    snapshot: Note
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True, frozen=True)
class HistoryState:
    """Payload handed to listeners so controls can be enabled or disabled."""

    can_undo: bool
    can_redo: bool
    undo_size: int = 0
    redo_size: int = 0


@dataclass(slots=True, frozen=True)
class HistorySize:
    undo: int
    redo: int
    max_size: int


HistoryListener = Callable[[HistoryState], None]


class HistoryStore:
    """Undo and redo stacks for a single open note.

    Entries are always deep copies: nothing handed in or out of the store is
    shared with the caller. Both stacks are bounded by ``max_size`` and evict
    their oldest entry first.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, on_change: HistoryListener | None = None) -> None:
        if max_size < 1:
            raise ValueError("max_size must be a positive number")
        self._max_size = max_size
        self._undo: deque[HistoryEntry] = deque()
        self._redo: deque[HistoryEntry] = deque()
        self._listeners: list[HistoryListener] = []
        if on_change is not None:
            self._listeners.append(on_change)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def max_size(self) -> int:
        return self._max_size

    def state(self) -> HistoryState:
        return HistoryState(
            can_undo=bool(self._undo),
            can_redo=bool(self._redo),
            undo_size=len(self._undo),
            redo_size=len(self._redo),
        )

    def size(self) -> HistorySize:
        return HistorySize(undo=len(self._undo), redo=len(self._redo), max_size=self._max_size)

    def notify(self, listener: HistoryListener) -> None:
        """Register ``listener`` to receive a :class:`HistoryState` after every change."""

        self._listeners.append(listener)

    def push(self, snapshot: Note | Mapping[str, Any]) -> bool:
        """Record ``snapshot`` as the newest undo entry.

        Returns ``True`` when an entry was added. Invalid snapshots and
        snapshots equal to the current top entry leave both stacks untouched.
        """

        try:
            note = self._checked(snapshot)
        except ValidationError as exc:
            LOGGER.error("Rejected history push: %s", exc)
            return False

        if self._undo and self._undo[-1].snapshot == note:
            LOGGER.debug("History push skipped: snapshot matches top entry (note_id=%s)", note.id)
            return False

        self._append(self._undo, note)
        self._redo.clear()
        LOGGER.debug("History push: note_id=%s undo=%d", note.id, len(self._undo))
        self._emit()
        return True

    def undo(self, current: Note | Mapping[str, Any] | None = None) -> Note | None:
        """Pop the newest undo entry, parking ``current`` on the redo stack."""

        return self._step(self._undo, self._redo, current, label="undo")

    def redo(self, current: Note | Mapping[str, Any] | None = None) -> Note | None:
        """Pop the newest redo entry, parking ``current`` on the undo stack."""

        return self._step(self._redo, self._undo, current, label="redo")

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
        self._emit()

    def set_max_size(self, max_size: int) -> None:
        """Change the capacity, trimming the oldest undo entries when shrinking."""

        if not isinstance(max_size, int) or isinstance(max_size, bool) or max_size < 1:
            raise ValueError("max_size must be a positive number")
        self._max_size = max_size
        while len(self._undo) > max_size:
            self._undo.popleft()
        while len(self._redo) > max_size:
            self._redo.popleft()
        self._emit()

    def describe(self) -> dict[str, Any]:
        """Return a compact debug view of both stacks."""

        def _summarize(entry: HistoryEntry) -> dict[str, Any]:
            return {
                "timestamp": entry.timestamp.isoformat(),
                "id": entry.snapshot.id,
                "title": entry.snapshot.title,
                "section_count": len(entry.snapshot.sections),
            }

        return {
            "undo": [_summarize(entry) for entry in self._undo],
            "redo": [_summarize(entry) for entry in self._redo],
            "max_size": self._max_size,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _step(
        self,
        source: deque[HistoryEntry],
        target: deque[HistoryEntry],
        current: Note | Mapping[str, Any] | None,
        *,
        label: str,
    ) -> Note | None:
        if not source:
            return None

        if current is not None:
            if validate_state(current):
                self._append(target, coerce_note(current, default_time=_UNSTAMPED))
            else:
                LOGGER.warning("Ignoring malformed working state passed to %s", label)

        entry = source.pop()
        if not validate_state(entry.snapshot):
            LOGGER.error(
                "Discarded corrupt %s entry recorded at %s",
                label,
                entry.timestamp.isoformat(),
            )
            self._emit()
            return None

        LOGGER.debug("History %s: note_id=%s undo=%d redo=%d", label, entry.snapshot.id, len(self._undo), len(self._redo))
        self._emit()
        return clone_note(entry.snapshot)

    def _append(self, stack: deque[HistoryEntry], note: Note) -> None:
        while len(stack) >= self._max_size:
            stack.popleft()
        stack.append(HistoryEntry(snapshot=clone_note(note)))

    @staticmethod
    def _checked(snapshot: Any) -> Note:
        if not validate_state(snapshot):
            raise ValidationError("snapshot does not have the shape of a note", payload=snapshot)
        return coerce_note(snapshot, default_time=_UNSTAMPED)

    def _emit(self) -> None:
        state = self.state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                LOGGER.exception("History listener %r failed", listener)
