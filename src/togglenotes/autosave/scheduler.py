"""Coalesce bursts of note edits into one history entry and one save."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..errors import PersistenceError
from ..history.store import HistoryStore
from ..notes.model import Note, clone_note
from .debounce import DebouncedCall

__all__ = ["AutosaveScheduler", "DEFAULT_AUTOSAVE_DELAY"]

LOGGER = logging.getLogger(__name__)
DEFAULT_AUTOSAVE_DELAY = 0.5

PersistCallback = Callable[[Note], bool]
StateProvider = Callable[[], Note | None]


class AutosaveScheduler:
    """Debounced commit of the working copy.

    The first prior snapshot of a burst is kept until the burst settles, so the
    recorded history entry spans every keystroke in the burst. On settle the
    prior snapshot goes to the :class:`HistoryStore` and ``persist`` receives a
    copy of the current working state.
    """

    def __init__(
        self,
        history: HistoryStore,
        persist: PersistCallback,
        current_state: StateProvider,
        *,
        delay: float = DEFAULT_AUTOSAVE_DELAY,
        loop: asyncio.AbstractEventLoop | None = None,
        on_error: Callable[[PersistenceError], None] | None = None,
        on_commit: Callable[[Note, str], None] | None = None,
    ) -> None:
        self._history = history
        self._persist = persist
        self._current_state = current_state
        self._on_error = on_error
        self._on_commit = on_commit
        self._prior: Note | None = None
        self._timer = DebouncedCall(delay, self._settle, loop=loop)

    @property
    def pending(self) -> bool:
        return self._timer.pending

    @property
    def delay(self) -> float:
        return self._timer.delay

    def schedule_commit(self, prior: Note) -> None:
        """Restart the debounce window, keeping the burst's first prior snapshot."""

        if self._prior is None or not self._timer.pending:
            self._prior = clone_note(prior)
        self._timer.schedule()

    def cancel(self) -> bool:
        """Abandon the pending commit without recording or saving anything."""

        had_pending = self._timer.cancel()
        if had_pending:
            LOGGER.debug("Autosave canceled (note_id=%s)", self._prior.id if self._prior else None)
        self._prior = None
        return had_pending

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _settle(self) -> None:
        prior, self._prior = self._prior, None
        current = self._current_state()
        if prior is None or current is None:
            return
        if current.id != prior.id:
            LOGGER.warning(
                "Dropping stale autosave: captured note_id=%s, open note_id=%s",
                prior.id,
                current.id,
            )
            return
        if prior == current:
            LOGGER.debug("Autosave settled without changes (note_id=%s)", current.id)
            return

        self._history.push(prior)
        self.persist_now(current)

    def persist_now(self, note: Note, *, source: str = "autosave") -> bool:
        """Save a copy of ``note``, reporting failures instead of raising."""

        snapshot = clone_note(note)
        try:
            saved = bool(self._persist(snapshot))
        except Exception as exc:
            self._report(PersistenceError(f"Saving note {note.id} raised {exc!r}", cause=exc))
            return False
        if not saved:
            self._report(PersistenceError(f"Saving note {note.id} failed"))
            return False
        LOGGER.debug("Committed note_id=%s (source=%s)", note.id, source)
        if self._on_commit is not None:
            try:
                self._on_commit(snapshot, source)
            except Exception:
                LOGGER.exception("Autosave commit listener failed")
        return True

    def _report(self, error: PersistenceError) -> None:
        LOGGER.error("%s", error)
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            LOGGER.exception("Autosave error listener failed")
