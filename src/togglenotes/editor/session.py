"""Per-note editing context: working copy, field edits, undo and redo."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable

from ..autosave.scheduler import DEFAULT_AUTOSAVE_DELAY, AutosaveScheduler
from ..errors import PersistenceError
from ..history.store import DEFAULT_MAX_SIZE, HistoryState, HistoryStore
from ..notes.model import Note, Section, clone_note, clone_section, next_section_id
from ..notes.repository import NoteRepository
from ..ui.events import (
    EditorClosed,
    EditorOpened,
    EventBus,
    HistoryChanged,
    NoteCommitted,
    NoteCreated,
    NoteDeleted,
    PersistenceFailed,
)
from .ports import ConfirmDialog, ConfirmOptions, NoteRenderer
from .reconcile import RenderReason

__all__ = ["EditSessionController", "EditorState"]

LOGGER = logging.getLogger(__name__)


class EditorState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    PENDING = "pending"


class EditSessionController:
    """Owns the working copy of the open note.

    Field edits mutate the working copy synchronously and hand the pre-edit
    snapshot to the :class:`AutosaveScheduler`. Undo and redo bypass the
    scheduler: they replace the working copy, save immediately and ask the
    renderer for a full rebuild so the view restores caret and scroll.

    Every public mutator is a no-op returning ``False`` when no note is open.
    """

    def __init__(
        self,
        repository: NoteRepository,
        renderer: NoteRenderer,
        confirm: ConfirmDialog,
        *,
        history: HistoryStore | None = None,
        event_bus: EventBus | None = None,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
        history_limit: int = DEFAULT_MAX_SIZE,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._repository = repository
        self._renderer = renderer
        self._confirm = confirm
        self._bus = event_bus or EventBus()
        self._history = history or HistoryStore(max_size=history_limit)
        self._history.notify(self._on_history_changed)
        self._working: Note | None = None
        self._search_term = ""
        self._last_error: PersistenceError | None = None
        self._scheduler = AutosaveScheduler(
            self._history,
            self._repository.update_note,
            lambda: self._working,
            delay=autosave_delay,
            loop=loop,
            on_error=self._on_persist_error,
            on_commit=self._on_commit,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def state(self) -> EditorState:
        if self._working is None:
            return EditorState.CLOSED
        if self._scheduler.pending:
            return EditorState.PENDING
        return EditorState.OPEN

    @property
    def is_open(self) -> bool:
        return self._working is not None

    @property
    def working_copy(self) -> Note | None:
        """A detached copy of the note being edited."""

        return clone_note(self._working) if self._working is not None else None

    @property
    def current_note_id(self) -> int | None:
        return self._working.id if self._working is not None else None

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def history_state(self) -> HistoryState:
        return self._history.state()

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def last_error(self) -> PersistenceError | None:
        return self._last_error

    @property
    def search_term(self) -> str:
        return self._search_term

    # ------------------------------------------------------------------
    # Opening and closing
    # ------------------------------------------------------------------
    def open_editor(self, note: Note) -> None:
        self._scheduler.cancel()
        self._working = clone_note(note)
        self._history.clear()
        LOGGER.debug("Editor opened note_id=%s", note.id)
        self._bus.publish(EditorOpened(note_id=note.id))
        self._render(RenderReason.REBUILD)

    def open_note(self, note_id: int) -> bool:
        note = self._repository.get_note(note_id)
        if note is None:
            LOGGER.warning("open_note: unknown note_id=%s", note_id)
            return False
        self.open_editor(note)
        return True

    def new_note(self) -> Note:
        note = self._repository.create_note()
        self._bus.publish(NoteCreated(note_id=note.id))
        self._render_list()
        self.open_editor(note)
        return note

    def close_editor(self) -> None:
        self._scheduler.cancel()
        note_id = self.current_note_id
        self._working = None
        self._history.clear()
        LOGGER.debug("Editor closed note_id=%s", note_id)
        self._bus.publish(EditorClosed(note_id=note_id))
        self._render_list()

    async def delete_note(self) -> bool:
        """Ask for confirmation, then delete the open note and close the editor."""

        if self._working is None:
            return False
        note_id = self._working.id
        options = ConfirmOptions(
            title="Delete note",
            message="Are you sure you want to delete this note?",
            confirm_text="Delete",
            cancel_text="Cancel",
        )
        try:
            confirmed = await self._confirm.confirm(options)
        except Exception:
            LOGGER.exception("Delete confirmation failed for note_id=%s", note_id)
            return False
        if not confirmed:
            return False

        if self.current_note_id == note_id:
            self._scheduler.cancel()
        if not self._repository.delete_note(note_id):
            self._report(PersistenceError(f"Deleting note {note_id} was not saved"), note_id)
        self._bus.publish(NoteDeleted(note_id=note_id))
        if self.current_note_id == note_id:
            self.close_editor()
        else:
            self._render_list()
        return True

    def search(self, term: str) -> list[Note]:
        self._search_term = term or ""
        return self._render_list()

    # ------------------------------------------------------------------
    # Field edits
    # ------------------------------------------------------------------
    def set_title(self, value: str) -> bool:
        return self._edit(lambda note: _assign(note, "title", value))

    def set_section_title(self, section_id: int, value: str) -> bool:
        return self._edit(lambda note: _assign(note.find_section(section_id), "title", value))

    def set_section_content(self, section_id: int, value: str) -> bool:
        return self._edit(lambda note: _assign(note.find_section(section_id), "content", value))

    def toggle_section(self, section_id: int) -> bool:
        def _flip(note: Note) -> bool:
            section = note.find_section(section_id)
            if section is None:
                return False
            section.is_open = not section.is_open
            return True

        changed = self._edit(_flip)
        if changed:
            self._render(RenderReason.EDIT)
        return changed

    def add_section(self) -> Section | None:
        added: list[Section] = []

        def _append(note: Note) -> bool:
            section = Section(
                id=next_section_id(note),
                title=f"Section {len(note.sections) + 1}",
                content="",
                is_open=True,
            )
            note.sections.append(section)
            added.append(section)
            return True

        if not self._edit(_append):
            return None
        self._render(RenderReason.EDIT)
        return clone_section(added[0])

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------
    def undo(self) -> bool:
        return self._travel(self._history.undo, "undo")

    def redo(self) -> bool:
        return self._travel(self._history.redo, "redo")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _edit(self, mutate: Callable[[Note], bool]) -> bool:
        if self._working is None:
            return False
        prior = clone_note(self._working)
        if not mutate(self._working):
            return False
        self._scheduler.schedule_commit(prior)
        return True

    def _travel(self, step: Callable[[Note], Note | None], source: str) -> bool:
        if self._working is None:
            return False
        snapshot = step(self._working)
        if snapshot is None:
            return False
        self._scheduler.cancel()
        self._working = snapshot
        self._scheduler.persist_now(snapshot, source=source)
        self._render(RenderReason.REBUILD)
        return True

    def _render(self, reason: RenderReason) -> None:
        if self._working is None:
            return
        try:
            self._renderer.render(clone_note(self._working), reason=reason)
        except Exception:
            LOGGER.exception("Renderer failed for note_id=%s", self._working.id)

    def _render_list(self) -> list[Note]:
        notes = self._repository.get_notes(self._search_term)
        try:
            self._renderer.render_list(notes, self._search_term)
        except Exception:
            LOGGER.exception("Notes list renderer failed")
        return notes

    def _on_history_changed(self, state: HistoryState) -> None:
        self._bus.publish(
            HistoryChanged(
                can_undo=state.can_undo,
                can_redo=state.can_redo,
                undo_size=state.undo_size,
                redo_size=state.redo_size,
            )
        )

    def _on_commit(self, note: Note, source: str) -> None:
        self._last_error = None
        self._bus.publish(NoteCommitted(note_id=note.id, source=source))
        self._render_list()

    def _on_persist_error(self, error: PersistenceError) -> None:
        self._report(error, self.current_note_id)

    def _report(self, error: PersistenceError, note_id: int | None) -> None:
        self._last_error = error
        self._bus.publish(PersistenceFailed(note_id=note_id, message=str(error)))


def _assign(target: object | None, attribute: str, value: str) -> bool:
    if target is None:
        return False
    setattr(target, attribute, value)
    return True
