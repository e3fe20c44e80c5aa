"""Top-level window switching between the notes list and the editor."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from PySide6.QtCore import QByteArray
from PySide6.QtWidgets import QMainWindow, QStackedWidget, QWidget

from ...editor.reconcile import RenderReason
from ...editor.session import EditSessionController
from ...notes.model import Note
from ..events import EditorClosed, EditorOpened, EventBus, NoteCommitted, PersistenceFailed
from .editor_view import NoteEditorView
from .list_view import NotesListView

__all__ = ["MainWindow"]

LOGGER = logging.getLogger(__name__)
_STATUS_TIMEOUT_MS = 5_000


class MainWindow(QMainWindow):
    """Implements the renderer port for :class:`EditSessionController`."""

    def __init__(
        self,
        event_bus: EventBus,
        *,
        max_content_height: int | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("togglenotes")
        self._bus = event_bus
        self.list_view = NotesListView(self)
        self.editor_view = NoteEditorView(
            event_bus=event_bus,
            max_content_height=max_content_height,
            loop=loop,
            parent=self,
        )
        self._pages = QStackedWidget(self)
        self._pages.addWidget(self.list_view)
        self._pages.addWidget(self.editor_view)
        self.setCentralWidget(self._pages)

        event_bus.subscribe(EditorOpened, self._on_editor_opened)
        event_bus.subscribe(EditorClosed, self._on_editor_closed)
        event_bus.subscribe(PersistenceFailed, self._on_persistence_failed)
        event_bus.subscribe(NoteCommitted, self._on_note_committed)

    def bind(self, controller: EditSessionController) -> None:
        self.list_view.bind(controller)
        self.editor_view.bind(controller)

    # ------------------------------------------------------------------
    # NoteRenderer
    # ------------------------------------------------------------------
    def render(self, note: Note, *, reason: RenderReason = RenderReason.EDIT) -> None:
        self.editor_view.render(note, reason=reason)

    def render_list(self, notes: Sequence[Note], search_term: str = "") -> None:
        self.list_view.render_list(notes, search_term)

    # ------------------------------------------------------------------
    # Geometry persistence
    # ------------------------------------------------------------------
    def geometry_token(self) -> str:
        return bytes(self.saveGeometry().toBase64()).decode("ascii")

    def restore_geometry_token(self, token: str | None) -> bool:
        if not token:
            return False
        try:
            return bool(self.restoreGeometry(QByteArray.fromBase64(token.encode("ascii"))))
        except (TypeError, ValueError):
            LOGGER.debug("Ignoring malformed window geometry token")
            return False

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def showing_editor(self) -> bool:
        return self._pages.currentWidget() is self.editor_view

    def _on_editor_opened(self, event: EditorOpened) -> None:
        self._pages.setCurrentWidget(self.editor_view)

    def _on_editor_closed(self, event: EditorClosed) -> None:
        self._pages.setCurrentWidget(self.list_view)

    def _on_persistence_failed(self, event: PersistenceFailed) -> None:
        self.statusBar().showMessage(f"Not saved: {event.message}", _STATUS_TIMEOUT_MS)

    def _on_note_committed(self, event: NoteCommitted) -> None:
        self.statusBar().showMessage("Saved", _STATUS_TIMEOUT_MS)
