"""Qt editor surface: note title plus collapsible section widgets.

The view implements :class:`~togglenotes.editor.reconcile.ReconcilableView`.
Edit-driven renders patch the existing widgets in place; rebuilds (open, undo,
redo) recreate every section widget and restore caret and scroll from a state
captured just before the old widgets were destroyed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QTextCursor
from PySide6.QtWidgets import (
    QApplication,
    QFrame,
    QHBoxLayout,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QScrollArea,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from ...editor.reconcile import (
    FieldKey,
    FieldKind,
    FocusState,
    RenderReason,
    ViewState,
    autosize_height,
    capture_view_state,
    restore_view_state,
)
from ...editor.session import EditSessionController
from ...notes.model import Note, Section
from ..events import EventBus, HistoryChanged

__all__ = ["NoteEditorView", "SectionWidget"]

LOGGER = logging.getLogger(__name__)
_MIN_CONTENT_HEIGHT = 48


class _LineEditField:
    """Adapts ``QLineEdit`` to the ``EditableField`` protocol."""

    def __init__(self, widget: QLineEdit) -> None:
        self.widget = widget

    def focus(self) -> None:
        self.widget.setFocus(Qt.FocusReason.OtherFocusReason)

    def selection(self) -> tuple[int, int]:
        if self.widget.hasSelectedText():
            start = self.widget.selectionStart()
            return start, start + len(self.widget.selectedText())
        caret = self.widget.cursorPosition()
        return caret, caret

    def set_selection(self, start: int, end: int) -> None:
        if end > start:
            self.widget.setSelection(start, end - start)
        else:
            self.widget.setCursorPosition(start)

    def text_length(self) -> int:
        return len(self.widget.text())


class _PlainTextField:
    """Adapts ``QPlainTextEdit`` to the ``EditableField`` protocol."""

    def __init__(self, widget: QPlainTextEdit) -> None:
        self.widget = widget

    def focus(self) -> None:
        self.widget.setFocus(Qt.FocusReason.OtherFocusReason)

    def selection(self) -> tuple[int, int]:
        cursor = self.widget.textCursor()
        return cursor.selectionStart(), cursor.selectionEnd()

    def set_selection(self, start: int, end: int) -> None:
        cursor = self.widget.textCursor()
        cursor.setPosition(start)
        cursor.setPosition(end, QTextCursor.MoveMode.KeepAnchor)
        self.widget.setTextCursor(cursor)

    def text_length(self) -> int:
        return len(self.widget.toPlainText())


class SectionWidget(QFrame):
    """One collapsible section: header toggle, title field, growing text area."""

    def __init__(
        self,
        section: Section,
        *,
        on_toggle: Callable[[int], Any],
        on_title: Callable[[int, str], Any],
        on_content: Callable[[int, str], Any],
        max_height: int | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.section_id = section.id
        self._on_content = on_content
        self._max_height = max_height
        self._syncing = False
        self.setObjectName("tn-section")

        self.toggle_button = QToolButton(self)
        self.toggle_button.setObjectName("tn-section-toggle")
        self.toggle_button.setAutoRaise(True)
        self.toggle_button.clicked.connect(lambda: on_toggle(self.section_id))

        self.title_edit = QLineEdit(self)
        self.title_edit.setObjectName("tn-section-title")
        self.title_edit.textEdited.connect(lambda text: on_title(self.section_id, text))

        self.content_edit = QPlainTextEdit(self)
        self.content_edit.setObjectName("tn-section-content")
        self.content_edit.setPlaceholderText("Start writing...")
        self.content_edit.setVerticalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAsNeeded)
        self.content_edit.textChanged.connect(self._handle_content_changed)

        header = QHBoxLayout()
        header.setContentsMargins(0, 0, 0, 0)
        header.addWidget(self.toggle_button)
        header.addWidget(self.title_edit, 1)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        layout.addLayout(header)
        layout.addWidget(self.content_edit)

        self.apply(section)

    def apply(self, section: Section) -> None:
        """Bring the widget in line with ``section`` without touching unchanged text."""

        self._syncing = True
        try:
            if self.title_edit.text() != section.title:
                self.title_edit.setText(section.title)
            if self.content_edit.toPlainText() != section.content:
                self.content_edit.setPlainText(section.content)
        finally:
            self._syncing = False
        self.set_open(section.is_open)
        self.autosize()

    def set_open(self, is_open: bool) -> None:
        self.toggle_button.setArrowType(Qt.ArrowType.DownArrow if is_open else Qt.ArrowType.RightArrow)
        self.content_edit.setVisible(is_open)

    def is_open(self) -> bool:
        return not self.content_edit.isHidden()

    def autosize(self) -> None:
        """Fit the text area to its content; the caret and selection are left alone."""

        document = self.content_edit.document()
        lines = max(1.0, document.documentLayout().documentSize().height())
        line_spacing = self.content_edit.fontMetrics().lineSpacing()
        margins = self.content_edit.contentsMargins()
        natural = int(
            lines * line_spacing
            + 2 * document.documentMargin()
            + margins.top()
            + margins.bottom()
            + 2 * self.content_edit.frameWidth()
        )
        self.content_edit.setFixedHeight(
            autosize_height(natural, self._max_height, min_height=_MIN_CONTENT_HEIGHT)
        )

    def _handle_content_changed(self) -> None:
        if self._syncing:
            return
        self._on_content(self.section_id, self.content_edit.toPlainText())
        self.autosize()


class NoteEditorView(QWidget):
    """Editing page bound to an :class:`EditSessionController`."""

    def __init__(
        self,
        *,
        event_bus: EventBus | None = None,
        max_content_height: int | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._controller: EditSessionController | None = None
        self._loop = loop
        self._max_content_height = max_content_height
        self._sections: dict[int, SectionWidget] = {}
        self._order: list[int] = []
        self._tasks: set[asyncio.Future[Any]] = set()
        self._note_id: int | None = None

        self.back_button = QPushButton("Back", self)
        self.undo_button = QPushButton("Undo", self)
        self.redo_button = QPushButton("Redo", self)
        self.add_button = QPushButton("Add section", self)
        self.delete_button = QPushButton("Delete", self)
        self.undo_button.setEnabled(False)
        self.redo_button.setEnabled(False)

        toolbar = QHBoxLayout()
        toolbar.addWidget(self.back_button)
        toolbar.addStretch(1)
        for button in (self.undo_button, self.redo_button, self.add_button, self.delete_button):
            toolbar.addWidget(button)

        self.title_edit = QLineEdit(self)
        self.title_edit.setObjectName("tn-note-title")
        self.title_edit.setPlaceholderText("Untitled Note")

        self._container = QWidget()
        self._sections_layout = QVBoxLayout(self._container)
        self._sections_layout.setContentsMargins(0, 0, 0, 0)
        self._sections_layout.addStretch(1)

        self.scroll_area = QScrollArea(self)
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setFrameShape(QFrame.Shape.NoFrame)
        self.scroll_area.setWidget(self._container)

        layout = QVBoxLayout(self)
        layout.addLayout(toolbar)
        layout.addWidget(self.title_edit)
        layout.addWidget(self.scroll_area, 1)

        if event_bus is not None:
            event_bus.subscribe(HistoryChanged, self._on_history_changed)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------
    def bind(self, controller: EditSessionController) -> None:
        """Route user input from this view into ``controller``."""

        self._controller = controller
        self.title_edit.textEdited.connect(controller.set_title)
        self.back_button.clicked.connect(lambda: controller.close_editor())
        self.undo_button.clicked.connect(lambda: controller.undo())
        self.redo_button.clicked.connect(lambda: controller.redo())
        self.add_button.clicked.connect(lambda: controller.add_section())
        self.delete_button.clicked.connect(lambda: self._request_delete())

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render(self, note: Note, *, reason: RenderReason = RenderReason.EDIT) -> None:
        if reason is RenderReason.EDIT and note.id == self._note_id:
            self._patch(note)
            return
        state = capture_view_state(self) if note.id == self._note_id else ViewState()
        self._rebuild(note)
        restore_view_state(self, state, RenderReason.REBUILD)
        # Scroll range is only final after the layout pass.
        QTimer.singleShot(0, lambda offset=state.scroll_offset: self.set_scroll_offset(offset))

    def section_widget(self, section_id: int) -> SectionWidget | None:
        return self._sections.get(section_id)

    def section_ids(self) -> list[int]:
        return list(self._order)

    # ------------------------------------------------------------------
    # ReconcilableView
    # ------------------------------------------------------------------
    def scroll_offset(self) -> int:
        return self.scroll_area.verticalScrollBar().value()

    def set_scroll_offset(self, value: int) -> None:
        self.scroll_area.verticalScrollBar().setValue(value)

    def focused_field(self) -> FocusState | None:
        focused = QApplication.focusWidget()
        if focused is None:
            return None
        key: FieldKey | None = None
        if focused is self.title_edit:
            key = FieldKey.title()
        else:
            for section_id, widget in self._sections.items():
                if focused is widget.title_edit:
                    key = FieldKey.section_title(section_id)
                    break
                if focused is widget.content_edit:
                    key = FieldKey.section_content(section_id)
                    break
        if key is None:
            return None
        field = self.find_field(key)
        if field is None:
            return None
        start, end = field.selection()
        return FocusState(key=key, selection_start=start, selection_end=end)

    def find_field(self, key: FieldKey) -> _LineEditField | _PlainTextField | None:
        if key.kind is FieldKind.TITLE:
            return _LineEditField(self.title_edit)
        widget = self._sections.get(key.section_id) if key.section_id is not None else None
        if widget is None:
            return None
        if key.kind is FieldKind.SECTION_TITLE:
            return _LineEditField(widget.title_edit)
        return _PlainTextField(widget.content_edit)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _rebuild(self, note: Note) -> None:
        for widget in self._sections.values():
            self._sections_layout.removeWidget(widget)
            widget.hide()
            widget.deleteLater()
        self._sections.clear()
        self._order = []
        self._note_id = note.id
        self.title_edit.setText(note.title)
        for section in note.sections:
            self._insert_section(section, len(self._order))

    def _patch(self, note: Note) -> None:
        if self.title_edit.text() != note.title:
            self.title_edit.setText(note.title)
        wanted = [section.id for section in note.sections]
        for section_id in [sid for sid in self._order if sid not in wanted]:
            widget = self._sections.pop(section_id)
            self._sections_layout.removeWidget(widget)
            widget.deleteLater()
        self._order = [sid for sid in self._order if sid in wanted]
        for index, section in enumerate(note.sections):
            widget = self._sections.get(section.id)
            if widget is None:
                self._insert_section(section, index)
                continue
            widget.apply(section)
            if self._order.index(section.id) != index:
                self._sections_layout.removeWidget(widget)
                self._sections_layout.insertWidget(index, widget)
                self._order.remove(section.id)
                self._order.insert(index, section.id)

    def _insert_section(self, section: Section, index: int) -> None:
        widget = SectionWidget(
            section,
            on_toggle=self._toggle_section,
            on_title=self._set_section_title,
            on_content=self._set_section_content,
            max_height=self._max_content_height,
            parent=self._container,
        )
        self._sections[section.id] = widget
        self._order.insert(index, section.id)
        self._sections_layout.insertWidget(index, widget)

    def _toggle_section(self, section_id: int) -> None:
        if self._controller is not None:
            self._controller.toggle_section(section_id)

    def _set_section_title(self, section_id: int, text: str) -> None:
        if self._controller is not None:
            self._controller.set_section_title(section_id, text)

    def _set_section_content(self, section_id: int, text: str) -> None:
        if self._controller is not None:
            self._controller.set_section_content(section_id, text)

    def _request_delete(self) -> None:
        if self._controller is None:
            return
        self._spawn(self._controller.delete_note())

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        loop = self._loop or asyncio.get_event_loop()
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_history_changed(self, event: HistoryChanged) -> None:
        self.undo_button.setEnabled(event.can_undo)
        self.redo_button.setEnabled(event.can_redo)
