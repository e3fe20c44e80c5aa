"""Searchable list of notes shown when no note is open."""

from __future__ import annotations

from typing import Sequence

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ...editor.session import EditSessionController
from ...notes.model import Note
from ...notes.repository import NoteRepository

__all__ = ["NotesListView"]

_NOTE_ID_ROLE = Qt.ItemDataRole.UserRole


class NotesListView(QWidget):
    """Search box, "new note" button and one list row per note."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._controller: EditSessionController | None = None

        self.search_edit = QLineEdit(self)
        self.search_edit.setObjectName("tn-search")
        self.search_edit.setPlaceholderText("Search notes")
        self.new_button = QPushButton("New note", self)
        self.list_widget = QListWidget(self)
        self.list_widget.setObjectName("tn-notes-list")
        self.empty_label = QLabel("No notes found", self)
        self.empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.empty_label.hide()

        header = QHBoxLayout()
        header.addWidget(self.search_edit, 1)
        header.addWidget(self.new_button)

        layout = QVBoxLayout(self)
        layout.addLayout(header)
        layout.addWidget(self.list_widget, 1)
        layout.addWidget(self.empty_label)

    def bind(self, controller: EditSessionController) -> None:
        self._controller = controller
        self.search_edit.textChanged.connect(controller.search)
        self.new_button.clicked.connect(lambda: controller.new_note())
        self.list_widget.itemClicked.connect(self._open_item)

    def render_list(self, notes: Sequence[Note], search_term: str = "") -> None:
        if self.search_edit.text() != search_term:
            self.search_edit.blockSignals(True)
            self.search_edit.setText(search_term)
            self.search_edit.blockSignals(False)
        self.list_widget.clear()
        for note in notes:
            item = QListWidgetItem(_row_text(note))
            item.setData(_NOTE_ID_ROLE, note.id)
            self.list_widget.addItem(item)
        self.empty_label.setVisible(not notes)

    def note_ids(self) -> list[int]:
        return [self.list_widget.item(row).data(_NOTE_ID_ROLE) for row in range(self.list_widget.count())]

    def _open_item(self, item: QListWidgetItem) -> None:
        if self._controller is None:
            return
        note_id = item.data(_NOTE_ID_ROLE)
        if note_id is not None:
            self._controller.open_note(int(note_id))


def _row_text(note: Note) -> str:
    updated = note.updated_at.astimezone().strftime("%Y-%m-%d")
    return "\n".join(
        (
            NoteRepository.display_title(note),
            NoteRepository.preview(note),
            f"Last updated: {updated}",
        )
    )
