"""PySide6 widgets implementing the editor's renderer and confirm ports."""

from .dialogs import QtConfirmDialog
from .editor_view import NoteEditorView, SectionWidget
from .list_view import NotesListView
from .main_window import MainWindow

__all__ = ["MainWindow", "NoteEditorView", "NotesListView", "QtConfirmDialog", "SectionWidget"]
