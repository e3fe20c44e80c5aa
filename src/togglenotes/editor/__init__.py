"""Edit session controller, renderer ports and view reconciliation helpers."""

from .ports import ConfirmDialog, ConfirmOptions, NoteRenderer
from .reconcile import FieldKey, FieldKind, FocusState, RenderReason, ViewState
from .session import EditorState, EditSessionController

__all__ = [
    "ConfirmDialog",
    "ConfirmOptions",
    "EditSessionController",
    "EditorState",
    "FieldKey",
    "FieldKind",
    "FocusState",
    "NoteRenderer",
    "RenderReason",
    "ViewState",
]
