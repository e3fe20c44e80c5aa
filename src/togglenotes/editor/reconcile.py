"""Capture/restore of focus, selection and scroll around editor re-renders.

A view that rebuilds its input widgets destroys the live caret. Callers capture
a :class:`ViewState` synchronously *before* the rebuild and hand it back to
:func:`restore_view_state` afterwards. The helpers only speak to the small
protocols below, so any toolkit with focus and selection APIs can implement
them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

__all__ = [
    "EditableField",
    "FieldKey",
    "FieldKind",
    "FocusState",
    "ReconcilableView",
    "RenderReason",
    "ViewState",
    "autosize_height",
    "capture_view_state",
    "restore_view_state",
]

LOGGER = logging.getLogger(__name__)


class RenderReason(Enum):
    """Why the presentation layer is asked to redraw a note."""

    EDIT = "edit"
    REBUILD = "rebuild"


class FieldKind(Enum):
    TITLE = "title"
    SECTION_TITLE = "section_title"
    SECTION_CONTENT = "section_content"


@dataclass(slots=True, frozen=True)
class FieldKey:
    """Identifies an input field independently of the widget that renders it."""

    kind: FieldKind
    section_id: int | None = None

    @classmethod
    def title(cls) -> FieldKey:
        return cls(FieldKind.TITLE)

    @classmethod
    def section_title(cls, section_id: int) -> FieldKey:
        return cls(FieldKind.SECTION_TITLE, section_id)

    @classmethod
    def section_content(cls, section_id: int) -> FieldKey:
        return cls(FieldKind.SECTION_CONTENT, section_id)


@dataclass(slots=True, frozen=True)
class FocusState:
    key: FieldKey
    selection_start: int | None = None
    selection_end: int | None = None


@dataclass(slots=True, frozen=True)
class ViewState:
    scroll_offset: int = 0
    focus: FocusState | None = None


class EditableField(Protocol):
    """A focusable text input."""

    def focus(self) -> None:
        ...

    def selection(self) -> tuple[int, int]:
        ...

    def set_selection(self, start: int, end: int) -> None:
        ...

    def text_length(self) -> int:
        ...


class ReconcilableView(Protocol):
    """The editing surface as seen by the capture/restore helpers."""

    def scroll_offset(self) -> int:
        ...

    def set_scroll_offset(self, value: int) -> None:
        ...

    def focused_field(self) -> FocusState | None:
        ...

    def find_field(self, key: FieldKey) -> EditableField | None:
        ...


def capture_view_state(view: ReconcilableView) -> ViewState:
    """Snapshot scroll offset and focused field; call before the rebuild."""

    return ViewState(scroll_offset=view.scroll_offset(), focus=view.focused_field())


def restore_view_state(view: ReconcilableView, state: ViewState | None, reason: RenderReason) -> bool:
    """Re-apply ``state`` after a rebuild.

    Edit-driven renders keep the live widgets, so nothing is restored. Returns
    ``True`` when a field was found and refocused.
    """

    if state is None or reason is not RenderReason.REBUILD:
        return False

    view.set_scroll_offset(state.scroll_offset)
    focus = state.focus
    if focus is None:
        return False
    target = view.find_field(focus.key)
    if target is None:
        LOGGER.debug("Focused field %s no longer exists after rebuild", focus.key)
        return False

    length = target.text_length()
    if focus.selection_start is None or focus.selection_end is None:
        start = end = length
    else:
        start = _clamp(focus.selection_start, length)
        end = _clamp(focus.selection_end, length)
        if end < start:
            start, end = end, start
    target.focus()
    target.set_selection(start, end)
    # Focusing may scroll the field into view; the captured offset wins.
    view.set_scroll_offset(state.scroll_offset)
    return True


def autosize_height(natural_height: int, max_height: int | None = None, *, min_height: int = 0) -> int:
    """Height for an auto-growing text area: its natural height within bounds."""

    height = max(int(natural_height), int(min_height))
    if max_height is not None and max_height > 0:
        height = min(height, int(max_height))
    return height


def _clamp(value: int, length: int) -> int:
    return max(0, min(int(value), length))
