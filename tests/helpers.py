"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files:

    from tests.helpers import MemoryStore, RecordingRenderer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from togglenotes.editor.ports import ConfirmOptions
from togglenotes.editor.reconcile import FieldKey, FocusState, RenderReason
from togglenotes.notes.model import Note, Section, clone_note

FIXED_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_note(note_id: int = 1, title: str = "Groceries", *sections: Section) -> Note:
    """Build a note with deterministic ids; three default sections when none are given."""

    if not sections:
        sections = (
            Section(id=note_id * 10 + 1, title="Section 1", content="", is_open=True),
            Section(id=note_id * 10 + 2, title="Section 2", content=""),
            Section(id=note_id * 10 + 3, title="Section 3", content=""),
        )
    return Note(
        id=note_id,
        title=title,
        sections=list(sections),
        created_at=FIXED_TIME,
        updated_at=FIXED_TIME,
    )


class MemoryStore:
    """In-memory :class:`KeyValueStore`; flip ``fail`` or ``raise_on_save`` to simulate errors."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(initial or {})
        self.fail = False
        self.raise_on_save = False
        self.saves: list[tuple[str, Any]] = []

    def load(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def save(self, key: str, value: Any) -> bool:
        if self.raise_on_save:
            raise RuntimeError("disk on fire")
        if self.fail:
            return False
        self.data[key] = value
        self.saves.append((key, value))
        return True


class RecordingRenderer:
    """Renderer double remembering every call."""

    def __init__(self) -> None:
        self.renders: list[tuple[Note, RenderReason]] = []
        self.lists: list[tuple[list[Note], str]] = []

    def render(self, note: Note, *, reason: RenderReason = RenderReason.EDIT) -> None:
        self.renders.append((clone_note(note), reason))

    def render_list(self, notes: Sequence[Note], search_term: str = "") -> None:
        self.lists.append((list(notes), search_term))

    @property
    def last(self) -> tuple[Note, RenderReason]:
        return self.renders[-1]

    def reasons(self) -> list[RenderReason]:
        return [reason for _, reason in self.renders]


class ScriptedConfirm:
    """Confirm dialog answering from a fixed script; ``error`` makes it raise."""

    def __init__(self, *answers: bool, error: Exception | None = None) -> None:
        self._answers = list(answers)
        self._error = error
        self.requests: list[ConfirmOptions] = []

    async def confirm(self, options: ConfirmOptions) -> bool:
        self.requests.append(options)
        if self._error is not None:
            raise self._error
        return self._answers.pop(0) if self._answers else False


@dataclass
class FakeField:
    text: str = ""
    selection_range: tuple[int, int] = (0, 0)
    focused: bool = False

    def focus(self) -> None:
        self.focused = True

    def selection(self) -> tuple[int, int]:
        return self.selection_range

    def set_selection(self, start: int, end: int) -> None:
        self.selection_range = (start, end)

    def text_length(self) -> int:
        return len(self.text)


@dataclass
class FakeView:
    """A toolkit-free :class:`ReconcilableView`."""

    fields: dict[FieldKey, FakeField] = field(default_factory=dict)
    offset: int = 0
    focused: FocusState | None = None
    scroll_calls: list[int] = field(default_factory=list)

    def scroll_offset(self) -> int:
        return self.offset

    def set_scroll_offset(self, value: int) -> None:
        self.offset = value
        self.scroll_calls.append(value)

    def focused_field(self) -> FocusState | None:
        return self.focused

    def find_field(self, key: FieldKey) -> FakeField | None:
        return self.fields.get(key)
