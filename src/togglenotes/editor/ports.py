"""Collaborators the edit session talks to: renderer and confirmation dialog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from ..notes.model import Note
from .reconcile import RenderReason

__all__ = ["ConfirmDialog", "ConfirmOptions", "NoteRenderer"]


@dataclass(slots=True, frozen=True)
class ConfirmOptions:
    title: str
    message: str
    confirm_text: str = "Confirm"
    cancel_text: str = "Cancel"


class NoteRenderer(Protocol):
    """Presentation layer driven by :class:`EditSessionController`."""

    def render(self, note: Note, *, reason: RenderReason = RenderReason.EDIT) -> None:
        ...

    def render_list(self, notes: Sequence[Note], search_term: str = "") -> None:
        ...


class ConfirmDialog(Protocol):
    async def confirm(self, options: ConfirmOptions) -> bool:
        ...
