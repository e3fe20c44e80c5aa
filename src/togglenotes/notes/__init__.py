"""Note data model and repository."""

from .model import Note, Section, clone_note, note_from_dict, note_to_dict, validate_state
from .repository import NoteRepository

__all__ = [
    "Note",
    "NoteRepository",
    "Section",
    "clone_note",
    "note_from_dict",
    "note_to_dict",
    "validate_state",
]
