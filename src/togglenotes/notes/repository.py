"""The persisted "all notes" collection."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from .model import Note, clone_note, new_note, note_from_dict, note_to_dict, validate_state
from ..services.storage import KeyValueStore

__all__ = ["NoteRepository", "NOTES_KEY"]

LOGGER = logging.getLogger(__name__)
NOTES_KEY = "notes"
_PREVIEW_LIMIT = 100


class NoteRepository:
    """Loads, filters and saves notes through a :class:`KeyValueStore`.

    Every note handed out is a copy; callers never hold a reference into the
    stored list.
    """

    def __init__(self, store: KeyValueStore, *, key: str = NOTES_KEY) -> None:
        self._store = store
        self._key = key
        self._notes: list[Note] = self._load()

    @property
    def key(self) -> str:
        return self._key

    @property
    def notes(self) -> list[Note]:
        return [clone_note(note) for note in self._notes]

    def get_note(self, note_id: int) -> Note | None:
        for note in self._notes:
            if note.id == note_id:
                return clone_note(note)
        return None

    def get_notes(self, search_term: str = "") -> list[Note]:
        """Return notes whose title, section titles or contents contain ``search_term``."""

        term = (search_term or "").strip().lower()
        if not term:
            return self.notes
        return [clone_note(note) for note in self._notes if _matches(note, term)]

    def create_note(self) -> Note:
        note = new_note()
        while any(existing.id == note.id for existing in self._notes):
            note = new_note(note_id=note.id + len(note.sections))
        self._notes.insert(0, note)
        if not self.save():
            LOGGER.warning("New note %s is only held in memory", note.id)
        return clone_note(note)

    def update_note(self, note: Note) -> bool:
        """Replace the stored note with the same id and persist the collection."""

        for index, existing in enumerate(self._notes):
            if existing.id == note.id:
                stored = clone_note(note)
                stored.updated_at = datetime.now(timezone.utc)
                self._notes[index] = stored
                return self.save()
        LOGGER.warning("update_note: unknown note_id=%s", note.id)
        return False

    def delete_note(self, note_id: int) -> bool:
        remaining = [note for note in self._notes if note.id != note_id]
        if len(remaining) == len(self._notes):
            return False
        self._notes = remaining
        return self.save()

    def save(self) -> bool:
        payload = [note_to_dict(note) for note in self._notes]
        return bool(self._store.save(self._key, payload))

    # ------------------------------------------------------------------
    # Presentation helpers
    # ------------------------------------------------------------------
    @staticmethod
    def display_title(note: Note) -> str:
        return note.title or "Untitled Note"

    @staticmethod
    def preview(note: Note, limit: int = _PREVIEW_LIMIT) -> str:
        content = " ".join(section.content for section in note.sections).strip()
        if not content:
            return "No content"
        if len(content) > limit:
            return content[:limit] + "..."
        return content

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _load(self) -> list[Note]:
        try:
            payload = self._store.load(self._key, [])
        except Exception:
            LOGGER.exception("Loading notes from key %s failed", self._key)
            return []
        if not isinstance(payload, list):
            LOGGER.warning("Stored notes under %s are not a list; starting empty", self._key)
            return []
        return list(_coerce_records(payload))


def _coerce_records(records: Iterable[Any]) -> Iterable[Note]:
    for record in records:
        if not validate_state(record):
            LOGGER.warning("Skipping malformed stored note: %r", record)
            continue
        yield note_from_dict(record)


def _matches(note: Note, term: str) -> bool:
    if term in note.title.lower():
        return True
    return any(term in section.title.lower() or term in section.content.lower() for section in note.sections)
