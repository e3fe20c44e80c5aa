"""Dataclasses representing notes, their sections, and history snapshots."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

__all__ = [
    "Note",
    "Section",
    "clone_note",
    "clone_section",
    "coerce_note",
    "new_note",
    "next_section_id",
    "note_from_dict",
    "note_to_dict",
    "validate_section",
    "validate_state",
]

DEFAULT_SECTION_COUNT = 3


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


def _clock_id() -> int:
    return time.time_ns() // 1_000_000


@dataclass(slots=True)
class Section:
    """A named, collapsible block of text inside a note."""

    id: int
    title: str = ""
    content: str = ""
    is_open: bool = False


@dataclass(slots=True)
class Note:
    """A note title plus its ordered sections."""

    id: int
    title: str = ""
    sections: list[Section] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def find_section(self, section_id: int) -> Section | None:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None


def clone_section(section: Section) -> Section:
    return Section(
        id=section.id,
        title=section.title,
        content=section.content,
        is_open=section.is_open,
    )


def clone_note(note: Note) -> Note:
    """Return a structural copy of ``note`` sharing no mutable state with it."""

    return Note(
        id=note.id,
        title=note.title,
        sections=[clone_section(section) for section in note.sections],
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


def new_note(now: datetime | None = None, *, note_id: int | None = None) -> Note:
    """Create a blank note with three default sections, the first one open."""

    stamp = now or _utcnow()
    base_id = note_id if note_id is not None else _clock_id()
    sections = [
        Section(id=base_id + index, title=f"Section {index + 1}", content="", is_open=index == 0)
        for index in range(DEFAULT_SECTION_COUNT)
    ]
    return Note(id=base_id, title="", sections=sections, created_at=stamp, updated_at=stamp)


def next_section_id(note: Note) -> int:
    """Return a clock-based id that is unique within ``note``."""

    candidate = _clock_id()
    taken = {section.id for section in note.sections}
    if candidate in taken or (taken and candidate <= max(taken)):
        candidate = max(taken) + 1
    return candidate


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------
def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_section(value: Any) -> bool:
    """Return ``True`` when ``value`` has the shape of a section."""

    if isinstance(value, Section):
        id_, title, content, is_open = value.id, value.title, value.content, value.is_open
    elif isinstance(value, Mapping):
        if not {"id", "title", "content", "isOpen"} <= value.keys():
            return False
        id_, title, content, is_open = value["id"], value["title"], value["content"], value["isOpen"]
    else:
        return False
    return (
        _is_int(id_)
        and isinstance(title, str)
        and isinstance(content, str)
        and isinstance(is_open, bool)
    )


def validate_state(value: Any) -> bool:
    """Return ``True`` when ``value`` is a well-formed note (instance or payload)."""

    if isinstance(value, Note):
        id_, title, sections = value.id, value.title, value.sections
    elif isinstance(value, Mapping):
        if "id" not in value or "title" not in value or "toggles" not in value:
            return False
        id_, title, sections = value["id"], value["title"], value["toggles"]
    else:
        return False
    if not _is_int(id_) or not isinstance(title, str) or not isinstance(sections, list):
        return False
    return all(validate_section(section) for section in sections)


# ----------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------
def _format_timestamp(value: datetime) -> str:
    return value.isoformat()


def _parse_timestamp(value: Any, default: datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return default
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return default


def note_to_dict(note: Note) -> Dict[str, Any]:
    """Return the plain JSON payload stored for ``note``."""

    return {
        "id": note.id,
        "title": note.title,
        "toggles": [
            {
                "id": section.id,
                "title": section.title,
                "content": section.content,
                "isOpen": section.is_open,
            }
            for section in note.sections
        ],
        "created": _format_timestamp(note.created_at),
        "updated": _format_timestamp(note.updated_at),
    }


def note_from_dict(payload: Mapping[str, Any], *, default_time: datetime | None = None) -> Note:
    """Build a note from a stored payload, defaulting missing fields like ``new_note``.

    Missing or unreadable timestamps fall back to ``default_time``, or to the
    current time when none is given.
    """

    note_id = payload.get("id")
    if not _is_int(note_id):
        note_id = _clock_id()
    toggles = payload.get("toggles")
    if isinstance(toggles, list):
        sections = [
            Section(
                id=item["id"],
                title=item["title"],
                content=item["content"],
                is_open=item["isOpen"],
            )
            for item in toggles
            if validate_section(item)
        ]
    else:
        sections = new_note(note_id=note_id).sections
    title = payload.get("title")
    fallback = default_time or _utcnow()
    return Note(
        id=note_id,
        title=title if isinstance(title, str) else "",
        sections=sections,
        created_at=_parse_timestamp(payload.get("created"), fallback),
        updated_at=_parse_timestamp(payload.get("updated"), fallback),
    )


def coerce_note(value: Note | Mapping[str, Any], *, default_time: datetime | None = None) -> Note:
    """Return a fresh :class:`Note` built from a note instance or a stored payload."""

    if isinstance(value, Note):
        return clone_note(value)
    return note_from_dict(value, default_time=default_time)
