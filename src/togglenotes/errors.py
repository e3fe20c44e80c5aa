"""Exception types shared by the history, autosave and storage layers.

None of these are allowed to escape into the editing loop: callers log them and
report them through the event bus so the user can keep typing.
"""

from __future__ import annotations

from typing import Any

__all__ = ["NotesError", "ValidationError", "PersistenceError"]


class NotesError(Exception):
    """Base class for recoverable note editor failures."""


class ValidationError(NotesError):
    """Raised internally when a snapshot does not have the shape of a note."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class PersistenceError(NotesError):
    """A save or load against the key-value store did not succeed."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause

