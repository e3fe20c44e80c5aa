"""Debounced autosave of note edits."""

from .debounce import DebouncedCall
from .scheduler import DEFAULT_AUTOSAVE_DELAY, AutosaveScheduler

__all__ = ["AutosaveScheduler", "DEFAULT_AUTOSAVE_DELAY", "DebouncedCall"]
