"""Structured note editor with toggleable sections, undo/redo and autosave."""

__version__ = "0.1.0"
