"""Bounded undo/redo history of note snapshots."""

from .store import HistoryEntry, HistorySize, HistoryState, HistoryStore

__all__ = ["HistoryEntry", "HistorySize", "HistoryState", "HistoryStore"]
