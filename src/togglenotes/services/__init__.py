"""Service layer helpers (storage, settings)."""

from .settings import Settings, SettingsStore
from .storage import JsonFileStore, KeyValueStore

__all__ = ["JsonFileStore", "KeyValueStore", "Settings", "SettingsStore"]
