"""Key-value persistence backends for the notes collection."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Protocol

from .settings import _SETTINGS_DIR

__all__ = ["KeyValueStore", "JsonFileStore", "DEFAULT_NAMESPACE"]

LOGGER = logging.getLogger(__name__)
_STORE_FILENAME = "notes.json"
_STORE_VERSION = 1
DEFAULT_NAMESPACE = "togglenotes"


def _default_store_path() -> Path:
    return _SETTINGS_DIR / _STORE_FILENAME


class KeyValueStore(Protocol):
    """Minimal storage contract consumed by :class:`NoteRepository`."""

    def load(self, key: str, default: Any = None) -> Any:
        ...

    def save(self, key: str, value: Any) -> bool:
        ...


class JsonFileStore:
    """Stores namespaced keys inside a single JSON document on disk.

    ``save`` returns ``False`` instead of raising so callers can surface the
    failure without interrupting editing.
    """

    def __init__(self, path: Path | None = None, *, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._path = path or _default_store_path()
        self._namespace = namespace

    @property
    def path(self) -> Path:
        return self._path

    def load(self, key: str, default: Any = None) -> Any:
        payload = self._read_payload()
        entries = payload.get("entries")
        if not isinstance(entries, Mapping):
            return default
        return entries.get(self._namespaced(key), default)

    def save(self, key: str, value: Any) -> bool:
        payload = self._read_payload()
        entries = payload.get("entries")
        merged = dict(entries) if isinstance(entries, Mapping) else {}
        merged[self._namespaced(key)] = value
        try:
            body = json.dumps({"version": _STORE_VERSION, "entries": merged}, indent=2, sort_keys=True)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(".tmp")
            tmp_path.write_text(body, encoding="utf-8")
            tmp_path.replace(self._path)
        except (OSError, TypeError, ValueError) as exc:
            LOGGER.error("Storage save failed for %s: %s", self._namespaced(key), exc)
            return False
        return True

    def _namespaced(self, key: str) -> str:
        if not self._namespace:
            return key
        return f"{self._namespace}_{key}"

    def _read_payload(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            data = json.loads(text)
            if isinstance(data, Mapping):
                return dict(data)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Notes store %s could not be read: %s", self._path, exc)
        return {}
