"""Settings dataclass and JSON persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = ["Settings", "SettingsStore"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".togglenotes"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "TOGGLENOTES_DATA_PATH": "data_path",
    "TOGGLENOTES_NAMESPACE": "storage_namespace",
    "TOGGLENOTES_THEME": "theme",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "TOGGLENOTES_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "TOGGLENOTES_AUTOSAVE_DELAY": "autosave_delay",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "TOGGLENOTES_HISTORY_LIMIT": "history_limit",
    "TOGGLENOTES_EDITOR_MAX_HEIGHT": "editor_max_height",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    data_path: str | None = None
    storage_namespace: str = "togglenotes"
    notes_key: str = "notes"
    autosave_delay: float = 0.5
    history_limit: int = 100
    editor_max_height: int | None = None
    window_geometry: str | None = None
    theme: str = "default"
    debug_logging: bool = False

    def resolved_data_path(self) -> Path:
        if self.data_path:
            return Path(self.data_path).expanduser()
        return _SETTINGS_DIR / "notes.json"


class SettingsStore:
    """Load and save :class:`Settings` as JSON with atomic writes."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            try:
                settings = Settings(**_filter_fields(payload))
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            settings = _sanitize(settings)
            if payload.get("version") != _SETTINGS_VERSION:
                try:
                    self.save(settings)
                except OSError as exc:  # pragma: no cover - depends on filesystem
                    LOGGER.warning("Failed to migrate settings payload: %s", exc)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        settings = self._apply_env_overrides(settings)
        return _sanitize(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        data = asdict(settings)
        data["version"] = _SETTINGS_VERSION
        body = json.dumps(data, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            data = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        return dict(data) if isinstance(data, Mapping) else {}

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}


def _sanitize(settings: Settings) -> Settings:
    """Fall back to defaults for numeric values that would break the editor."""

    defaults = Settings()
    changes: Dict[str, Any] = {}
    try:
        delay = float(settings.autosave_delay)
    except (TypeError, ValueError):
        delay = -1.0
    if delay < 0:
        LOGGER.warning("Invalid autosave_delay %r; using %s", settings.autosave_delay, defaults.autosave_delay)
        changes["autosave_delay"] = defaults.autosave_delay
    elif delay != settings.autosave_delay:
        changes["autosave_delay"] = delay
    limit = settings.history_limit
    if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
        LOGGER.warning("Invalid history_limit %r; using %s", limit, defaults.history_limit)
        changes["history_limit"] = defaults.history_limit
    max_height = settings.editor_max_height
    if max_height is not None and (not isinstance(max_height, int) or max_height <= 0):
        LOGGER.warning("Invalid editor_max_height %r; ignoring", max_height)
        changes["editor_max_height"] = None
    return replace(settings, **changes) if changes else settings
