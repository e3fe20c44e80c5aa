"""Shared pytest fixtures."""

from __future__ import annotations

import logging
import os

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from tests.helpers import MemoryStore, RecordingRenderer, ScriptedConfirm, make_note
from togglenotes.notes.model import Note, note_to_dict
from togglenotes.notes.repository import NOTES_KEY, NoteRepository


@pytest.fixture
def sample_note() -> Note:
    return make_note(1, "Groceries")


@pytest.fixture
def store(sample_note: Note) -> MemoryStore:
    return MemoryStore({NOTES_KEY: [note_to_dict(sample_note)]})


@pytest.fixture
def repository(store: MemoryStore) -> NoteRepository:
    return NoteRepository(store)


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def confirm() -> ScriptedConfirm:
    return ScriptedConfirm(True)


@pytest.fixture(autouse=True)
def _isolate_home(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep log files and environment overrides out of the developer's home directory."""

    monkeypatch.setenv("TOGGLENOTES_LOG_DIR", str(tmp_path / "logs"))
    for name in (
        "TOGGLENOTES_DATA_PATH",
        "TOGGLENOTES_NAMESPACE",
        "TOGGLENOTES_THEME",
        "TOGGLENOTES_DEBUG_LOGGING",
        "TOGGLENOTES_AUTOSAVE_DELAY",
        "TOGGLENOTES_HISTORY_LIMIT",
        "TOGGLENOTES_EDITOR_MAX_HEIGHT",
    ):
        monkeypatch.delenv(name, raising=False)
    logging.getLogger("togglenotes").setLevel(logging.DEBUG)
