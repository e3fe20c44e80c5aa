"""Tests for the notes repository and the JSON key-value store."""

from __future__ import annotations

import json
from pathlib import Path

from tests.helpers import MemoryStore, make_note
from togglenotes.notes.model import Section, note_to_dict
from togglenotes.notes.repository import NOTES_KEY, NoteRepository
from togglenotes.services.storage import JsonFileStore


def test_repository_loads_and_skips_malformed_records(caplog) -> None:
    store = MemoryStore(
        {NOTES_KEY: [note_to_dict(make_note(1)), {"id": "bad"}, note_to_dict(make_note(2))]}
    )

    repository = NoteRepository(store)

    assert [note.id for note in repository.notes] == [1, 2]
    assert "Skipping malformed stored note" in caplog.text


def test_repository_keeps_zero_note_id_across_loads() -> None:
    store = MemoryStore({NOTES_KEY: [note_to_dict(make_note(0, "First"))]})

    assert [note.id for note in NoteRepository(store).notes] == [0]
    assert NoteRepository(store).get_note(0).title == "First"


def test_repository_with_non_list_payload_starts_empty() -> None:
    repository = NoteRepository(MemoryStore({NOTES_KEY: {"id": 1}}))

    assert repository.notes == []


def test_repository_hands_out_copies(repository: NoteRepository) -> None:
    note = repository.get_note(1)
    assert note is not None
    note.title = "mutated outside"

    assert repository.get_note(1).title == "Groceries"


def test_create_note_prepends_and_saves(repository: NoteRepository, store: MemoryStore) -> None:
    created = repository.create_note()

    assert repository.notes[0].id == created.id
    assert store.data[NOTES_KEY][0]["id"] == created.id
    assert len(created.sections) == 3


def test_update_note_stamps_and_persists(repository: NoteRepository, store: MemoryStore) -> None:
    note = repository.get_note(1)
    note.title = "Updated"

    assert repository.update_note(note) is True

    stored = repository.get_note(1)
    assert stored.title == "Updated"
    assert stored.updated_at > note.updated_at
    assert store.data[NOTES_KEY][0]["title"] == "Updated"


def test_update_unknown_note_fails(repository: NoteRepository) -> None:
    assert repository.update_note(make_note(404)) is False


def test_update_reports_store_failure(repository: NoteRepository, store: MemoryStore) -> None:
    store.fail = True

    assert repository.update_note(repository.get_note(1)) is False


def test_delete_note(repository: NoteRepository) -> None:
    assert repository.delete_note(404) is False
    assert repository.delete_note(1) is True
    assert repository.notes == []


def test_get_notes_searches_titles_and_content() -> None:
    repository = NoteRepository(
        MemoryStore(
            {
                NOTES_KEY: [
                    note_to_dict(make_note(1, "Groceries")),
                    note_to_dict(make_note(2, "Trip", Section(id=21, title="Packing", content="Sunscreen"))),
                ]
            }
        )
    )

    assert [note.id for note in repository.get_notes("GROC")] == [1]
    assert [note.id for note in repository.get_notes("packing")] == [2]
    assert [note.id for note in repository.get_notes("sunscreen")] == [2]
    assert repository.get_notes("nothing matches") == []
    assert len(repository.get_notes("  ")) == 2


def test_display_title_and_preview() -> None:
    blank = make_note(1, "")
    long_text = make_note(2, "Long", Section(id=21, content="x" * 150))

    assert NoteRepository.display_title(blank) == "Untitled Note"
    assert NoteRepository.preview(blank) == "No content"
    preview = NoteRepository.preview(long_text)
    assert preview.endswith("...")
    assert len(preview) == 103


def test_json_file_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "data" / "notes.json"
    store = JsonFileStore(path, namespace="tn")

    assert store.load("notes", []) == []
    assert store.save("notes", [{"id": 1}]) is True
    assert store.save("other", "value") is True

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert payload["entries"] == {"tn_notes": [{"id": 1}], "tn_other": "value"}
    assert JsonFileStore(path, namespace="tn").load("notes") == [{"id": 1}]
    assert JsonFileStore(path, namespace="elsewhere").load("notes") is None


def test_json_file_store_rejects_unserializable_values(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path / "notes.json")

    assert store.save("notes", {"bad": object()}) is False
    assert not (tmp_path / "notes.json").exists()


def test_json_file_store_tolerates_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "notes.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileStore(path)

    assert store.load("notes", "fallback") == "fallback"
    assert store.save("notes", []) is True


def test_repository_persists_through_json_store(tmp_path: Path) -> None:
    store = JsonFileStore(tmp_path / "notes.json")
    repository = NoteRepository(store)
    created = repository.create_note()
    created.title = "Persisted"
    repository.update_note(created)

    reloaded = NoteRepository(JsonFileStore(tmp_path / "notes.json"))

    assert [note.title for note in reloaded.notes] == ["Persisted"]
