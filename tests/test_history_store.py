"""Tests for the bounded undo/redo history store."""

from __future__ import annotations

import logging

import pytest

from tests.helpers import make_note
from togglenotes.history.store import HistoryState, HistoryStore
from togglenotes.notes.model import Note, clone_note, note_to_dict


def _titled(title: str, note_id: int = 1) -> Note:
    return make_note(note_id, title)


def test_push_records_copies() -> None:
    history = HistoryStore()
    note = _titled("a")

    assert history.push(note) is True
    note.title = "mutated after push"

    restored = history.undo()
    assert restored is not None
    assert restored.title == "a"


def test_push_skips_snapshot_equal_to_top() -> None:
    history = HistoryStore()

    assert history.push(_titled("a")) is True
    assert history.push(_titled("a")) is False
    assert history.size().undo == 1

    assert history.push(_titled("b")) is True
    assert history.push(_titled("a")) is True
    assert history.size().undo == 3


def test_push_clears_redo_stack() -> None:
    history = HistoryStore()
    history.push(_titled("a"))
    history.undo(_titled("b"))
    assert history.can_redo

    history.push(_titled("c"))

    assert not history.can_redo
    assert history.size().redo == 0


def test_undo_and_redo_on_empty_stacks_return_none() -> None:
    history = HistoryStore()
    current = _titled("now")

    assert history.undo(current) is None
    assert history.redo(current) is None
    assert history.size().undo == history.size().redo == 0


def test_undo_redo_round_trip_restores_states() -> None:
    history = HistoryStore()
    history.push(_titled("v1"))
    working = _titled("v2")

    undone = history.undo(working)
    assert undone is not None and undone.title == "v1"
    assert history.state() == HistoryState(can_undo=False, can_redo=True, undo_size=0, redo_size=1)

    redone = history.redo(undone)
    assert redone == working
    assert history.state() == HistoryState(can_undo=True, can_redo=False, undo_size=1, redo_size=0)


def test_undo_without_current_does_not_fill_redo() -> None:
    history = HistoryStore()
    history.push(_titled("v1"))

    assert history.undo() is not None
    assert not history.can_redo


def test_capacity_evicts_oldest_entry() -> None:
    history = HistoryStore(max_size=3)
    for index in range(5):
        history.push(_titled(f"v{index}"))

    assert history.size().undo == 3
    titles = []
    while (entry := history.undo()) is not None:
        titles.append(entry.title)
    assert titles == ["v4", "v3", "v2"]


def test_set_max_size_trims_redo_stack_too() -> None:
    history = HistoryStore(max_size=3)
    for index in range(3):
        history.push(_titled(f"v{index}"))
    for index in range(3):
        history.undo(_titled(f"w{index}"))
    assert history.size().redo == 3

    history.set_max_size(1)

    assert history.size().redo == 1
    redone = history.redo()
    assert redone is not None and redone.title == "w2"


@pytest.mark.parametrize(
    "payload",
    [
        None,
        "not a note",
        {"id": "1", "title": "", "toggles": []},
        {"id": 1, "title": "", "toggles": [{"id": 2, "title": "", "content": ""}]},
        {"title": "", "toggles": []},
    ],
)
def test_invalid_push_leaves_stacks_unchanged(payload, caplog: pytest.LogCaptureFixture) -> None:
    history = HistoryStore()
    history.push(_titled("valid"))
    history.undo(_titled("current"))
    history.push(_titled("valid again"))
    before = history.size()

    with caplog.at_level(logging.ERROR, logger="togglenotes.history.store"):
        assert history.push(payload) is False

    assert history.size() == before
    assert "Rejected history push" in caplog.text


def test_push_accepts_serialized_payload() -> None:
    history = HistoryStore()

    assert history.push(note_to_dict(_titled("from storage"))) is True
    restored = history.undo()
    assert isinstance(restored, Note)
    assert restored.title == "from storage"


def _unstamped_payload(note_id: int = 1) -> dict:
    return {
        "id": note_id,
        "title": "",
        "toggles": [{"id": 1, "title": "Section 1", "content": "", "isOpen": True}],
    }


def test_push_dedupes_payloads_without_timestamps() -> None:
    history = HistoryStore()

    assert history.push(_unstamped_payload()) is True
    assert history.push(_unstamped_payload()) is False

    assert history.size().undo == 1


def test_payload_parked_by_redo_matches_later_push() -> None:
    history = HistoryStore()
    history.push(_unstamped_payload())
    current = _unstamped_payload()
    current["title"] = "typed"

    history.undo(current)
    redone = history.redo(_unstamped_payload())

    assert redone is not None and redone.title == "typed"
    assert history.push(_unstamped_payload()) is False
    assert history.size().undo == 1


def test_zero_note_id_survives_push_and_undo() -> None:
    history = HistoryStore()

    assert history.push(_unstamped_payload(note_id=0)) is True
    restored = history.undo()

    assert restored is not None
    assert restored.id == 0


def test_malformed_current_is_not_recorded() -> None:
    history = HistoryStore()
    history.push(_titled("v1"))

    restored = history.undo({"id": "oops"})

    assert restored is not None
    assert not history.can_redo


def test_corrupt_entry_is_discarded() -> None:
    history = HistoryStore()
    history.push(_titled("v1"))
    history.push(_titled("v2"))
    history._undo[-1].snapshot.id = "corrupted"  # type: ignore[assignment]

    assert history.undo() is None
    assert history.size().undo == 1
    restored = history.undo()
    assert restored is not None and restored.title == "v1"


def test_listeners_receive_state_after_each_change() -> None:
    states: list[HistoryState] = []
    history = HistoryStore(on_change=states.append)

    history.push(_titled("a"))
    history.undo(_titled("b"))
    history.redo(_titled("a"))
    history.clear()

    assert [state.can_undo for state in states] == [True, False, True, False]
    assert [state.can_redo for state in states] == [False, True, False, False]


def test_failing_listener_does_not_break_history(caplog: pytest.LogCaptureFixture) -> None:
    history = HistoryStore()
    received: list[HistoryState] = []

    def _boom(state: HistoryState) -> None:
        raise RuntimeError("listener exploded")

    history.notify(_boom)
    history.notify(received.append)

    with caplog.at_level(logging.ERROR):
        assert history.push(_titled("a")) is True

    assert received and received[-1].can_undo
    assert "listener exploded" in caplog.text


def test_set_max_size_trims_oldest_entries() -> None:
    history = HistoryStore(max_size=5)
    for index in range(5):
        history.push(_titled(f"v{index}"))

    history.set_max_size(2)

    assert history.size().undo == 2
    assert history.max_size == 2
    restored = history.undo()
    assert restored is not None and restored.title == "v4"


@pytest.mark.parametrize("value", [0, -3, True])
def test_set_max_size_rejects_non_positive_values(value) -> None:
    history = HistoryStore()

    with pytest.raises(ValueError):
        history.set_max_size(value)


def test_constructor_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        HistoryStore(max_size=0)


def test_describe_summarizes_both_stacks() -> None:
    history = HistoryStore(max_size=4)
    history.push(_titled("a"))
    history.undo(_titled("b"))

    summary = history.describe()

    assert summary["max_size"] == 4
    assert summary["undo"] == []
    assert summary["redo"][0]["title"] == "b"
    assert summary["redo"][0]["section_count"] == 3


def test_snapshots_returned_by_undo_are_detached() -> None:
    history = HistoryStore()
    history.push(_titled("a"))
    working = _titled("b")

    undone = history.undo(clone_note(working))
    assert undone is not None
    undone.sections[0].content = "typed after undo"

    redone = history.redo(undone)
    assert redone is not None
    assert redone.sections[0].content == ""
