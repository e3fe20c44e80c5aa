"""Tests for the debounce timer and the autosave scheduler."""

from __future__ import annotations

import asyncio

from tests.helpers import make_note
from togglenotes.autosave.debounce import DebouncedCall
from togglenotes.autosave.scheduler import AutosaveScheduler
from togglenotes.errors import PersistenceError
from togglenotes.history.store import HistoryStore
from togglenotes.notes.model import Note, clone_note

_DELAY = 0.01
_SETTLE = 0.05


class _Harness:
    def __init__(self, working: Note | None = None, *, persist_result: bool = True) -> None:
        self.working = working
        self.persist_result = persist_result
        self.raise_on_persist = False
        self.saved: list[Note] = []
        self.errors: list[PersistenceError] = []
        self.commits: list[tuple[int, str]] = []
        self.history = HistoryStore()
        self.scheduler = AutosaveScheduler(
            self.history,
            self._persist,
            lambda: self.working,
            delay=_DELAY,
            on_error=self.errors.append,
            on_commit=lambda note, source: self.commits.append((note.id, source)),
        )

    def _persist(self, note: Note) -> bool:
        if self.raise_on_persist:
            raise OSError("quota exceeded")
        self.saved.append(note)
        return self.persist_result

    def edit(self, **changes: str) -> None:
        assert self.working is not None
        prior = clone_note(self.working)
        for name, value in changes.items():
            setattr(self.working, name, value)
        self.scheduler.schedule_commit(prior)


def test_debounced_call_fires_once_after_quiet_period() -> None:
    async def _run() -> None:
        calls: list[int] = []
        timer = DebouncedCall(_DELAY, lambda: calls.append(1))

        for _ in range(5):
            timer.schedule()
            await asyncio.sleep(0)
        assert timer.pending
        await asyncio.sleep(_SETTLE)

        assert calls == [1]
        assert not timer.pending

    asyncio.run(_run())


def test_debounced_call_cancel_drops_pending_call() -> None:
    async def _run() -> None:
        calls: list[int] = []
        timer = DebouncedCall(_DELAY, lambda: calls.append(1))

        timer.schedule()
        assert timer.cancel() is True
        assert timer.cancel() is False
        await asyncio.sleep(_SETTLE)

        assert calls == []

    asyncio.run(_run())


def test_debounced_call_logs_callback_errors(caplog) -> None:
    async def _run() -> None:
        def _boom() -> None:
            raise RuntimeError("callback exploded")

        timer = DebouncedCall(_DELAY, _boom)
        timer.schedule()
        await asyncio.sleep(_SETTLE)
        assert not timer.pending

    asyncio.run(_run())
    assert "callback exploded" in caplog.text


def test_burst_commits_first_prior_snapshot_once() -> None:
    async def _run() -> None:
        harness = _Harness(make_note(1, "A"))

        harness.edit(title="AB")
        harness.edit(title="ABC")
        harness.edit(title="ABCD")
        assert harness.scheduler.pending
        await asyncio.sleep(_SETTLE)

        assert not harness.scheduler.pending
        assert harness.history.size().undo == 1
        assert [note.title for note in harness.saved] == ["ABCD"]
        assert harness.commits == [(1, "autosave")]
        restored = harness.history.undo()
        assert restored is not None and restored.title == "A"

    asyncio.run(_run())


def test_bursts_separated_by_quiet_period_make_two_entries() -> None:
    async def _run() -> None:
        harness = _Harness(make_note(1, "A"))

        harness.edit(title="AB")
        await asyncio.sleep(_SETTLE)
        harness.edit(title="ABC")
        await asyncio.sleep(_SETTLE)

        assert harness.history.size().undo == 2
        assert [note.title for note in harness.saved] == ["AB", "ABC"]

    asyncio.run(_run())


def test_cancel_abandons_pending_commit() -> None:
    async def _run() -> None:
        harness = _Harness(make_note(1, "A"))

        harness.edit(title="AB")
        assert harness.scheduler.cancel() is True
        await asyncio.sleep(_SETTLE)

        assert harness.history.size().undo == 0
        assert harness.saved == []

    asyncio.run(_run())


def test_stale_commit_for_other_note_is_dropped() -> None:
    async def _run() -> None:
        harness = _Harness(make_note(1, "A"))

        harness.edit(title="AB")
        harness.working = make_note(2, "Other")
        await asyncio.sleep(_SETTLE)

        assert harness.history.size().undo == 0
        assert harness.saved == []

    asyncio.run(_run())


def test_settle_without_net_change_records_nothing() -> None:
    async def _run() -> None:
        harness = _Harness(make_note(1, "A"))

        harness.edit(title="AB")
        harness.edit(title="A")
        await asyncio.sleep(_SETTLE)

        assert harness.history.size().undo == 0
        assert harness.saved == []

    asyncio.run(_run())


def test_settle_after_editor_closed_is_ignored() -> None:
    async def _run() -> None:
        harness = _Harness(make_note(1, "A"))

        harness.edit(title="AB")
        harness.working = None
        await asyncio.sleep(_SETTLE)

        assert harness.saved == []

    asyncio.run(_run())


def test_failed_save_is_reported_and_history_still_recorded() -> None:
    async def _run() -> None:
        harness = _Harness(make_note(1, "A"), persist_result=False)

        harness.edit(title="AB")
        await asyncio.sleep(_SETTLE)

        assert harness.history.size().undo == 1
        assert len(harness.errors) == 1
        assert "failed" in str(harness.errors[0])
        assert harness.commits == []

    asyncio.run(_run())


def test_persist_now_reports_raised_errors() -> None:
    harness = _Harness(make_note(1, "A"))
    harness.raise_on_persist = True

    assert harness.scheduler.persist_now(make_note(1, "A"), source="undo") is False

    assert len(harness.errors) == 1
    assert isinstance(harness.errors[0].cause, OSError)


def test_persist_now_saves_a_copy() -> None:
    harness = _Harness(make_note(1, "A"))
    note = make_note(1, "A")

    assert harness.scheduler.persist_now(note, source="redo") is True
    note.title = "changed later"

    assert harness.saved[0].title == "A"
    assert harness.commits == [(1, "redo")]
