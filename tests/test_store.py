"""Tests for ledger persistence."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest

from agentcontext.ledger import add_bookmark, add_trigger, record_change, record_knowledge_access, record_stop
from agentcontext.models import FieldChange, HistoryEntry, LedgerState, TranscriptStats
from agentcontext.store import LedgerBusyError, LedgerStore


def test_missing_file_loads_default(store: LedgerStore) -> None:
    state = store.load()
    assert state.debt == 0
    assert state.sessions == []
    assert not store.state_path.exists()


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", ""])
def test_malformed_file_loads_default(store: LedgerStore, content: str) -> None:
    store.state_path.write_text(content, encoding="utf-8")
    state = store.load()
    assert state.debt == 0
    assert state.sessions == []


def test_round_trip_preserves_state(store: LedgerStore, t0) -> None:
    state = LedgerState()
    record_stop(state, "s1", "/tmp/t.jsonl", "All done", TranscriptStats(4, 20), now=t0)
    add_bookmark(state, "Decided on JWT", 3, now=t0)
    add_trigger(state, "jwt, token", "Rotate the signing key", source="memory.md#auth", now=t0)
    record_change(state, "task", "update", "state/auth.md", fields=[FieldChange("tags", ["a"], ["a", "b"])], now=t0)
    record_knowledge_access(state, "auth", now=t0)
    state.consolidation_epoch = t0 + timedelta(seconds=1)

    store.save(state)
    loaded = store.load()

    assert loaded == state


def test_on_disk_keys(store: LedgerStore, t0) -> None:
    state = LedgerState()
    record_stop(state, "s1", None, "bye", TranscriptStats(), now=t0)
    store.save(state)

    data = json.loads(store.state_path.read_text(encoding="utf-8"))
    assert list(data) == [
        "debt",
        "last_sleep",
        "last_sleep_summary",
        "sleep_started_at",
        "sessions",
        "bookmarks",
        "triggers",
        "knowledge_access",
        "dashboard_changes",
    ]
    assert data["sessions"][0]["last_assistant_message"] == "bye"
    assert data["sessions"][0]["stopped_at"] == "2026-03-01T09:00:00.000Z"


def test_malformed_records_are_skipped(store: LedgerStore) -> None:
    store.state_path.write_text(
        json.dumps(
            {
                "debt": 2,
                "sessions": [{"session_id": "ok", "score": 2}, {"score": 1}, "junk"],
                "triggers": [{"id": "trg_1"}],
                "extra": True,
            }
        ),
        encoding="utf-8",
    )
    state = store.load()
    assert [s.session_id for s in state.sessions] == ["ok"]
    assert state.triggers == []
    assert state.debt == 2


def test_transaction_saves_on_success(store: LedgerStore, t0) -> None:
    with store.transaction() as state:
        add_bookmark(state, "kept", now=t0)

    assert [b.message for b in store.load().bookmarks] == ["kept"]


def test_failed_transaction_writes_nothing(store: LedgerStore, t0) -> None:
    with store.transaction() as state:
        add_bookmark(state, "original", now=t0)
    before = store.state_path.read_bytes()

    with pytest.raises(RuntimeError):
        with store.transaction() as state:
            add_bookmark(state, "discarded", now=t0)
            raise RuntimeError("boom")

    assert store.state_path.read_bytes() == before


def test_no_temp_files_left_behind(store: LedgerStore) -> None:
    store.save(LedgerState(debt=0))
    leftovers = [p.name for p in store.state_path.parent.iterdir() if ".tmp." in p.name]
    assert leftovers == []


def test_lock_is_reentrant(store: LedgerStore) -> None:
    with store.lock():
        with store.transaction() as state:
            state.debt = 0
    assert store.state_path.exists()


def test_lock_times_out_when_held(context_root) -> None:
    fcntl = pytest.importorskip("fcntl")
    from agentcontext.config import LedgerConfig

    config = LedgerConfig(lock_timeout_s=0.1)
    store = LedgerStore(context_root, config)
    store.lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(store.lock_path, "w") as holder:
        fcntl.flock(holder.fileno(), fcntl.LOCK_EX)
        with pytest.raises(LedgerBusyError):
            with store.lock():
                pass


def test_history_prepends_newest_first(store: LedgerStore, t0) -> None:
    for i in range(3):
        store.prepend_history(
            HistoryEntry(
                date="2026-03-0%d" % (i + 1),
                summary=f"cycle {i}",
                debt_before=i + 5,
                debt_after=0,
                sessions_processed=i,
                bookmarks_processed=0,
                consolidated_at=t0 + timedelta(days=i),
            )
        )

    entries = store.read_history()
    assert [e.summary for e in entries] == ["cycle 2", "cycle 1", "cycle 0"]
    assert [e.summary for e in store.read_history(limit=1)] == ["cycle 2"]
    assert entries[0].consolidated_at == t0 + timedelta(days=2)


def test_history_missing_or_malformed(store: LedgerStore) -> None:
    assert store.read_history() == []
    store.history_path.write_text("{}", encoding="utf-8")
    assert store.read_history() == []


def test_round_trip_with_real_clock(store: LedgerStore) -> None:
    state = LedgerState()
    record_stop(state, "s1", None, "bye", TranscriptStats(5, 0))
    add_bookmark(state, "clock check")
    record_change(state, "task", "create", "state/clock.md")

    store.save(state)

    assert store.load() == state
