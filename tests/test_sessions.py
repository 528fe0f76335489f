"""Tests for per-session debt accounting."""

from __future__ import annotations

from datetime import timedelta

import pytest

from agentcontext.ledger import (
    add_bookmark,
    add_manual_debt,
    analyze_pending,
    debt_matches_sessions,
    record_stop,
)
from agentcontext.models import LedgerState, SessionRecord, TranscriptStats
from agentcontext.util import utc_now


def test_stop_scores_new_session(t0) -> None:
    state = LedgerState()
    record = record_stop(state, "s1", "/tmp/s1.jsonl", "Done.", TranscriptStats(5, 5), now=t0)

    assert record.score == 2
    assert state.debt == 2
    assert state.sessions[0] is record
    assert record.stopped_at == t0
    assert record.last_message == "Done."


def test_repeated_stop_is_idempotent(t0) -> None:
    state = LedgerState()
    record_stop(state, "s1", "/tmp/s1.jsonl", None, TranscriptStats(5, 5), now=t0)
    record_stop(state, "s1", "/tmp/s1.jsonl", None, TranscriptStats(5, 5), now=t0 + timedelta(minutes=1))

    assert state.debt == 2
    assert len(state.sessions) == 1
    assert state.sessions[0].stopped_at == t0 + timedelta(minutes=1)


def test_restop_replaces_old_score(t0) -> None:
    state = LedgerState()
    record_stop(state, "s1", None, None, TranscriptStats(1, 1), now=t0)
    assert state.debt == 1

    record_stop(state, "s1", None, None, TranscriptStats(10, 10), now=t0)
    assert state.debt == 3
    assert debt_matches_sessions(state)


def test_new_sessions_are_prepended(t0) -> None:
    state = LedgerState()
    record_stop(state, "a", None, None, TranscriptStats(1, 1), now=t0)
    record_stop(state, "b", None, None, TranscriptStats(1, 1), now=t0 + timedelta(seconds=1))

    assert [s.session_id for s in state.sessions] == ["b", "a"]
    assert state.debt == 2


def test_stop_requires_session_id(t0) -> None:
    with pytest.raises(ValueError):
        record_stop(LedgerState(), "", None, None, TranscriptStats(), now=t0)


def test_stop_links_unlinked_bookmarks(t0) -> None:
    state = LedgerState()
    bm = add_bookmark(state, "Chose SQLite over Postgres", 3, now=t0)
    record_stop(state, "s1", None, None, TranscriptStats(), now=t0 + timedelta(seconds=5))

    assert bm.session_id == "s1"

    record_stop(state, "s2", None, None, TranscriptStats(), now=t0 + timedelta(seconds=10))
    assert bm.session_id == "s1"


def test_analyze_pending_scores_only_unscored(t0) -> None:
    state = LedgerState(
        debt=1,
        sessions=[
            SessionRecord(session_id="done", transcript_path="/x", stopped_at=t0, score=1),
            SessionRecord(session_id="pending", transcript_path="/y", stopped_at=t0),
            SessionRecord(session_id="no-transcript", stopped_at=t0),
        ],
    )
    calls: list[str] = []

    def analyzer(path: str) -> TranscriptStats:
        calls.append(path)
        return TranscriptStats(0, 20)

    analyzed = analyze_pending(state, analyzer)

    assert analyzed == 2
    assert calls == ["/y"]
    assert state.find_session("pending").score == 2
    assert state.find_session("no-transcript").score == 0
    assert state.debt == 3
    assert debt_matches_sessions(state)


def test_analyze_pending_nothing_to_do(t0) -> None:
    state = LedgerState(sessions=[SessionRecord(session_id="s", stopped_at=t0, score=0)])
    assert analyze_pending(state, lambda _: TranscriptStats(99, 99)) == 0
    assert state.debt == 0


def test_manual_debt_creates_synthetic_session(t0) -> None:
    state = LedgerState()
    record = add_manual_debt(state, 2, "  Refactored auth  ", now=t0)

    assert record.session_id == f"manual-{int(t0.timestamp() * 1000)}"
    assert record.last_message == "Refactored auth"
    assert record.transcript_path is None
    assert state.debt == 2
    assert debt_matches_sessions(state)


def test_manual_debt_ids_stay_unique(t0) -> None:
    state = LedgerState()
    a = add_manual_debt(state, 1, "one", now=t0)
    b = add_manual_debt(state, 1, "two", now=t0)

    assert a.session_id != b.session_id
    assert state.debt == 2


@pytest.mark.parametrize("bad", [0, 4, -1, True])
def test_manual_debt_rejects_bad_score(bad, t0) -> None:
    with pytest.raises(ValueError, match="Score must be 1, 2, or 3"):
        add_manual_debt(LedgerState(), bad, "x", now=t0)


def test_manual_debt_requires_description(t0) -> None:
    with pytest.raises(ValueError, match="Description is required"):
        add_manual_debt(LedgerState(), 1, "   ", now=t0)


def test_stop_corrects_drifted_debt(t0) -> None:
    state = LedgerState(
        debt=7,
        sessions=[SessionRecord(session_id="s1", stopped_at=t0, change_count=10, tool_count=0, score=3)],
    )
    record_stop(state, "s1", None, None, TranscriptStats(1, 0), now=t0 + timedelta(minutes=1))

    assert state.debt == 1
    assert debt_matches_sessions(state)


def test_utc_now_has_millisecond_precision() -> None:
    assert utc_now().microsecond % 1000 == 0
