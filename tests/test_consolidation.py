"""Tests for epoch-based consolidation."""

from __future__ import annotations

from datetime import timedelta

import pytest

from agentcontext.ledger import add_bookmark, add_trigger, consolidation, match_and_fire, record_change, record_stop
from agentcontext.models import FieldChange, LedgerState, SessionRecord, TranscriptStats


def test_start_sets_epoch_and_reports_overwrite(t0) -> None:
    state = LedgerState()
    assert consolidation.start(state, now=t0) is None
    assert state.consolidating

    later = t0 + timedelta(hours=1)
    assert consolidation.start(state, now=later) == t0
    assert state.consolidation_epoch == later


def test_done_with_epoch_keeps_post_epoch_work(t0) -> None:
    state = LedgerState()
    t1 = t0
    epoch = t0 + timedelta(minutes=10)
    t2 = t0 + timedelta(minutes=20)

    record_stop(state, "before", "/b", None, TranscriptStats(10, 10), now=t1)
    add_bookmark(state, "old insight", now=t1)
    record_change(state, "task", "create", "state/old.md", now=t1)

    consolidation.start(state, now=epoch)

    record_stop(state, "after", "/a", None, TranscriptStats(1, 1), now=t2)
    add_bookmark(state, "new insight", now=t2)
    record_change(state, "task", "create", "state/new.md", now=t2)
    assert state.debt == 4

    result = consolidation.done(state, "Reviewed auth work", now=t2 + timedelta(minutes=1))

    assert [s.session_id for s in state.sessions] == ["after"]
    assert [b.message for b in state.bookmarks] == ["new insight"]
    assert [c.target for c in state.change_log] == ["state/new.md"]
    assert state.debt == 1
    assert state.consolidation_epoch is None
    assert result.used_epoch
    assert result.sessions_retained == 1

    entry = result.history_entry
    assert entry.debt_before == 4
    assert entry.debt_after == 1
    assert entry.sessions_processed == 1
    assert entry.bookmarks_processed == 1
    assert entry.session_ids == ["before"]
    assert entry.date == "2026-03-01"


def test_done_drops_active_sessions_but_counts_them(t0) -> None:
    epoch = t0 + timedelta(minutes=5)
    state = LedgerState(
        sessions=[
            SessionRecord(session_id="active"),
            SessionRecord(session_id="stopped", stopped_at=t0, score=0),
        ],
        consolidation_epoch=epoch,
    )

    result = consolidation.done(state, "summary", now=epoch + timedelta(minutes=1))

    assert state.sessions == []
    assert result.history_entry.sessions_processed == 2
    assert set(result.history_entry.session_ids) == {"active", "stopped"}


def test_done_without_epoch_clears_everything(t0) -> None:
    state = LedgerState()
    record_stop(state, "s1", None, None, TranscriptStats(9, 0), now=t0)
    add_bookmark(state, "note", now=t0)
    record_change(state, "task", "update", "state/a.md", fields=[FieldChange("status", "a", "b")], now=t0)

    result = consolidation.done(state, "Full reset", now=t0 + timedelta(hours=1))

    assert not result.used_epoch
    assert state.debt == 0
    assert state.sessions == []
    assert state.bookmarks == []
    assert state.change_log == []
    assert result.history_entry.debt_before == 3
    assert result.history_entry.bookmarks_processed == 1
    assert state.last_consolidation.at == "2026-03-01"
    assert state.last_consolidation.summary == "Full reset"


def test_done_prunes_expired_triggers(t0) -> None:
    state = LedgerState()
    add_trigger(state, "auth", "Check rate limits", max_fires=1, now=t0)
    add_trigger(state, "cache", "Invalidate CDN", now=t0)
    match_and_fire(state, "touching auth code")

    result = consolidation.done(state, "done", now=t0)

    assert result.triggers_pruned == 1
    assert [t.when for t in state.triggers] == ["cache"]


def test_done_requires_summary(t0) -> None:
    state = LedgerState(debt=0)
    consolidation.start(state, now=t0)
    with pytest.raises(ValueError, match="Summary is required"):
        consolidation.done(state, "  ", now=t0)
    assert state.consolidating
