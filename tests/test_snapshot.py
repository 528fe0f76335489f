"""Tests for the session-start snapshot and sub-agent briefing."""

from __future__ import annotations

from datetime import timedelta

from agentcontext.config import LedgerConfig
from agentcontext.ledger import add_bookmark, add_trigger, match_and_fire, record_change, record_stop
from agentcontext.models import LedgerState, TranscriptStats
from agentcontext.snapshot import bookmark_context, generate_snapshot, generate_subagent_briefing


def test_empty_state_snapshot() -> None:
    text = generate_snapshot(LedgerState(), LedgerConfig())

    assert text.startswith("# Agent Context\n")
    assert "- Debt: 0 (0-3) Alert" in text
    assert "- Last sleep: never" in text
    assert "## Sessions Since Last Sleep" not in text
    assert "## Bookmarks" not in text


def test_full_snapshot_sections(t0) -> None:
    state = LedgerState()
    record_stop(state, "s1", "/t", "Shipped the login flow", TranscriptStats(5, 12), now=t0)
    add_bookmark(state, "Tokens now expire after 1h", 3, now=t0 + timedelta(seconds=1))
    trigger = add_trigger(state, "tokens", "Update the API docs", source="memory.md#auth", now=t0)
    record_change(state, "task", "create", "state/login.md", now=t0)
    fired = match_and_fire(state, bookmark_context(state, 5))

    text = generate_snapshot(state, LedgerConfig(), fired)

    assert fired == [trigger]
    assert "- Last session ended: 2026-03-01T09:00:00.000Z" in text
    assert "- Last session summary: Shipped the login flow" in text
    assert "- 2026-03-01T09:00:00.000Z +2 [5 changes, 12 tools]" in text
    assert "- ★★★ Tokens now expire after 1h" in text
    assert "## Reminders" in text
    assert "- Update the API docs (source: memory.md#auth)" in text
    assert "## Dashboard Changes Pending Review" in text
    assert "- Created task 'login'" in text


def test_snapshot_limits_bookmarks(t0) -> None:
    state = LedgerState()
    for i in range(4):
        add_bookmark(state, f"note {i}", now=t0)

    text = generate_snapshot(state, LedgerConfig(snapshot_bookmarks=2))
    assert "note 3" in text
    assert "note 2" in text
    assert "note 1" not in text


def test_subagent_briefing(t0) -> None:
    state = LedgerState(debt=8)
    add_bookmark(state, "Never touch prod DB", 3, now=t0)
    add_bookmark(state, "minor", 1, now=t0)
    add_trigger(state, "deploy", "Run migrations first", now=t0)

    text = generate_subagent_briefing(state)

    assert text.startswith("Project sleep debt: 8 (Sleepy).")
    assert "- Never touch prod DB" in text
    assert "minor" not in text
    assert "- when deploy: Run migrations first" in text
