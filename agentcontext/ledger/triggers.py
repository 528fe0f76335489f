"""
Trigger engine (prospective reminders).

A trigger fires when any of its keywords appears as a substring of the match
context. The context is assembled by the caller; this module only gates on
substrings and counts firings.
"""

from __future__ import annotations

import re
from datetime import datetime

from ..models import LedgerState, Trigger
from ..util import generate_id, utc_now

_TOKEN_SPLIT = re.compile(r"[\s,]+")


def keywords(when: str) -> list[str]:
    """Split a trigger expression into lowercase keyword tokens."""
    return [t for t in _TOKEN_SPLIT.split(when.lower()) if t]


def add_trigger(
    state: LedgerState,
    when: str,
    remind: str,
    *,
    max_fires: int = 3,
    source: str | None = None,
    now: datetime | None = None,
) -> Trigger:
    when = (when or "").strip()
    remind = (remind or "").strip()
    if not keywords(when):
        raise ValueError("Trigger keywords are required.")
    if not remind:
        raise ValueError("Reminder message is required.")
    if isinstance(max_fires, bool) or not isinstance(max_fires, int) or max_fires < 1:
        raise ValueError("max-fires must be a positive integer.")

    trigger = Trigger(
        id=generate_id("trg"),
        when=when,
        remind=remind,
        created_at=now or utc_now(),
        source=source or None,
        fired_count=0,
        max_fires=max_fires,
    )
    state.triggers.append(trigger)
    return trigger


def remove_trigger(state: LedgerState, trigger_id: str) -> bool:
    before = len(state.triggers)
    state.triggers = [t for t in state.triggers if t.id != trigger_id]
    return len(state.triggers) != before


def active_triggers(state: LedgerState) -> list[Trigger]:
    return [t for t in state.triggers if not t.expired]


def match_and_fire(state: LedgerState, match_context: str) -> list[Trigger]:
    """
    Fire every active trigger whose keywords hit the context.

    Each fired trigger has its fired_count incremented once per call.

    Returns:
        The fired triggers, in ledger order
    """
    haystack = (match_context or "").lower()
    if not haystack.strip():
        return []

    fired: list[Trigger] = []
    for t in state.triggers:
        if t.expired:
            continue
        if any(token in haystack for token in keywords(t.when)):
            t.fired_count += 1
            fired.append(t)
    return fired


def prune_expired(state: LedgerState) -> int:
    before = len(state.triggers)
    state.triggers = [t for t in state.triggers if not t.expired]
    return before - len(state.triggers)
