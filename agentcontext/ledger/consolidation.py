"""
Consolidation epochs.

`start` stamps an epoch; `done` clears only what existed before that epoch,
so sessions, bookmarks and dashboard changes recorded while a review is in
progress survive into the next cycle.

    Idle --start()--> InProgress --done(summary)--> Idle
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..models import HistoryEntry, LedgerState
from ..util import today, utc_now
from .sessions import scored_total
from .triggers import prune_expired


@dataclass
class ConsolidationResult:
    history_entry: HistoryEntry
    sessions_retained: int
    bookmarks_retained: int
    triggers_pruned: int
    used_epoch: bool


def start(state: LedgerState, *, now: datetime | None = None) -> datetime | None:
    """
    Mark the beginning of a consolidation.

    Returns:
        The epoch that was overwritten, or None if none was in progress
    """
    previous = state.consolidation_epoch
    state.consolidation_epoch = now or utc_now()
    return previous


def done(state: LedgerState, summary: str, *, now: datetime | None = None) -> ConsolidationResult:
    """
    Finish a consolidation and reset the ledger up to the epoch.

    With an epoch: sessions stopped after it, bookmarks and changes created
    after it are kept; everything else is cleared. Sessions that never
    stopped are dropped but counted as processed. Debt is recomputed from the
    retained sessions.

    Without an epoch (legacy path): everything is cleared and debt is zero.

    Expired triggers are pruned either way. The returned history entry is not
    persisted here; the caller prepends it to the history log.
    """
    summary = (summary or "").strip()
    if not summary:
        raise ValueError("Summary is required.")

    now = now or utc_now()
    debt_before = state.debt
    epoch = state.consolidation_epoch

    if epoch is not None:
        processed = [s for s in state.sessions if s.stopped_at is None or s.stopped_at <= epoch]
        bookmarks_processed = sum(1 for b in state.bookmarks if b.created_at <= epoch)

        state.sessions = [s for s in state.sessions if s.stopped_at is not None and s.stopped_at > epoch]
        state.bookmarks = [b for b in state.bookmarks if b.created_at > epoch]
        state.change_log = [c for c in state.change_log if c.timestamp > epoch]
        state.debt = scored_total(state)
    else:
        processed = list(state.sessions)
        bookmarks_processed = len(state.bookmarks)

        state.sessions = []
        state.bookmarks = []
        state.change_log = []
        state.debt = 0

    pruned = prune_expired(state)

    entry = HistoryEntry(
        date=today(now),
        summary=summary,
        debt_before=debt_before,
        debt_after=state.debt,
        sessions_processed=len(processed),
        bookmarks_processed=bookmarks_processed,
        consolidated_at=now,
        session_ids=[s.session_id for s in processed],
    )

    state.last_consolidation.at = entry.date
    state.last_consolidation.summary = summary
    state.consolidation_epoch = None

    return ConsolidationResult(
        history_entry=entry,
        sessions_retained=len(state.sessions),
        bookmarks_retained=len(state.bookmarks),
        triggers_pruned=pruned,
        used_epoch=epoch is not None,
    )
