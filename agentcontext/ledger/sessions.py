"""
Session ledger: idempotent per-session debt accounting.

Invariant: state.debt == sum of scores over sessions with a non-null score.
Every operation here keeps it, including duplicate "stop" deliveries for the
same session.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from ..models import LedgerState, SessionRecord, TranscriptStats
from ..util import utc_now
from .bookmarks import link_bookmarks
from .scoring import MAX_SCORE, score

logger = logging.getLogger(__name__)

Analyzer = Callable[[str], TranscriptStats]


def scored_total(state: LedgerState) -> int:
    return sum(s.score for s in state.sessions if s.score is not None)


def debt_matches_sessions(state: LedgerState) -> bool:
    """Check the debt invariant."""
    return state.debt == scored_total(state)


def record_stop(
    state: LedgerState,
    session_id: str,
    transcript_path: str | None,
    last_message: str | None,
    stats: TranscriptStats,
    *,
    now: datetime | None = None,
) -> SessionRecord:
    """
    Record a session "stop" event.

    A repeated stop for the same session replaces the earlier score rather
    than adding to it. Debt is recomputed from the session scores, so a
    drifted stored total is corrected here. New sessions are prepended
    (newest first).

    Unlinked bookmarks created up to this point are attributed to the session.
    """
    if not session_id:
        raise ValueError("session_id is required")

    now = now or utc_now()
    new_score = score(stats.change_count, stats.tool_count)

    existing = state.find_session(session_id)
    if existing is not None:
        old_score = existing.score or 0
        existing.transcript_path = transcript_path
        existing.stopped_at = now
        existing.last_message = last_message
        existing.change_count = stats.change_count
        existing.tool_count = stats.tool_count
        existing.score = new_score
        record = existing
        logger.debug("Re-stop for %s: score %d -> %d", session_id, old_score, new_score)
    else:
        record = SessionRecord(
            session_id=session_id,
            transcript_path=transcript_path,
            stopped_at=now,
            last_message=last_message,
            change_count=stats.change_count,
            tool_count=stats.tool_count,
            score=new_score,
        )
        state.sessions.insert(0, record)

    state.debt = scored_total(state)
    link_bookmarks(state, session_id, now=now)
    return record


def analyze_pending(state: LedgerState, analyzer: Analyzer) -> int:
    """
    Score every session that has no score yet, in one pass.

    Sessions without a transcript score 0. The analyzer is expected not to
    raise; it returns zero counts for unreadable input.

    Returns:
        Number of sessions analyzed (the caller persists once if non-zero)
    """
    analyzed = 0
    for session in state.sessions:
        if session.score is not None:
            continue
        if not session.transcript_path:
            stats = TranscriptStats(0, 0)
        else:
            stats = analyzer(session.transcript_path)
        session.change_count = stats.change_count
        session.tool_count = stats.tool_count
        session.score = score(stats.change_count, stats.tool_count)
        state.debt += session.score
        analyzed += 1
    return analyzed


def add_manual_debt(
    state: LedgerState,
    debt_score: int,
    description: str,
    *,
    now: datetime | None = None,
) -> SessionRecord:
    """
    Inject debt by hand, bypassing transcript scoring.

    Recorded as a synthetic stopped session so the debt invariant still holds
    and consolidation clears it like any other session.
    """
    if isinstance(debt_score, bool) or not isinstance(debt_score, int) or not 1 <= debt_score <= MAX_SCORE:
        raise ValueError("Score must be 1, 2, or 3.")
    description = (description or "").strip()
    if not description:
        raise ValueError("Description is required.")

    now = now or utc_now()
    session_id = f"manual-{int(now.timestamp() * 1000)}"
    suffix = 1
    while state.find_session(session_id) is not None:
        suffix += 1
        session_id = f"manual-{int(now.timestamp() * 1000)}-{suffix}"

    record = SessionRecord(
        session_id=session_id,
        transcript_path=None,
        stopped_at=now,
        last_message=description,
        change_count=None,
        tool_count=None,
        score=debt_score,
    )
    state.sessions.insert(0, record)
    state.debt += debt_score
    return record
