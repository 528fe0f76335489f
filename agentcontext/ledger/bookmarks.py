"""Bookmarks and knowledge-access bookkeeping."""

from __future__ import annotations

from datetime import datetime

from ..models import AccessRecord, Bookmark, LedgerState
from ..util import generate_id, today, utc_now

SALIENCE_LABELS = {1: "★", 2: "★★", 3: "★★★"}


def add_bookmark(
    state: LedgerState,
    message: str,
    salience: int = 2,
    *,
    now: datetime | None = None,
) -> Bookmark:
    """Prepend a bookmark. Salience: 1=notable, 2=significant, 3=critical."""
    if isinstance(salience, bool) or salience not in (1, 2, 3):
        raise ValueError("Salience must be 1, 2, or 3.")
    message = (message or "").strip()
    if not message:
        raise ValueError("Message is required.")

    bookmark = Bookmark(
        id=generate_id("bm"),
        message=message,
        salience=salience,
        created_at=now or utc_now(),
        session_id=None,
    )
    state.bookmarks.insert(0, bookmark)
    return bookmark


def clear_bookmarks(state: LedgerState) -> int:
    count = len(state.bookmarks)
    state.bookmarks = []
    return count


def link_bookmarks(state: LedgerState, session_id: str, *, now: datetime) -> int:
    """Attach unlinked bookmarks created at or before `now` to a session."""
    linked = 0
    for b in state.bookmarks:
        if b.session_id is None and b.created_at <= now:
            b.session_id = session_id
            linked += 1
    return linked


def record_knowledge_access(state: LedgerState, slug: str, *, now: datetime | None = None) -> AccessRecord:
    """Bump the access counter for a knowledge entry."""
    slug = (slug or "").strip()
    if not slug:
        raise ValueError("Knowledge slug is required.")
    day = today(now)
    record = state.knowledge_access.get(slug)
    if record is None:
        record = AccessRecord(last_accessed=day, count=1)
        state.knowledge_access[slug] = record
    else:
        record.count += 1
        record.last_accessed = day
    return record
