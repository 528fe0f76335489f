"""
Session debt & consolidation ledger.

Pure operations over a LedgerState; no filesystem access. Persistence is
handled by agentcontext.store, which wraps load/mutate/store around these.

Components:
- scoring: bounded debt score from (change_count, tool_count)
- sessions: idempotent per-session stop recording and pending analysis
- bookmarks: salient moments and knowledge-access counters
- triggers: keyword-gated reminders with fire-count expiry
- changes: net-change folding of dashboard field edits
- consolidation: epoch-based start/done

Invariant: debt == sum of scores of sessions with a non-null score.
"""

from . import consolidation
from .bookmarks import add_bookmark, clear_bookmarks, link_bookmarks, record_knowledge_access
from .changes import build_field_summary, fold_change, record_change, values_equal
from .consolidation import ConsolidationResult
from .scoring import change_score, consolidation_directive, score, sleepiness, tool_score
from .sessions import add_manual_debt, analyze_pending, debt_matches_sessions, record_stop, scored_total
from .triggers import active_triggers, add_trigger, match_and_fire, prune_expired, remove_trigger

__all__ = [
    # Scoring
    "score",
    "change_score",
    "tool_score",
    "sleepiness",
    "consolidation_directive",
    # Sessions
    "record_stop",
    "analyze_pending",
    "add_manual_debt",
    "debt_matches_sessions",
    "scored_total",
    # Bookmarks
    "add_bookmark",
    "clear_bookmarks",
    "link_bookmarks",
    "record_knowledge_access",
    # Triggers
    "add_trigger",
    "remove_trigger",
    "active_triggers",
    "match_and_fire",
    "prune_expired",
    # Changes
    "values_equal",
    "build_field_summary",
    "fold_change",
    "record_change",
    # Consolidation
    "consolidation",
    "ConsolidationResult",
]
