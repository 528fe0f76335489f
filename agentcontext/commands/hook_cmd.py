"""
Hook handlers for the agent runtime's lifecycle events.

Hooks receive a JSON object on stdin and must never fail the runtime: bad
input, a missing context root, or a busy ledger all end quietly with exit 0.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, TextIO

from ..ledger import analyze_pending, consolidation_directive, match_and_fire, record_stop
from ..models import TranscriptStats
from ..store import LedgerBusyError, LedgerStore
from ..snapshot import bookmark_context, generate_snapshot, generate_subagent_briefing
from ..transcript import analyze_transcript

logger = logging.getLogger(__name__)


def read_payload(stream: TextIO) -> dict[str, Any] | None:
    """Read a JSON object from a hook's stdin. None for a TTY or bad input."""
    try:
        if stream.isatty():
            return None
        raw = stream.read()
    except (OSError, ValueError):
        return None
    if not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Hook input is not JSON")
        return None
    return parsed if isinstance(parsed, dict) else None


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def run_hook_stop(context_root: Path, payload: dict[str, Any]) -> int:
    """Record a stopped session and score it immediately."""
    session_id = _str_or_none(payload.get("session_id"))
    if not session_id:
        return 0
    transcript_path = _str_or_none(payload.get("transcript_path"))
    last_message = _str_or_none(payload.get("last_assistant_message"))

    store = LedgerStore(context_root)
    if transcript_path:
        stats = analyze_transcript(transcript_path, max_bytes=store.config.max_transcript_bytes)
    else:
        stats = TranscriptStats(0, 0)

    try:
        with store.transaction() as state:
            record = record_stop(state, session_id, transcript_path, last_message, stats)
    except LedgerBusyError as e:
        logger.warning("Stop for %s not recorded: %s", session_id, e)
        return 0

    logger.debug("Recorded stop for %s (score %s, debt %d)", session_id, record.score, state.debt)
    return 0


def run_hook_session_start(context_root: Path, payload: dict[str, Any] | None = None) -> int:
    """
    Score pending sessions, fire matching triggers, and print the snapshot.

    All ledger mutations from this hook are persisted in a single write.
    """
    store = LedgerStore(context_root)
    config = store.config

    def analyzer(path: str):
        return analyze_transcript(path, max_bytes=config.max_transcript_bytes)

    try:
        with store.lock():
            state = store.load()
            analyzed = analyze_pending(state, analyzer)
            fired = match_and_fire(state, bookmark_context(state, config.snapshot_bookmarks))
            if analyzed or fired:
                store.save(state)
    except LedgerBusyError as e:
        logger.warning("Session start could not update the ledger: %s", e)
        state = store.load()
        analyzed, fired = 0, []

    if analyzed:
        logger.debug("Analyzed %d pending session(s)", analyzed)

    directive = consolidation_directive(
        state.debt, elevated=config.elevated_debt, critical=config.critical_debt
    )
    if directive:
        print(directive)
    print(generate_snapshot(state, config, fired))
    return 0


def run_hook_subagent_start(context_root: Path) -> int:
    """Emit a short briefing for a sub-agent. Read-only."""
    state = LedgerStore(context_root).load()
    briefing = generate_subagent_briefing(state)
    print(json.dumps({
        "hookSpecificOutput": {
            "hookEventName": "SubagentStart",
            "additionalContext": briefing,
        },
    }))
    return 0
