"""Plain-text context snapshots emitted by the session hooks."""

from __future__ import annotations

from .config import LedgerConfig
from .ledger.bookmarks import SALIENCE_LABELS
from .ledger.scoring import sleepiness
from .models import LedgerState, Trigger
from .util import format_timestamp

PREVIEW_CHARS = 200


def _preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit] + "..."


def bookmark_context(state: LedgerState, limit: int) -> str:
    """Text of recent bookmarks, used as trigger match context."""
    return "\n".join(b.message for b in state.bookmarks[:limit])


def generate_snapshot(state: LedgerState, config: LedgerConfig, fired: list[Trigger] | None = None) -> str:
    label, rng = sleepiness(state.debt)
    lines = ["# Agent Context", "", "## Sleep State", ""]
    lines.append(f"- Debt: {state.debt} ({rng}) {label}")
    lines.append(f"- Last sleep: {state.last_consolidation.at or 'never'}")
    if state.last_consolidation.summary:
        lines.append(f"- Last sleep summary: {_preview(state.last_consolidation.summary)}")
    if state.consolidation_epoch is not None:
        lines.append(f"- Consolidation in progress since {format_timestamp(state.consolidation_epoch)}")

    last = next((s for s in state.sessions if s.stopped_at is not None), None)
    if last is not None:
        lines.append(f"- Last session ended: {format_timestamp(last.stopped_at)}")
        if last.last_message:
            lines.append(f"- Last session summary: {_preview(last.last_message)}")

    if state.sessions:
        lines.extend(["", "## Sessions Since Last Sleep", ""])
        for s in state.sessions:
            when = format_timestamp(s.stopped_at) if s.stopped_at else "active"
            score = f"+{s.score}" if s.score is not None else "pending"
            counts = []
            if s.change_count is not None:
                counts.append(f"{s.change_count} changes")
            if s.tool_count is not None:
                counts.append(f"{s.tool_count} tools")
            detail = f" [{', '.join(counts)}]" if counts else ""
            lines.append(f"- {when} {score}{detail}")

    if state.bookmarks:
        lines.extend(["", "## Bookmarks", ""])
        for b in state.bookmarks[: config.snapshot_bookmarks]:
            lines.append(f"- {SALIENCE_LABELS.get(b.salience, '★')} {b.message}")

    if fired:
        lines.extend(["", "## Reminders", ""])
        for t in fired:
            source = f" (source: {t.source})" if t.source else ""
            lines.append(f"- {t.remind}{source}")

    if state.change_log:
        lines.extend(["", "## Dashboard Changes Pending Review", ""])
        for c in state.change_log:
            lines.append(f"- {c.summary}")

    return "\n".join(lines) + "\n"


def generate_subagent_briefing(state: LedgerState) -> str:
    """Short briefing for sub-agents: debt and pending reminders only."""
    label, _ = sleepiness(state.debt)
    lines = [f"Project sleep debt: {state.debt} ({label})."]
    critical = [b for b in state.bookmarks if b.salience == 3]
    if critical:
        lines.append("Critical bookmarks:")
        lines.extend(f"- {b.message}" for b in critical)
    active = [t for t in state.triggers if not t.expired]
    if active:
        lines.append("Active reminders:")
        lines.extend(f"- when {t.when}: {t.remind}" for t in active)
    return "\n".join(lines)
