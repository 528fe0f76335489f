"""
Debt scoring.

A session's score is the larger of two threshold ladders: one over
write/edit-class tool calls, one over total tool calls. Edits are the
strongest drift signal, but a tool-heavy session with no direct edits still
accrues some debt.
"""

from __future__ import annotations

# (upper bound inclusive, score) ladders; anything above the last bound scores 3
CHANGE_THRESHOLDS: tuple[tuple[int, int], ...] = ((0, 0), (3, 1), (8, 2))
TOOL_THRESHOLDS: tuple[tuple[int, int], ...] = ((0, 0), (15, 1), (40, 2))
MAX_SCORE = 3


def _ladder(count: int, thresholds: tuple[tuple[int, int], ...]) -> int:
    for bound, value in thresholds:
        if count <= bound:
            return value
    return MAX_SCORE


def change_score(change_count: int) -> int:
    """0 for none, 1 for 1-3, 2 for 4-8, 3 for 9+."""
    return _ladder(change_count, CHANGE_THRESHOLDS)


def tool_score(tool_count: int) -> int:
    """0 for none, 1 for 1-15, 2 for 16-40, 3 for 41+."""
    return _ladder(tool_count, TOOL_THRESHOLDS)


def score(change_count: int, tool_count: int) -> int:
    return max(change_score(change_count), tool_score(tool_count))


# Sleepiness bands: (upper bound inclusive, label, range)
SLEEPINESS_BANDS: tuple[tuple[int, str, str], ...] = (
    (3, "Alert", "0-3"),
    (6, "Drowsy", "4-6"),
    (9, "Sleepy", "7-9"),
)


def sleepiness(debt: int) -> tuple[str, str]:
    """Return (label, range) for a debt level."""
    for bound, label, rng in SLEEPINESS_BANDS:
        if debt <= bound:
            return label, rng
    return "Must Sleep", "10+"


def consolidation_directive(debt: int, *, elevated: int = 7, critical: int = 10) -> str | None:
    """Text prepended to the session-start snapshot when debt is high."""
    if debt >= critical:
        return "\n".join([
            ">>> CONSOLIDATION STRONGLY RECOMMENDED <<<",
            "",
            f"Sleep debt is {debt} (threshold: {critical}). Context files are likely stale and bloated.",
            "Consolidation will improve context quality for this and future sessions.",
            "Run `agentcontext sleep start`, review the ledger, then `agentcontext sleep done <summary>`.",
            "If the user has an urgent task, proceed but consolidate at the earliest opportunity.",
            "",
        ])
    if debt >= elevated:
        return "\n".join([
            ">> NOTE: Sleep debt is elevated <<",
            "",
            f"Sleep debt is {debt}/{critical}. Consider consolidating soon.",
            "",
        ])
    return None
