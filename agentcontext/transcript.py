"""
Transcript analysis.

Counts tool calls in an agent session transcript (JSON Lines). Every
`tool_use` block in a message's content is a tool call; calls to file-editing
tools are also counted as changes. Never raises: anything unreadable counts
as no activity.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator

from .models import TranscriptStats

logger = logging.getLogger(__name__)

MAX_TRANSCRIPT_BYTES = 50 * 1024 * 1024

CHANGE_TOOLS = frozenset({"Write", "Edit", "NotebookEdit"})


def _tool_uses(entry: Any) -> Iterator[str]:
    if not isinstance(entry, dict):
        return
    message = entry.get("message")
    if not isinstance(message, dict):
        return
    content = message.get("content")
    if not isinstance(content, list):
        return
    for block in content:
        if isinstance(block, dict) and block.get("type") == "tool_use":
            name = block.get("name")
            yield name if isinstance(name, str) else ""


def analyze_transcript(path: str | Path, *, max_bytes: int = MAX_TRANSCRIPT_BYTES) -> TranscriptStats:
    """
    Count (change_count, tool_count) in a transcript.

    Missing, empty, or oversized files and read errors yield (0, 0).
    Lines that are not valid JSON are skipped.
    """
    p = Path(path)
    try:
        if not p.is_file():
            return TranscriptStats(0, 0)
        size = p.stat().st_size
        if size == 0 or size > max_bytes:
            if size:
                logger.info("Skipping oversized transcript %s (%d bytes)", p, size)
            return TranscriptStats(0, 0)

        changes = 0
        tools = 0
        with p.open("r", encoding="utf-8", errors="replace") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                for name in _tool_uses(entry):
                    tools += 1
                    if name in CHANGE_TOOLS:
                        changes += 1
        return TranscriptStats(changes, tools)
    except OSError as e:
        logger.warning("Could not read transcript %s: %s", p, e)
        return TranscriptStats(0, 0)
