"""Locate the project's _agent_context/ directory."""

from __future__ import annotations

import os
from pathlib import Path

CONTEXT_DIR = "_agent_context"
MAX_WALK_UP = 5
ENV_VAR = "AGENTCONTEXT_ROOT"


def resolve_context_root(start: Path | None = None) -> Path | None:
    """
    Find _agent_context/ by walking up from `start` (default: cwd).

    AGENTCONTEXT_ROOT, when set to an existing directory, wins.
    """
    env = os.environ.get(ENV_VAR)
    if env:
        p = Path(env).expanduser()
        if p.is_dir():
            return p.resolve()

    cur = (start or Path.cwd()).resolve()
    for i, p in enumerate((cur, *cur.parents)):
        if i > MAX_WALK_UP:
            break
        candidate = p / CONTEXT_DIR
        if candidate.is_dir():
            return candidate
    return None
