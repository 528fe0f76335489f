"""Pytest configuration and fixtures."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

from agentcontext.context_path import ENV_VAR
from agentcontext.store import LedgerStore


@pytest.fixture(autouse=True)
def _no_env_context_root(monkeypatch):
    """Keep a developer's AGENTCONTEXT_ROOT out of the tests."""
    monkeypatch.delenv(ENV_VAR, raising=False)


@pytest.fixture
def context_root(tmp_path: Path) -> Path:
    """An empty _agent_context/ directory."""
    root = tmp_path / "_agent_context"
    (root / "state").mkdir(parents=True)
    return root


@pytest.fixture
def store(context_root: Path) -> LedgerStore:
    return LedgerStore(context_root)


@pytest.fixture
def t0() -> datetime:
    return datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def write_transcript(tmp_path: Path) -> Callable[..., Path]:
    """Write a JSONL transcript with one assistant message per tool name."""

    def _write(tool_names: list[str], name: str = "transcript.jsonl") -> Path:
        path = tmp_path / name
        lines = [json.dumps({"type": "user", "message": {"role": "user", "content": "go"}})]
        for i, tool in enumerate(tool_names):
            lines.append(
                json.dumps(
                    {
                        "type": "assistant",
                        "message": {
                            "role": "assistant",
                            "content": [
                                {"type": "text", "text": "working"},
                                {"type": "tool_use", "id": f"toolu_{i}", "name": tool, "input": {}},
                            ],
                        },
                    }
                )
            )
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write
