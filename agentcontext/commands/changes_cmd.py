"""Dashboard change log commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape

from ..ledger import record_change, record_knowledge_access
from ..models import FieldChange
from ..store import LedgerBusyError, LedgerStore
from ..util import format_timestamp


def parse_field_value(text: str) -> Any:
    """
    Parse a CLI field value as a YAML scalar or flow list.

    "3" -> 3, "true" -> True, "null" -> None, "[a, b]" -> ["a", "b"],
    anything else stays a string.
    """
    try:
        value = yaml.safe_load(text)
    except yaml.YAMLError:
        return text
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, list) and all(v is None or isinstance(v, (str, int, float, bool)) for v in value):
        return value
    return text


def run_changes_list(context_root: Path, *, output_json: bool = False) -> int:
    state = LedgerStore(context_root).load()

    if output_json:
        print(json.dumps([c.to_dict() for c in state.change_log], indent=2))
        return 0

    console = Console()
    if not state.change_log:
        console.print("No dashboard changes since last sleep.", style="dim")
        return 0
    for c in state.change_log:
        console.print(f"[dim]{format_timestamp(c.timestamp)}[/dim] [cyan]{c.action.value}[/cyan] {escape(c.summary)}")
    return 0


def run_changes_record(
    context_root: Path,
    entity: str,
    action: str,
    target: str,
    *,
    fields: list[tuple[str, str, str]] | None = None,
    summary: str | None = None,
) -> int:
    """Record a dashboard mutation, folding field updates into the log."""
    err = Console(stderr=True)
    field_changes = [
        FieldChange(field=name, from_value=parse_field_value(old), to_value=parse_field_value(new))
        for name, old, new in (fields or [])
    ]
    try:
        with LedgerStore(context_root).transaction() as state:
            entry = record_change(state, entity, action, target, fields=field_changes or None, summary=summary)
    except (ValueError, LedgerBusyError) as e:
        err.print(str(e), style="bold red")
        return 1

    if entry is None:
        err.print(f"Change folded into existing entries for {escape(target)}", style="dim")
    else:
        err.print(f"Recorded: {escape(entry.summary)}", style="green")
    return 0


def run_knowledge_touch(context_root: Path, slug: str) -> int:
    err = Console(stderr=True)
    try:
        with LedgerStore(context_root).transaction() as state:
            record = record_knowledge_access(state, slug)
    except (ValueError, LedgerBusyError) as e:
        err.print(str(e), style="bold red")
        return 1
    err.print(f"{escape(slug)}: accessed {record.count} time(s), last {record.last_accessed}", style="dim")
    return 0
