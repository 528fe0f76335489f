"""Trigger commands - contextual reminders (prospective memory)."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..ledger import active_triggers, add_trigger, remove_trigger
from ..store import LedgerBusyError, LedgerStore


def run_trigger_add(
    context_root: Path,
    when: str,
    remind: str,
    *,
    max_fires: int | None = None,
    source: str | None = None,
) -> int:
    err = Console(stderr=True)
    store = LedgerStore(context_root)
    if max_fires is None:
        max_fires = store.config.default_max_fires
    try:
        with store.transaction() as state:
            trigger = add_trigger(state, when, remind, max_fires=max_fires, source=source)
    except (ValueError, LedgerBusyError) as e:
        err.print(str(e), style="bold red")
        return 1

    err.print(f'Trigger created: when "{escape(trigger.when)}" -> {escape(trigger.remind)}', style="green")
    err.print(f"  id: {trigger.id}", style="dim")
    return 0


def run_trigger_list(context_root: Path) -> int:
    console = Console()
    active = active_triggers(LedgerStore(context_root).load())
    if not active:
        console.print("No active triggers.", style="dim")
        return 0

    table = Table(title="Active Triggers")
    table.add_column("id", style="magenta", no_wrap=True)
    table.add_column("when")
    table.add_column("remind")
    table.add_column("fires left", justify="right")
    table.add_column("source", style="dim")
    for t in active:
        table.add_row(t.id, escape(t.when), escape(t.remind), str(t.fires_left), escape(t.source or ""))
    console.print(table)
    return 0


def run_trigger_remove(context_root: Path, trigger_id: str) -> int:
    err = Console(stderr=True)
    store = LedgerStore(context_root)
    try:
        with store.lock():
            state = store.load()
            if not remove_trigger(state, trigger_id):
                err.print(f"Trigger not found: {trigger_id}", style="bold red")
                return 1
            store.save(state)
    except LedgerBusyError as e:
        err.print(str(e), style="bold red")
        return 1

    err.print(f"Trigger removed: {trigger_id}", style="green")
    return 0
