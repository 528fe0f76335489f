"""Sleep commands - debt status and the consolidation cycle."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..ledger import add_manual_debt, consolidation, sleepiness
from ..store import LedgerBusyError, LedgerStore
from ..util import format_timestamp

PREVIEW_CHARS = 120


def run_status(context_root: Path) -> int:
    console = Console()
    state = LedgerStore(context_root).load()
    label, rng = sleepiness(state.debt)

    console.print("[bold]Sleep State[/bold]")
    console.print(f"  Debt:       [bold]{state.debt}[/bold] [dim]({rng})[/dim] [magenta]{label}[/magenta]")
    last = state.last_consolidation
    console.print(f"  Last sleep: {escape(last.at) if last.at else '[dim]never[/dim]'}")
    if last.summary:
        console.print(f"  Summary:    [dim]{escape(last.summary)}[/dim]")
    if state.consolidation_epoch is not None:
        console.print(f"  Consolidating since {format_timestamp(state.consolidation_epoch)}", style="yellow")

    if not state.sessions:
        console.print("\n  No sessions since last sleep.", style="dim")
        return 0

    console.print("\n  [bold]Sessions since last sleep:[/bold]")
    for s in state.sessions:
        when = format_timestamp(s.stopped_at) if s.stopped_at else "active"
        score = f"[yellow]+{s.score}[/yellow]" if s.score is not None else "[dim]pending[/dim]"
        changes = f" [dim]\\[{s.change_count} changes][/dim]" if s.change_count is not None else ""
        console.print(f"  [dim]{when}[/dim] {score}{changes}")
        if s.last_message:
            preview = s.last_message
            if len(preview) > PREVIEW_CHARS:
                preview = preview[:PREVIEW_CHARS] + "..."
            console.print(f'    [dim]"{escape(preview)}"[/dim]')
    return 0


def run_add(context_root: Path, score: int, description: str) -> int:
    err = Console(stderr=True)
    store = LedgerStore(context_root)
    try:
        with store.transaction() as state:
            add_manual_debt(state, score, description)
    except (ValueError, LedgerBusyError) as e:
        err.print(str(e), style="bold red")
        return 1

    label, _ = sleepiness(state.debt)
    err.print(f"Sleep debt: {state.debt} ({label})", style="green")
    if state.debt >= store.config.critical_debt:
        err.print(f"Must sleep! Debt is {store.config.critical_debt}+. Consolidation needed.", style="yellow")
    elif state.debt >= store.config.elevated_debt:
        err.print("Getting sleepy. Consider consolidating soon.", style="cyan")
    return 0


def run_start(context_root: Path) -> int:
    err = Console(stderr=True)
    store = LedgerStore(context_root)
    try:
        with store.transaction() as state:
            previous = consolidation.start(state)
    except LedgerBusyError as e:
        err.print(str(e), style="bold red")
        return 1

    if previous is not None:
        err.print(
            f"[yellow]⚠ Consolidation already in progress[/] (started {format_timestamp(previous)}). "
            "Overwrote epoch; work recorded since then will now be cleared by `done`."
        )
    err.print(f"Consolidation epoch set: {format_timestamp(state.consolidation_epoch)}", style="green")
    return 0


def run_done(context_root: Path, summary: str) -> int:
    err = Console(stderr=True)
    store = LedgerStore(context_root)
    try:
        with store.lock():
            state = store.load()
            result = consolidation.done(state, summary)
            store.save(state)
            store.prepend_history(result.history_entry)
    except (ValueError, LedgerBusyError) as e:
        err.print(str(e), style="bold red")
        return 1

    entry = result.history_entry
    if result.used_epoch and result.sessions_retained:
        err.print(
            f"Consolidation complete. Debt reduced from {entry.debt_before} to {entry.debt_after}. "
            f"{result.sessions_retained} post-epoch session(s) preserved.",
            style="green",
        )
    else:
        err.print(f"Consolidation complete. Debt reset from {entry.debt_before} to {entry.debt_after}.", style="green")
    if result.triggers_pruned:
        err.print(f"  Expired triggers removed: {result.triggers_pruned}", style="dim")
    return 0


def run_debt(context_root: Path) -> int:
    state = LedgerStore(context_root).load()
    print(state.debt)
    return 0


def run_history(context_root: Path, *, limit: int | None = None, output_json: bool = False) -> int:
    entries = LedgerStore(context_root).read_history(limit)

    if output_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return 0

    console = Console()
    if not entries:
        console.print("No consolidations recorded.", style="dim")
        return 0

    table = Table(title="Sleep History")
    table.add_column("date", style="cyan", no_wrap=True)
    table.add_column("debt", justify="right")
    table.add_column("sessions", justify="right")
    table.add_column("bookmarks", justify="right")
    table.add_column("summary")
    for e in entries:
        table.add_row(
            e.date,
            f"{e.debt_before} → {e.debt_after}",
            str(e.sessions_processed),
            str(e.bookmarks_processed),
            escape(e.summary),
        )
    console.print(table)
    return 0
