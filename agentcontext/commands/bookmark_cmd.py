"""Bookmark commands - tag important moments for consolidation."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..ledger import add_bookmark, clear_bookmarks
from ..ledger.bookmarks import SALIENCE_LABELS
from ..store import LedgerBusyError, LedgerStore


def run_bookmark_add(context_root: Path, message: str, *, salience: int | None = None) -> int:
    err = Console(stderr=True)
    store = LedgerStore(context_root)
    if salience is None:
        salience = store.config.default_salience
    try:
        with store.transaction() as state:
            bookmark = add_bookmark(state, message, salience)
    except (ValueError, LedgerBusyError) as e:
        err.print(str(e), style="bold red")
        return 1

    err.print(f"{SALIENCE_LABELS[bookmark.salience]} Bookmarked: {escape(bookmark.message)}", style="green")
    return 0


def run_bookmark_list(context_root: Path) -> int:
    console = Console()
    state = LedgerStore(context_root).load()
    if not state.bookmarks:
        console.print("No bookmarks.", style="dim")
        return 0

    console.print("[bold]Bookmarks[/bold]")
    for b in state.bookmarks:
        stars = SALIENCE_LABELS.get(b.salience, "★")
        console.print(f"  {stars} [dim]{b.created_at.date().isoformat()}[/dim] {escape(b.message)}")
    return 0


def run_bookmark_clear(context_root: Path) -> int:
    err = Console(stderr=True)
    try:
        with LedgerStore(context_root).transaction() as state:
            count = clear_bookmarks(state)
    except LedgerBusyError as e:
        err.print(str(e), style="bold red")
        return 1
    err.print(f"Cleared {count} bookmark(s).", style="green")
    return 0
