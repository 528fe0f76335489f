"""CLI entrypoint for agentcontext."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .context_path import CONTEXT_DIR, resolve_context_root
from .models import ChangeAction, EntityKind


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


def _require_root(ctx: click.Context) -> Path:
    root = ctx.obj.get("context_root")
    if root is None:
        raise click.ClickException(f"{CONTEXT_DIR}/ not found. Pass --context /path/to/{CONTEXT_DIR} or run from inside the project.")
    return root


@click.group()
@click.version_option(__version__, prog_name="agentcontext")
@click.option(
    "--context",
    "-c",
    "context_root",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help=f"Path to the {CONTEXT_DIR} directory (defaults to auto-detected ./{CONTEXT_DIR})",
)
@click.option("--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, context_root: Path | None, verbose: bool) -> None:
    """agentcontext - session debt and consolidation ledger.

    Tracks unreviewed work between consolidations, bookmarks, reminders,
    and the dashboard change log.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    if context_root is None:
        context_root = resolve_context_root()
    elif not context_root.is_dir():
        raise click.BadParameter(f"Directory '{context_root}' does not exist.", param_hint="--context / -c")
    ctx.obj["context_root"] = context_root.resolve() if context_root else None


# -----------------------------------------------------------------------------
# Sleep commands
# -----------------------------------------------------------------------------


@cli.group()
def sleep() -> None:
    """Track sleep debt and consolidation state."""
    pass


@sleep.command("status")
@click.pass_context
def sleep_status(ctx: click.Context) -> None:
    """Show current sleep debt level and sessions since last sleep."""
    from .commands.sleep_cmd import run_status

    sys.exit(run_status(_require_root(ctx)))


@sleep.command("add")
@click.argument("score", type=int)
@click.argument("description", nargs=-1, required=True)
@click.pass_context
def sleep_add(ctx: click.Context, score: int, description: tuple[str, ...]) -> None:
    """Record a debt-accumulating action by hand (SCORE is 1-3).

    Examples:

        agentcontext sleep add 2 Reworked the auth middleware
    """
    from .commands.sleep_cmd import run_add

    sys.exit(run_add(_require_root(ctx), score, " ".join(description)))


@sleep.command("start")
@click.pass_context
def sleep_start(ctx: click.Context) -> None:
    """Mark the beginning of consolidation (sets the epoch).

    Work recorded after this point survives `sleep done`.
    """
    from .commands.sleep_cmd import run_start

    sys.exit(run_start(_require_root(ctx)))


@sleep.command("done")
@click.argument("summary", nargs=-1, required=True)
@click.pass_context
def sleep_done(ctx: click.Context, summary: tuple[str, ...]) -> None:
    """Mark consolidation complete and clear pre-epoch work."""
    from .commands.sleep_cmd import run_done

    sys.exit(run_done(_require_root(ctx), " ".join(summary)))


@sleep.command("debt")
@click.pass_context
def sleep_debt(ctx: click.Context) -> None:
    """Print the current debt number (for scripts)."""
    from .commands.sleep_cmd import run_debt

    sys.exit(run_debt(_require_root(ctx)))


@sleep.command("history")
@click.option("-n", "--count", "limit", type=click.IntRange(min=1), default=None, help="Show only the last N consolidations")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def sleep_history(ctx: click.Context, limit: int | None, output_json: bool) -> None:
    """Show past consolidations, newest first."""
    from .commands.sleep_cmd import run_history

    sys.exit(run_history(_require_root(ctx), limit=limit, output_json=output_json))


# -----------------------------------------------------------------------------
# Bookmark commands
# -----------------------------------------------------------------------------


@cli.group()
def bookmark() -> None:
    """Tag important moments for consolidation."""
    pass


@bookmark.command("add")
@click.argument("message", nargs=-1, required=True)
@click.option(
    "-s",
    "--salience",
    type=click.IntRange(1, 3),
    default=None,
    help="Importance (1=notable, 2=significant, 3=critical; default 2)",
)
@click.pass_context
def bookmark_add(ctx: click.Context, message: tuple[str, ...], salience: int | None) -> None:
    """Create a bookmark."""
    from .commands.bookmark_cmd import run_bookmark_add

    sys.exit(run_bookmark_add(_require_root(ctx), " ".join(message), salience=salience))


@bookmark.command("list")
@click.pass_context
def bookmark_list(ctx: click.Context) -> None:
    """Show current bookmarks."""
    from .commands.bookmark_cmd import run_bookmark_list

    sys.exit(run_bookmark_list(_require_root(ctx)))


@bookmark.command("clear")
@click.pass_context
def bookmark_clear(ctx: click.Context) -> None:
    """Remove all bookmarks."""
    from .commands.bookmark_cmd import run_bookmark_clear

    sys.exit(run_bookmark_clear(_require_root(ctx)))


# -----------------------------------------------------------------------------
# Trigger commands
# -----------------------------------------------------------------------------


@cli.group()
def trigger() -> None:
    """Manage contextual reminders."""
    pass


@trigger.command("add")
@click.argument("when")
@click.argument("remind", nargs=-1, required=True)
@click.option("-m", "--max-fires", type=int, default=None, help="Auto-expire after N firings (default 3)")
@click.option("-s", "--source", type=str, default=None, help="Source reference (e.g. memory.md#section)")
@click.pass_context
def trigger_add(ctx: click.Context, when: str, remind: tuple[str, ...], max_fires: int | None, source: str | None) -> None:
    """Create a trigger that fires when WHEN keywords appear in context.

    Examples:

        agentcontext trigger add "auth, login" Apply rate limiting to new endpoints
    """
    from .commands.trigger_cmd import run_trigger_add

    sys.exit(run_trigger_add(_require_root(ctx), when, " ".join(remind), max_fires=max_fires, source=source))


@trigger.command("list")
@click.pass_context
def trigger_list(ctx: click.Context) -> None:
    """Show active triggers."""
    from .commands.trigger_cmd import run_trigger_list

    sys.exit(run_trigger_list(_require_root(ctx)))


@trigger.command("remove")
@click.argument("trigger_id")
@click.pass_context
def trigger_remove(ctx: click.Context, trigger_id: str) -> None:
    """Remove a trigger by id."""
    from .commands.trigger_cmd import run_trigger_remove

    sys.exit(run_trigger_remove(_require_root(ctx), trigger_id))


# -----------------------------------------------------------------------------
# Hook handlers - called by the agent runtime, JSON on stdin
# -----------------------------------------------------------------------------


@cli.group()
def hook() -> None:
    """Hook handlers (stop, session-start, subagent-start)."""
    pass


@hook.command("stop")
@click.pass_context
def hook_stop(ctx: click.Context) -> None:
    """Record session metadata (Stop hook)."""
    from .commands.hook_cmd import read_payload, run_hook_stop

    stdin = click.get_text_stream("stdin")
    payload = read_payload(stdin)
    if payload is None:
        if stdin.isatty():
            click.echo("This command is called by the Stop hook and reads JSON from stdin.", err=True)
        sys.exit(0)

    root = ctx.obj.get("context_root")
    if root is None:
        sys.exit(0)
    sys.exit(run_hook_stop(root, payload))


@hook.command("session-start")
@click.pass_context
def hook_session_start(ctx: click.Context) -> None:
    """Analyze pending sessions and print the context snapshot (SessionStart hook)."""
    from .commands.hook_cmd import read_payload, run_hook_session_start

    payload = read_payload(click.get_text_stream("stdin"))
    root = ctx.obj.get("context_root")
    if root is None:
        sys.exit(0)
    sys.exit(run_hook_session_start(root, payload))


@hook.command("subagent-start")
@click.pass_context
def hook_subagent_start(ctx: click.Context) -> None:
    """Print a briefing for sub-agents (SubagentStart hook)."""
    from .commands.hook_cmd import run_hook_subagent_start

    root = ctx.obj.get("context_root")
    if root is None:
        sys.exit(0)
    sys.exit(run_hook_subagent_start(root))


# -----------------------------------------------------------------------------
# Dashboard change log
# -----------------------------------------------------------------------------


@cli.group()
def changes() -> None:
    """Dashboard change log - net field edits since last sleep."""
    pass


@changes.command("list")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def changes_list(ctx: click.Context, output_json: bool) -> None:
    """Show the folded change log, newest first."""
    from .commands.changes_cmd import run_changes_list

    sys.exit(run_changes_list(_require_root(ctx), output_json=output_json))


@changes.command("record")
@click.argument("entity", type=click.Choice([e.value for e in EntityKind]))
@click.argument("action", type=click.Choice([a.value for a in ChangeAction]))
@click.argument("target")
@click.option(
    "--field",
    "fields",
    type=(str, str, str),
    multiple=True,
    metavar="NAME FROM TO",
    help="Field transition (repeatable). Values parse as YAML scalars or [lists].",
)
@click.option("--summary", type=str, default=None, help="Summary for create/delete entries")
@click.pass_context
def changes_record(
    ctx: click.Context,
    entity: str,
    action: str,
    target: str,
    fields: tuple[tuple[str, str, str], ...],
    summary: str | None,
) -> None:
    """Record a dashboard mutation.

    Examples:

        agentcontext changes record task update state/auth.md --field status todo in_progress

        agentcontext changes record core create core/RELEASES.json --summary "Created release 1.2.0"
    """
    from .commands.changes_cmd import run_changes_record

    sys.exit(run_changes_record(_require_root(ctx), entity, action, target, fields=list(fields), summary=summary))


@cli.group()
def knowledge() -> None:
    """Knowledge access tracking."""
    pass


@knowledge.command("touch")
@click.argument("slug")
@click.pass_context
def knowledge_touch(ctx: click.Context, slug: str) -> None:
    """Record an access to a knowledge entry."""
    from .commands.changes_cmd import run_knowledge_touch

    sys.exit(run_knowledge_touch(_require_root(ctx), slug))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
