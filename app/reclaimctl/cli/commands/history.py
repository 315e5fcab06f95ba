"""History command for viewing past cleanup runs.

This module provides the `reclaimctl history` command for viewing
the audit trail of executed cleanup runs.
"""

import json
from datetime import datetime
from typing import Annotated

import typer
from rich.table import Table

from reclaimctl.core.state import StateManager
from reclaimctl.models.history import HistoryEntry
from reclaimctl.utils.formatting import console, format_gb, print_info

app = typer.Typer(
    name="history",
    help="View history of cleanup runs.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            "-n",
            help="Maximum number of entries to show.",
        ),
    ] = 20,
    since: Annotated[
        str | None,
        typer.Option(
            "--since",
            help="Show entries since date (YYYY-MM-DD).",
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show history of cleanup runs.

    Each entry shows when the run finished, how many items completed out
    of those attempted, and how much space was freed.

    Examples:
        reclaimctl history              # Show last 20 entries
        reclaimctl history -n 50        # Show last 50 entries
        reclaimctl history --since 2026-01-01
        reclaimctl history --json       # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    state = StateManager()
    entries = state.get_history(limit=limit)

    if since:
        try:
            since_parsed = datetime.fromisoformat(since)
            # Naive dates compare against the date part only.
            if since_parsed.tzinfo is None:
                since_date = since_parsed.strftime("%Y-%m-%d")
                entries = [e for e in entries if e.timestamp[:10] >= since_date]
            else:
                entries = [
                    e
                    for e in entries
                    if datetime.fromisoformat(e.timestamp.replace("Z", "+00:00")) >= since_parsed
                ]
        except ValueError:
            typer.echo(f"Invalid date format: {since}. Use YYYY-MM-DD.", err=True)
            raise typer.Exit(code=1) from None

    if not entries:
        print_info("No history entries found.")
        return

    if json_output:
        _print_json(entries)
    else:
        _print_table(entries)


def _print_table(entries: list[HistoryEntry]) -> None:
    """Print history as Rich table."""
    table = Table(
        title="Cleanup History",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("ID", style="dim")
    table.add_column("Timestamp", style="info")
    table.add_column("Completed", justify="right")
    table.add_column("Freed", justify="right")
    table.add_column("Items")

    for entry in entries:
        names = ", ".join(item.item_id for item in entry.items[:3])
        if entry.completed_count > 3:
            names += f" (+{entry.completed_count - 3} more)"

        completed = f"{entry.completed_count}/{entry.attempted_count}"
        if entry.errors:
            completed = f"[warning]{completed}[/warning]"
        if entry.dry_run:
            completed += " [muted](dry run)[/muted]"

        table.add_row(
            entry.id[:8],
            _format_timestamp(entry.timestamp),
            completed,
            f"[size]{format_gb(entry.freed_gb)}[/size]",
            names or "[muted]-[/muted]",
        )

    console.print(table)


def _format_timestamp(iso_timestamp: str) -> str:
    """Format ISO timestamp as YYYY-MM-DD HH:MM."""
    dt = datetime.fromisoformat(iso_timestamp.replace("Z", "+00:00"))
    return dt.strftime("%Y-%m-%d %H:%M")


def _print_json(entries: list[HistoryEntry]) -> None:
    """Print history as JSON."""
    output = [entry.to_dict() for entry in entries]
    console.print(json.dumps(output, indent=2))
