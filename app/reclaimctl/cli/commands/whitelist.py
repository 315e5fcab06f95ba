"""Whitelist management commands.

Protected paths are stored in the config file. A cleanup command that
mentions any protected path is never run.
"""

import json
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from reclaimctl.cli.types import OutputFormat, require_config
from reclaimctl.core.config import add_whitelist_entry, remove_whitelist_entry
from reclaimctl.core.errors import ConfigError
from reclaimctl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage protected paths.",
    no_args_is_help=True,
)


@app.command("list")
def list_entries(
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """List protected paths."""
    config = require_config()

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([entry.model_dump() for entry in config.whitelist]))
        return

    if not config.whitelist:
        print_info("No protected paths configured.")
        return

    table = Table(
        title="Protected Paths",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Path", no_wrap=True)
    table.add_column("Description", style="muted")

    for entry in config.whitelist:
        table.add_row(entry.id, escape(entry.path), escape(entry.description or ""))

    console.print(table)


@app.command("add")
def add(
    path: Annotated[str, typer.Argument(help="Path to protect (absolute or ~/...).")],
    description: Annotated[
        str | None,
        typer.Option("--description", "-d", help="Why the path is protected."),
    ] = None,
) -> None:
    """Protect a path from cleanup."""
    try:
        entry = add_whitelist_entry(path, description)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Protected {entry.path} ({entry.id})")


@app.command("remove")
def remove(
    id_or_path: Annotated[str, typer.Argument(help="Entry id or protected path.")],
) -> None:
    """Stop protecting a path."""
    try:
        removed = remove_whitelist_entry(id_or_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if removed is None:
        print_error(f"No protected path matches '{id_or_path}'")
        raise typer.Exit(code=1)

    print_success(f"Removed {removed.path} ({removed.id})")
