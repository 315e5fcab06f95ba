"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from reclaimctl import __version__
from reclaimctl.cli.commands import check, clean, disk, history, plan, snapshots, whitelist
from reclaimctl.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="reclaimctl",
    help="Reclaim disk space with validated, operator-approved cleanup.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"reclaimctl version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route log records to stderr through Rich.

    Args:
        verbose: Log at DEBUG instead of WARNING.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, show_time=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
) -> None:
    """reclaimctl - Reclaim disk space safely.

    Inspect disk usage and local snapshots, import a cleanup plan and run
    the approved items. Every command is checked against safety rules and
    your protected paths right before it runs.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# Register commands
app.command(name="disk")(disk.disk)
app.command(name="snapshots")(snapshots.snapshots)
app.command(name="check")(check.check)
app.command(name="clean")(clean.clean)
app.add_typer(plan.app, name="plan")
app.add_typer(whitelist.app, name="whitelist")
app.add_typer(history.app, name="history")


if __name__ == "__main__":
    app()
