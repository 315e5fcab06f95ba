"""Cleanup execution command.

Provides the `reclaimctl clean` command, which runs the checked items of
the saved plan (or a given plan file). Every item is validated against
the safety rules and the current whitelist right before it runs.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from reclaimctl.advisor.plan import load_plan_file
from reclaimctl.cli.display import create_plan_table, print_cleanup_summary, print_plan_summary
from reclaimctl.cli.types import get_disk_probe, get_validator, require_config
from reclaimctl.core.config import load_whitelist
from reclaimctl.core.errors import ConfigError, MeasurementError
from reclaimctl.core.executor import ShellExecutor
from reclaimctl.core.orchestrator import (
    CleanupEvent,
    CleanupOrchestrator,
    ItemFinishedEvent,
    ProgressEvent,
)
from reclaimctl.core.paths import get_plan_path
from reclaimctl.core.state import record_cleanup_run
from reclaimctl.models.cleanup import CleanupItem
from reclaimctl.models.whitelist import WhitelistEntry
from reclaimctl.utils.formatting import console, print_error, print_info, print_warning


class WhitelistReader:
    """Re-reads the whitelist from the config file on every call.

    If the file becomes unreadable mid-run, the last successfully read
    whitelist keeps applying.
    """

    def __init__(self, initial: list[WhitelistEntry]) -> None:
        self._last = initial

    def __call__(self) -> list[WhitelistEntry]:
        try:
            self._last = load_whitelist()
        except ConfigError as e:
            print_warning(f"Could not re-read whitelist, using the previous one: {e}")
        return self._last


def select_items(
    items: list[CleanupItem],
    only: list[str] | None,
    skip: list[str] | None,
) -> list[CleanupItem]:
    """Apply --only/--skip selection to plan items.

    --only checks exactly the named items; --skip unchecks the named items.

    Raises:
        typer.BadParameter: If an id does not exist in the plan.
    """
    known = {item.id for item in items}
    unknown = [item_id for item_id in (only or []) + (skip or []) if item_id not in known]
    if unknown:
        raise typer.BadParameter(f"Unknown item id(s): {', '.join(unknown)}")

    selected = items
    if only:
        selected = [item.with_checked(item.id in only) for item in selected]
    if skip:
        selected = [item.with_checked(False) if item.id in skip else item for item in selected]
    return selected


def _confirm_cleanup(item_count: int) -> bool:
    """Prompt user to confirm cleanup execution."""
    return typer.confirm(
        f"\nRun {item_count} cleanup item(s)?",
        default=False,
    )


def clean(
    plan_path: Annotated[
        Path | None,
        typer.Option(
            "--plan",
            "-p",
            help="Plan file to execute (default: the saved plan).",
        ),
    ] = None,
    only: Annotated[
        list[str] | None,
        typer.Option("--only", help="Run only these item ids (repeatable)."),
    ] = None,
    skip: Annotated[
        list[str] | None,
        typer.Option("--skip", help="Do not run these item ids (repeatable)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Validate and show commands without running them."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Run the checked items of the cleanup plan.

    Examples:
        reclaimctl clean                      # Run the saved plan
        reclaimctl clean --dry-run            # Show what would run
        reclaimctl clean --skip thin_local_snapshots
        reclaimctl clean --plan answer.json --yes
    """
    config = require_config()

    path = plan_path or get_plan_path()
    if not path.exists():
        print_error(f"No plan found at {path}. Use 'reclaimctl plan import' first.")
        raise typer.Exit(code=1)

    try:
        plan = load_plan_file(path)
    except OSError as e:
        print_error(f"Cannot read plan file {path}: {e}")
        raise typer.Exit(code=1) from e

    if not plan.ok:
        print_error(f"{plan.root_cause_summary} ({plan.error})")
        raise typer.Exit(code=1)

    items = select_items(list(plan.items), only, skip)
    checked_count = sum(1 for item in items if item.checked)
    if checked_count == 0:
        print_info("No items selected. Nothing to do.")
        return

    console.print(create_plan_table(items, dry_run=dry_run))
    print_plan_summary(items)

    if not dry_run and not yes and not _confirm_cleanup(checked_count):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    orchestrator = CleanupOrchestrator(
        executor=ShellExecutor(dry_run=dry_run, timeout=config.cleanup.command_timeout),
        probe=get_disk_probe(config),
        validator=get_validator(config),
        whitelist_source=WhitelistReader(list(config.whitelist)),
        settle_seconds=config.cleanup.settle_seconds,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Cleaning", total=checked_count)

        def on_event(event: CleanupEvent) -> None:
            if isinstance(event, ProgressEvent):
                item = event.current_item
                description = escape(item.title) if item is not None else "Measuring"
                progress.update(task, completed=event.completed_count, description=description)
            elif isinstance(event, ItemFinishedEvent):
                mark = "[success]✓[/success]" if event.success else "[error]✗[/error]"
                suffix = f" [muted]({escape(event.error)})[/muted]" if event.error else ""
                progress.console.print(f"{mark} {escape(event.item.title)}{suffix}")

        orchestrator.channel.subscribe(on_event)

        try:
            result = orchestrator.run(items)
        except MeasurementError as e:
            print_error(str(e))
            if e.completed_items:
                completed = ", ".join(item.id for item in e.completed_items)
                print_warning(f"Items completed before the failure: {completed}")
            raise typer.Exit(code=1) from e

    print_cleanup_summary(result)

    if dry_run:
        print_info("Dry run: no commands were executed.")

    if record_cleanup_run(result, dry_run=dry_run) is None:
        print_warning("Could not record this run in the history.")

    if result.errors:
        raise typer.Exit(code=1)
