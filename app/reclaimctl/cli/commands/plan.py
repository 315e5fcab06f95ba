"""Cleanup plan commands.

The planner runs outside reclaimctl. These commands export the collected
disk and snapshot data for it, import its answer, and manage the saved
plan that `reclaimctl clean` executes.
"""

import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from reclaimctl.advisor.exchange import build_planner_input, export_planner_input
from reclaimctl.advisor.plan import (
    NormalizedPlan,
    load_plan_file,
    normalize_plan,
    save_plan,
)
from reclaimctl.cli.display import create_plan_table, print_plan_summary
from reclaimctl.cli.types import (
    OutputFormat,
    collect_snapshots,
    collect_storage,
    get_disk_probe,
    require_config,
)
from reclaimctl.core.errors import MeasurementError
from reclaimctl.core.paths import get_plan_path, get_planner_input_path
from reclaimctl.snapshots.plan import build_snapshot_cleanup_items
from reclaimctl.utils.formatting import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Export planner input and manage the cleanup plan.",
    no_args_is_help=True,
)


def _save_or_exit(plan: NormalizedPlan, path: Path) -> None:
    try:
        save_plan(plan, path)
    except OSError as e:
        print_error(f"Failed to save plan to {path}: {e}")
        raise typer.Exit(code=1) from e


def _show_plan(plan: NormalizedPlan) -> None:
    if plan.root_cause_summary:
        console.print(f"[header]Analysis:[/header] {escape(plan.root_cause_summary)}\n")
    if not plan.items:
        print_info("The plan contains no cleanup items.")
        return
    console.print(create_plan_table(list(plan.items)))
    print_plan_summary(list(plan.items))


@app.command("export")
def export(
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Destination file (default: state directory).",
        ),
    ] = None,
) -> None:
    """Collect disk, snapshot and storage usage data and export it for the planner."""
    config = require_config()

    try:
        disk_info = get_disk_probe(config).measure()
    except MeasurementError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    records = collect_snapshots(config)
    usage = collect_storage(config)
    planner_input = build_planner_input(disk_info, records, usage)

    try:
        path = export_planner_input(planner_input, output or get_planner_input_path())
    except RuntimeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Planner input written to {path}")


@app.command("import")
def import_plan(
    source: Annotated[
        str,
        typer.Argument(help="File with the planner's answer, or '-' for stdin."),
    ],
) -> None:
    """Read the planner's answer and save it as the current plan."""
    if source == "-":
        raw_text = sys.stdin.read()
    else:
        try:
            raw_text = Path(source).read_text(encoding="utf-8")
        except OSError as e:
            print_error(f"Cannot read plan file {source}: {e}")
            raise typer.Exit(code=1) from e

    plan = normalize_plan(raw_text)
    if not plan.ok:
        print_error(f"{plan.root_cause_summary} ({plan.error})")
        raise typer.Exit(code=1)

    _save_or_exit(plan, get_plan_path())
    _show_plan(plan)
    print_success(
        f"Plan with {len(plan.items)} item(s) saved. Run 'reclaimctl clean' to execute it."
    )


@app.command("snapshots")
def snapshot_plan() -> None:
    """Create a plan from the default snapshot cleanup items."""
    config = require_config()
    records = collect_snapshots(config)

    items = build_snapshot_cleanup_items(records)
    if not items:
        print_info("No local snapshots found. Nothing to plan.")
        return

    plan = NormalizedPlan(
        root_cause_summary=f"{len(records)} local snapshot(s) found.",
        items=tuple(items),
    )
    _save_or_exit(plan, get_plan_path())
    _show_plan(plan)
    print_success("Snapshot plan saved. Run 'reclaimctl clean' to execute it.")


@app.command("show")
def show(
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
    """Show the current plan."""
    path = get_plan_path()
    if not path.exists():
        print_warning("No plan saved yet. Use 'reclaimctl plan import' first.")
        raise typer.Exit(code=1)

    try:
        plan = load_plan_file(path)
    except OSError as e:
        print_error(f"Cannot read plan file {path}: {e}")
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(plan.to_dict()))
        return

    _show_plan(plan)
