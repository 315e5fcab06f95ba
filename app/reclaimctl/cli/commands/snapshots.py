"""Local snapshot command.

Provides the `reclaimctl snapshots` command for listing classified
local snapshots with their sizes.
"""

import json
from typing import Annotated

import typer

from reclaimctl.cli.display import create_snapshot_table
from reclaimctl.cli.types import OutputFormat, collect_snapshots, require_config
from reclaimctl.snapshots.plan import summarize_snapshots
from reclaimctl.utils.formatting import console, print_info
from reclaimctl.utils.sizes import format_size


def snapshots(
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
    """List local snapshots, their type and size."""
    config = require_config()
    records = collect_snapshots(config)

    if output_format == OutputFormat.JSON:
        payload = {
            "summary": summarize_snapshots(records).to_dict(),
            "snapshots": [record.to_dict() for record in records],
        }
        console.print_json(json.dumps(payload))
        return

    if not records:
        print_info("No local snapshots found.")
        return

    console.print(create_snapshot_table(records))

    summary = summarize_snapshots(records)
    console.print(
        f"\n[dim]{summary.total_count} snapshot(s), {summary.deletable_count} deletable, "
        f"{format_size(summary.deletable_estimated_bytes)} reclaimable[/dim]"
    )
    if summary.has_estimates:
        console.print("[estimate]Some sizes are estimates and could not be measured.[/estimate]")
