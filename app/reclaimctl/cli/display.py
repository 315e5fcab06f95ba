"""Shared Rich display functions for plans, snapshots and results.

Provides reusable table builders and summary printers used across CLI
commands (disk, snapshots, plan, clean).
"""

from rich.markup import escape
from rich.table import Table

from reclaimctl.models.cleanup import CleanupItem, CleanupResult
from reclaimctl.models.disk import DiskInfo
from reclaimctl.models.snapshot import SnapshotRecord
from reclaimctl.utils.formatting import console, format_gb, format_risk, print_success


def create_disk_table(info: DiskInfo, title: str = "Disk Usage") -> Table:
    """Create a Rich table displaying one disk measurement."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Total", justify="right")
    table.add_column("Used", justify="right")
    table.add_column("Available", justify="right")
    table.add_column("Use%", justify="right")

    if info.usage_percentage >= 90:
        usage_style = "error"
    elif info.usage_percentage >= 75:
        usage_style = "warning"
    else:
        usage_style = "success"

    table.add_row(
        info.total,
        f"[size]{info.used}[/size]",
        info.available,
        f"[{usage_style}]{info.usage_percentage}%[/{usage_style}]",
    )
    return table


def create_snapshot_table(records: list[SnapshotRecord]) -> Table:
    """Create a Rich table displaying classified snapshots.

    Sizes that were not measured are shown in the estimate style.
    """
    table = Table(
        title="Local Snapshots",
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Snapshot", no_wrap=True)
    table.add_column("Type")
    table.add_column("Created", style="muted")
    table.add_column("Size", justify="right")
    table.add_column("Deletable", justify="center")

    for record in records:
        size_style = "estimate" if record.size_confidence.is_estimate else "size"
        table.add_row(
            escape(record.name),
            record.type.value,
            record.created_date or "-",
            f"[{size_style}]{record.size}[/{size_style}]",
            "[success]yes[/success]" if record.is_deletable else "[muted]no[/muted]",
        )
    return table


def create_plan_table(items: list[CleanupItem], dry_run: bool = False) -> Table:
    """Create a Rich table displaying cleanup items.

    Args:
        items: Items to display.
        dry_run: Whether this is a dry-run (changes table title).

    Returns:
        Rich Table configured for plan display.
    """
    title = "Cleanup Plan (Dry Run)" if dry_run else "Cleanup Plan"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("", width=2, justify="center")
    table.add_column("ID", no_wrap=True)
    table.add_column("Title")
    table.add_column("Risk", justify="center")
    table.add_column("Size", justify="right")
    table.add_column("Command", style="command", overflow="fold")

    for item in items:
        marker = "[success]●[/success]" if item.checked else "[muted]○[/muted]"
        table.add_row(
            marker,
            escape(item.id),
            escape(item.title),
            format_risk(item.risk_level),
            f"[size]{format_gb(item.estimated_size_gb)}[/size]",
            escape(item.command) if item.command else "[muted]-[/muted]",
        )

    return table


def print_plan_summary(items: list[CleanupItem]) -> None:
    """Print the number of selected items and their estimated size."""
    selected = [item for item in items if item.checked]
    estimated = sum(item.estimated_size_gb for item in selected)
    console.print(
        f"\nSelected: {len(selected)} of {len(items)} item(s), "
        f"estimated [size]{format_gb(estimated)}[/size]"
    )


def print_cleanup_summary(result: CleanupResult) -> None:
    """Print the outcome of a cleanup run.

    Shows a success message when all items completed, otherwise the
    completed/attempted counts followed by each failure reason.
    """
    console.print(
        f"\nUsed before: {result.before_disk_info.used}, "
        f"after: {result.after_disk_info.used}, "
        f"freed: [size]{format_gb(result.total_freed_gb)}[/size]"
    )

    if result.cancelled_items:
        console.print(f"[warning]{len(result.cancelled_items)} item(s) cancelled[/warning]")

    if not result.errors:
        print_success(f"All {result.completed_count} item(s) completed successfully.")
        return

    console.print(
        f"\n[success]{result.completed_count} completed[/success] of "
        f"{result.attempted_count} attempted, [error]{len(result.errors)} failed[/error]"
    )
    for error in result.errors:
        console.print(f"  [error]✗[/error] {escape(error)}")
