"""CLI commands for reclaimctl.

This package contains all subcommand implementations.
"""

from reclaimctl.cli.commands import check, clean, disk, history, plan, snapshots, whitelist

__all__ = ["check", "clean", "disk", "history", "plan", "snapshots", "whitelist"]
