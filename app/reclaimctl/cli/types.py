"""Shared types and utilities for CLI commands.

This module provides common enums and collaborator factories used across
multiple CLI command modules to avoid code duplication.
"""

from enum import Enum

import typer

from reclaimctl.core.config import AppConfig, load_config
from reclaimctl.core.disk import DiskUsageProbe
from reclaimctl.core.errors import ConfigError
from reclaimctl.core.executor import ReadOnlyExecutor
from reclaimctl.core.safety import CommandSafetyValidator
from reclaimctl.core.usage import StorageUsage, collect_storage_usage
from reclaimctl.models.snapshot import SnapshotRecord
from reclaimctl.snapshots.classifier import (
    CommandSnapshotSizeProbe,
    classify_snapshots,
    list_local_snapshots,
)
from reclaimctl.utils.formatting import print_error
from reclaimctl.utils.shell import command_exists


class OutputFormat(str, Enum):
    """Output format options for listing commands."""

    TABLE = "table"
    JSON = "json"


def require_config() -> AppConfig:
    """Load the configuration or exit with an error message.

    Raises:
        typer.Exit: If the configuration cannot be loaded.
    """
    try:
        return load_config()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def get_disk_probe(config: AppConfig) -> DiskUsageProbe:
    """Create a disk usage probe for the root filesystem.

    Measurements always run, even for dry-run cleanups.
    """
    return DiskUsageProbe(ReadOnlyExecutor(timeout=config.cleanup.command_timeout))


def get_validator(config: AppConfig) -> CommandSafetyValidator:
    """Create a command validator using the configured default policy."""
    return CommandSafetyValidator(default_policy=config.safety.default_policy)


def collect_snapshots(config: AppConfig) -> list[SnapshotRecord]:
    """List and classify local snapshots.

    Returns an empty list on systems without ``tmutil``.
    """
    if not command_exists("tmutil"):
        return []

    executor = ReadOnlyExecutor(timeout=config.cleanup.command_timeout)
    names = list_local_snapshots(executor)
    probe = CommandSnapshotSizeProbe(executor)
    return classify_snapshots(names, probe, max_workers=config.snapshots.max_workers)


def collect_storage(config: AppConfig) -> StorageUsage:
    """Measure caches, downloads and trash and list the largest files."""
    executor = ReadOnlyExecutor(timeout=config.cleanup.command_timeout)
    return collect_storage_usage(
        executor,
        min_size_mb=config.usage.large_file_min_mb,
        limit=config.usage.large_file_limit,
    )
