"""Storage usage collection for the planner export.

Measures the user locations the allow rules know how to clean (caches,
downloads, trash) and lists the largest files under the home directory.
Every command is read-only and runs through an executor. A failed
measurement degrades to a placeholder so one unreadable location never
stops the export.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass

from reclaimctl.core.errors import ExecutionError
from reclaimctl.core.executor import CommandExecutor
from reclaimctl.utils.sizes import BYTES_PER_KB, format_size

logger = logging.getLogger(__name__)

UNAVAILABLE_SIZE = "unavailable"

DEFAULT_LARGE_FILE_MIN_MB = 100
DEFAULT_LARGE_FILE_LIMIT = 20

# (name, path relative to the home directory)
USAGE_LOCATIONS: tuple[tuple[str, str], ...] = (
    ("caches", "Library/Caches"),
    ("downloads", "Downloads"),
    ("trash", ".Trash"),
)


@dataclass(frozen=True, slots=True)
class LocationUsage:
    """Size of one well-known user location.

    Attributes:
        name: Location key ("caches", "downloads" or "trash").
        path: Absolute path that was measured.
        size_bytes: Measured size, 0 when unavailable.
        measured: False when the size could not be determined.
    """

    name: str
    path: str
    size_bytes: int = 0
    measured: bool = False

    @property
    def size(self) -> str:
        """Human-readable size, or a placeholder when unavailable."""
        return format_size(self.size_bytes) if self.measured else UNAVAILABLE_SIZE


@dataclass(frozen=True, slots=True)
class LargeFile:
    """A file above the large-file threshold."""

    path: str
    size_bytes: int

    @property
    def size(self) -> str:
        return format_size(self.size_bytes)


@dataclass(frozen=True, slots=True)
class StorageUsage:
    """Collected location sizes and large files.

    Attributes:
        locations: One entry per well-known location, in fixed order.
        large_files: Largest files first, bounded by the configured limit.
        large_files_available: False when the listing failed.
        large_file_min_mb: Threshold used for the listing.
    """

    locations: tuple[LocationUsage, ...] = ()
    large_files: tuple[LargeFile, ...] = ()
    large_files_available: bool = False
    large_file_min_mb: int = DEFAULT_LARGE_FILE_MIN_MB


def parse_du_total(output: str) -> int | None:
    """Return the byte total from ``du -sk`` output, or None.

    The first field of the last non-empty line holds the size in KB.
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        return None
    field = lines[-1].split()[0]
    if not field.isdigit():
        return None
    return int(field) * BYTES_PER_KB


def measure_location(executor: CommandExecutor, name: str, path: str) -> LocationUsage:
    """Measure one directory with ``du -sk``.

    ``du`` exits non-zero when it meets unreadable entries but still
    prints a total, so its exit status is ignored and only the output
    decides.
    """
    command = f"du -sk {shlex.quote(path)} 2>/dev/null || true"
    try:
        output = executor.execute(command)
    except ExecutionError as e:
        logger.warning("Could not measure %s: %s", path, e)
        return LocationUsage(name=name, path=path)

    size_bytes = parse_du_total(output)
    if size_bytes is None:
        logger.debug("No du total for %s", path)
        return LocationUsage(name=name, path=path)
    return LocationUsage(name=name, path=path, size_bytes=size_bytes, measured=True)


def parse_large_files(output: str) -> list[LargeFile]:
    """Parse ``du -k`` lines (``<kb>\\t<path>``) into large files, largest first."""
    files: list[LargeFile] = []
    for line in output.splitlines():
        size_field, sep, path = line.partition("\t")
        if not sep or not size_field.strip().isdigit() or not path:
            continue
        files.append(LargeFile(path=path, size_bytes=int(size_field) * BYTES_PER_KB))
    files.sort(key=lambda f: f.size_bytes, reverse=True)
    return files


def find_large_files(
    executor: CommandExecutor,
    root: str,
    *,
    min_size_mb: int = DEFAULT_LARGE_FILE_MIN_MB,
    limit: int = DEFAULT_LARGE_FILE_LIMIT,
) -> list[LargeFile] | None:
    """List the largest files under root on the same filesystem.

    Returns:
        Up to ``limit`` files, largest first, or None if the listing failed.
    """
    command = (
        f"find {shlex.quote(root)} -xdev -type f -size +{min_size_mb}M "
        f"-exec du -k {{}} + 2>/dev/null | sort -rn | head -n {limit}"
    )
    try:
        output = executor.execute(command)
    except ExecutionError as e:
        logger.warning("Could not list large files under %s: %s", root, e)
        return None
    return parse_large_files(output)[:limit]


def collect_storage_usage(
    executor: CommandExecutor,
    home: str | None = None,
    *,
    min_size_mb: int = DEFAULT_LARGE_FILE_MIN_MB,
    limit: int = DEFAULT_LARGE_FILE_LIMIT,
) -> StorageUsage:
    """Measure the well-known locations and list large files.

    Args:
        executor: Read-only executor for ``du`` and ``find``.
        home: Home directory (defaults to the current user's).
        min_size_mb: Large-file threshold in MB.
        limit: Maximum number of large files.

    Returns:
        StorageUsage; failures are recorded as unavailable entries.
    """
    home_dir = home or os.path.expanduser("~")
    locations = tuple(
        measure_location(executor, name, os.path.join(home_dir, relative))
        for name, relative in USAGE_LOCATIONS
    )
    large_files = find_large_files(executor, home_dir, min_size_mb=min_size_mb, limit=limit)

    return StorageUsage(
        locations=locations,
        large_files=tuple(large_files or ()),
        large_files_available=large_files is not None,
        large_file_min_mb=min_size_mb,
    )
