"""Data export for the external cleanup planner.

The planner never runs inside reclaimctl. reclaimctl writes what it
collected (disk usage, classified snapshots, the sizes of caches,
downloads and trash, and the largest files) to a JSON file, the
planner reads it and answers with plan text, which is then read back by
:mod:`reclaimctl.advisor.plan`.

File layout::

    {
      "collected_at": "2026-01-01T12:00:00+00:00",
      "system": {"hostname": "...", "platform": "..."},
      "disk": {"total": "...", "used": "...", "available": "...", "usage_percentage": 87},
      "snapshots": {"summary": {...}, "items": [...]},
      "locations": {"caches": {"path": "...", "size": "...", ...}, ...},
      "large_files": {"available": true, "min_size_mb": 100, "items": [...]}
    }
"""

from __future__ import annotations

import os
import platform
import socket
from datetime import UTC, datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from reclaimctl.core.usage import StorageUsage
from reclaimctl.models.disk import DiskInfo
from reclaimctl.models.snapshot import SnapshotRecord
from reclaimctl.snapshots.plan import summarize_snapshots


class DiskSection(BaseModel):
    """Disk usage in the export.

    Attributes:
        total: Total capacity as reported.
        used: Used space as reported.
        available: Available space as reported.
        usage_percentage: Used share of capacity (0-100).
    """

    model_config = ConfigDict(frozen=True)

    total: str
    used: str
    available: str
    usage_percentage: int = Field(ge=0, le=100)


class SnapshotEntry(BaseModel):
    """Single classified snapshot in the export."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str  # "system_update" | "time_machine" | "unknown"
    size: str
    estimated_bytes: int
    size_confidence: str
    is_deletable: bool
    created_date: str | None = None
    description: str


class SnapshotSection(BaseModel):
    """Snapshot summary and entries in the export."""

    model_config = ConfigDict(frozen=True)

    summary: dict[str, int | bool] = Field(default_factory=lambda: {})
    items: list[SnapshotEntry] = Field(default_factory=lambda: [])


class LocationEntry(BaseModel):
    """Size of one well-known user location in the export."""

    model_config = ConfigDict(frozen=True)

    path: str
    size: str
    size_bytes: int
    measured: bool


class LargeFileEntry(BaseModel):
    """Single large file in the export."""

    model_config = ConfigDict(frozen=True)

    path: str
    size: str
    size_bytes: int


class LargeFileSection(BaseModel):
    """Largest files under the home directory.

    Attributes:
        available: False when the listing could not be produced.
        min_size_mb: Threshold used for the listing.
        items: Files, largest first.
    """

    model_config = ConfigDict(frozen=True)

    available: bool = False
    min_size_mb: int = 0
    items: list[LargeFileEntry] = Field(default_factory=lambda: [])


class PlannerInput(BaseModel):
    """Complete export for the planner.

    Attributes:
        collected_at: ISO timestamp of the collection.
        system: Host information (hostname, platform).
        disk: Disk usage of the root filesystem.
        snapshots: Classified local snapshots.
        locations: Sizes of caches, downloads and trash, keyed by name.
        large_files: Largest files under the home directory.
    """

    model_config = ConfigDict(frozen=True)

    collected_at: str
    system: dict[str, str]
    disk: DiskSection
    snapshots: SnapshotSection
    locations: dict[str, LocationEntry] = Field(default_factory=lambda: {})
    large_files: LargeFileSection = Field(default_factory=LargeFileSection)


def _usage_sections(usage: StorageUsage | None) -> dict[str, Any]:
    if usage is None:
        return {}
    return {
        "locations": {
            location.name: LocationEntry(
                path=location.path,
                size=location.size,
                size_bytes=location.size_bytes,
                measured=location.measured,
            )
            for location in usage.locations
        },
        "large_files": LargeFileSection(
            available=usage.large_files_available,
            min_size_mb=usage.large_file_min_mb,
            items=[
                LargeFileEntry(path=f.path, size=f.size, size_bytes=f.size_bytes)
                for f in usage.large_files
            ],
        ),
    }


def build_planner_input(
    disk_info: DiskInfo,
    snapshots: list[SnapshotRecord],
    usage: StorageUsage | None = None,
) -> PlannerInput:
    """Assemble collected data into the planner export model.

    Args:
        disk_info: Current disk usage.
        snapshots: Classified local snapshots.
        usage: Location sizes and large files; omitted sections stay empty.

    Returns:
        PlannerInput ready for serialization.
    """
    summary = summarize_snapshots(snapshots)
    summary_fields: dict[str, int | bool] = {
        "total_count": summary.total_count,
        "deletable_count": summary.deletable_count,
        "total_estimated_bytes": summary.total_estimated_bytes,
        "deletable_estimated_bytes": summary.deletable_estimated_bytes,
        "has_estimates": summary.has_estimates,
    }
    for snapshot_type, count in summary.to_dict()["counts"].items():
        summary_fields[f"{snapshot_type}_count"] = count

    return PlannerInput(
        collected_at=datetime.now(UTC).isoformat(),
        system={
            "hostname": socket.gethostname(),
            "platform": platform.platform(),
        },
        disk=DiskSection(**disk_info.to_dict()),
        snapshots=SnapshotSection(
            summary=summary_fields,
            items=[
                SnapshotEntry(
                    name=record.name,
                    type=record.type.value,
                    size=record.size,
                    estimated_bytes=record.estimated_bytes,
                    size_confidence=record.size_confidence.value,
                    is_deletable=record.is_deletable,
                    created_date=record.created_date,
                    description=record.description,
                )
                for record in snapshots
            ],
        ),
        **_usage_sections(usage),
    )


def export_planner_input(planner_input: PlannerInput, path: Path) -> Path:
    """Write the planner export as JSON.

    Args:
        planner_input: Export model.
        path: Destination file.

    Returns:
        The written path.

    Raises:
        RuntimeError: If the file cannot be written.
    """
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(planner_input.model_dump_json(indent=2))
            f.write("\n")
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        msg = f"Failed to write planner input to {path}: {e}"
        raise RuntimeError(msg) from e

    return path
