"""Unit tests for the planner data export."""

import json
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from reclaimctl.advisor.exchange import build_planner_input, export_planner_input
from reclaimctl.core.usage import LargeFile, LocationUsage, StorageUsage
from reclaimctl.models.disk import DiskInfo
from reclaimctl.models.snapshot import SizeConfidence, SnapshotRecord, SnapshotType


@pytest.fixture
def disk() -> DiskInfo:
    return DiskInfo(total="460Gi", used="228Gi", available="45Gi", usage_percentage=84)


@pytest.fixture
def snapshots() -> list[SnapshotRecord]:
    return [
        SnapshotRecord(
            name="com.apple.TimeMachine.2024-01-15-103000.local",
            size="1.5 GB",
            type=SnapshotType.TIME_MACHINE,
            estimated_bytes=1610612736,
            description="Local Time Machine snapshot",
            size_confidence=SizeConfidence.MEASURED,
            created_date="2024-01-15 10:30:00",
        ),
        SnapshotRecord(
            name="com.apple.os.update-7A1B2C3D4E5F",
            size="system snapshot",
            type=SnapshotType.SYSTEM_UPDATE,
            estimated_bytes=0,
            description="System update snapshot",
            size_confidence=SizeConfidence.UNAVAILABLE,
        ),
    ]


class TestBuildPlannerInput:
    """Tests for build_planner_input function."""

    def test_sections(self, disk: DiskInfo, snapshots: list[SnapshotRecord]) -> None:
        """The export carries host, disk and snapshot sections."""
        with (
            patch("reclaimctl.advisor.exchange.socket.gethostname", return_value="mac"),
            patch("reclaimctl.advisor.exchange.platform.platform", return_value="macOS-14"),
        ):
            planner_input = build_planner_input(disk, snapshots)

        assert planner_input.system == {"hostname": "mac", "platform": "macOS-14"}
        assert planner_input.disk.used == "228Gi"
        assert planner_input.disk.usage_percentage == 84
        assert datetime.fromisoformat(planner_input.collected_at).tzinfo is not None

    def test_snapshot_summary(self, disk: DiskInfo, snapshots: list[SnapshotRecord]) -> None:
        """Per-type counts and totals are included."""
        summary = build_planner_input(disk, snapshots).snapshots.summary

        assert summary["total_count"] == 2
        assert summary["deletable_count"] == 1
        assert summary["time_machine_count"] == 1
        assert summary["system_update_count"] == 1
        assert summary["unknown_count"] == 0
        assert summary["deletable_estimated_bytes"] == 1610612736
        assert summary["has_estimates"] is True

    def test_snapshot_entries(self, disk: DiskInfo, snapshots: list[SnapshotRecord]) -> None:
        """Each record becomes an entry with its classification."""
        entries = build_planner_input(disk, snapshots).snapshots.items

        assert [entry.type for entry in entries] == ["time_machine", "system_update"]
        assert entries[0].is_deletable is True
        assert entries[0].created_date == "2024-01-15 10:30:00"
        assert entries[1].size_confidence == "unavailable"

    def test_usage_sections(self, disk: DiskInfo) -> None:
        """Location sizes and large files are exported with placeholders kept."""
        usage = StorageUsage(
            locations=(
                LocationUsage(
                    name="caches", path="/Users/t/Library/Caches", size_bytes=1024**3, measured=True
                ),
                LocationUsage(name="trash", path="/Users/t/.Trash"),
            ),
            large_files=(LargeFile(path="/Users/t/big.iso", size_bytes=2 * 1024**3),),
            large_files_available=True,
            large_file_min_mb=100,
        )

        planner_input = build_planner_input(disk, [], usage)

        assert planner_input.locations["caches"].size == "1.0 GB"
        assert planner_input.locations["trash"].measured is False
        assert planner_input.locations["trash"].size == "unavailable"
        assert planner_input.large_files.available is True
        assert planner_input.large_files.min_size_mb == 100
        assert [f.path for f in planner_input.large_files.items] == ["/Users/t/big.iso"]
        assert planner_input.large_files.items[0].size == "2.0 GB"

    def test_usage_sections_default_empty(self, disk: DiskInfo) -> None:
        """Without collected usage the sections are empty."""
        planner_input = build_planner_input(disk, [])

        assert planner_input.locations == {}
        assert planner_input.large_files.available is False
        assert planner_input.large_files.items == []

    def test_no_snapshots(self, disk: DiskInfo) -> None:
        """An export without snapshots has an empty item list."""
        planner_input = build_planner_input(disk, [])

        assert planner_input.snapshots.items == []
        assert planner_input.snapshots.summary["total_count"] == 0


class TestExportPlannerInput:
    """Tests for export_planner_input function."""

    def test_writes_json(
        self, tmp_path: Path, disk: DiskInfo, snapshots: list[SnapshotRecord]
    ) -> None:
        """The export is written as JSON, creating parent directories."""
        path = tmp_path / "nested" / "planner-input.json"

        result = export_planner_input(build_planner_input(disk, snapshots), path)

        assert result == path
        data = json.loads(path.read_text())
        assert data["disk"]["total"] == "460Gi"
        assert len(data["snapshots"]["items"]) == 2

    def test_write_failure(self, tmp_path: Path, disk: DiskInfo) -> None:
        """Write failures raise RuntimeError and leave no partial files."""
        with (
            patch("reclaimctl.advisor.exchange.os.replace", side_effect=OSError("read-only")),
            pytest.raises(RuntimeError, match="Failed to write planner input"),
        ):
            export_planner_input(build_planner_input(disk, []), tmp_path / "x.json")

        assert list(tmp_path.iterdir()) == []

    def test_replaces_existing_file(self, tmp_path: Path, disk: DiskInfo) -> None:
        """An earlier export is replaced as a whole."""
        path = tmp_path / "planner-input.json"
        path.write_text("stale")

        export_planner_input(build_planner_input(disk, []), path)

        assert json.loads(path.read_text())["disk"]["used"] == "228Gi"
        assert [p.name for p in tmp_path.iterdir()] == ["planner-input.json"]
