"""Unit tests for StateManager.

Tests for the StateManager class that handles history persistence.
"""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from reclaimctl.core.state import StateManager, record_cleanup_run
from reclaimctl.models.cleanup import CleanupItem, CleanupResult
from reclaimctl.models.disk import DiskInfo
from reclaimctl.models.history import HistoryEntry, HistoryItem


def make_entry(entry_id: str, timestamp: str = "2026-01-26T14:30:00+00:00") -> HistoryEntry:
    return HistoryEntry(
        id=entry_id,
        timestamp=timestamp,
        items=(HistoryItem(item_id="caches", command="rm -rf ~/.cache/pip"),),
        attempted_count=1,
        freed_gb=0.5,
    )


@pytest.fixture
def manager(tmp_path: Path) -> StateManager:
    """Create a StateManager with temporary directory."""
    return StateManager(state_dir=tmp_path)


class TestStateManagerInit:
    """Tests for StateManager initialization."""

    def test_init_with_custom_state_dir(self, tmp_path: Path) -> None:
        """StateManager uses custom state directory when provided."""
        assert StateManager(state_dir=tmp_path).history_path == tmp_path / "history.jsonl"


class TestRecordRun:
    """Tests for StateManager.record_run method."""

    def test_creates_directories(self, tmp_path: Path) -> None:
        """record_run creates parent directories if needed."""
        nested_dir = tmp_path / "deep" / "nested" / "state"
        manager = StateManager(state_dir=nested_dir)

        manager.record_run(make_entry("abc123456789"))

        assert manager.history_path.exists()

    def test_writes_one_json_line_per_run(self, manager: StateManager) -> None:
        """Each run is appended as one JSON line."""
        manager.record_run(make_entry("first0000000"))
        manager.record_run(make_entry("second000000"))

        lines = manager.history_path.read_text().splitlines()

        assert len(lines) == 2
        assert json.loads(lines[0])["id"] == "first0000000"
        assert manager.history_path.read_text().endswith("\n")


class TestGetHistory:
    """Tests for StateManager.get_history method."""

    def test_missing_file(self, manager: StateManager) -> None:
        """No history file means no entries."""
        assert manager.get_history() == []

    def test_newest_first(self, manager: StateManager) -> None:
        """Entries are returned newest first."""
        for entry_id in ("old000000000", "mid000000000", "new000000000"):
            manager.record_run(make_entry(entry_id))

        assert [e.id for e in manager.get_history()] == [
            "new000000000",
            "mid000000000",
            "old000000000",
        ]

    def test_limit(self, manager: StateManager) -> None:
        """limit caps the number of returned entries."""
        for entry_id in ("a00000000000", "b00000000000", "c00000000000"):
            manager.record_run(make_entry(entry_id))

        assert [e.id for e in manager.get_history(limit=2)] == ["c00000000000", "b00000000000"]

    def test_skips_corrupt_lines(
        self, manager: StateManager, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Corrupt lines are skipped with a warning."""
        manager.record_run(make_entry("good00000000"))
        with manager.history_path.open("a") as f:
            f.write("not json\n\n")
            f.write('{"id": "x"}\n')

        with caplog.at_level(logging.WARNING):
            entries = manager.get_history()

        assert [e.id for e in entries] == ["good00000000"]
        assert "Skipping corrupt history line 2" in caplog.text

    def test_get_entry_by_id(self, manager: StateManager) -> None:
        """get_entry_by_id finds a recorded entry or returns None."""
        manager.record_run(make_entry("abc123456789"))

        found = manager.get_entry_by_id("abc123456789")

        assert found is not None
        assert found.freed_gb == 0.5
        assert manager.get_entry_by_id("missing") is None


class TestRecordCleanupRun:
    """Tests for record_cleanup_run helper."""

    @pytest.fixture
    def result(self) -> CleanupResult:
        disk = DiskInfo(total="500 GB", used="100 GB", available="400 GB", usage_percentage=20)
        item = CleanupItem(
            id="trash",
            title="Empty trash",
            description="Trash",
            estimated_size_gb=1.0,
            command="rm -rf ~/.Trash/*",
        )
        return CleanupResult(
            before_disk_info=disk,
            after_disk_info=disk,
            completed_items=(item,),
            total_freed_gb=0.0,
            attempted_count=1,
        )

    def test_records_entry(self, tmp_path: Path, result: CleanupResult) -> None:
        """The run is persisted with the dry-run flag and command metadata."""
        entry = record_cleanup_run(result, dry_run=True, state_dir=tmp_path)

        assert entry is not None
        stored = StateManager(tmp_path).get_history()
        assert stored == [entry]
        assert stored[0].dry_run is True
        assert stored[0].metadata["command"] == "reclaimctl clean"

    def test_write_failure_returns_none(
        self, tmp_path: Path, result: CleanupResult, caplog: pytest.LogCaptureFixture
    ) -> None:
        """History failures are logged and never raised."""
        with (
            patch.object(StateManager, "record_run", side_effect=OSError("disk full")),
            caplog.at_level(logging.WARNING),
        ):
            entry = record_cleanup_run(result, state_dir=tmp_path)

        assert entry is None
        assert "disk full" in caplog.text
