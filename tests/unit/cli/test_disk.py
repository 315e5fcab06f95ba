"""Unit tests for disk command."""

import json
from unittest.mock import MagicMock, patch

from reclaimctl.cli.main import app
from reclaimctl.core.errors import DiskUsageParseError
from reclaimctl.models.disk import DiskInfo
from typer.testing import CliRunner

runner = CliRunner()


def _probe(result: DiskInfo | Exception) -> MagicMock:
    probe = MagicMock()
    if isinstance(result, Exception):
        probe.measure.side_effect = result
    else:
        probe.measure.return_value = result
    return probe


class TestDiskCommand:
    """Tests for reclaimctl disk command."""

    def test_table(self, disk_before: DiskInfo) -> None:
        """Disk usage is shown as a table."""
        with patch("reclaimctl.cli.commands.disk.get_disk_probe", return_value=_probe(disk_before)):
            result = runner.invoke(app, ["disk"])

        assert result.exit_code == 0
        assert "Disk Usage" in result.stdout
        assert "22%" in result.stdout

    def test_json(self, disk_before: DiskInfo) -> None:
        """JSON output mirrors the measurement."""
        with patch("reclaimctl.cli.commands.disk.get_disk_probe", return_value=_probe(disk_before)):
            result = runner.invoke(app, ["disk", "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == disk_before.to_dict()

    def test_measurement_failure(self) -> None:
        """A malformed df report is an error."""
        probe = _probe(DiskUsageParseError("Unexpected df output"))

        with patch("reclaimctl.cli.commands.disk.get_disk_probe", return_value=probe):
            result = runner.invoke(app, ["disk"])

        assert result.exit_code == 1
        assert "Unexpected df output" in result.output
