"""Unit tests for disk usage probing."""

from collections.abc import Callable
from typing import Any

import pytest
from reclaimctl.core.disk import DiskUsageProbe, parse_disk_usage
from reclaimctl.core.errors import DiskUsageParseError, MeasurementError
from reclaimctl.models.disk import DiskInfo


class TestParseDiskUsage:
    """Tests for parse_disk_usage function."""

    def test_parses_macos_report(self, mock_df_output: str) -> None:
        """The second line is parsed positionally."""
        info = parse_disk_usage(mock_df_output)

        assert info == DiskInfo(total="460Gi", used="228Gi", available="45Gi", usage_percentage=84)

    def test_parses_linux_report(self, mock_df_output_linux: str) -> None:
        """GNU df output has the same leading columns."""
        info = parse_disk_usage(mock_df_output_linux)

        assert info.used == "312G"
        assert info.usage_percentage == 71

    @pytest.mark.parametrize("report", ["", "   \n  "])
    def test_empty_report(self, report: str) -> None:
        """An empty report fails fast."""
        with pytest.raises(DiskUsageParseError, match="empty"):
            parse_disk_usage(report)

    def test_header_only(self) -> None:
        """A report without data line fails fast."""
        with pytest.raises(DiskUsageParseError, match="no data line"):
            parse_disk_usage("Filesystem Size Used Avail Use% Mounted on")

    def test_too_few_fields(self) -> None:
        """A truncated data line is rejected instead of defaulted."""
        report = "Filesystem Size Used Avail Use% Mounted on\n/dev/disk3s1 460Gi 228Gi"

        with pytest.raises(DiskUsageParseError, match="expected at least 6"):
            parse_disk_usage(report)

    def test_unreadable_size(self) -> None:
        """Size columns must be parseable."""
        report = "Filesystem Size Used Avail Use% Mounted on\n/dev/disk3s1 460Gi - 45Gi 84% /"

        with pytest.raises(DiskUsageParseError, match="used size"):
            parse_disk_usage(report)

    def test_unreadable_percentage(self) -> None:
        """The use percentage column must look like N%."""
        report = "Filesystem Size Used Avail Use% Mounted on\n/dev/disk3s1 460Gi 228Gi 45Gi n/a /"

        with pytest.raises(DiskUsageParseError, match="use percentage"):
            parse_disk_usage(report)

    def test_parse_error_is_measurement_error(self) -> None:
        """Parse failures can be handled as measurement failures."""
        assert issubclass(DiskUsageParseError, MeasurementError)


class TestDiskUsageProbe:
    """Tests for DiskUsageProbe class."""

    def test_measure_runs_df(self, make_executor: Callable[..., Any], mock_df_output: str) -> None:
        """measure runs df for the mount point and parses the report."""
        executor = make_executor({"df -h": mock_df_output})
        probe = DiskUsageProbe(executor)

        info = probe.measure()

        assert executor.commands == ["df -h /"]
        assert info.used == "228Gi"

    def test_custom_mount_point(
        self, make_executor: Callable[..., Any], mock_df_output: str
    ) -> None:
        """A different mount point is passed to df."""
        executor = make_executor({"df -h": mock_df_output})

        DiskUsageProbe(executor, mount_point="/System/Volumes/Data").measure()

        assert executor.commands == ["df -h /System/Volumes/Data"]

    def test_execution_failure(self, failing_executor_factory: Callable[..., Any]) -> None:
        """A failing df is reported as MeasurementError."""
        probe = DiskUsageProbe(failing_executor_factory("df"))

        with pytest.raises(MeasurementError, match="Failed to measure disk usage"):
            probe.measure()

    def test_malformed_output(self, make_executor: Callable[..., Any]) -> None:
        """Malformed output raises DiskUsageParseError."""
        probe = DiskUsageProbe(make_executor({"df": "garbage"}))

        with pytest.raises(DiskUsageParseError):
            probe.measure()
