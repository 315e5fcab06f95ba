"""Disk usage probing and report parsing.

The probe runs ``df -h <mount>`` through an executor and parses the
fixed-column report into a :class:`DiskInfo`. Parsing fails fast:
a malformed report raises instead of producing default values, so
freed-space accounting is never computed from made-up numbers.
"""

import logging
import re

from reclaimctl.core.errors import DiskUsageParseError, ExecutionError, MeasurementError
from reclaimctl.core.executor import CommandExecutor
from reclaimctl.models.disk import DiskInfo
from reclaimctl.utils.sizes import SizeParseError, parse_size_strict

logger = logging.getLogger(__name__)

# Filesystem, Size, Used, Avail, Use%, Mounted on
EXPECTED_FIELDS = 6

_PERCENT_PATTERN = re.compile(r"^(\d{1,3})%$")


def parse_disk_usage(report: str) -> DiskInfo:
    """Parse a ``df -h`` style report into DiskInfo.

    The first line is the header; the second line is parsed positionally
    (filesystem, total, used, available, use-percent, mount point).

    Args:
        report: Raw report text.

    Returns:
        DiskInfo for the reported filesystem.

    Raises:
        DiskUsageParseError: If the report is empty, has no data line,
            has fewer than six fields, or carries unparseable sizes.
    """
    if not report or not report.strip():
        msg = "Disk usage report is empty"
        raise DiskUsageParseError(msg)

    lines = report.strip().splitlines()
    if len(lines) < 2:
        msg = "Disk usage report has no data line"
        raise DiskUsageParseError(msg)

    fields = lines[1].split()
    if len(fields) < EXPECTED_FIELDS:
        msg = (
            f"Disk usage data line has {len(fields)} field(s), "
            f"expected at least {EXPECTED_FIELDS}: {lines[1]!r}"
        )
        raise DiskUsageParseError(msg)

    total, used, available, percent = fields[1], fields[2], fields[3], fields[4]

    for label, value in (("total", total), ("used", used), ("available", available)):
        try:
            parse_size_strict(value)
        except SizeParseError as e:
            msg = f"Disk usage report has an unreadable {label} size: {value!r}"
            raise DiskUsageParseError(msg) from e

    match = _PERCENT_PATTERN.match(percent)
    if match is None or int(match.group(1)) > 100:
        msg = f"Disk usage report has an unreadable use percentage: {percent!r}"
        raise DiskUsageParseError(msg)

    return DiskInfo(
        total=total,
        used=used,
        available=available,
        usage_percentage=int(match.group(1)),
    )


class DiskUsageProbe:
    """Measures disk usage of one mount point.

    Attributes:
        mount_point: Filesystem mount point to report on.
    """

    def __init__(self, executor: CommandExecutor, mount_point: str = "/") -> None:
        """Initialize the probe.

        Args:
            executor: Executor used to run ``df``.
            mount_point: Mount point to measure (default: root filesystem).
        """
        self._executor = executor
        self.mount_point = mount_point

    @property
    def command(self) -> str:
        """The usage report command."""
        return f"df -h {self.mount_point}"

    def measure(self) -> DiskInfo:
        """Run the usage report and parse it.

        Returns:
            Current DiskInfo.

        Raises:
            MeasurementError: If the report cannot be produced.
            DiskUsageParseError: If the report is malformed.
        """
        try:
            report = self._executor.execute(self.command)
        except ExecutionError as e:
            msg = f"Failed to measure disk usage: {e}"
            raise MeasurementError(msg) from e

        info = parse_disk_usage(report)
        logger.debug(
            "Disk usage for %s: used=%s total=%s (%d%%)",
            self.mount_point,
            info.used,
            info.total,
            info.usage_percentage,
        )
        return info
