"""Disk usage model.

This module defines the point-in-time snapshot of host storage usage
produced by the disk usage probe.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class DiskInfo:
    """Storage usage of one filesystem at a point in time.

    Sizes are kept exactly as the usage report printed them (e.g. "228Gi",
    "45G"); use :func:`reclaimctl.utils.sizes.parse_size_strict` to obtain
    byte counts.

    Attributes:
        total: Total capacity as a size string.
        used: Used space as a size string.
        available: Available space as a size string.
        usage_percentage: Used capacity in percent (0-100).
    """

    total: str
    used: str
    available: str
    usage_percentage: int

    def __post_init__(self) -> None:
        """Validate disk info after initialization."""
        if not (0 <= self.usage_percentage <= 100):
            msg = f"Usage percentage must be between 0 and 100, got {self.usage_percentage}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "total": self.total,
            "used": self.used,
            "available": self.available,
            "usage_percentage": self.usage_percentage,
        }
