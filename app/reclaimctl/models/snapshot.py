"""Snapshot classification models.

This module defines the data structures describing a local filesystem
snapshot after classification: its semantic type, whether automated
removal is permitted, and how trustworthy its size figure is.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SnapshotType(str, Enum):
    """Semantic category of a local snapshot.

    Attributes:
        SYSTEM_UPDATE: Created by an OS update; managed by the OS.
        TIME_MACHINE: Local backup snapshot; safe to thin.
        UNKNOWN: Anything else; kept for system stability.
    """

    SYSTEM_UPDATE = "system_update"
    TIME_MACHINE = "time_machine"
    UNKNOWN = "unknown"

    @property
    def is_deletable(self) -> bool:
        """Whether snapshots of this type may be removed automatically."""
        return self is SnapshotType.TIME_MACHINE


class SizeConfidence(str, Enum):
    """How a snapshot size figure was obtained.

    Attributes:
        MEASURED: Exact unique-size measurement.
        APPROXIMATE: Directory-size measurement (may include shared blocks).
        ESTIMATED: Fixed experiential estimate, nothing was measured.
        UNAVAILABLE: No size could be obtained; the size is a placeholder.
    """

    MEASURED = "measured"
    APPROXIMATE = "approximate"
    ESTIMATED = "estimated"
    UNAVAILABLE = "unavailable"

    @property
    def is_estimate(self) -> bool:
        """Whether the figure is not backed by a measurement."""
        return self in (SizeConfidence.ESTIMATED, SizeConfidence.UNAVAILABLE)


@dataclass(frozen=True, slots=True)
class SnapshotRecord:
    """A classified local snapshot.

    Attributes:
        name: Raw snapshot identifier.
        size: Human-readable size or a placeholder label.
        type: Semantic snapshot category.
        created_date: Creation time "YYYY-MM-DD HH:MM:SS" when the name carries one.
        estimated_bytes: Size in bytes (0 when unavailable).
        description: Human-readable explanation for the operator.
        size_confidence: How the size figure was obtained.
    """

    name: str
    size: str
    type: SnapshotType
    estimated_bytes: int
    description: str
    size_confidence: SizeConfidence
    created_date: str | None = None

    def __post_init__(self) -> None:
        """Validate snapshot record after initialization."""
        if not self.name:
            msg = "Snapshot name cannot be empty"
            raise ValueError(msg)
        if self.estimated_bytes < 0:
            msg = f"Estimated bytes cannot be negative, got {self.estimated_bytes}"
            raise ValueError(msg)

    @property
    def is_deletable(self) -> bool:
        """Whether automated removal is permitted (derived from type only)."""
        return self.type.is_deletable

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "name": self.name,
            "size": self.size,
            "type": self.type.value,
            "is_deletable": self.is_deletable,
            "created_date": self.created_date,
            "estimated_bytes": self.estimated_bytes,
            "description": self.description,
            "size_confidence": self.size_confidence.value,
        }
