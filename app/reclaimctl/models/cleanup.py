"""Cleanup plan and result models.

This module defines the data structures for proposed cleanup actions
(items of a plan) and the outcome of a cleanup run.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from reclaimctl.models.disk import DiskInfo


class RiskLevel(str, Enum):
    """Operator-facing risk classification of a cleanup action.

    Attributes:
        LOW: No data loss possible (caches, logs, trash).
        MEDIUM: Removes recovery points or non-critical system data.
        HIGH: May touch user-created files.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class CleanupItem:
    """A single proposed cleanup action.

    Items are immutable; the review step toggles selection through
    :meth:`with_checked`, which returns a new item.

    Attributes:
        id: Identifier, unique within a plan.
        title: Short human-readable title.
        description: Explanation of what the action does and its impact.
        estimated_size_gb: Expected space reclaimed in binary gigabytes.
        command: Shell command that performs the action.
        risk_level: Risk classification.
        checked: Whether the item is selected for execution.
    """

    id: str
    title: str
    description: str
    estimated_size_gb: float
    command: str
    risk_level: RiskLevel = RiskLevel.LOW
    checked: bool = True

    def __post_init__(self) -> None:
        """Validate item data after initialization."""
        if not self.id:
            msg = "Cleanup item id cannot be empty"
            raise ValueError(msg)
        if self.estimated_size_gb < 0:
            msg = f"Estimated size cannot be negative, got {self.estimated_size_gb}"
            raise ValueError(msg)

    def with_checked(self, checked: bool) -> CleanupItem:
        """Return a copy of this item with a different selection state."""
        return replace(self, checked=checked)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "estimated_size_gb": self.estimated_size_gb,
            "command": self.command,
            "risk_level": self.risk_level.value,
            "checked": self.checked,
        }


@dataclass(frozen=True, slots=True)
class CleanupResult:
    """Outcome of one cleanup run.

    Attributes:
        before_disk_info: Disk usage measured before the first item.
        after_disk_info: Disk usage measured after the last item.
        completed_items: Items that executed successfully, in execution order.
        total_freed_gb: Reduction in used space in GB, never negative.
        attempted_count: Number of checked items the run attempted.
        errors: Human-readable failure reasons, one per failed item.
        cancelled_items: Checked items skipped after the run was cancelled.
    """

    before_disk_info: DiskInfo
    after_disk_info: DiskInfo
    completed_items: tuple[CleanupItem, ...]
    total_freed_gb: float
    attempted_count: int = 0
    errors: tuple[str, ...] = field(default_factory=tuple)
    cancelled_items: tuple[CleanupItem, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate result data after initialization."""
        if self.total_freed_gb < 0:
            msg = f"Freed space cannot be negative, got {self.total_freed_gb}"
            raise ValueError(msg)

    @property
    def completed_count(self) -> int:
        """Number of items that completed successfully."""
        return len(self.completed_items)

    @property
    def failed_count(self) -> int:
        """Number of attempted items that did not complete."""
        return self.attempted_count - self.completed_count

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        return {
            "before_disk_info": self.before_disk_info.to_dict(),
            "after_disk_info": self.after_disk_info.to_dict(),
            "completed_items": [item.to_dict() for item in self.completed_items],
            "total_freed_gb": self.total_freed_gb,
            "attempted_count": self.attempted_count,
            "errors": list(self.errors),
            "cancelled_items": [item.id for item in self.cancelled_items],
        }
