"""History entry model for auditing cleanup runs.

This module defines data structures for recording completed cleanup runs
in a history file. Cleanup actions are not reversible; the history is an
audit trail only.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from reclaimctl.models.cleanup import CleanupResult


@dataclass(frozen=True, slots=True)
class HistoryItem:
    """Single cleanup item that completed during a run.

    Attributes:
        item_id: Identifier of the cleanup item.
        command: Command that was executed.
        title: Optional item title at the time of execution.
    """

    item_id: str
    command: str
    title: str | None = None

    def __post_init__(self) -> None:
        """Validate item data after initialization."""
        if not self.item_id:
            msg = "Item id cannot be empty"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        result: dict[str, Any] = {
            "item_id": self.item_id,
            "command": self.command,
        }
        if self.title is not None:
            result["title"] = self.title
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryItem:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
        """
        return cls(
            item_id=data["item_id"],
            command=data["command"],
            title=data.get("title"),
        )


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Record of a single cleanup run.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        timestamp: When the run finished (ISO 8601 format with timezone).
        items: Items that completed during the run.
        attempted_count: Number of checked items the run attempted.
        freed_gb: Measured freed space in GB.
        errors: Failure reasons recorded during the run.
        dry_run: Whether commands were only simulated.
        metadata: Additional context (command line, before/after usage).
    """

    id: str
    timestamp: str
    items: tuple[HistoryItem, ...]
    attempted_count: int
    freed_gb: float
    errors: tuple[str, ...] = ()
    dry_run: bool = False
    metadata: dict[str, Any] = field(default_factory=lambda: {})

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.id:
            msg = "History entry ID cannot be empty"
            raise ValueError(msg)
        if not self.timestamp:
            msg = "Timestamp cannot be empty"
            raise ValueError(msg)

    @property
    def completed_count(self) -> int:
        """Number of items that completed."""
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "items": [item.to_dict() for item in self.items],
            "attempted_count": self.attempted_count,
            "freed_gb": self.freed_gb,
            "errors": list(self.errors),
            "dry_run": self.dry_run,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryEntry:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If item data is invalid.
        """
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            items=tuple(HistoryItem.from_dict(item) for item in data["items"]),
            attempted_count=int(data.get("attempted_count", 0)),
            freed_gb=float(data.get("freed_gb", 0.0)),
            errors=tuple(data.get("errors", [])),
            dry_run=bool(data.get("dry_run", False)),
            metadata=data.get("metadata", {}),
        )

    def to_json_line(self) -> str:
        """Serialize to JSON line for JSONL storage (no trailing newline)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> HistoryEntry:
        """Deserialize from JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        data = json.loads(line.strip())
        return cls.from_dict(data)


def create_history_entry(
    result: CleanupResult,
    dry_run: bool = False,
    metadata: dict[str, Any] | None = None,
) -> HistoryEntry:
    """Create a HistoryEntry from a cleanup result.

    Automatically generates a unique ID and current timestamp.

    Args:
        result: Result of the cleanup run.
        dry_run: Whether the run only simulated commands.
        metadata: Optional additional context.

    Returns:
        New HistoryEntry with auto-generated ID and timestamp.
    """
    meta: dict[str, Any] = {
        "used_before": result.before_disk_info.used,
        "used_after": result.after_disk_info.used,
    }
    if result.cancelled_items:
        meta["cancelled"] = [item.id for item in result.cancelled_items]
    meta.update(metadata or {})

    return HistoryEntry(
        id=uuid.uuid4().hex[:12],
        timestamp=datetime.now(UTC).isoformat(),
        items=tuple(
            HistoryItem(item_id=item.id, command=item.command, title=item.title)
            for item in result.completed_items
        ),
        attempted_count=result.attempted_count,
        freed_gb=result.total_freed_gb,
        errors=result.errors,
        dry_run=dry_run,
        metadata=meta,
    )
