"""Default cleanup items derived from classified snapshots."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from reclaimctl.models.cleanup import CleanupItem, RiskLevel
from reclaimctl.models.snapshot import SnapshotRecord, SnapshotType
from reclaimctl.utils.sizes import BYTES_PER_GB

# Ask tmutil to reclaim up to 100 GB at the highest urgency level.
THIN_SNAPSHOTS_COMMAND = "tmutil thinlocalsnapshots / 100000000000 4"

THIN_SNAPSHOTS_ID = "thin_local_snapshots"
SYSTEM_UPDATE_INFO_ID = "system_update_snapshots_info"
UNKNOWN_INFO_ID = "unknown_snapshots_info"


@dataclass(frozen=True, slots=True)
class SnapshotSummary:
    """Aggregate figures for a set of classified snapshots.

    Attributes:
        counts: Number of snapshots per type.
        deletable_count: Number of snapshots that may be removed.
        total_estimated_bytes: Sum of all size figures.
        deletable_estimated_bytes: Sum of size figures of deletable snapshots.
        has_estimates: Whether any figure is not backed by a measurement.
    """

    counts: dict[SnapshotType, int] = field(default_factory=dict)
    deletable_count: int = 0
    total_estimated_bytes: int = 0
    deletable_estimated_bytes: int = 0
    has_estimates: bool = False

    @property
    def total_count(self) -> int:
        return sum(self.counts.values())

    def count(self, snapshot_type: SnapshotType) -> int:
        return self.counts.get(snapshot_type, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "counts": {t.value: self.count(t) for t in SnapshotType},
            "total_count": self.total_count,
            "deletable_count": self.deletable_count,
            "total_estimated_bytes": self.total_estimated_bytes,
            "deletable_estimated_bytes": self.deletable_estimated_bytes,
            "has_estimates": self.has_estimates,
        }


def summarize_snapshots(records: list[SnapshotRecord]) -> SnapshotSummary:
    """Count snapshots per type and total their size figures."""
    counts = Counter(record.type for record in records)
    deletable = [record for record in records if record.is_deletable]
    return SnapshotSummary(
        counts=dict(counts),
        deletable_count=len(deletable),
        total_estimated_bytes=sum(record.estimated_bytes for record in records),
        deletable_estimated_bytes=sum(record.estimated_bytes for record in deletable),
        has_estimates=any(record.size_confidence.is_estimate for record in records),
    )


def _bytes_to_gb(value: int) -> float:
    return round(value / BYTES_PER_GB, 2)


def build_snapshot_cleanup_items(records: list[SnapshotRecord]) -> list[CleanupItem]:
    """Build the default cleanup items for a set of snapshots.

    Deletable snapshots are reclaimed with a single thinning command.
    Snapshots that cannot be removed produce informational items that only
    print an explanation, so the operator sees why that space stays in use.

    Args:
        records: Classified snapshots.

    Returns:
        Cleanup items, thinning first. Empty if there are no snapshots.
    """
    items: list[CleanupItem] = []

    deletable = [r for r in records if r.is_deletable]
    if deletable:
        total_bytes = sum(r.estimated_bytes for r in deletable)
        description = (
            f"Thin {len(deletable)} local Time Machine snapshot(s). "
            "Recent file versions kept only in these snapshots will no longer be recoverable."
        )
        if any(r.size_confidence.is_estimate for r in deletable):
            description += " Size is partly estimated because not every snapshot could be measured."
        items.append(
            CleanupItem(
                id=THIN_SNAPSHOTS_ID,
                title="Thin local Time Machine snapshots",
                description=description,
                estimated_size_gb=_bytes_to_gb(total_bytes),
                command=THIN_SNAPSHOTS_COMMAND,
                risk_level=RiskLevel.MEDIUM,
            )
        )

    system_update = [r for r in records if r.type is SnapshotType.SYSTEM_UPDATE]
    if system_update:
        items.append(
            CleanupItem(
                id=SYSTEM_UPDATE_INFO_ID,
                title="System update snapshots",
                description=(
                    f"{len(system_update)} system update snapshot(s) are managed by macOS "
                    "and are removed automatically after the update completes or on restart."
                ),
                estimated_size_gb=0.0,
                command=(
                    "echo 'System update snapshots are released automatically. "
                    "Restart the computer to reclaim their space.'"
                ),
                risk_level=RiskLevel.LOW,
            )
        )

    unknown = [r for r in records if r.type is SnapshotType.UNKNOWN]
    if unknown:
        items.append(
            CleanupItem(
                id=UNKNOWN_INFO_ID,
                title="Unrecognized snapshots",
                description=(
                    f"{len(unknown)} snapshot(s) of unknown origin were kept to preserve "
                    "system stability."
                ),
                estimated_size_gb=0.0,
                command="echo 'Unrecognized snapshots were kept untouched.'",
                risk_level=RiskLevel.LOW,
            )
        )

    return items
