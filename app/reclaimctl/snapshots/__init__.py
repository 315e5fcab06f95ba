"""Local snapshot discovery, classification and default cleanup items."""

from reclaimctl.snapshots.classifier import (
    OS_UPDATE_MARKER,
    TIME_MACHINE_MARKER,
    CommandSnapshotSizeProbe,
    DirectorySizeStrategy,
    FixedEstimateStrategy,
    ParsedSnapshot,
    SizeStrategy,
    SnapshotSizeProbe,
    UniqueSizeStrategy,
    classify_snapshot,
    classify_snapshots,
    list_local_snapshots,
    parse_snapshot_name,
)
from reclaimctl.snapshots.plan import (
    SnapshotSummary,
    build_snapshot_cleanup_items,
    summarize_snapshots,
)

__all__ = [
    "OS_UPDATE_MARKER",
    "TIME_MACHINE_MARKER",
    "CommandSnapshotSizeProbe",
    "DirectorySizeStrategy",
    "FixedEstimateStrategy",
    "ParsedSnapshot",
    "SizeStrategy",
    "SnapshotSizeProbe",
    "SnapshotSummary",
    "UniqueSizeStrategy",
    "build_snapshot_cleanup_items",
    "classify_snapshot",
    "classify_snapshots",
    "list_local_snapshots",
    "parse_snapshot_name",
    "summarize_snapshots",
]
