"""Data models for reclaimctl.

This module exports the core data structures used throughout the application.
"""

from reclaimctl.models.cleanup import CleanupItem, CleanupResult, RiskLevel
from reclaimctl.models.disk import DiskInfo
from reclaimctl.models.history import HistoryEntry, HistoryItem, create_history_entry
from reclaimctl.models.snapshot import SizeConfidence, SnapshotRecord, SnapshotType
from reclaimctl.models.validation import ValidationResult
from reclaimctl.models.whitelist import WhitelistEntry

__all__ = [
    "CleanupItem",
    "CleanupResult",
    "DiskInfo",
    "HistoryEntry",
    "HistoryItem",
    "RiskLevel",
    "SizeConfidence",
    "SnapshotRecord",
    "SnapshotType",
    "ValidationResult",
    "WhitelistEntry",
    "create_history_entry",
]
