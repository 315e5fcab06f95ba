"""Error taxonomy for the cleanup engine.

Validation and execution failures are recoverable: the orchestrator
records them per item and continues. Measurement failures are fatal to a
run because the freed-space figure needs both endpoints.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reclaimctl.models.cleanup import CleanupItem


class ReclaimError(Exception):
    """Base exception for all reclaimctl errors."""


class ValidationRejected(ReclaimError):
    """Raised when a command is rejected by the safety validator.

    Attributes:
        command: The rejected command.
        reason: Human-readable rejection reason.
        rule: Identifier of the deciding rule, if any.
    """

    def __init__(self, command: str, reason: str, rule: str | None = None) -> None:
        super().__init__(f"Unsafe command rejected: {reason}")
        self.command = command
        self.reason = reason
        self.rule = rule


class ExecutionError(ReclaimError):
    """Raised when a command exits non-zero or cannot be invoked.

    Attributes:
        command: The command that failed.
        returncode: Exit code, or None if the command never ran.
        stderr: Captured standard error, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class MeasurementError(ReclaimError):
    """Raised when disk usage cannot be measured before or after a run.

    Attributes:
        completed_items: Items that had already completed when the
            measurement failed (empty for a failed before-measurement).
    """

    def __init__(
        self,
        message: str,
        completed_items: tuple[CleanupItem, ...] = (),
    ) -> None:
        super().__init__(message)
        self.completed_items = completed_items


class DiskUsageParseError(MeasurementError):
    """Raised when a disk usage report is malformed."""


class PlanParseError(ReclaimError):
    """Raised internally when planner output cannot be parsed."""


class ConfigError(ReclaimError):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file cannot be parsed."""
