"""Command validation outcome model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating one cleanup command.

    A result is either approved or rejected, never partially valid.

    Attributes:
        is_valid: Whether the command may run.
        reason: Why the command was rejected (None when approved).
        rule: Identifier of the rule that decided the outcome, if any.
    """

    is_valid: bool
    reason: str | None = None
    rule: str | None = None

    def __post_init__(self) -> None:
        """Validate result consistency after initialization."""
        if not self.is_valid and not self.reason:
            msg = "A rejected validation result requires a reason"
            raise ValueError(msg)

    @classmethod
    def approve(cls, rule: str | None = None) -> ValidationResult:
        """Create an approving result."""
        return cls(is_valid=True, rule=rule)

    @classmethod
    def reject(cls, reason: str, rule: str | None = None) -> ValidationResult:
        """Create a rejecting result."""
        return cls(is_valid=False, reason=reason, rule=rule)
