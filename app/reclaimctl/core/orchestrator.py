"""Cleanup orchestration.

Runs a reviewed list of cleanup items strictly one after another:
measure disk usage, validate and execute each checked item, measure
again and report the freed space. A rejected or failing item is recorded
and skipped; it never aborts the batch. Only the two measurements are
fatal, because freed space cannot be reported without both.

Progress is published on an :class:`EventChannel`. Subscribers are
notified best-effort and cannot interrupt the run.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from reclaimctl.core.disk import DiskUsageProbe
from reclaimctl.core.errors import ExecutionError, MeasurementError
from reclaimctl.core.executor import CommandExecutor
from reclaimctl.core.safety import CommandSafetyValidator
from reclaimctl.models.cleanup import CleanupItem, CleanupResult
from reclaimctl.models.disk import DiskInfo
from reclaimctl.models.whitelist import WhitelistEntry
from reclaimctl.utils.sizes import BYTES_PER_GB, SizeParseError, parse_size_strict

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_SECONDS = 1.0

CANCELLED_REASON = "Cancelled before execution"


class ItemState(str, Enum):
    """Lifecycle of one item within a run."""

    PENDING = "pending"
    VALIDATING = "validating"
    REJECTED = "rejected"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BatchState(str, Enum):
    """Lifecycle of a run."""

    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Emitted before each item and once when all items are processed.

    Attributes:
        current_item: Item about to run, or None for the final event.
        completed_count: Number of items processed so far.
        total_count: Number of checked items in the run.
    """

    current_item: CleanupItem | None
    completed_count: int
    total_count: int


@dataclass(frozen=True, slots=True)
class ItemFinishedEvent:
    """Emitted when an item reaches a terminal state.

    Attributes:
        item: The item.
        state: Terminal state (completed, rejected, failed or cancelled).
        error: Failure reason, if the item did not complete.
    """

    item: CleanupItem
    state: ItemState
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.state is ItemState.COMPLETED


CleanupEvent = ProgressEvent | ItemFinishedEvent
Subscriber = Callable[[CleanupEvent], None]


class EventChannel:
    """Fan-out of cleanup events to subscribers.

    A subscriber that raises is logged and skipped; the remaining
    subscribers still receive the event.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber.

        Returns:
            A callable that removes the subscriber again.
        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def emit(self, event: CleanupEvent) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:
                logger.exception("Cleanup event subscriber failed for %s", type(event).__name__)


class CancellationToken:
    """Cooperative cancellation between items.

    Cancelling never interrupts a running command; items that have not
    started yet are skipped and recorded as cancelled.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def calculate_freed_gb(before: DiskInfo, after: DiskInfo) -> float:
    """Compute freed space from two measurements.

    Args:
        before: Measurement taken before the run.
        after: Measurement taken after the run.

    Returns:
        Reduction in used space in GB, clamped at zero.

    Raises:
        MeasurementError: If a used-space figure cannot be parsed.
    """
    try:
        used_before = parse_size_strict(before.used)
        used_after = parse_size_strict(after.used)
    except SizeParseError as e:
        msg = f"Cannot compute freed space: {e}"
        raise MeasurementError(msg) from e
    return max(0, used_before - used_after) / BYTES_PER_GB


def format_item_error(item: CleanupItem, reason: str) -> str:
    """Format a per-item failure as "<description>: <reason>"."""
    label = item.description or item.title or item.id
    return f"{label}: {reason}"


class CleanupOrchestrator:
    """Drives a cleanup run.

    Attributes:
        state: Current batch state.
        channel: Event channel that receives progress events.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        probe: DiskUsageProbe,
        validator: CommandSafetyValidator,
        whitelist_source: Callable[[], Iterable[WhitelistEntry]],
        *,
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        channel: EventChannel | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            executor: Runs approved commands.
            probe: Measures disk usage before and after the run.
            validator: Validates each command right before it runs.
            whitelist_source: Returns the current whitelist; called once per item.
            settle_seconds: Wait before the final measurement.
            sleep: Sleep function (injectable for tests).
            channel: Event channel (a new one is created if omitted).
        """
        self._executor = executor
        self._probe = probe
        self._validator = validator
        self._whitelist_source = whitelist_source
        self._settle_seconds = settle_seconds
        self._sleep = sleep
        self.channel = channel if channel is not None else EventChannel()
        self.state = BatchState.IDLE
        self.item_states: dict[str, ItemState] = {}

    def _finish(self, item: CleanupItem, state: ItemState, error: str | None = None) -> None:
        self.item_states[item.id] = state
        self.channel.emit(ItemFinishedEvent(item=item, state=state, error=error))

    def _run_item(self, item: CleanupItem) -> str | None:
        """Validate and execute one item.

        Returns:
            None on success, otherwise the failure reason.
        """
        self.item_states[item.id] = ItemState.VALIDATING
        whitelist = list(self._whitelist_source())
        validation = self._validator.validate(item.command, whitelist)
        if not validation.is_valid:
            reason = validation.reason or "Unsafe command"
            self._finish(item, ItemState.REJECTED, reason)
            return reason

        self.item_states[item.id] = ItemState.EXECUTING
        try:
            self._executor.execute(item.command)
        except ExecutionError as e:
            reason = str(e)
            self._finish(item, ItemState.FAILED, reason)
            return reason
        except Exception as e:
            logger.exception("Executor raised unexpectedly for item %s", item.id)
            reason = f"Unexpected executor error: {e}"
            self._finish(item, ItemState.FAILED, reason)
            return reason

        self._finish(item, ItemState.COMPLETED)
        return None

    def run(
        self,
        items: Sequence[CleanupItem],
        cancel_token: CancellationToken | None = None,
    ) -> CleanupResult:
        """Run all checked items in order.

        Args:
            items: Reviewed items; unchecked items are ignored.
            cancel_token: Optional token to stop the run between items.

        Returns:
            CleanupResult with completed items, errors and freed space.

        Raises:
            MeasurementError: If the before or after measurement fails.
                When the after measurement fails the error carries the
                items that had already completed.
        """
        self.state = BatchState.RUNNING
        self.item_states = {}
        try:
            before = self._probe.measure()

            selected = [item for item in items if item.checked]
            total = len(selected)
            for item in selected:
                self.item_states[item.id] = ItemState.PENDING

            completed: list[CleanupItem] = []
            cancelled: list[CleanupItem] = []
            errors: list[str] = []

            for index, item in enumerate(selected):
                if cancel_token is not None and cancel_token.cancelled:
                    self._finish(item, ItemState.CANCELLED, CANCELLED_REASON)
                    cancelled.append(item)
                    continue

                self.channel.emit(
                    ProgressEvent(current_item=item, completed_count=index, total_count=total)
                )
                reason = self._run_item(item)
                if reason is None:
                    completed.append(item)
                else:
                    logger.warning("Cleanup item %s did not complete: %s", item.id, reason)
                    errors.append(format_item_error(item, reason))

            self.channel.emit(
                ProgressEvent(current_item=None, completed_count=total, total_count=total)
            )

            if self._settle_seconds > 0:
                self._sleep(self._settle_seconds)

            try:
                after = self._probe.measure()
                freed_gb = calculate_freed_gb(before, after)
            except MeasurementError as e:
                raise type(e)(str(e), completed_items=tuple(completed)) from e

            logger.info(
                "Cleanup finished: %d/%d item(s) completed, %.2f GB freed",
                len(completed),
                total - len(cancelled),
                freed_gb,
            )
            return CleanupResult(
                before_disk_info=before,
                after_disk_info=after,
                completed_items=tuple(completed),
                total_freed_gb=freed_gb,
                attempted_count=total - len(cancelled),
                errors=tuple(errors),
                cancelled_items=tuple(cancelled),
            )
        finally:
            self.state = BatchState.FINISHED
