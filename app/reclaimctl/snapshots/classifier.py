"""Local snapshot classification.

Classifies raw snapshot identifiers (as listed by ``tmutil
listlocalsnapshots``) into semantic categories and attaches a size
figure. Sizes are obtained through an ordered chain of strategies, each
tagged with how trustworthy its figure is, so downstream aggregation can
disclose estimates.

Classification never fails: a snapshot whose size cannot be measured
gets a placeholder size, and one bad snapshot never blocks the rest of a
batch.
"""

from __future__ import annotations

import logging
import re
import shlex
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import ClassVar, Protocol

from reclaimctl.core.errors import ExecutionError
from reclaimctl.core.executor import CommandExecutor
from reclaimctl.models.snapshot import SizeConfidence, SnapshotRecord, SnapshotType
from reclaimctl.utils.sizes import BYTES_PER_KB, SizeParseError, format_size, parse_size_strict

logger = logging.getLogger(__name__)

OS_UPDATE_MARKER = "com.apple.os.update"
TIME_MACHINE_MARKER = "com.apple.TimeMachine"

# Where APFS exposes local snapshots for measurement.
SNAPSHOT_MOUNT_ROOT = "/.com.apple.TimeMachine.supported"

# YYYY-MM-DD-HHMMSS
DATE_TIME_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})-(\d{2})(\d{2})(\d{2})")

# A size with an explicit byte unit, e.g. "1.2 GB", "512MiB" or "2048 bytes".
_REPORTED_SIZE = re.compile(r"(\d+(?:\.\d+)?)\s*([KMGT]?i?B|bytes)(?![A-Za-z])", re.IGNORECASE)

# Experiential average size of a local Time Machine snapshot.
FALLBACK_SNAPSHOT_BYTES = int(1.5 * 1024**3)

SYSTEM_SNAPSHOT_PLACEHOLDER = "system snapshot"
UNKNOWN_SIZE_PLACEHOLDER = "unknown"

DESCRIPTIONS: dict[SnapshotType, str] = {
    SnapshotType.SYSTEM_UPDATE: (
        "System update snapshot managed by macOS. It cannot be removed manually "
        "and is cleaned up automatically once the update completes or after a restart."
    ),
    SnapshotType.TIME_MACHINE: (
        "Local Time Machine snapshot used for file version recovery. Thinning it "
        "frees space safely but removes some recent recovery points."
    ),
    SnapshotType.UNKNOWN: "Snapshot of unknown origin. Keep it to preserve system stability.",
}


# =============================================================================
# Name parsing
# =============================================================================


@dataclass(frozen=True, slots=True)
class ParsedSnapshot:
    """Result of parsing a snapshot identifier.

    Attributes:
        name: Raw snapshot identifier.
        type: Semantic category.
        created_date: "YYYY-MM-DD HH:MM:SS" when the name embeds a timestamp.
    """

    name: str
    type: SnapshotType
    created_date: str | None = None


def extract_created_date(name: str) -> str | None:
    """Extract the creation timestamp embedded in a snapshot name.

    Args:
        name: Raw snapshot identifier.

    Returns:
        "YYYY-MM-DD HH:MM:SS", or None if the name has no timestamp.
    """
    match = DATE_TIME_PATTERN.search(name)
    if match is None:
        return None
    date, hours, minutes, seconds = match.groups()
    return f"{date} {hours}:{minutes}:{seconds}"


def parse_snapshot_name(name: str) -> ParsedSnapshot:
    """Classify a snapshot identifier by its name.

    Rules are evaluated in order and the first match wins:

    1. contains the OS update marker -> ``system_update``
    2. carries a ``YYYY-MM-DD-HHMMSS`` timestamp or the Time Machine
       marker -> ``time_machine``
    3. anything else -> ``unknown``

    Args:
        name: Raw snapshot identifier.

    Returns:
        ParsedSnapshot with type and optional creation date.
    """
    created_date = extract_created_date(name)

    if OS_UPDATE_MARKER in name:
        snapshot_type = SnapshotType.SYSTEM_UPDATE
    elif created_date is not None or TIME_MACHINE_MARKER in name:
        snapshot_type = SnapshotType.TIME_MACHINE
    else:
        snapshot_type = SnapshotType.UNKNOWN

    return ParsedSnapshot(name=name, type=snapshot_type, created_date=created_date)


# =============================================================================
# Size measurement
# =============================================================================


def parse_reported_size(line: str) -> int | None:
    """Parse the last size with an explicit unit in a line of tool output.

    Bare numbers are ignored so timestamps in snapshot names are never
    mistaken for sizes.
    """
    matches = _REPORTED_SIZE.findall(line)
    if not matches:
        return None
    value, unit = matches[-1]
    if unit.lower() == "bytes":
        unit = "B"
    try:
        return parse_size_strict(f"{value} {unit}")
    except SizeParseError:
        return None


class SnapshotSizeProbe(Protocol):
    """Measures the size of a local snapshot.

    Both methods return raw tool output and raise ExecutionError when the
    underlying measurement fails.
    """

    supports_unique_size: bool

    def unique_size(self, name: str) -> str:
        """Measure the space only this snapshot holds."""
        ...

    def directory_size(self, name: str) -> str:
        """Measure the apparent directory size of the snapshot."""
        ...


class CommandSnapshotSizeProbe:
    """Snapshot size probe backed by ``tmutil`` and ``du``.

    Attributes:
        supports_unique_size: Whether ``tmutil uniquesize`` may be used.
    """

    def __init__(self, executor: CommandExecutor, supports_unique_size: bool = True) -> None:
        self._executor = executor
        self.supports_unique_size = supports_unique_size

    @staticmethod
    def snapshot_path(name: str) -> str:
        """Path under which a snapshot is exposed for measurement."""
        return f"{SNAPSHOT_MOUNT_ROOT}/{name}"

    def unique_size(self, name: str) -> str:
        """Run ``tmutil uniquesize`` for the snapshot."""
        return self._executor.execute(f"tmutil uniquesize {shlex.quote(self.snapshot_path(name))}")

    def directory_size(self, name: str) -> str:
        """Run ``du -sk`` for the snapshot and return the size in KB."""
        output = self._executor.execute(f"du -sk {shlex.quote(self.snapshot_path(name))}")
        fields = output.split()
        if not fields or not fields[0].isdigit():
            msg = f"Unexpected du output: {output.strip()!r}"
            raise ExecutionError(msg, command="du -sk")
        return f"{int(fields[0]) * BYTES_PER_KB} B"


@dataclass(frozen=True, slots=True)
class SizeMeasurement:
    """A snapshot size figure and how it was obtained.

    Attributes:
        size: Human-readable size.
        estimated_bytes: Size in bytes.
        confidence: How the figure was obtained.
    """

    size: str
    estimated_bytes: int
    confidence: SizeConfidence


class SizeStrategy(ABC):
    """One step of the size-estimation fallback chain."""

    confidence: ClassVar[SizeConfidence]

    @abstractmethod
    def measure(self, name: str, probe: SnapshotSizeProbe) -> SizeMeasurement | None:
        """Return a measurement, or None if this strategy cannot produce one."""


class UniqueSizeStrategy(SizeStrategy):
    """Exact space held only by this snapshot (``tmutil uniquesize``)."""

    confidence = SizeConfidence.MEASURED

    def measure(self, name: str, probe: SnapshotSizeProbe) -> SizeMeasurement | None:
        if not probe.supports_unique_size:
            return None
        try:
            output = probe.unique_size(name)
        except ExecutionError as e:
            logger.debug("Unique size unavailable for %s: %s", name, e)
            return None

        lines = [line.strip() for line in output.splitlines() if line.strip()]
        if not lines:
            return None
        last_line = lines[-1]
        if "error" in last_line.lower() or "failed" in last_line.lower():
            return None
        size_bytes = parse_reported_size(last_line)
        if size_bytes is None:
            return None
        return SizeMeasurement(format_size(size_bytes), size_bytes, self.confidence)


class DirectorySizeStrategy(SizeStrategy):
    """Approximate size from a directory walk (``du``); may count shared blocks."""

    confidence = SizeConfidence.APPROXIMATE

    def measure(self, name: str, probe: SnapshotSizeProbe) -> SizeMeasurement | None:
        try:
            output = probe.directory_size(name).strip()
        except ExecutionError as e:
            logger.debug("Directory size unavailable for %s: %s", name, e)
            return None
        if not output or "No such file" in output:
            return None
        try:
            size_bytes = parse_size_strict(output)
        except SizeParseError:
            return None
        return SizeMeasurement(format_size(size_bytes), size_bytes, self.confidence)


class FixedEstimateStrategy(SizeStrategy):
    """Fixed experiential estimate; used only when nothing could be measured."""

    confidence = SizeConfidence.ESTIMATED

    def __init__(self, estimate_bytes: int = FALLBACK_SNAPSHOT_BYTES) -> None:
        self.estimate_bytes = estimate_bytes

    def measure(self, name: str, probe: SnapshotSizeProbe) -> SizeMeasurement | None:
        return SizeMeasurement(
            f"~{format_size(self.estimate_bytes)}",
            self.estimate_bytes,
            self.confidence,
        )


# Strategy chains per snapshot type, tried in order, first success wins.
SIZE_STRATEGIES: dict[SnapshotType, tuple[SizeStrategy, ...]] = {
    SnapshotType.TIME_MACHINE: (
        UniqueSizeStrategy(),
        DirectorySizeStrategy(),
        FixedEstimateStrategy(),
    ),
    SnapshotType.SYSTEM_UPDATE: (DirectorySizeStrategy(),),
    SnapshotType.UNKNOWN: (DirectorySizeStrategy(),),
}

PLACEHOLDERS: dict[SnapshotType, str] = {
    SnapshotType.SYSTEM_UPDATE: SYSTEM_SNAPSHOT_PLACEHOLDER,
    SnapshotType.TIME_MACHINE: UNKNOWN_SIZE_PLACEHOLDER,
    SnapshotType.UNKNOWN: UNKNOWN_SIZE_PLACEHOLDER,
}


def measure_snapshot_size(
    name: str,
    strategies: tuple[SizeStrategy, ...],
    probe: SnapshotSizeProbe,
) -> SizeMeasurement | None:
    """Run a strategy chain and return the first successful measurement."""
    for strategy in strategies:
        measurement = strategy.measure(name, probe)
        if measurement is not None:
            return measurement
    return None


# =============================================================================
# Classification
# =============================================================================


def _placeholder_record(parsed: ParsedSnapshot) -> SnapshotRecord:
    return SnapshotRecord(
        name=parsed.name,
        size=PLACEHOLDERS[parsed.type],
        type=parsed.type,
        estimated_bytes=0,
        description=DESCRIPTIONS[parsed.type],
        size_confidence=SizeConfidence.UNAVAILABLE,
        created_date=parsed.created_date,
    )


def classify_snapshot(
    name: str,
    probe: SnapshotSizeProbe,
    strategies: dict[SnapshotType, tuple[SizeStrategy, ...]] | None = None,
) -> SnapshotRecord:
    """Classify one snapshot and attach its size.

    Never raises: measurement failures degrade the size to a placeholder.

    Args:
        name: Raw snapshot identifier.
        probe: Size measurement collaborator.
        strategies: Optional override of the per-type strategy chains.

    Returns:
        Classified SnapshotRecord.
    """
    parsed = parse_snapshot_name(name)
    chains = strategies if strategies is not None else SIZE_STRATEGIES

    try:
        measurement = measure_snapshot_size(name, chains.get(parsed.type, ()), probe)
    except (ExecutionError, OSError, ValueError) as e:
        logger.warning("Failed to measure snapshot %s: %s", name, e)
        measurement = None

    if measurement is None:
        return _placeholder_record(parsed)

    return SnapshotRecord(
        name=name,
        size=measurement.size,
        type=parsed.type,
        estimated_bytes=measurement.estimated_bytes,
        description=DESCRIPTIONS[parsed.type],
        size_confidence=measurement.confidence,
        created_date=parsed.created_date,
    )


def classify_snapshots(
    names: list[str],
    probe: SnapshotSizeProbe,
    max_workers: int = 4,
) -> list[SnapshotRecord]:
    """Classify a batch of snapshots concurrently.

    Measurements are read-only, so they run on a thread pool. Results keep
    the input order and any per-snapshot failure yields a placeholder.

    Args:
        names: Raw snapshot identifiers.
        probe: Size measurement collaborator.
        max_workers: Maximum number of concurrent measurements.

    Returns:
        One SnapshotRecord per input name, in input order.
    """
    if not names:
        return []

    records: list[SnapshotRecord] = []
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        futures = [pool.submit(classify_snapshot, name, probe) for name in names]
        for name, future in zip(names, futures, strict=True):
            try:
                records.append(future.result())
            except Exception as e:
                logger.warning("Failed to classify snapshot %s: %s", name, e)
                records.append(_placeholder_record(parse_snapshot_name(name)))

    logger.debug(
        "Classified %d snapshot(s): %d deletable",
        len(records),
        sum(1 for r in records if r.is_deletable),
    )
    return records


def list_local_snapshots(executor: CommandExecutor, volume: str = "/") -> list[str]:
    """List local snapshot identifiers for a volume.

    Args:
        executor: Executor used to run ``tmutil``.
        volume: Volume mount point.

    Returns:
        Snapshot identifiers, or an empty list if listing fails.
    """
    try:
        output = executor.execute(f"tmutil listlocalsnapshots {shlex.quote(volume)}")
    except ExecutionError as e:
        logger.warning("Failed to list local snapshots: %s", e)
        return []

    return [
        line.strip()
        for line in output.splitlines()
        if line.strip() and not line.strip().startswith("Snapshots for")
    ]
