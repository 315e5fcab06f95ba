"""Human-readable size parsing and formatting.

Converts size strings such as ``"10.5 GB"`` (as printed by ``df -h``,
``du -h`` or ``tmutil``) to byte counts and back. All multiples are
binary (1024-based).
"""

import logging
import re

logger = logging.getLogger(__name__)

BYTES_PER_KB = 1024
BYTES_PER_GB = 1024**3

# Ordered smallest to largest; format_size walks this backwards.
UNITS: tuple[str, ...] = ("B", "KB", "MB", "GB", "TB")

_MULTIPLIERS: dict[str, int] = {
    "": 1,
    "K": 1024,
    "M": 1024**2,
    "G": 1024**3,
    "T": 1024**4,
}

# <number><optional whitespace><unit>, where the unit may be written as
# "GB", "G", "Gi" or "GiB". A bare number is a byte count only when no
# letter follows it, so "5 PB" or "1.2P" never degrade to a byte count.
_SIZE_PATTERN = re.compile(
    r"(?<![\w.])(?P<value>\d+(?:\.\d+)?)(?!\d|\.\d)"
    r"(?:\s*(?P<prefix>[KMGT])(?:iB|i|B)?(?![A-Za-z])"
    r"|\s*B(?![A-Za-z])"
    r"|(?!\s*[A-Za-z]))",
    re.IGNORECASE,
)


class SizeParseError(ValueError):
    """Raised by parse_size_strict when a size string is not recognized."""


def _match_size(text: str) -> int | None:
    """Return the byte count for the first size in text, or None."""
    if not isinstance(text, str):
        return None
    match = _SIZE_PATTERN.search(text)
    if match is None:
        return None
    value = float(match.group("value"))
    prefix = (match.group("prefix") or "").upper()
    return int(round(value * _MULTIPLIERS[prefix]))


def parse_size(text: str) -> int:
    """Parse a human-readable size string into bytes.

    Unrecognized input yields 0 and logs a warning. This function never
    raises, so callers doing best-effort accounting can always proceed.

    Args:
        text: Size string (e.g., "10.5 GB", "512MB", "2 tb", "45Gi").

    Returns:
        Size in bytes, or 0 if the text contains no recognizable size.
    """
    size = _match_size(text)
    if size is None:
        logger.warning("Unrecognized size string: %r", text)
        return 0
    return size


def parse_size_strict(text: str) -> int:
    """Parse a human-readable size string into bytes, failing loudly.

    Args:
        text: Size string to parse.

    Returns:
        Size in bytes.

    Raises:
        SizeParseError: If the text contains no recognizable size.
    """
    size = _match_size(text)
    if size is None:
        msg = f"Unrecognized size string: {text!r}"
        raise SizeParseError(msg)
    return size


def format_size(size_bytes: int | float) -> str:
    """Format a byte count as a human-readable string.

    Selects the largest unit for which the value is at least 1 and always
    prints one decimal place.

    Args:
        size_bytes: Number of bytes.

    Returns:
        Formatted string such as "512.0 MB" or "0.0 B".
    """
    size = float(size_bytes)
    for power in range(len(UNITS) - 1, 0, -1):
        scaled = size / (1024**power)
        if abs(scaled) >= 1:
            return f"{scaled:.1f} {UNITS[power]}"
    return f"{size:.1f} B"


def bytes_to_gb(size_bytes: int | float) -> float:
    """Convert bytes to binary gigabytes."""
    return float(size_bytes) / BYTES_PER_GB
