"""
Internal helper functions for the neos package.

These functions are not part of the public API and may change without notice.
"""

from __future__ import annotations

import random
import re
import time
from datetime import UTC, datetime

# .NET serializes up to 7 fractional digits, datetime accepts at most 6
_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")


def sleep_with_jitter(seconds: float, jitter_factor: float = 0.1) -> None:
    """
    Sleep for the given duration with random jitter.

    Args:
        seconds: Base sleep duration in seconds.
        jitter_factor: Maximum percentage variation (default: 10%).

    Example:
        >>> sleep_with_jitter(10.0)  # Sleeps between 9.0 and 11.0 seconds
    """
    jitter = random.uniform(-jitter_factor, jitter_factor)
    sleep_time = max(0.0, seconds * (1 + jitter))
    time.sleep(sleep_time)


def parse_iso_datetime(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp as sent by the API.

    Accepts a trailing `Z`, more than 6 fractional digits (truncated) and
    naive timestamps, which are assumed to be UTC.

    Args:
        value: The timestamp string.

    Returns:
        A timezone-aware datetime.

    Raises:
        ValueError: If the value is not a valid ISO 8601 timestamp.
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO 8601 string, got {type(value).__name__}")

    normalized = _FRACTION_PATTERN.sub(r"\1", value.strip())
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_iso_datetime(value: datetime) -> str:
    """Format a datetime the way the API expects it in query parameters and bodies."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
