"""Timestamp decoding for API payloads."""

from datetime import datetime
from typing import Any

from neos._utils import format_iso_datetime, parse_iso_datetime

# The API sends .NET's DateTime.MinValue where it means "never"
_NEVER_PREFIX = "0001-01-01"


def parse_datetime(value: Any) -> datetime:
    """
    Parse a required timestamp.

    Raises:
        ValueError: If the value is missing or not an ISO 8601 timestamp.
    """
    if value is None:
        raise ValueError("Timestamp is missing")
    return parse_iso_datetime(value)


def parse_datetime_or_none(value: Any) -> datetime | None:
    """
    Parse an optional timestamp, defaulting to None on any problem.

    Missing and unparseable values, as well as the `0001-01-01T00:00:00`
    placeholder, all decode to None.
    """
    if not isinstance(value, str) or value.startswith(_NEVER_PREFIX):
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        return None


def format_datetime(value: datetime | None) -> str | None:
    return format_iso_datetime(value) if value is not None else None
