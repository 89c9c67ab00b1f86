"""
Utility functions for jobsweep

Timestamp normalization and display helpers used across the system.
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional, Union

# Watermark used when no sweep has run yet; every job compares as newer.
MIN_TIMESTAMP = float('-inf')

_COMPACT_TIMESTAMP = re.compile(r'^\d{14}$')


def to_unix_timestamp(value: Any) -> Optional[float]:
    """
    Normalize a timestamp to epoch seconds (UTC).

    Accepts numbers, numeric strings, datetimes (naive ones are taken as
    UTC), ISO-8601 strings and compact ``YYYYMMDDHHMMSS`` strings.

    Args:
        value: Timestamp in any supported representation

    Returns:
        Epoch seconds, or None if value is None

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if value is None:
        return None

    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()

    if isinstance(value, str):
        text = value.strip()
        if _COMPACT_TIMESTAMP.match(text):
            dt = datetime.strptime(text, '%Y%m%d%H%M%S').replace(tzinfo=timezone.utc)
            return dt.timestamp()
        try:
            return float(text)
        except ValueError:
            pass
        try:
            dt = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            raise ValueError(f"Not a timestamp: {value!r}") from None
        return to_unix_timestamp(dt)

    raise ValueError(f"Not a timestamp: {value!r}")


def format_timestamp(timestamp: Union[int, float, str, datetime, None]) -> str:
    """
    Format a timestamp to a human-readable UTC string.

    Args:
        timestamp: Timestamp in any form accepted by to_unix_timestamp

    Returns:
        Formatted timestamp, "never" for the minimum watermark
    """
    try:
        seconds = to_unix_timestamp(timestamp)
    except ValueError:
        return str(timestamp)

    if seconds is None:
        return "Unknown"
    if math.isinf(seconds) and seconds < 0:
        return "never"

    dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return dt.strftime('%Y-%m-%d %H:%M:%S UTC')


def truncate_string(text: str, max_length: int = 50, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    return text[:max_length - len(suffix)] + suffix


def validate_queue_name(name: str) -> bool:
    """
    Validate a queue type or domain name.

    Args:
        name: Name to validate

    Returns:
        True if valid, False otherwise
    """
    if not name or not isinstance(name, str):
        return False

    if len(name) > 100:
        return False

    return re.match(r'^[a-zA-Z0-9_.-]+$', name) is not None
