"""
Time-related utilities for the application.

All timestamps are generated in UTC and serialized using
ISO-8601 format with timezone information to ensure
correct lexicographic ordering in DynamoDB.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Return current UTC time in ISO-8601 format.

    Example:
        2024-01-15T10:42:31.123456+00:00

    This format is safe for:
    - DynamoDB range key comparisons
    - Sorting
    - JSON serialization
    """
    return utc_now().isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values and ``Z`` as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def iso_to_epoch_ms(value: str) -> int:
    """Convert an ISO-8601 timestamp to integer epoch milliseconds."""
    return int(parse_iso(value).timestamp() * 1000)
