"""Timestamp formatting shared by the wire formats."""

from __future__ import annotations

from datetime import datetime, timezone


def isoformat_z(value: datetime) -> str:
    """Format a datetime as UTC ISO 8601 with milliseconds and a Z suffix.

    Matches the browser ``Date.toISOString()`` layout, which is what clients
    and the challenge message already use (``2026-01-15T10:00:00.000Z``).

    Args:
        value: Timezone-aware datetime; naive values are treated as UTC.

    Returns:
        Formatted timestamp string.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse a store timestamp into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
