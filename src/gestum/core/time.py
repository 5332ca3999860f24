"""Time and timezone utilities for Gestum.

Provides consistent timezone handling across the system with:
- UTC discipline: every instant handled by the core is timezone-aware UTC
- ISO-8601 parsing and formatting
- Business-timezone localization for calendar math and display
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytz

__all__ = [
    "ensure_utc",
    "format_utc_iso8601",
    "get_current_utc",
    "localize_utc_to_tz",
    "parse_utc_iso8601",
    "validate_timezone",
]


def get_current_utc() -> datetime:
    """Get current time in UTC.

    Returns
    -------
    datetime
        Current time in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime.

    Naive datetimes are interpreted as UTC, aware ones are converted.

    Example
    -------
    >>> ensure_utc(datetime(2024, 3, 10, 8, 0)).isoformat()
    '2024-03-10T08:00:00+00:00'
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_utc_iso8601(dt: datetime) -> str:
    """Format datetime as ISO-8601 UTC string.

    Always converts to UTC before formatting.

    Parameters
    ----------
    dt
        Datetime to format (with or without timezone)

    Returns
    -------
    str
        ISO-8601 UTC string (e.g., "2025-10-08T12:30:00+00:00")
    """
    return ensure_utc(dt).isoformat()


def parse_utc_iso8601(value: str | datetime) -> datetime:
    """Parse ISO-8601 string to UTC datetime.

    Parameters
    ----------
    value
        ISO-8601 formatted string, or a datetime that only needs normalizing

    Returns
    -------
    datetime
        Datetime in UTC

    Raises
    ------
    ValueError
        If string is not valid ISO-8601

    Example
    -------
    >>> dt = parse_utc_iso8601("2025-10-08T14:30:00+02:00")
    >>> dt.hour  # Converted to UTC
    12
    """
    if isinstance(value, datetime):
        return ensure_utc(value)

    if not isinstance(value, str):
        raise ValueError(f"Expected ISO-8601 string, got {type(value).__name__}")

    # Handle 'Z' suffix (Zulu time = UTC)
    return ensure_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))


def validate_timezone(timezone_str: str) -> str:
    """Check that ``timezone_str`` names a known IANA timezone.

    Raises
    ------
    ValueError
        If timezone is unknown
    """
    try:
        pytz.timezone(timezone_str)
    except pytz.UnknownTimeZoneError as exc:
        raise ValueError(f"Invalid timezone: {timezone_str}") from exc
    return timezone_str


def localize_utc_to_tz(utc_dt: datetime, timezone_str: str) -> datetime:
    """Convert a UTC datetime to the given timezone for calendar math or display.

    Example
    -------
    >>> utc_dt = datetime(2025, 10, 8, 12, 0, 0, tzinfo=timezone.utc)
    >>> localize_utc_to_tz(utc_dt, "Europe/Brussels").hour  # UTC+2 in summer
    14
    """
    return ensure_utc(utc_dt).astimezone(pytz.timezone(timezone_str))
