"""Time window calculations with DST awareness.

Compute inclusive UTC boundaries of local calendar windows (day, month).
Calendar math happens in one business timezone; the returned instants are
always UTC, matching how record timestamps are stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any

import pytz

from ..core.time import ensure_utc, format_utc_iso8601, localize_utc_to_tz

__all__ = [
    "DEFAULT_TIMEZONE",
    "InvalidPeriod",
    "Period",
    "Window",
    "compute_day_boundaries_utc",
    "compute_month_boundaries_utc",
    "parse_period",
    "resolve_window",
    "rolling_window",
]

DEFAULT_TIMEZONE = "UTC"

# Windows are closed intervals; the end is the last representable instant
# before the next window starts.
_RESOLUTION = timedelta(microseconds=1)


class InvalidPeriod(ValueError):
    """Raised for a period token the resolver does not know."""


class Period(str, Enum):
    DAY = "day"
    MONTH = "month"


_PERIOD_TOKENS = {
    "day": Period.DAY,
    "today": Period.DAY,
    "month": Period.MONTH,
    "this month": Period.MONTH,
    "this_month": Period.MONTH,
}


@dataclass(frozen=True)
class Window:
    """Inclusive UTC instant range ``[start, end]``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("Window boundaries must be timezone-aware")
        if self.start > self.end:
            raise ValueError(f"Window start {self.start.isoformat()} is after end {self.end.isoformat()}")

    def to_dict(self) -> dict[str, Any]:
        return {"start": format_utc_iso8601(self.start), "end": format_utc_iso8601(self.end)}


def parse_period(period: Period | str) -> Period:
    """Map a period token (e.g. "today", "this month") to a ``Period``.

    Raises
    ------
    InvalidPeriod
        If the token is unknown
    """
    if isinstance(period, Period):
        return period
    if isinstance(period, str):
        resolved = _PERIOD_TOKENS.get(period.strip().lower())
        if resolved is not None:
            return resolved
    raise InvalidPeriod(f"Unknown period: {period!r} (expected one of: {', '.join(_PERIOD_TOKENS)})")


def _local_midnight_utc(tz: Any, day: date) -> datetime:
    local = tz.localize(datetime(day.year, day.month, day.day, 0, 0, 0))
    return local.astimezone(timezone.utc)


def compute_day_boundaries_utc(
    local_date: date,
    timezone_str: str = DEFAULT_TIMEZONE,
) -> Window:
    """Compute UTC boundaries for a local day.

    Handles DST transitions: a "day" in local time may be 23, 24, or 25 hours in UTC.

    Parameters
    ----------
    local_date
        Calendar date in the business timezone
    timezone_str
        Timezone name (e.g., "America/Sao_Paulo")

    Returns
    -------
    Window
        From local midnight to the last instant before the next local midnight

    Examples
    --------
    >>> window = compute_day_boundaries_utc(date(2025, 3, 9), "America/New_York")
    >>> window.start.isoformat()
    '2025-03-09T05:00:00+00:00'
    >>> window.end.isoformat()  # spring forward: 23-hour day
    '2025-03-10T03:59:59.999999+00:00'
    """
    tz = pytz.timezone(timezone_str)
    start = _local_midnight_utc(tz, local_date)
    next_start = _local_midnight_utc(tz, local_date + timedelta(days=1))
    return Window(start=start, end=next_start - _RESOLUTION)


def compute_month_boundaries_utc(
    local_date: date,
    timezone_str: str = DEFAULT_TIMEZONE,
) -> Window:
    """Compute UTC boundaries for the local month containing ``local_date``.

    Parameters
    ----------
    local_date
        Any date in the month
    timezone_str
        Timezone name

    Returns
    -------
    Window
        From the 1st at local midnight to the last instant of the month
    """
    tz = pytz.timezone(timezone_str)

    first = date(local_date.year, local_date.month, 1)
    if local_date.month == 12:
        next_first = date(local_date.year + 1, 1, 1)
    else:
        next_first = date(local_date.year, local_date.month + 1, 1)

    return Window(
        start=_local_midnight_utc(tz, first),
        end=_local_midnight_utc(tz, next_first) - _RESOLUTION,
    )


def resolve_window(
    period: Period | str,
    reference: datetime,
    timezone_str: str = DEFAULT_TIMEZONE,
) -> Window:
    """Resolve a named period around a reference instant.

    Pure function of its arguments. Naive references are taken as UTC.

    Parameters
    ----------
    period
        ``Period`` or token ("day", "today", "month", "this month")
    reference
        Instant whose calendar day/month is wanted
    timezone_str
        Business timezone used for the calendar math

    Returns
    -------
    Window
        Inclusive UTC window

    Raises
    ------
    InvalidPeriod
        If ``period`` is not a known token
    """
    resolved = parse_period(period)
    local_date = localize_utc_to_tz(reference, timezone_str).date()

    if resolved is Period.DAY:
        return compute_day_boundaries_utc(local_date, timezone_str)
    return compute_month_boundaries_utc(local_date, timezone_str)


def rolling_window(days: int, reference: datetime) -> Window:
    """Window covering the ``days`` days up to and including ``reference``.

    Used by "last N days" reports, which count back from the reference
    instant rather than from a calendar boundary.
    """
    if days < 0:
        raise ValueError(f"days must be non-negative, got {days}")
    end = ensure_utc(reference)
    return Window(start=end - timedelta(days=days), end=end)
