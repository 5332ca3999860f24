"""Tests for time window calculations.

Day and month windows are inclusive and computed in the business timezone,
so DST days are 23 or 25 hours long in UTC.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from gestum.rollups.time_windows import (
    InvalidPeriod,
    Period,
    Window,
    compute_day_boundaries_utc,
    compute_month_boundaries_utc,
    parse_period,
    resolve_window,
    rolling_window,
)

ONE_US = timedelta(microseconds=1)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_day_window_utc():
    """Test day window in UTC runs from midnight to the last microsecond."""
    window = compute_day_boundaries_utc(date(2024, 3, 10))

    assert window.start == utc(2024, 3, 10)
    assert window.end == utc(2024, 3, 10, 23, 59, 59, 999999)


def test_day_window_regular_new_york():
    """Test 24-hour day in New York (EDT, UTC-4)."""
    window = compute_day_boundaries_utc(date(2025, 10, 8), "America/New_York")

    assert window.start == utc(2025, 10, 8, 4, 0)
    assert window.end + ONE_US - window.start == timedelta(hours=24)


def test_day_window_spring_forward():
    """Test DST spring forward day is 23 hours long."""
    window = compute_day_boundaries_utc(date(2025, 3, 9), "America/New_York")

    assert window.start == utc(2025, 3, 9, 5, 0)  # Midnight EST
    assert window.end + ONE_US == utc(2025, 3, 10, 4, 0)  # Next midnight EDT
    assert window.end + ONE_US - window.start == timedelta(hours=23)


def test_day_window_fall_back():
    """Test DST fall back day is 25 hours long."""
    window = compute_day_boundaries_utc(date(2025, 11, 2), "America/New_York")

    assert window.start == utc(2025, 11, 2, 4, 0)  # Midnight EDT
    assert window.end + ONE_US - window.start == timedelta(hours=25)


def test_month_window_december():
    """Test month window wraps into the next year."""
    window = compute_month_boundaries_utc(date(2024, 12, 15))

    assert window.start == utc(2024, 12, 1)
    assert window.end == utc(2024, 12, 31, 23, 59, 59, 999999)


def test_month_window_leap_february():
    window = compute_month_boundaries_utc(date(2024, 2, 10))

    assert window.start == utc(2024, 2, 1)
    assert window.end == utc(2024, 2, 29, 23, 59, 59, 999999)


def test_month_window_non_leap_february():
    window = compute_month_boundaries_utc(date(2023, 2, 10))

    assert window.end == utc(2023, 2, 28, 23, 59, 59, 999999)


def test_month_window_in_business_timezone():
    """Test month starts at local midnight of the 1st."""
    window = compute_month_boundaries_utc(date(2024, 3, 20), "America/Sao_Paulo")

    assert window.start == utc(2024, 3, 1, 3, 0)
    assert window.end == utc(2024, 4, 1, 2, 59, 59, 999999)


@pytest.mark.parametrize("token", ["day", "today", "Today", "  TODAY "])
def test_parse_period_day_tokens(token):
    assert parse_period(token) is Period.DAY


@pytest.mark.parametrize("token", ["month", "this month", "This Month", "this_month"])
def test_parse_period_month_tokens(token):
    assert parse_period(token) is Period.MONTH


@pytest.mark.parametrize("token", ["week", "yesterday", "", "days", None, 7])
def test_parse_period_unknown_raises(token):
    """Test unknown periods raise instead of defaulting."""
    with pytest.raises(InvalidPeriod):
        parse_period(token)


def test_invalid_period_is_value_error():
    with pytest.raises(ValueError):
        resolve_window("quarter", utc(2024, 3, 10))


def test_resolve_window_day():
    window = resolve_window("today", utc(2024, 3, 10, 15, 30))

    assert window == Window(utc(2024, 3, 10), utc(2024, 3, 10, 23, 59, 59, 999999))


def test_resolve_window_month():
    window = resolve_window(Period.MONTH, utc(2024, 3, 10, 15, 30))

    assert window.start == utc(2024, 3, 1)
    assert window.end == utc(2024, 3, 31, 23, 59, 59, 999999)


def test_resolve_window_uses_local_calendar_day():
    """Test reference late in the evening locally is already tomorrow in UTC."""
    # 01:00 UTC on the 11th is 22:00 on the 10th in Sao Paulo (UTC-3)
    window = resolve_window("day", utc(2024, 3, 11, 1, 0), "America/Sao_Paulo")

    assert window.start == utc(2024, 3, 10, 3, 0)
    assert window.end == utc(2024, 3, 11, 2, 59, 59, 999999)


def test_resolve_window_naive_reference_is_utc():
    assert resolve_window("day", datetime(2024, 3, 10, 8, 0)) == resolve_window("day", utc(2024, 3, 10, 8, 0))


def test_resolve_window_is_pure():
    reference = utc(2024, 3, 10, 8, 0)

    assert resolve_window("month", reference) == resolve_window("month", reference)


def test_window_start_after_end_rejected():
    with pytest.raises(ValueError):
        Window(utc(2024, 3, 11), utc(2024, 3, 10))


def test_window_requires_aware_boundaries():
    with pytest.raises(ValueError):
        Window(datetime(2024, 3, 10), datetime(2024, 3, 11))


def test_window_to_dict():
    window = Window(utc(2024, 3, 10), utc(2024, 3, 10, 23, 59, 59, 999999))

    assert window.to_dict() == {
        "start": "2024-03-10T00:00:00+00:00",
        "end": "2024-03-10T23:59:59.999999+00:00",
    }


def test_rolling_window():
    reference = utc(2024, 3, 31, 12, 0)
    window = rolling_window(7, reference)

    assert window.start == utc(2024, 3, 24, 12, 0)
    assert window.end == reference


def test_rolling_window_negative_days():
    with pytest.raises(ValueError):
        rolling_window(-1, utc(2024, 3, 31))
