"""
Tests for wall-clock helpers.

WHY: Week boundaries, month boundaries and hour rounding feed the
orphan listing, the monthly quota and every timesheet total.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.core.clock import (
    format_duration,
    month_start,
    seconds_to_hours,
    to_naive_utc,
    utcnow,
    week_end_for,
    week_start_for,
)


class TestUtc:
    """Tests for naive UTC normalization."""

    def test_utcnow_is_naive(self):
        assert utcnow().tzinfo is None

    def test_aware_value_converted(self):
        aware = datetime(2026, 3, 11, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        assert to_naive_utc(aware) == datetime(2026, 3, 11, 12, 0)

    def test_naive_value_unchanged(self):
        naive = datetime(2026, 3, 11, 12, 0)

        assert to_naive_utc(naive) is naive


class TestCalendar:
    """Tests for week and month boundaries."""

    @pytest.mark.parametrize(
        "day",
        [date(2026, 3, 9), date(2026, 3, 11), date(2026, 3, 15)],
    )
    def test_week_start_is_monday(self, day):
        assert week_start_for(day) == date(2026, 3, 9)

    def test_week_end_is_sunday(self):
        assert week_end_for(date(2026, 3, 9)) == date(2026, 3, 15)

    def test_month_start(self):
        assert month_start(datetime(2026, 3, 11, 12, 30, 5, 10)) == datetime(2026, 3, 1)


class TestFormatting:
    """Tests for duration display and hour rounding."""

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (5400, "1h 30m"),
            (7200, "2h"),
            (2700, "45m"),
            (30, "30s"),
            (3659, "1h"),
        ],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, Decimal("0.00")),
            (5400, Decimal("1.50")),
            (60, Decimal("0.02")),
            (18, Decimal("0.01")),
            (17, Decimal("0.00")),
        ],
    )
    def test_seconds_to_hours(self, seconds, expected):
        assert seconds_to_hours(seconds) == expected
