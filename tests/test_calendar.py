"""
Tests for calendar-date helpers.
"""

from datetime import date, datetime

import pendulum
import pytest

from slotplanner.domain.calendar import (
    booking_window,
    day_bounds,
    is_bookable_date,
    parse_calendar_date,
    resolve_week_day,
    week_bounds,
)
from slotplanner.domain.exceptions import ConfigError, FormatError
from slotplanner.domain.models import WeekDay

TZ = "America/Santiago"


class TestResolveWeekDay:
    """Tests for resolve_week_day."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (date(2024, 11, 25), WeekDay.MONDAY),
            (date(2024, 11, 26), WeekDay.TUESDAY),
            (date(2024, 11, 27), WeekDay.WEDNESDAY),
            (date(2024, 11, 28), WeekDay.THURSDAY),
            (date(2024, 11, 29), WeekDay.FRIDAY),
            (date(2024, 11, 30), None),
            (date(2024, 12, 1), None),
        ],
    )
    def test_monday_start_week(self, value, expected):
        assert resolve_week_day(value) is expected

    def test_accepts_strings(self):
        assert resolve_week_day("2024-11-25") is WeekDay.MONDAY

    def test_aware_datetime_is_resolved_in_institute_timezone(self):
        # 02:00 UTC on Monday is still Sunday evening in Santiago
        instant = pendulum.datetime(2024, 11, 25, 2, 0, tz="UTC")

        assert resolve_week_day(instant) is WeekDay.MONDAY
        assert resolve_week_day(instant, TZ) is None

    def test_naive_datetime_uses_its_own_date(self):
        assert resolve_week_day(datetime(2024, 11, 25, 23, 30), TZ) is WeekDay.MONDAY

    def test_rejects_garbage(self):
        with pytest.raises(FormatError):
            resolve_week_day(12345)


class TestParseCalendarDate:
    """Tests for parse_calendar_date."""

    def test_valid(self):
        assert parse_calendar_date("2024-11-25") == date(2024, 11, 25)

    @pytest.mark.parametrize("value", ["2024-13-01", "25/11/2024", "", "2024-02-30"])
    def test_invalid(self, value):
        with pytest.raises(FormatError):
            parse_calendar_date(value)


class TestBookingWindow:
    """Tests for booking_window and is_bookable_date."""

    def test_window_starts_tomorrow(self):
        first, last = booking_window(date(2024, 11, 25))

        assert first == date(2024, 11, 26)
        assert last == date(2024, 12, 26)

    def test_bookable_dates(self):
        today = date(2024, 11, 25)

        assert not is_bookable_date(today, today)
        assert is_bookable_date(date(2024, 11, 26), today)
        # Saturday inside the window
        assert not is_bookable_date(date(2024, 11, 30), today)
        assert not is_bookable_date(date(2024, 12, 27), today)

    def test_negative_offsets(self):
        with pytest.raises(ConfigError):
            booking_window(date(2024, 11, 25), min_lead_days=-1)


class TestBounds:
    """Tests for day_bounds and week_bounds."""

    def test_day_bounds(self):
        start, end = day_bounds(date(2024, 11, 25), TZ)

        assert start == pendulum.datetime(2024, 11, 25, tz=TZ)
        assert end.date() == date(2024, 11, 25)
        assert end.hour == 23 and end.minute == 59

    def test_week_bounds(self):
        start, end = week_bounds(date(2024, 11, 27), TZ)

        assert start == pendulum.datetime(2024, 11, 25, tz=TZ)
        assert end.date() == date(2024, 12, 1)
