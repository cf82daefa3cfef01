"""
Calendar-date helpers: day-of-week resolution, booking window and week bounds.

All functions here work on explicit values and an explicit timezone name.
None of them consult the process-wide local timezone.
"""

from datetime import date, datetime
from typing import Any, Optional, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import ConfigError, FormatError
from .models import WeekDay


def parse_calendar_date(value: str) -> Date:
    """
    Parse a "YYYY-MM-DD" string into a calendar date.

    Raises:
        FormatError: If the string is not a valid date
    """
    if not isinstance(value, str):
        raise FormatError(f"Expected a 'YYYY-MM-DD' string, got {value!r}")
    try:
        return pendulum.from_format(value.strip(), "YYYY-MM-DD").date()
    except ValueError as exc:
        raise FormatError(f"Invalid date '{value}', expected 'YYYY-MM-DD'") from exc


def to_calendar_date(value: Any, timezone: Optional[str] = None) -> Date:
    """
    Normalize a date, datetime or "YYYY-MM-DD" string to a calendar date.

    An aware datetime is converted to ``timezone`` first, so an instant late
    on Sunday UTC resolves to the institute's local Sunday, not Monday.
    """
    if isinstance(value, datetime):
        if timezone is not None and value.tzinfo is not None:
            value = pendulum.instance(value).in_timezone(timezone)
        return pendulum.date(value.year, value.month, value.day)
    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)
    if isinstance(value, str):
        return parse_calendar_date(value)
    raise FormatError(f"Cannot interpret {value!r} as a calendar date")


def resolve_week_day(value: Any, timezone: Optional[str] = None) -> Optional[WeekDay]:
    """
    Resolve a calendar date to its WeekDay.

    Uses a Monday-start week. Saturday and Sunday resolve to None, which is
    a defined "no business day" state rather than an error.
    """
    calendar_date = to_calendar_date(value, timezone)
    return WeekDay.from_index(calendar_date.weekday())


def booking_window(
    today: Any,
    min_lead_days: int = 1,
    horizon_days: int = 30,
) -> Tuple[Date, Date]:
    """
    Return the first and last dates a student may book.

    The window opens ``min_lead_days`` after today and stays open for
    ``horizon_days`` more days.
    """
    if min_lead_days < 0 or horizon_days < 0:
        raise ConfigError(
            f"Booking window needs non-negative offsets, got lead={min_lead_days}, horizon={horizon_days}"
        )
    first = to_calendar_date(today).add(days=min_lead_days)
    return first, first.add(days=horizon_days)


def is_bookable_date(
    value: Any,
    today: Any,
    min_lead_days: int = 1,
    horizon_days: int = 30,
) -> bool:
    """Check the date is a business day inside the booking window."""
    candidate = to_calendar_date(value)
    first, last = booking_window(today, min_lead_days, horizon_days)
    if not first <= candidate <= last:
        return False
    return resolve_week_day(candidate) is not None


def day_bounds(value: Any, timezone: str) -> Tuple[DateTime, DateTime]:
    """Start and end instants of a calendar day in ``timezone``."""
    calendar_date = to_calendar_date(value, timezone)
    start = pendulum.datetime(calendar_date.year, calendar_date.month, calendar_date.day, tz=timezone)
    return start, start.end_of("day")


def week_bounds(value: Any, timezone: str) -> Tuple[DateTime, DateTime]:
    """Monday 00:00 to Sunday end-of-day of the week containing ``value``."""
    start, _ = day_bounds(value, timezone)
    return start.start_of("week"), start.end_of("week")
