"""
Core business logic for planning the bookable slots of a single day.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pendulum
from pendulum import DateTime

from .calendar import resolve_week_day, to_calendar_date
from .exceptions import ConfigError
from .models import Appointment, Slot, TimeRange, WeeklySchedule
from .schedule_codec import default_schedule

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Santiago"
DEFAULT_SLOT_MINUTES = 15


class DayStatus(str, Enum):
    """Why a date does or does not offer slots."""
    WEEKEND = "weekend"
    UNCONFIGURED = "unconfigured"
    OPEN = "open"


class SlotPlanner:
    """
    Produces the ordered, conflict-annotated slots for one calendar date.

    Algorithm:
    1. Resolve the date to a business day (weekends yield nothing)
    2. Look up that day's ranges in the weekly schedule
    3. Tile each range into fixed-size slots, dropping any trailing partial slot
    4. Mark a slot unavailable if it already started or overlaps a
       non-cancelled appointment
    5. Concatenate the slots of all ranges in range order
    """

    def __init__(
        self,
        timezone: str = DEFAULT_TIMEZONE,
        slot_minutes: int = DEFAULT_SLOT_MINUTES,
    ):
        self.timezone = timezone
        self.slot_minutes = self._validate_slot_minutes(slot_minutes)

    @staticmethod
    def _validate_slot_minutes(slot_minutes: Any) -> int:
        if isinstance(slot_minutes, bool) or not isinstance(slot_minutes, int) or slot_minutes <= 0:
            raise ConfigError(f"slot_minutes must be a positive integer, got {slot_minutes!r}")
        return slot_minutes

    def plan_day(
        self,
        date: Any,
        schedule: Optional[WeeklySchedule] = None,
        existing_appointments: Iterable[Appointment] = (),
        slot_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[Slot]:
        """
        Compute all slots for ``date``.

        Args:
            date: Calendar date (date, datetime or "YYYY-MM-DD")
            schedule: Weekly availability; None falls back to the default operating window
            existing_appointments: Appointments of the social worker around that date
            slot_minutes: Slot length; defaults to the planner's configured length
            now: Reference instant for past-slot exclusion; defaults to the current time

        Returns:
            Slots in chronological order. Empty for weekends and unconfigured days.

        Raises:
            ConfigError: If slot_minutes is not a positive integer
        """
        slot_minutes = self._validate_slot_minutes(
            self.slot_minutes if slot_minutes is None else slot_minutes
        )

        ranges = self._ranges_for(date, schedule)
        if not ranges:
            return []

        calendar_date = to_calendar_date(date, self.timezone)
        reference = self._as_instant(now) if now is not None else pendulum.now(self.timezone)
        appointments = [a for a in existing_appointments if not a.is_cancelled]

        self._warn_on_overlapping_ranges(calendar_date, ranges)

        slots: List[Slot] = []
        for time_range in ranges:
            for start, end in self._tile_range(calendar_date, time_range, slot_minutes):
                is_past = reference >= start
                is_conflict = any(appt.blocks(start, end) for appt in appointments)
                slots.append(Slot(start=start, end=end, is_available=not (is_past or is_conflict)))

        return slots

    def day_status(self, date: Any, schedule: Optional[WeeklySchedule] = None) -> DayStatus:
        """
        Tell apart a weekend from a business day with no configured hours.

        ``plan_day`` returns an empty list in both cases.
        """
        if resolve_week_day(date, self.timezone) is None:
            return DayStatus.WEEKEND
        if not self._ranges_for(date, schedule):
            return DayStatus.UNCONFIGURED
        return DayStatus.OPEN

    def _ranges_for(self, date: Any, schedule: Optional[WeeklySchedule]) -> Sequence[TimeRange]:
        day = resolve_week_day(date, self.timezone)
        if day is None:
            return []
        if schedule is None:
            schedule = default_schedule()
        return schedule.get(day) or []

    def _tile_range(self, calendar_date, time_range: TimeRange, slot_minutes: int):
        """Yield (start, end) pairs covering the range; the trailing remainder is dropped."""
        range_start = pendulum.datetime(
            calendar_date.year, calendar_date.month, calendar_date.day,
            time_range.start.hour, time_range.start.minute,
            tz=self.timezone,
        )
        range_end = pendulum.datetime(
            calendar_date.year, calendar_date.month, calendar_date.day,
            time_range.end.hour, time_range.end.minute,
            tz=self.timezone,
        )

        current = range_start
        while True:
            slot_end = current.add(minutes=slot_minutes)
            if slot_end > range_end:
                break
            yield current, slot_end
            current = slot_end

    def _as_instant(self, value: datetime) -> DateTime:
        # Naive values are read as institute wall-clock time.
        if value.tzinfo is None:
            return pendulum.instance(value, tz=self.timezone)
        return pendulum.instance(value)

    @staticmethod
    def _warn_on_overlapping_ranges(calendar_date, ranges: Sequence[TimeRange]) -> None:
        ordered = sorted(ranges, key=lambda r: r.start)
        for previous, current in zip(ordered, ordered[1:]):
            if previous.overlaps(current):
                logger.warning(
                    "Schedule for %s has overlapping ranges %s and %s; slots will overlap",
                    calendar_date.to_date_string(), previous, current,
                )


def group_slots_by_hour(slots: Iterable[Slot]) -> Dict[int, List[Slot]]:
    """Group slots by the hour they start in, preserving order."""
    grouped: Dict[int, List[Slot]] = {}
    for slot in slots:
        grouped.setdefault(slot.start.hour, []).append(slot)
    return grouped
