"""
Tests for slot planner.
"""

from datetime import date, datetime

import pendulum
import pytest

from slotplanner.domain.exceptions import ConfigError
from slotplanner.domain.models import Appointment, TimeRange, WeekDay
from slotplanner.domain.slot_planner import DayStatus, SlotPlanner, group_slots_by_hour

TZ = "America/Santiago"
MONDAY = date(2024, 11, 25)


def _at(hour: int, minute: int = 0, day: date = MONDAY):
    return pendulum.datetime(day.year, day.month, day.day, hour, minute, tz=TZ)


def _full_day_schedule():
    return {
        WeekDay.MONDAY: [TimeRange.from_strings("09:00", "13:00"), TimeRange.from_strings("14:00", "18:00")],
    }


def _by_start(slots):
    return {slot.start.format("HH:mm"): slot for slot in slots}


class TestSlotPlanner:
    """Tests for SlotPlanner.plan_day."""

    def test_plan_full_day_without_appointments(self):
        """Two four-hour ranges tile into 32 quarter-hour slots."""
        planner = SlotPlanner(timezone=TZ)

        slots = planner.plan_day(MONDAY, _full_day_schedule(), [], slot_minutes=15, now=_at(8))

        assert len(slots) == 32
        assert all(slot.is_available for slot in slots)
        assert slots[0].start == _at(9)
        assert slots[0].end == _at(9, 15)
        assert slots[-1].start == _at(17, 45)
        assert slots[-1].end == _at(18)

    def test_slots_are_chronological_across_ranges(self):
        planner = SlotPlanner(timezone=TZ)

        slots = planner.plan_day(MONDAY, _full_day_schedule(), [], slot_minutes=15, now=_at(8))

        starts = [slot.start for slot in slots]
        assert starts == sorted(starts)
        assert _at(13) not in starts
        assert _at(13, 45) not in starts

    def test_appointment_blocks_overlapping_slots(self):
        planner = SlotPlanner(timezone=TZ)
        appointment = Appointment(start=_at(10), end=_at(10, 30), status="confirmed")

        slots = _by_start(planner.plan_day(MONDAY, _full_day_schedule(), [appointment], slot_minutes=15, now=_at(8)))

        assert not slots["10:00"].is_available
        assert not slots["10:15"].is_available
        # Touching endpoints are bookable back-to-back
        assert slots["09:45"].is_available
        assert slots["10:30"].is_available

    def test_partial_overlap_blocks_slot(self):
        planner = SlotPlanner(timezone=TZ)
        appointment = Appointment(start=_at(10, 10), end=_at(10, 20))

        slots = _by_start(planner.plan_day(MONDAY, _full_day_schedule(), [appointment], slot_minutes=15, now=_at(8)))

        assert not slots["10:00"].is_available
        assert not slots["10:15"].is_available
        assert slots["10:30"].is_available

    def test_cancelled_appointment_is_ignored(self):
        planner = SlotPlanner(timezone=TZ)
        appointment = Appointment(start=_at(10), end=_at(10, 30), status="cancelled")

        slots = _by_start(planner.plan_day(MONDAY, _full_day_schedule(), [appointment], slot_minutes=15, now=_at(8)))

        assert slots["10:00"].is_available
        assert slots["10:15"].is_available

    def test_appointment_in_other_timezone(self):
        planner = SlotPlanner(timezone=TZ)
        # 13:00 UTC is 10:00 in Santiago (UTC-3 in November)
        appointment = Appointment(
            start=pendulum.datetime(2024, 11, 25, 13, tz="UTC"),
            end=pendulum.datetime(2024, 11, 25, 13, 30, tz="UTC"),
        )

        slots = _by_start(planner.plan_day(MONDAY, _full_day_schedule(), [appointment], slot_minutes=15, now=_at(8)))

        assert not slots["10:00"].is_available
        assert slots["10:30"].is_available

    def test_trailing_partial_slot_is_dropped(self):
        planner = SlotPlanner(timezone=TZ)
        schedule = {WeekDay.MONDAY: [TimeRange.from_strings("09:00", "09:50")]}

        slots = planner.plan_day(MONDAY, schedule, [], slot_minutes=30, now=_at(8))

        assert len(slots) == 1
        assert slots[0].start == _at(9)
        assert slots[0].end == _at(9, 30)

    def test_past_slots_are_unavailable(self):
        planner = SlotPlanner(timezone=TZ)

        slots = planner.plan_day(MONDAY, _full_day_schedule(), [], slot_minutes=15, now=_at(10))

        for slot in slots:
            if slot.start <= _at(10):
                assert not slot.is_available
            else:
                assert slot.is_available
        assert sum(1 for slot in slots if not slot.is_available) == 5

    def test_naive_now_is_institute_time(self):
        planner = SlotPlanner(timezone=TZ)

        slots = _by_start(
            planner.plan_day(MONDAY, _full_day_schedule(), [], slot_minutes=15, now=datetime(2024, 11, 25, 9, 0))
        )

        assert not slots["09:00"].is_available
        assert slots["09:15"].is_available

    @pytest.mark.parametrize("day", [date(2024, 11, 23), date(2024, 11, 24)])
    def test_weekend_is_empty(self, day):
        planner = SlotPlanner(timezone=TZ)
        # Even a schedule filled for every business day yields nothing on a weekend
        schedule = {weekday: [TimeRange.from_strings("09:00", "18:00")] for weekday in WeekDay}

        assert planner.plan_day(day, schedule, [], now=_at(8)) == []

    def test_unconfigured_day_is_empty(self):
        planner = SlotPlanner(timezone=TZ)

        assert planner.plan_day(MONDAY, {WeekDay.TUESDAY: [TimeRange.from_strings("09:00", "10:00")]}, now=_at(8)) == []
        assert planner.plan_day(MONDAY, {WeekDay.MONDAY: []}, now=_at(8)) == []
        assert planner.plan_day(MONDAY, {}, now=_at(8)) == []

    def test_missing_schedule_uses_default_window(self):
        planner = SlotPlanner(timezone=TZ)
        friday = date(2024, 11, 29)

        slots = planner.plan_day(friday, None, [], slot_minutes=30, now=_at(8, day=friday))

        assert len(slots) == 8 + 6
        assert slots[-1].end == _at(17, day=friday)

    def test_accepts_date_strings(self):
        planner = SlotPlanner(timezone=TZ)

        slots = planner.plan_day("2024-11-25", _full_day_schedule(), [], slot_minutes=60, now=_at(8))

        assert len(slots) == 8

    @pytest.mark.parametrize("slot_minutes", [0, -15])
    def test_invalid_slot_minutes(self, slot_minutes):
        planner = SlotPlanner(timezone=TZ)

        with pytest.raises(ConfigError):
            planner.plan_day(MONDAY, _full_day_schedule(), [], slot_minutes=slot_minutes, now=_at(8))

    def test_invalid_slot_minutes_on_weekend_still_fails(self):
        planner = SlotPlanner(timezone=TZ)

        with pytest.raises(ConfigError):
            planner.plan_day(date(2024, 11, 23), None, [], slot_minutes=0)

    def test_invalid_constructor_slot_minutes(self):
        with pytest.raises(ConfigError):
            SlotPlanner(timezone=TZ, slot_minutes=0)

    def test_overlapping_ranges_are_tolerated(self):
        planner = SlotPlanner(timezone=TZ)
        schedule = {WeekDay.MONDAY: [TimeRange.from_strings("09:00", "10:00"), TimeRange.from_strings("09:30", "10:30")]}

        slots = planner.plan_day(MONDAY, schedule, [], slot_minutes=30, now=_at(8))

        assert [slot.label() for slot in slots] == ["09:00-09:30", "09:30-10:00", "09:30-10:00", "10:00-10:30"]

    def test_deterministic(self):
        planner = SlotPlanner(timezone=TZ)
        appointments = [Appointment(start=_at(11), end=_at(12))]

        first = planner.plan_day(MONDAY, _full_day_schedule(), appointments, slot_minutes=15, now=_at(9, 30))
        second = planner.plan_day(MONDAY, _full_day_schedule(), appointments, slot_minutes=15, now=_at(9, 30))

        assert first == second

    def test_no_available_slot_overlaps_an_active_appointment(self):
        planner = SlotPlanner(timezone=TZ)
        appointments = [
            Appointment(start=_at(9, 20), end=_at(9, 50)),
            Appointment(start=_at(12, 45), end=_at(14, 15), status="scheduled"),
            Appointment(start=_at(16), end=_at(17), status="cancelled"),
        ]

        slots = planner.plan_day(MONDAY, _full_day_schedule(), appointments, slot_minutes=15, now=_at(8))

        for slot in slots:
            for appt in appointments:
                if slot.is_available and not appt.is_cancelled:
                    assert not (slot.start < appt.end and slot.end > appt.start)
        assert _by_start(slots)["16:00"].is_available


class TestDayStatus:
    """Tests for SlotPlanner.day_status."""

    def test_weekend(self):
        assert SlotPlanner(timezone=TZ).day_status(date(2024, 11, 23), _full_day_schedule()) is DayStatus.WEEKEND

    def test_unconfigured(self):
        assert SlotPlanner(timezone=TZ).day_status(date(2024, 11, 26), _full_day_schedule()) is DayStatus.UNCONFIGURED

    def test_open(self):
        assert SlotPlanner(timezone=TZ).day_status(MONDAY, _full_day_schedule()) is DayStatus.OPEN
        assert SlotPlanner(timezone=TZ).day_status(MONDAY, None) is DayStatus.OPEN


class TestGroupSlotsByHour:
    """Tests for group_slots_by_hour."""

    def test_groups_preserve_order(self):
        planner = SlotPlanner(timezone=TZ)
        slots = planner.plan_day(MONDAY, _full_day_schedule(), [], slot_minutes=15, now=_at(8))

        grouped = group_slots_by_hour(slots)

        assert list(grouped) == [9, 10, 11, 12, 14, 15, 16, 17]
        assert [slot.start.minute for slot in grouped[9]] == [0, 15, 30, 45]
