"""
Domain layer - Pure business logic without external dependencies.
"""

from .calendar import booking_window, is_bookable_date, parse_calendar_date, resolve_week_day
from .exceptions import ConfigError, FormatError, SlotPlannerError
from .models import Appointment, AppointmentStatus, Slot, TimeRange, WeekDay, WeeklySchedule
from .schedule_codec import ScheduleCodec, default_schedule, parse_schedule, schedule_to_dict
from .slot_planner import DayStatus, SlotPlanner, group_slots_by_hour

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "ConfigError",
    "DayStatus",
    "FormatError",
    "ScheduleCodec",
    "Slot",
    "SlotPlanner",
    "SlotPlannerError",
    "TimeRange",
    "WeekDay",
    "WeeklySchedule",
    "booking_window",
    "default_schedule",
    "group_slots_by_hour",
    "is_bookable_date",
    "parse_calendar_date",
    "parse_schedule",
    "resolve_week_day",
    "schedule_to_dict",
]
