"""
Domain models for weekly availability, appointments and bookable slots.
"""

import re
from dataclasses import dataclass
from datetime import time
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import pendulum
from pendulum import DateTime

from .exceptions import FormatError

_TIME_PATTERN = re.compile(r"^([0-9]{1,2}):([0-9]{2})$")

MINUTES_PER_DAY = 24 * 60


def parse_local_time(value: Any) -> time:
    """
    Parse an "HH:MM" wall-clock string into a ``time``.

    Raises:
        FormatError: If the value is not "HH:MM" or hour/minute is out of range
    """
    if isinstance(value, time):
        if value.second or value.microsecond:
            raise FormatError(f"Time {value} must not carry seconds")
        return value.replace(tzinfo=None)

    if not isinstance(value, str):
        raise FormatError(f"Expected an 'HH:MM' string, got {value!r}")

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise FormatError(f"Invalid time '{value}', expected 'HH:MM'")

    hour, minute = int(match.group(1)), int(match.group(2))
    if not 0 <= hour <= 23:
        raise FormatError(f"Hour must be between 0 and 23, got {hour} in '{value}'")
    if not 0 <= minute <= 59:
        raise FormatError(f"Minute must be between 0 and 59, got {minute} in '{value}'")

    return time(hour=hour, minute=minute)


def format_local_time(value: time) -> str:
    """Format a ``time`` as a canonical zero-padded "HH:MM" string."""
    return f"{value.hour:02d}:{value.minute:02d}"


def to_minutes(value: time) -> int:
    """Minutes elapsed since midnight."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of ``to_minutes``."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise FormatError(f"{minutes} minutes does not fall within a single day")
    return time(hour=minutes // 60, minute=minutes % 60)


class WeekDay(str, Enum):
    """Business days that can carry availability. Weekends are not representable."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"

    @property
    def index(self) -> int:
        """Monday-start index (0=Monday, 4=Friday)."""
        return list(WeekDay).index(self)

    @classmethod
    def from_index(cls, index: int) -> Optional["WeekDay"]:
        """Map a Monday-start weekday index to a WeekDay; 5 and 6 map to None."""
        days = list(cls)
        if 0 <= index < len(days):
            return days[index]
        return None

    @classmethod
    def parse(cls, value: Any) -> "WeekDay":
        """Accept a WeekDay or its lowercase name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise FormatError(f"Unknown week day {value!r}, expected one of monday..friday")


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable wall-clock range within a single day.

    Times carry no date and no timezone; they are interpreted in the
    institute's timezone at the point of use.

    Invariant: start must be before end.
    """
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise FormatError(
                f"Start time {format_local_time(self.start)} must be before "
                f"end time {format_local_time(self.end)}"
            )

    @classmethod
    def from_strings(cls, start: Any, end: Any) -> "TimeRange":
        """Build a range from two "HH:MM" strings."""
        return cls(start=parse_local_time(start), end=parse_local_time(end))

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TimeRange":
        """Build a range from its persisted ``{"start": ..., "end": ...}`` form."""
        if not isinstance(raw, Mapping):
            raise FormatError(f"Expected a mapping with start/end, got {raw!r}")
        if "start" not in raw or "end" not in raw:
            raise FormatError(f"Range {dict(raw)!r} must define both 'start' and 'end'")
        return cls.from_strings(raw["start"], raw["end"])

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return self.end_minutes - self.start_minutes

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching ranges do not overlap."""
        return self.start < other.end and self.end > other.start

    def to_dict(self) -> Dict[str, str]:
        return {"start": format_local_time(self.start), "end": format_local_time(self.end)}

    def __str__(self) -> str:
        return f"{format_local_time(self.start)}-{format_local_time(self.end)}"


# Ascending by start; a day may be absent or empty, both meaning unavailable.
WeeklySchedule = Dict[WeekDay, List[TimeRange]]


class AppointmentStatus(str, Enum):
    """Known appointment states. Only CANCELLED releases the booked time."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


def _parse_instant(value: Any, timezone: str, field: str) -> DateTime:
    if isinstance(value, DateTime):
        return value
    if not isinstance(value, str):
        raise FormatError(f"Appointment {field} must be an ISO-8601 string, got {value!r}")
    try:
        parsed = pendulum.parse(value, tz=timezone)
    except ValueError as exc:
        raise FormatError(f"Invalid appointment {field} '{value}': {exc}") from exc
    if not isinstance(parsed, DateTime):
        raise FormatError(f"Appointment {field} '{value}' is not a date-time")
    return parsed


@dataclass(frozen=True)
class Appointment:
    """
    An existing booking, owned by the appointment repository.

    The planner only reads appointments; it never changes their status.
    """
    start: DateTime
    end: DateTime
    status: str = AppointmentStatus.SCHEDULED.value
    id: Optional[str] = None

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise FormatError("Appointment instants must be timezone-aware")
        if self.start >= self.end:
            raise FormatError(f"Appointment start {self.start} must be before end {self.end}")

    @property
    def is_cancelled(self) -> bool:
        status = self.status.value if isinstance(self.status, AppointmentStatus) else str(self.status)
        return status.strip().lower() == AppointmentStatus.CANCELLED.value

    def blocks(self, start: DateTime, end: DateTime) -> bool:
        """Whether this appointment makes ``[start, end)`` unbookable."""
        if self.is_cancelled:
            return False
        return start < self.end and end > self.start

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], timezone: str) -> "Appointment":
        """
        Build an appointment from a repository record.

        Args:
            raw: Mapping with ``start``, ``end`` and optional ``status``/``id``
            timezone: Zone applied to timestamps that carry no offset

        Raises:
            FormatError: If a timestamp is missing or malformed
        """
        if not isinstance(raw, Mapping):
            raise FormatError(f"Expected an appointment mapping, got {raw!r}")
        for field in ("start", "end"):
            if field not in raw:
                raise FormatError(f"Appointment {raw.get('id', '?')} has no '{field}'")

        record_id = raw.get("id")
        return cls(
            start=_parse_instant(raw["start"], timezone, "start"),
            end=_parse_instant(raw["end"], timezone, "end"),
            status=str(raw.get("status", AppointmentStatus.SCHEDULED.value)),
            id=str(record_id) if record_id is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start.to_iso8601_string(),
            "end": self.end.to_iso8601_string(),
            "status": self.status,
        }


@dataclass(frozen=True)
class Slot:
    """
    A bookable window derived from configured availability.

    Slots are never persisted; they are recomputed on every planning call.
    """
    start: DateTime
    end: DateTime
    is_available: bool

    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() / 60)

    def label(self) -> str:
        return f"{self.start.format('HH:mm')}-{self.end.format('HH:mm')}"

    def __str__(self) -> str:
        state = "available" if self.is_available else "unavailable"
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')} ({state})"
