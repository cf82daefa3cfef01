"""
Application services for booking and availability editing.

The service coordinates the schedule and appointment repositories and
delegates the actual computations to the domain-level ``SlotPlanner`` and
``ScheduleCodec``. Repositories are plain protocols so that a database
adapter, the JSON store or a test stub can be plugged in.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Set

from pendulum import DateTime

from ..domain.calendar import day_bounds, week_bounds
from ..domain.exceptions import ConfigError, SlotPlannerError
from ..domain.models import Appointment, Slot, WeekDay, WeeklySchedule
from ..domain.schedule_codec import ScheduleCodec, default_schedule
from ..domain.slot_planner import DayStatus, SlotPlanner

logger = logging.getLogger(__name__)


class ScheduleRepositoryProtocol(Protocol):
    """Protocol describing the schedule storage needed by the service."""

    async def get(self, worker_id: str) -> Optional[WeeklySchedule]:
        """Return the worker's schedule, or None if never configured."""

    async def put(self, worker_id: str, schedule: WeeklySchedule) -> None:
        """Replace the worker's schedule wholesale."""


class AppointmentRepositoryProtocol(Protocol):
    """Protocol describing the appointment lookup needed by the service."""

    async def list_by_worker_and_range(
        self,
        worker_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Appointment]:
        """Return the worker's appointments intersecting ``[start, end]``."""

    async def list_by_student_and_range(
        self,
        student_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Appointment]:
        """Return the student's appointments intersecting ``[start, end]``."""


class BookingService:
    """
    Orchestrates repository reads/writes around the pure scheduling core.

    Availability flags are a point-in-time read. Preventing two students from
    booking the same slot is the appointment repository's job at write time.
    """

    def __init__(
        self,
        schedules: ScheduleRepositoryProtocol,
        appointments: AppointmentRepositoryProtocol,
        planner: SlotPlanner,
        codec: ScheduleCodec,
        weekly_limit: int = 1,
    ) -> None:
        if weekly_limit <= 0:
            raise ConfigError(f"weekly_limit must be greater than zero, got {weekly_limit}")
        self._schedules = schedules
        self._appointments = appointments
        self._planner = planner
        self._codec = codec
        self._weekly_limit = weekly_limit

    async def effective_schedule(self, worker_id: str) -> WeeklySchedule:
        """The stored schedule, or the default operating window if none exists."""
        schedule = await self._schedules.get(worker_id)
        if schedule is None:
            logger.debug("No schedule stored for %s, using default operating window", worker_id)
            return default_schedule()
        return schedule

    async def available_slots(
        self,
        *,
        worker_id: str,
        date: Any,
        now: Optional[datetime] = None,
        slot_minutes: Optional[int] = None,
    ) -> List[Slot]:
        """
        Slots for one worker and day, ready for the booking screen.

        A malformed schedule or appointment must not block browsing other
        days, so any core error is logged and reported as "no availability".
        """
        try:
            schedule = await self.effective_schedule(worker_id)
            start, end = day_bounds(date, self._planner.timezone)
            appointments = await self._appointments.list_by_worker_and_range(worker_id, start, end)
            return self._planner.plan_day(
                date,
                schedule=schedule,
                existing_appointments=appointments,
                slot_minutes=slot_minutes,
                now=now,
            )
        except SlotPlannerError as exc:
            logger.warning("Showing no availability for %s on %s: %s", worker_id, date, exc)
            return []

    async def day_status(self, *, worker_id: str, date: Any) -> DayStatus:
        """
        Why a day has (or lacks) availability.

        Falls back like ``available_slots``: a core error reads as an
        unconfigured day.
        """
        try:
            schedule = await self.effective_schedule(worker_id)
            return self._planner.day_status(date, schedule)
        except SlotPlannerError as exc:
            logger.warning("Treating %s on %s as unconfigured: %s", worker_id, date, exc)
            return DayStatus.UNCONFIGURED

    async def load_block_selection(self, worker_id: str) -> Dict[WeekDay, Set[str]]:
        """Current availability as editor blocks."""
        schedule = await self.effective_schedule(worker_id)
        return self._codec.expand_to_blocks(schedule)

    async def save_block_selection(
        self,
        worker_id: str,
        blocks: Mapping[Any, Iterable[str]],
    ) -> WeeklySchedule:
        """
        Compress editor blocks and persist them.

        Raises:
            FormatError: If a block is malformed; nothing is written
        """
        schedule = self._codec.compress_to_ranges(blocks)
        await self._schedules.put(worker_id, schedule)
        logger.info(
            "Saved schedule for %s: %d active days, %d minutes per week",
            worker_id, len(schedule), self._codec.weekly_minutes(schedule),
        )
        return schedule

    def weekly_limit_reached(
        self,
        appointments: Iterable[Appointment],
        date: Any,
        limit: Optional[int] = None,
    ) -> bool:
        """
        Check whether a student already holds ``limit`` active appointments
        in the Monday-start week containing ``date``.

        ``limit`` defaults to the service's configured weekly limit.
        """
        if limit is None:
            limit = self._weekly_limit
        week_start, week_end = week_bounds(date, self._planner.timezone)
        active = [
            appt for appt in appointments
            if not appt.is_cancelled and week_start <= appt.start <= week_end
        ]
        return len(active) >= limit

    async def student_limit_reached(self, *, student_id: str, date: Any) -> bool:
        """Whether the student may not book another appointment that week."""
        week_start, week_end = week_bounds(date, self._planner.timezone)
        appointments = await self._appointments.list_by_student_and_range(student_id, week_start, week_end)
        reached = self.weekly_limit_reached(appointments, date)
        if reached:
            logger.info("Student %s reached the weekly limit of %d for %s", student_id, self._weekly_limit, date)
        return reached
