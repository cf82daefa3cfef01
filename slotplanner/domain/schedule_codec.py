"""
Conversion between the two forms of a weekly schedule.

The persisted form is a compact list of time ranges per day. The editable
form is a set of fixed-size blocks per day, limited to the institute's
operating shifts. Everything here is pure: no I/O, no shared state.
"""

import logging
from datetime import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .exceptions import ConfigError, FormatError
from .models import (
    MINUTES_PER_DAY,
    TimeRange,
    WeekDay,
    WeeklySchedule,
    format_local_time,
    from_minutes,
    parse_local_time,
    to_minutes,
)

logger = logging.getLogger(__name__)

BLOCK_MINUTES = 30

# Morning and afternoon operating windows; blocks outside them are never selectable.
DEFAULT_SHIFTS = (
    TimeRange(start=time(9, 0), end=time(13, 0)),
    TimeRange(start=time(14, 0), end=time(18, 0)),
)

BlockSelection = Dict[WeekDay, Set[str]]


def default_schedule() -> WeeklySchedule:
    """
    Operating window used when a social worker has not configured hours.

    Monday to Thursday 09:00-13:00 and 14:00-18:00; Friday closes at 17:00.
    A fresh mapping is returned on every call.
    """
    schedule: WeeklySchedule = {}
    for day in WeekDay:
        afternoon_end = time(17, 0) if day is WeekDay.FRIDAY else time(18, 0)
        schedule[day] = [
            TimeRange(start=time(9, 0), end=time(13, 0)),
            TimeRange(start=time(14, 0), end=afternoon_end),
        ]
    return schedule


def parse_schedule(raw: Optional[Mapping[Any, Any]]) -> WeeklySchedule:
    """
    Parse the persisted ``{"monday": [{"start": "09:00", "end": "13:00"}]}`` form.

    Each day's ranges come back sorted by start. Malformed entries raise
    FormatError; nothing is skipped.
    """
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise FormatError(f"Schedule must be a mapping of week days, got {type(raw).__name__}")

    schedule: WeeklySchedule = {}
    for key, entries in raw.items():
        day = WeekDay.parse(key)
        if entries is None:
            entries = []
        if not isinstance(entries, (list, tuple)):
            raise FormatError(f"Ranges for {day.value} must be a list, got {type(entries).__name__}")

        ranges = [
            entry if isinstance(entry, TimeRange) else TimeRange.from_dict(entry)
            for entry in entries
        ]
        schedule.setdefault(day, []).extend(ranges)

    for day in schedule:
        schedule[day].sort(key=lambda r: r.start)
    return schedule


def schedule_to_dict(schedule: WeeklySchedule) -> Dict[str, List[Dict[str, str]]]:
    """Serialize a schedule to its persisted form, in week order, omitting empty days."""
    serialized: Dict[str, List[Dict[str, str]]] = {}
    for day in WeekDay:
        ranges = schedule.get(day) or []
        if ranges:
            serialized[day.value] = [r.to_dict() for r in sorted(ranges, key=lambda r: r.start)]
    return serialized


class ScheduleCodec:
    """
    Expands range schedules into block selections and compresses them back.

    Example (30 minute blocks):
        {tuesday: [09:00-10:00]}          -> {tuesday: {"09:00", "09:30"}}
        {thursday: {"09:00", "10:00"}}    -> {thursday: [09:00-09:30, 10:00-10:30]}
    """

    def __init__(
        self,
        shifts: Sequence[TimeRange] = DEFAULT_SHIFTS,
        block_minutes: int = BLOCK_MINUTES,
    ):
        self.shifts = tuple(sorted(shifts, key=lambda s: s.start))
        self.block_minutes = block_minutes

        for previous, current in zip(self.shifts, self.shifts[1:]):
            if previous.overlaps(current):
                raise ConfigError(f"Shifts {previous} and {current} overlap")

        # Fail at construction time rather than on first use.
        self._candidate_minutes(self._resolve_block_minutes(None))

    def _resolve_block_minutes(self, block_minutes: Optional[int]) -> int:
        value = self.block_minutes if block_minutes is None else block_minutes
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError(f"block_minutes must be a positive integer, got {value!r}")
        return value

    def _candidate_minutes(self, block_minutes: int) -> List[int]:
        candidates: List[int] = []
        for shift in self.shifts:
            if shift.start_minutes % block_minutes:
                raise ConfigError(
                    f"Shift {shift} does not start on a {block_minutes} minute boundary"
                )
            if shift.duration_minutes() % block_minutes:
                raise ConfigError(
                    f"{block_minutes} minute blocks do not evenly divide shift {shift}"
                )
            candidates.extend(range(shift.start_minutes, shift.end_minutes, block_minutes))
        return candidates

    def candidate_blocks(self, block_minutes: Optional[int] = None) -> List[str]:
        """All selectable block starts, in chronological order."""
        minutes = self._candidate_minutes(self._resolve_block_minutes(block_minutes))
        return [format_local_time(from_minutes(m)) for m in minutes]

    def expand_to_blocks(
        self,
        schedule: Mapping[Any, Iterable[Any]],
        block_minutes: Optional[int] = None,
    ) -> BlockSelection:
        """
        Expand per-day ranges into the set of candidate blocks they cover.

        A block ``b`` is selected when ``range.start <= b < range.end``. Only
        blocks inside the configured shifts can ever be produced, so ranges
        lying outside every shift contribute nothing. Days that end up with
        no blocks are omitted.
        """
        block_minutes = self._resolve_block_minutes(block_minutes)
        candidates = self._candidate_minutes(block_minutes)

        expanded: BlockSelection = {}
        for key, ranges in schedule.items():
            day = WeekDay.parse(key)
            selected: Set[str] = set()
            for time_range in ranges or ():
                if not isinstance(time_range, TimeRange):
                    time_range = TimeRange.from_dict(time_range)
                selected.update(
                    format_local_time(from_minutes(b))
                    for b in candidates
                    if time_range.start_minutes <= b < time_range.end_minutes
                )
            if selected:
                expanded.setdefault(day, set()).update(selected)

        return expanded

    def compress_to_ranges(
        self,
        blocks: Mapping[Any, Iterable[Any]],
        block_minutes: Optional[int] = None,
    ) -> WeeklySchedule:
        """
        Merge selected blocks into contiguous ranges per day.

        Successive block starts exactly ``block_minutes`` apart extend the
        current range; any larger gap closes it at ``last + block_minutes``
        and opens a new one. Days without blocks are omitted.

        Raises:
            FormatError: If a block is malformed or not block-aligned
            ConfigError: If block_minutes is not a positive integer
        """
        block_minutes = self._resolve_block_minutes(block_minutes)

        parsed: Dict[WeekDay, Set[int]] = {}
        for key, day_blocks in blocks.items():
            day = WeekDay.parse(key)
            starts = {self._parse_block(b, block_minutes) for b in day_blocks or ()}
            if starts:
                parsed.setdefault(day, set()).update(starts)

        schedule: WeeklySchedule = {}
        for day in sorted(parsed, key=lambda d: d.index):
            schedule[day] = self._merge_runs(sorted(parsed[day]), block_minutes)
            logger.debug(
                "Compressed %d blocks into %d ranges for %s",
                len(parsed[day]), len(schedule[day]), day.value,
            )

        return schedule

    @staticmethod
    def _parse_block(block: Any, block_minutes: int) -> int:
        minutes = to_minutes(parse_local_time(block))
        if minutes % block_minutes:
            raise FormatError(
                f"Block '{block}' is not aligned to a {block_minutes} minute boundary"
            )
        return minutes

    @staticmethod
    def _merge_runs(starts: List[int], block_minutes: int) -> List[TimeRange]:
        ranges: List[TimeRange] = []
        run_start = previous = starts[0]

        for current in starts[1:]:
            if current - previous == block_minutes:
                previous = current
                continue
            ranges.append(ScheduleCodec._close_run(run_start, previous, block_minutes))
            run_start = previous = current

        ranges.append(ScheduleCodec._close_run(run_start, previous, block_minutes))
        return ranges

    @staticmethod
    def _close_run(run_start: int, last_block: int, block_minutes: int) -> TimeRange:
        end = last_block + block_minutes
        if end >= MINUTES_PER_DAY:
            raise FormatError(
                f"Block {format_local_time(from_minutes(last_block))} would end past midnight"
            )
        return TimeRange(start=from_minutes(run_start), end=from_minutes(end))

    def off_grid_days(
        self,
        schedule: Mapping[Any, Iterable[Any]],
        block_minutes: Optional[int] = None,
    ) -> List[WeekDay]:
        """
        Days whose ranges change when passed through the editor grid.

        A range outside the shifts or off the block boundaries counts as a
        change. So do ranges that touch or overlap and get merged.
        """
        normalized = self.compress_to_ranges(self.expand_to_blocks(schedule, block_minutes), block_minutes)
        original = parse_schedule(schedule)
        return [
            day for day in WeekDay
            if (original.get(day) or []) != (normalized.get(day) or [])
        ]

    @staticmethod
    def weekly_minutes(schedule: Mapping[Any, Iterable[TimeRange]]) -> int:
        """Total configured minutes across the week."""
        return sum(r.duration_minutes() for ranges in schedule.values() for r in ranges or ())
