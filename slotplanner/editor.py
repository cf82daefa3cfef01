"""
Mutable block selection backing the availability editor grid.

The selection is owned by whoever drives the editor. The codec never sees
it until save time, when ``snapshot()`` is passed to ``compress_to_ranges``.
"""

from typing import Dict, List, Set

from .domain.exceptions import FormatError
from .domain.models import WeekDay, WeeklySchedule, format_local_time, parse_local_time
from .domain.schedule_codec import ScheduleCodec, default_schedule


class BlockSelection:
    """Per-day set of selected blocks, restricted to the codec's candidate grid."""

    def __init__(self, codec: ScheduleCodec):
        self.codec = codec
        self._grid: List[str] = codec.candidate_blocks()
        self._selected: Dict[WeekDay, Set[str]] = {}

    @classmethod
    def from_schedule(cls, codec: ScheduleCodec, schedule: WeeklySchedule) -> "BlockSelection":
        selection = cls(codec)
        for day, blocks in codec.expand_to_blocks(schedule).items():
            selection._selected[day] = set(blocks)
        return selection

    @property
    def grid(self) -> List[str]:
        """Selectable block starts, in chronological order."""
        return list(self._grid)

    def _canonical(self, block: str) -> str:
        canonical = format_local_time(parse_local_time(block))
        if canonical not in self._grid:
            raise FormatError(f"Block '{block}' is outside the selectable operating shifts")
        return canonical

    def is_selected(self, day, block: str) -> bool:
        return self._canonical(block) in self._selected.get(WeekDay.parse(day), set())

    def toggle(self, day, block: str) -> bool:
        """Flip one block; returns the new selection state."""
        day = WeekDay.parse(day)
        block = self._canonical(block)
        selected = self._selected.setdefault(day, set())
        if block in selected:
            selected.discard(block)
            return False
        selected.add(block)
        return True

    def select_run(self, day, first: str, last: str, selected: bool = True) -> None:
        """Apply a drag gesture: set every grid block between first and last (inclusive)."""
        day = WeekDay.parse(day)
        low, high = sorted((self._grid.index(self._canonical(first)), self._grid.index(self._canonical(last))))
        blocks = self._selected.setdefault(day, set())
        for block in self._grid[low:high + 1]:
            if selected:
                blocks.add(block)
            else:
                blocks.discard(block)

    def enable_day(self, day) -> None:
        """Activate a day with the default operating window."""
        day = WeekDay.parse(day)
        defaults = self.codec.expand_to_blocks({day: default_schedule()[day]})
        self._selected[day] = set(defaults.get(day, set()))

    def clear_day(self, day) -> None:
        self._selected[WeekDay.parse(day)] = set()

    def active_days(self) -> List[WeekDay]:
        return [day for day in WeekDay if self._selected.get(day)]

    def snapshot(self) -> Dict[WeekDay, Set[str]]:
        """Independent copy of the current selection, safe to hand to the codec."""
        return {day: set(blocks) for day, blocks in self._selected.items() if blocks}
