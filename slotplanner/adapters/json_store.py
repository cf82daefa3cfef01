"""
File-backed schedule and appointment repository.

Stands in for the real database in demos and CLI usage. Implements both
``ScheduleRepositoryProtocol`` and ``AppointmentRepositoryProtocol``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pendulum import DateTime

from ..domain.exceptions import FormatError
from ..domain.models import Appointment, WeeklySchedule
from ..domain.schedule_codec import parse_schedule, schedule_to_dict

logger = logging.getLogger(__name__)


class JsonDataStore:
    """
    Repository over a single JSON document.

    Expected shape:
        {
          "workers": {"<id>": {"name": "...", "email": "...", "schedule": {...}}},
          "appointments": [{"id": "...", "worker_id": "...", "student_id": "...",
                            "start": "...", "end": "...", "status": "scheduled"}]
        }

    Unlike a lenient loader, malformed records raise FormatError instead of
    being skipped, so a broken file never masquerades as free time.
    """

    def __init__(self, data_file: Path, timezone: str = "America/Santiago"):
        """
        Initialize the store.

        Args:
            data_file: Path to the JSON document
            timezone: Zone applied to appointment timestamps without offset
        """
        self.data_file = Path(data_file)
        self.timezone = timezone
        self._data = self._load()

    def _load(self) -> Dict[str, Any]:
        """Load the document, or start empty if the file doesn't exist."""
        if not self.data_file.exists():
            logger.warning("Data file %s not found, starting with an empty store", self.data_file)
            return {"workers": {}, "appointments": []}

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise FormatError(f"Invalid JSON in {self.data_file}: {exc}") from exc

        if not isinstance(data, dict):
            raise FormatError(f"{self.data_file} must contain an object at the root level")

        data.setdefault("workers", {})
        data.setdefault("appointments", [])
        return data

    def _save(self) -> None:
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.data_file, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)

    def workers(self) -> Dict[str, Dict[str, Any]]:
        """Configured social workers keyed by id."""
        return dict(self._data["workers"])

    def find_worker(self, worker_id: str) -> Optional[Dict[str, Any]]:
        return self._data["workers"].get(worker_id)

    async def get(self, worker_id: str) -> Optional[WeeklySchedule]:
        worker = self.find_worker(worker_id)
        if worker is None or worker.get("schedule") is None:
            return None
        return parse_schedule(worker["schedule"])

    async def put(self, worker_id: str, schedule: WeeklySchedule) -> None:
        worker = self._data["workers"].setdefault(worker_id, {"name": worker_id})
        worker["schedule"] = schedule_to_dict(schedule)
        self._save()

    async def list_by_worker_and_range(
        self,
        worker_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Appointment]:
        """
        Appointments of one worker that intersect the requested window.

        Returns:
            Appointments sorted by start
        """
        return self._list_in_range("worker_id", worker_id, start, end)

    async def list_by_student_and_range(
        self,
        student_id: str,
        start: DateTime,
        end: DateTime,
    ) -> List[Appointment]:
        """Appointments booked by one student that intersect the window."""
        return self._list_in_range("student_id", student_id, start, end)

    def _list_in_range(self, owner_field: str, owner_id: str, start: DateTime, end: DateTime) -> List[Appointment]:
        result: List[Appointment] = []
        for record in self._data["appointments"]:
            if not isinstance(record, dict):
                raise FormatError(f"Expected an appointment object, got {record!r}")
            if record.get(owner_field) != owner_id:
                continue

            appointment = Appointment.from_dict(record, self.timezone)
            if appointment.start < end and appointment.end > start:
                result.append(appointment)

        return sorted(result, key=lambda a: a.start)
