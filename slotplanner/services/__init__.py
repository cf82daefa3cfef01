"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking import AppointmentRepositoryProtocol, BookingService, ScheduleRepositoryProtocol

__all__ = ["AppointmentRepositoryProtocol", "BookingService", "ScheduleRepositoryProtocol"]
