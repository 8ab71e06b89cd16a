"""Pydantic models for data validation and serialization."""

from .business_hours import BusinessHours, DayHours, DayWindow
from .clinic import ClinicInfo, UserValidation
from .session import SessionRecord
from .slot import Slot, SlotTime
from .visit import Visit, VisitCreate, VisitStatus

__all__ = [
    "BusinessHours",
    "DayHours",
    "DayWindow",
    "ClinicInfo",
    "UserValidation",
    "SessionRecord",
    "Slot",
    "SlotTime",
    "Visit",
    "VisitCreate",
    "VisitStatus",
]
