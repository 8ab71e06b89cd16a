"""Slot generation, availability and booking coordination."""

from .availability import SlotAvailabilityService, annotate
from .booking import BookingCoordinator, BookingState
from .calendar import ClinicCalendar, DayStatus, split_am_pm
from .cancellation import CancellationCoordinator, CancellationState
from .check_in import CheckInService
from .hours import CLOSED, is_within_hours, resolve_day
from .slots import generate_candidates

__all__ = [
    "SlotAvailabilityService",
    "annotate",
    "BookingCoordinator",
    "BookingState",
    "ClinicCalendar",
    "DayStatus",
    "split_am_pm",
    "CancellationCoordinator",
    "CancellationState",
    "CheckInService",
    "CLOSED",
    "is_within_hours",
    "resolve_day",
    "generate_candidates",
]
