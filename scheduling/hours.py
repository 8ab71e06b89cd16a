"""
Business-hours resolution.

Maps a calendar date to the clinic's open window for that weekday. Resolution
fails closed: a day flagged closed, a weekday missing from the table, or an
empty window all resolve to CLOSED. Entries that do not parse are already
closed by the time the table is built.
"""

from datetime import date, datetime
from typing import Optional, Union

from models.business_hours import BusinessHours, DayWindow
from utils.constants import WEEKDAY_KEYS
from utils.exceptions import ClosedDayError
from utils.datetime_utils import to_clinic_time


class _Closed:
    """Marker for a day without an open window."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLOSED"

    def __bool__(self) -> bool:
        return False


CLOSED = _Closed()

DayResolution = Union[DayWindow, _Closed]


def weekday_key(day: date) -> str:
    """Weekday name as used by the business-hours table (sunday..saturday)."""
    # date.weekday() is Monday=0; the table is indexed Sunday=0
    return WEEKDAY_KEYS[(day.weekday() + 1) % 7]


def resolve_day(table: Optional[BusinessHours], day: date) -> DayResolution:
    """
    Resolve the open window for a calendar date.

    Returns:
        DayWindow, or CLOSED if the day is flagged closed, missing from the
        table, or has an empty window
    """
    if table is None:
        return CLOSED

    key = weekday_key(day)
    hours = table.for_weekday(key)
    if hours is None or hours.closed:
        return CLOSED

    window = DayWindow.from_day_hours(hours)
    if window.close_minutes <= window.open_minutes:
        return CLOSED
    return window


def require_open_day(table: Optional[BusinessHours], day: date) -> DayWindow:
    """
    Resolve the open window or raise.

    Raises:
        ClosedDayError: If the clinic is closed on that day
    """
    window = resolve_day(table, day)
    if window is CLOSED:
        raise ClosedDayError(f"Clinic is closed on {day.isoformat()} ({weekday_key(day)})")
    return window


def is_within_hours(
    table: Optional[BusinessHours], instant: datetime, tz_name: Optional[str] = None
) -> bool:
    """
    Check whether an instant falls inside business hours.

    Args:
        table: Business-hours table
        instant: Moment to check; converted to clinic time when tz_name is given
        tz_name: Clinic timezone name

    Returns:
        True if open_minutes <= minute_of_day < close_minutes
    """
    if tz_name:
        instant = to_clinic_time(instant, tz_name)

    window = resolve_day(table, instant.date())
    if window is CLOSED:
        return False
    return window.contains(instant.hour * 60 + instant.minute)
