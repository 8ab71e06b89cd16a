"""
Datetime utilities for consistent timezone handling across the application.
All datetime operations should use timezone-aware datetimes.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def clinic_now(tz_name: str) -> datetime:
    """Current time in the clinic's timezone."""
    return datetime.now(ZoneInfo(tz_name))


def to_clinic_time(dt: datetime, tz_name: str) -> datetime:
    """
    Convert a datetime into the clinic's timezone.
    Naive datetimes are assumed to already be clinic-local.
    """
    tz = ZoneInfo(tz_name)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def parse_iso_datetime(iso_string: str) -> datetime:
    """
    Parse ISO format datetime string to timezone-aware datetime.
    Handles both 'Z' suffix and '+00:00' timezone formats.

    Args:
        iso_string: ISO format datetime string

    Returns:
        Timezone-aware datetime object

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    # Normalize 'Z' suffix to '+00:00'
    normalized = iso_string.replace("Z", "+00:00")

    try:
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError as e:
        raise ValueError(f"Invalid datetime string: {iso_string}") from e


def to_iso_string(dt: datetime) -> str:
    """
    Convert datetime to ISO format string.
    Ensures timezone-aware datetimes are properly formatted.

    Args:
        dt: Datetime object (timezone-aware or naive)

    Returns:
        ISO format string
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt.isoformat()


def parse_hhmm(value: str) -> Tuple[int, int]:
    """
    Parse "HH:MM" (or "HH:MM:SS", or bare "HH") into (hour, minute).

    Raises:
        ValueError: If the string is not a valid time of day
    """
    parts = value.strip().split(":")
    try:
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError as e:
        raise ValueError(f"Invalid time string: {value}") from e

    if not (0 <= hour <= 24 and 0 <= minute < 60) or (hour == 24 and minute):
        raise ValueError(f"Invalid time string: {value}")
    return hour, minute


def minutes_of_day(hour: int, minute: int) -> int:
    """Minutes elapsed since midnight."""
    return hour * 60 + minute


def day_bounds(day: date, tz_name: str) -> Tuple[datetime, datetime]:
    """
    Calendar-day window [local midnight, midnight + 24h) in the clinic timezone.

    Returns:
        Tuple of timezone-aware (start, end) datetimes
    """
    start = datetime.combine(day, time.min, tzinfo=ZoneInfo(tz_name))
    return start, start + timedelta(hours=24)


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """Epoch milliseconds for dt (default: now)."""
    dt = dt or utc_now()
    return int(dt.timestamp() * 1000)


def from_epoch_millis(millis: int) -> datetime:
    """Timezone-aware UTC datetime from epoch milliseconds."""
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
