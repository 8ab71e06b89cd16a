"""Candidate slot generation for one calendar day."""

from datetime import date, datetime, timedelta
from typing import List

from models.slot import SlotTime
from scheduling.hours import CLOSED, DayResolution
from utils.constants import (
    BOOKING_HORIZON_DAYS,
    SAME_DAY_LEAD_HOURS,
    SLOT_GRANULARITY_MINUTES,
)


def same_day_cutoff(now: datetime, lead_hours: int = SAME_DAY_LEAD_HOURS) -> datetime:
    """
    Earliest bookable start time today: the next full hour after now.

    10:05 gives 11:00 and 10:00 gives 11:00 (with the default one-hour lead).
    """
    hour_start = now.replace(minute=0, second=0, microsecond=0)
    return hour_start + timedelta(hours=lead_hours)


def is_within_horizon(
    day: date, now: datetime, horizon_days: int = BOOKING_HORIZON_DAYS
) -> bool:
    """True if day is today or at most horizon_days after today."""
    today = now.date()
    return today <= day <= today + timedelta(days=horizon_days)


def generate_candidates(
    window: DayResolution,
    day: date,
    now: datetime,
    granularity: int = SLOT_GRANULARITY_MINUTES,
    horizon_days: int = BOOKING_HORIZON_DAYS,
    lead_hours: int = SAME_DAY_LEAD_HOURS,
) -> List[SlotTime]:
    """
    Ordered candidate slots in [open, close) at fixed steps.

    Args:
        window: Resolved day window, or CLOSED
        day: Target calendar date (clinic-local)
        now: Current clinic-local time

    Returns:
        Fully materialised list; empty when closed, in the past, beyond the
        horizon, or when every slot falls before today's cutoff
    """
    if window is CLOSED or not is_within_horizon(day, now, horizon_days):
        return []

    cutoff_minutes = None
    if day == now.date():
        cutoff = same_day_cutoff(now, lead_hours)
        if cutoff.date() != day:
            return []
        cutoff_minutes = cutoff.hour * 60 + cutoff.minute

    candidates = []
    for minutes in range(window.open_minutes, window.close_minutes, granularity):
        if cutoff_minutes is not None and minutes < cutoff_minutes:
            continue
        candidates.append(SlotTime(hour=minutes // 60, minute=minutes % 60))
    return candidates
