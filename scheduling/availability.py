"""Slot availability: live booking counts against a fixed per-slot capacity."""

import logging
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from db.supabase_client import SupabaseClient
from models.slot import Slot, SlotTime
from utils.constants import BOOKING_HORIZON_DAYS, SLOT_CAPACITY
from utils.exceptions import SchedulingError
from utils.request_client import ResilientRequestClient

logger = logging.getLogger(__name__)


def normalise_time_key(value: str) -> str:
    """Normalise "H:MM", "HH:MM" or "HH:MM:SS" to the "HH:MM:00" slot key."""
    parts = str(value).strip().split(":")
    hour = int(parts[0])
    minute = int(parts[1]) if len(parts) > 1 else 0
    return f"{hour:02d}:{minute:02d}:00"


def counts_by_time_key(rows: Iterable[Mapping]) -> Dict[str, int]:
    """Fold remote rows [{visit_time, booking_count}] into {time_key: count}."""
    counts: Dict[str, int] = {}
    for row in rows:
        raw_time = row.get("visit_time")
        if not raw_time:
            continue
        try:
            key = normalise_time_key(raw_time)
        except ValueError:
            logger.warning(f"Skipping availability row with bad time: {raw_time!r}")
            continue
        counts[key] = counts.get(key, 0) + int(row.get("booking_count") or 0)
    return counts


def annotate(
    candidates: Iterable[SlotTime],
    booking_counts: Mapping[str, int],
    capacity: int = SLOT_CAPACITY,
) -> List[Slot]:
    """
    Attach live booking counts to candidate slots.

    Candidates missing from booking_counts get a count of 0.
    """
    return [
        Slot(
            hour=candidate.hour,
            minute=candidate.minute,
            booking_count=max(0, int(booking_counts.get(candidate.time_key, 0))),
            capacity=capacity,
        )
        for candidate in candidates
    ]


class SlotAvailabilityService:
    """
    Fetches per-date booking counts (one remote query per date) and annotates
    candidates. Availability is a hint: a failed query degrades to "everything
    available" and the authoritative check happens at commit time.
    """

    def __init__(
        self,
        db: SupabaseClient,
        request_client: ResilientRequestClient,
        capacity: int = SLOT_CAPACITY,
        horizon_days: int = BOOKING_HORIZON_DAYS,
    ):
        self.db = db
        self.request_client = request_client
        self.capacity = capacity
        self.horizon_days = horizon_days

    async def fetch_counts(self, clinic_id: str, day: date) -> Optional[Dict[str, int]]:
        """Booking counts for a date, or None when the remote query failed."""
        try:
            rows = await self.request_client.call(
                lambda: self.db.get_slot_availability(clinic_id, day, self.horizon_days),
                name="get_slot_availability",
            )
        except SchedulingError as e:
            logger.warning(
                f"Slot availability unavailable for {clinic_id} on {day}: {e}. "
                f"Treating all slots as available."
            )
            return None
        return counts_by_time_key(rows)

    async def load(
        self, clinic_id: str, day: date, candidates: List[SlotTime]
    ) -> List[Slot]:
        """Annotate candidates with live counts for the date."""
        if not candidates:
            return []
        counts = await self.fetch_counts(clinic_id, day)
        return annotate(candidates, counts or {}, self.capacity)
