"""
Clinic calendar facade.

Wires business hours, slot generation, availability and the booking and
cancellation coordinators for one clinic and one user session. Booking and
cancellation share a single-flight guard, so one action runs at a time.
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple

from config import settings
from db.supabase_client import SupabaseClient
from models.business_hours import BusinessHours
from models.slot import Slot
from notifications.notifier import Notifier
from scheduling.availability import SlotAvailabilityService
from scheduling.booking import BookingCoordinator
from scheduling.cancellation import CancellationCoordinator
from scheduling.guard import SingleFlightGuard
from scheduling.hours import CLOSED, require_open_day, resolve_day
from scheduling.slots import generate_candidates, is_within_horizon
from scheduling.visit_list import VisitList, VisitListStore
from utils.constants import MORNING_CUTOFF_HOUR
from utils.datetime_utils import clinic_now, to_clinic_time
from utils.exceptions import HorizonExceededError
from utils.request_client import ResilientRequestClient

logger = logging.getLogger(__name__)


class DayStatus(str, Enum):
    """Bookability of a calendar day."""

    OPEN = "open"
    CLOSED = "closed"
    PAST = "past"
    TOO_FAR = "too_far"


def split_am_pm(slots: List[Slot]) -> Tuple[List[Slot], List[Slot]]:
    """Split slots into morning (before 12:00) and afternoon lists."""
    am = [slot for slot in slots if slot.hour < MORNING_CUTOFF_HOUR]
    pm = [slot for slot in slots if slot.hour >= MORNING_CUTOFF_HOUR]
    return am, pm


class ClinicCalendar:
    """Booking calendar for one clinic."""

    def __init__(
        self,
        clinic_id: str,
        db: SupabaseClient,
        request_client: ResilientRequestClient,
        notifier: Notifier,
        tz_name: Optional[str] = None,
    ):
        self.clinic_id = clinic_id
        self.db = db
        self.request_client = request_client
        self.notifier = notifier
        self.tz_name = tz_name or settings.clinic_timezone

        self.business_hours: Optional[BusinessHours] = None
        self.store = VisitListStore()
        self.guard = SingleFlightGuard()
        self.availability = SlotAvailabilityService(
            db,
            request_client,
            capacity=settings.slot_capacity,
            horizon_days=settings.booking_horizon_days,
        )
        self.booking = BookingCoordinator(
            clinic_id,
            db,
            request_client,
            self.store,
            notifier,
            hours_loader=lambda: self.load_business_hours(refresh=True),
            availability=self.availability,
            guard=self.guard,
            tz_name=self.tz_name,
        )
        self.cancellation = CancellationCoordinator(
            db, request_client, self.store, notifier, guard=self.guard
        )

    @property
    def visits(self) -> VisitList:
        return self.store.visits

    @property
    def action_loading(self) -> bool:
        return self.guard.busy

    def _now(self, now: Optional[datetime]) -> datetime:
        return to_clinic_time(now, self.tz_name) if now else clinic_now(self.tz_name)

    async def load_business_hours(self, refresh: bool = False) -> BusinessHours:
        """Fetch (once, unless refresh) the clinic's business-hours table."""
        if self.business_hours is not None and not refresh:
            return self.business_hours

        info = await self.request_client.call(
            lambda: self.db.get_clinic_info(self.clinic_id), name="get_clinic_info"
        )
        self.business_hours = info.business_hours
        self.booking.business_hours = self.business_hours
        logger.debug(f"Business hours loaded for clinic {self.clinic_id}")
        return self.business_hours

    async def load_visits(self, user_row_id: str) -> VisitList:
        """Replace the local list with the user's booked visits from the server."""
        visits = await self.request_client.call(
            lambda: self.db.get_user_visits(self.clinic_id, user_row_id),
            name="get_user_visits",
        )
        return self.store.replace(visit for visit in visits if visit.is_active)

    def day_status(self, day: date, now: Optional[datetime] = None) -> DayStatus:
        """Classify a calendar day for display (disabled days)."""
        now = self._now(now)
        if day < now.date():
            return DayStatus.PAST
        if not is_within_horizon(day, now, settings.booking_horizon_days):
            return DayStatus.TOO_FAR
        if resolve_day(self.business_hours, day) is CLOSED:
            return DayStatus.CLOSED
        return DayStatus.OPEN

    async def slots_for(self, day: date, now: Optional[datetime] = None) -> List[Slot]:
        """
        Bookable slots for a day with live occupancy.

        Raises:
            HorizonExceededError: If the day is in the past or beyond the horizon
            ClosedDayError: If the clinic is closed that day
        """
        now = self._now(now)
        if not is_within_horizon(day, now, settings.booking_horizon_days):
            raise HorizonExceededError(f"{day.isoformat()} is not open for booking")

        hours = await self.load_business_hours()
        window = require_open_day(hours, day)

        candidates = generate_candidates(
            window,
            day,
            now,
            granularity=settings.slot_granularity_minutes,
            horizon_days=settings.booking_horizon_days,
            lead_hours=settings.same_day_lead_hours,
        )
        return await self.availability.load(self.clinic_id, day, candidates)
