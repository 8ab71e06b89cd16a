"""
Booking transaction coordinator.

IDLE -> VALIDATING -> OPTIMISTIC_APPLIED -> COMMITTING -> COMMITTED | ROLLED_BACK

The one-booking-per-day check is read-then-write and therefore best-effort:
two devices booking within the same validation window can both pass it. The
database constraint is the final arbiter; a conflicting insert surfaces as
DuplicateBookingError and is rolled back like any other failure.
"""

import asyncio
import logging
from datetime import date, datetime
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from config import settings
from db.supabase_client import SupabaseClient
from models.business_hours import BusinessHours
from models.visit import Visit, VisitCreate, VisitStatus
from notifications.notifier import Notifier
from scheduling.availability import SlotAvailabilityService
from scheduling.guard import SingleFlightGuard
from scheduling.hours import is_within_hours, require_open_day
from scheduling.slots import is_within_horizon, same_day_cutoff
from scheduling.visit_list import (
    CommitReplace,
    OptimisticInsert,
    RollbackRemove,
    VisitListStore,
    VisitRemoved,
)
from utils.constants import OPTIMISTIC_ID_PREFIX
from utils.datetime_utils import clinic_now, day_bounds, to_clinic_time
from utils.exceptions import (
    DuplicateBookingError,
    HorizonExceededError,
    OutsideBusinessHoursError,
    SchedulingError,
    SlotFullError,
    UserNotFoundError,
)
from utils.request_client import ResilientRequestClient

logger = logging.getLogger(__name__)

GENERIC_BOOKING_FAILURE = "Booking failed. Please try again."


class BookingState(str, Enum):
    """Booking attempt states."""

    IDLE = "idle"
    VALIDATING = "validating"
    OPTIMISTIC_APPLIED = "optimistic_applied"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


def booked_visits_on(visits: List[Visit], day: date, tz_name: str) -> List[Visit]:
    """Booked visits whose book_time falls in the clinic-local calendar day."""
    start, end = day_bounds(day, tz_name)
    return [
        visit
        for visit in visits
        if visit.is_active and start <= visit.book_time < end
    ]


class BookingCoordinator:
    """Orchestrates one booking (or appointment change) at a time."""

    def __init__(
        self,
        clinic_id: str,
        db: SupabaseClient,
        request_client: ResilientRequestClient,
        store: VisitListStore,
        notifier: Notifier,
        business_hours: Optional[BusinessHours] = None,
        hours_loader: Optional[Callable[[], Awaitable[BusinessHours]]] = None,
        availability: Optional[SlotAvailabilityService] = None,
        guard: Optional[SingleFlightGuard] = None,
        tz_name: Optional[str] = None,
        horizon_days: Optional[int] = None,
        capacity: Optional[int] = None,
    ):
        self.clinic_id = clinic_id
        self.db = db
        self.request_client = request_client
        self.store = store
        self.notifier = notifier
        self.business_hours = business_hours
        self.hours_loader = hours_loader
        self.availability = availability
        self.guard = guard or SingleFlightGuard()
        self.tz_name = tz_name or settings.clinic_timezone
        self.horizon_days = horizon_days or settings.booking_horizon_days
        self.capacity = capacity or settings.slot_capacity
        self.state = BookingState.IDLE

    @property
    def action_loading(self) -> bool:
        return self.guard.busy

    async def book(
        self, user_row_id: str, slot_start: datetime, now: Optional[datetime] = None
    ) -> Optional[Visit]:
        """
        Book a slot for a user.

        Returns:
            The confirmed visit, or None if another action was in flight

        Raises:
            HorizonExceededError, ClosedDayError: Before any remote call
            UserNotFoundError: If the user is no longer valid, before any write
            DuplicateBookingError, SlotFullError: Pre- or post-commit
            RequestTimeoutError, NetworkError, RemoteServiceError: Remote failures
        """
        return await self._run(user_row_id, slot_start, now, replace_existing=False)

    async def change_appointment(
        self, user_row_id: str, slot_start: datetime, now: Optional[datetime] = None
    ) -> Optional[Visit]:
        """
        Move the user's booking on that day to a new time.

        Every booked visit of the user on the target day is cancelled first,
        then the new slot is booked. A failed create leaves the cancellations
        in place.
        """
        return await self._run(user_row_id, slot_start, now, replace_existing=True)

    async def _run(
        self,
        user_row_id: str,
        slot_start: datetime,
        now: Optional[datetime],
        replace_existing: bool,
    ) -> Optional[Visit]:
        attempt_id = self.guard.try_acquire()
        if attempt_id is None:
            logger.debug("Booking attempt dropped: another action is in flight")
            return None

        temp_id = None
        try:
            self.state = BookingState.VALIDATING
            start = to_clinic_time(slot_start, self.tz_name)
            now = to_clinic_time(now, self.tz_name) if now else clinic_now(self.tz_name)
            self._check_window(start, now)
            refresh_hours = True
            if self.business_hours is None:
                await self._refresh_hours()
                refresh_hours = False
            self._check_hours(start, self.business_hours)

            booked_today, counts, hours = await self._load_validation_state(
                user_row_id, start.date(), refresh_hours
            )
            if hours is not None:
                self._check_hours(start, hours)

            if booked_today and not replace_existing:
                raise DuplicateBookingError(
                    f"User {user_row_id} already has a booking on {start.date().isoformat()}"
                )
            self._check_capacity(start, counts, booked_today if replace_existing else [])

            if replace_existing:
                await self._cancel_visits(booked_today)

            temp_id = f"{OPTIMISTIC_ID_PREFIX}{attempt_id}"
            self.store.dispatch(
                OptimisticInsert(
                    Visit(
                        id=temp_id,
                        user_row_id=user_row_id,
                        clinic_id=self.clinic_id,
                        book_time=start,
                        visit_time=start,
                        status=VisitStatus.BOOKED,
                        is_optimistic=True,
                    )
                )
            )
            self.state = BookingState.OPTIMISTIC_APPLIED

            payload = VisitCreate(
                user_row_id=user_row_id,
                clinic_id=self.clinic_id,
                book_time=start,
                visit_time=start,
                status=VisitStatus.BOOKED,
                is_first=False,
            )
            self.state = BookingState.COMMITTING
            confirmed = await self.request_client.call(
                lambda: self.db.create_visit(payload), name="create_visit"
            )

            self.store.dispatch(CommitReplace(temp_id, confirmed))
            self.state = BookingState.COMMITTED
            logger.info(
                f"Visit {confirmed.id} booked for user {user_row_id} at {start.isoformat()}"
            )

        except Exception as e:
            self._rollback(temp_id)
            if isinstance(e, SchedulingError):
                logger.warning(f"Booking for user {user_row_id} failed: {e}")
                message = e.user_message
            else:
                logger.error(f"Unexpected booking failure for user {user_row_id}: {e}", exc_info=True)
                message = GENERIC_BOOKING_FAILURE
            await self.notifier.error(message)
            raise

        finally:
            if self.state is not BookingState.COMMITTED:
                self._rollback(temp_id)
            self.guard.release(attempt_id)

        await self._confirm(start, replace_existing)
        return confirmed

    async def _confirm(self, start: datetime, changed: bool) -> None:
        time_label = start.strftime("%H:%M")
        if changed:
            message = f"Appointment changed to {time_label}"
        else:
            message = f"Appointment booked: {time_label}"
        # Committed server-side; a notifier failure must not turn into a rollback
        try:
            await self.notifier.success(message)
        except Exception as e:
            logger.error(f"Could not confirm visit at {time_label}: {e}", exc_info=True)

    def _rollback(self, temp_id: Optional[str]) -> None:
        self.state = BookingState.ROLLED_BACK
        if temp_id is not None:
            self.store.dispatch(RollbackRemove(temp_id))

    def _check_window(self, start: datetime, now: datetime) -> None:
        """Horizon and same-day cutoff; needs neither hours nor the network."""
        day = start.date()
        if not is_within_horizon(day, now, self.horizon_days):
            raise HorizonExceededError(
                f"{day.isoformat()} is outside the {self.horizon_days}-day booking window"
            )
        if day == now.date() and start < same_day_cutoff(now, settings.same_day_lead_hours):
            raise HorizonExceededError(f"{start.strftime('%H:%M')} is too soon to book today")

    def _check_hours(self, start: datetime, hours: Optional[BusinessHours]) -> None:
        day = start.date()
        require_open_day(hours, day)
        if not is_within_hours(hours, start):
            raise OutsideBusinessHoursError(
                f"{start.strftime('%H:%M')} is outside business hours on {day.isoformat()}"
            )

    def _check_capacity(
        self,
        start: datetime,
        counts: Optional[Dict[str, int]],
        own_visits: List[Visit],
    ) -> None:
        if counts is None:
            return

        key = f"{start.hour:02d}:{start.minute:02d}:00"
        taken = counts.get(key, 0)
        # The user's own bookings in this slot are about to be cancelled
        for visit in own_visits:
            local = to_clinic_time(visit.book_time, self.tz_name)
            if (local.hour, local.minute) == (start.hour, start.minute):
                taken -= 1

        if taken >= self.capacity:
            raise SlotFullError(f"Slot {key} is full ({taken}/{self.capacity})")

    async def _load_validation_state(
        self, user_row_id: str, day: date, refresh_hours: bool = True
    ) -> Tuple[List[Visit], Optional[Dict[str, int]], Optional[BusinessHours]]:
        user, visits, counts, hours = await asyncio.gather(
            self.request_client.call(
                lambda: self.db.validate_user(self.clinic_id, user_row_id),
                name="validate_user",
            ),
            self.request_client.call(
                lambda: self.db.get_user_visits(self.clinic_id, user_row_id),
                name="get_user_visits",
            ),
            self._load_counts(day),
            self._refresh_hours() if refresh_hours else asyncio.sleep(0, result=None),
        )
        if not user.valid:
            raise UserNotFoundError(f"User {user_row_id} is not valid for clinic {self.clinic_id}")
        return booked_visits_on(visits, day, self.tz_name), counts, hours

    async def _load_counts(self, day: date) -> Optional[Dict[str, int]]:
        if self.availability is None:
            return None
        return await self.availability.fetch_counts(self.clinic_id, day)

    async def _refresh_hours(self) -> Optional[BusinessHours]:
        if self.hours_loader is None:
            return None
        try:
            self.business_hours = await self.hours_loader()
        except SchedulingError as e:
            logger.warning(f"Could not refresh business hours, using cached table: {e}")
            return None
        return self.business_hours

    async def _cancel_visits(self, visits: List[Visit]) -> None:
        for visit in visits:
            await self.request_client.call(
                lambda visit_id=visit.id: self.db.update_visit(
                    visit_id, {"status": VisitStatus.CANCELED}
                ),
                name="update_visit",
            )
            self.store.dispatch(VisitRemoved(visit.id))
            logger.info(f"Visit {visit.id} cancelled before appointment change")
