"""
Unit tests for the booking coordinator.
Uses the in-memory clinic database from tests/fakes.py.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from models.business_hours import BusinessHours
from models.visit import VisitStatus
from scheduling.availability import SlotAvailabilityService
from scheduling.booking import BookingCoordinator, BookingState, GENERIC_BOOKING_FAILURE
from scheduling.visit_list import VisitListStore
from tests.fakes import BUSINESS_HOURS_RAW, CLINIC_ID, TZ_NAME, USER_ROW_ID, sgt
from utils.exceptions import (
    ClosedDayError,
    DuplicateBookingError,
    HorizonExceededError,
    NetworkError,
    OutsideBusinessHoursError,
    RequestTimeoutError,
    SlotFullError,
    UserNotFoundError,
)
from utils.request_client import RequestTelemetry, ResilientRequestClient

NOW = sgt(2026, 1, 15, 10, 5)


def make_coordinator(db, request_client, notifier, **kwargs):
    kwargs.setdefault("business_hours", BusinessHours.from_raw(BUSINESS_HOURS_RAW))
    return BookingCoordinator(
        CLINIC_ID,
        db,
        request_client,
        VisitListStore(),
        notifier,
        availability=SlotAvailabilityService(db, request_client),
        tz_name=TZ_NAME,
        horizon_days=14,
        capacity=2,
        **kwargs,
    )


@pytest.fixture
def coordinator(fake_db, request_client, mock_notifier):
    return make_coordinator(fake_db, request_client, mock_notifier)


def assert_single_error(notifier, message):
    notifier.error.assert_awaited_once_with(message)
    notifier.success.assert_not_awaited()


@pytest.mark.asyncio
async def test_book_success(coordinator, fake_db, mock_notifier):
    """A valid booking is committed and confirmed once."""
    visit = await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert visit.id == "100"
    assert visit.status == VisitStatus.BOOKED.value
    assert [v.id for v in coordinator.store.visits] == ["100"]
    assert coordinator.store.optimistic() == ()
    assert coordinator.state is BookingState.COMMITTED
    assert not coordinator.action_loading
    mock_notifier.success.assert_awaited_once_with("Appointment booked: 11:00")
    mock_notifier.error.assert_not_awaited()
    assert fake_db.calls.count("create_visit") == 1


@pytest.mark.asyncio
async def test_closed_day_rejected_before_remote_call(coordinator, fake_db, mock_notifier):
    with pytest.raises(ClosedDayError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 18, 11, 0), now=NOW)

    assert fake_db.calls == []
    assert coordinator.store.visits == ()
    assert_single_error(mock_notifier, ClosedDayError.user_message)


@pytest.mark.asyncio
async def test_beyond_horizon_rejected_before_remote_call(coordinator, fake_db, mock_notifier):
    with pytest.raises(HorizonExceededError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 30, 11, 0), now=NOW)

    assert fake_db.calls == []
    assert_single_error(mock_notifier, HorizonExceededError.user_message)


@pytest.mark.asyncio
async def test_beyond_horizon_rejected_before_loading_hours(fake_db, request_client, mock_notifier):
    """Without cached hours the horizon is still checked before any remote call."""
    loader = AsyncMock(return_value=BusinessHours.from_raw(BUSINESS_HOURS_RAW))
    coordinator = make_coordinator(
        fake_db, request_client, mock_notifier, business_hours=None, hours_loader=loader
    )

    with pytest.raises(HorizonExceededError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 3, 1, 11, 0), now=NOW)

    loader.assert_not_awaited()
    assert fake_db.calls == []
    assert_single_error(mock_notifier, HorizonExceededError.user_message)


@pytest.mark.asyncio
async def test_same_day_slot_before_cutoff_rejected(coordinator, fake_db):
    """At 10:05, 10:30 today is too soon."""
    with pytest.raises(HorizonExceededError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 10, 30), now=NOW)

    assert fake_db.calls == []


@pytest.mark.asyncio
async def test_outside_business_hours_rejected(coordinator, fake_db, mock_notifier):
    with pytest.raises(OutsideBusinessHoursError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 17, 13, 0), now=NOW)

    assert fake_db.calls == []
    assert_single_error(mock_notifier, OutsideBusinessHoursError.user_message)


@pytest.mark.asyncio
async def test_duplicate_booking_same_day(coordinator, fake_db, mock_notifier):
    """A second booking on the same day is refused without a create call."""
    fake_db.add_visit(USER_ROW_ID, sgt(2026, 1, 15, 14, 0))

    with pytest.raises(DuplicateBookingError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert "create_visit" not in fake_db.calls
    assert coordinator.store.visits == ()
    assert coordinator.state is BookingState.ROLLED_BACK
    assert_single_error(mock_notifier, DuplicateBookingError.user_message)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [VisitStatus.CHECKED_IN, VisitStatus.CANCELED])
async def test_terminal_visits_do_not_block(coordinator, fake_db, status):
    fake_db.add_visit(USER_ROW_ID, sgt(2026, 1, 15, 9, 0), status=status)

    visit = await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert visit is not None


@pytest.mark.asyncio
async def test_booking_on_another_day_allowed(coordinator, fake_db):
    fake_db.add_visit(USER_ROW_ID, sgt(2026, 1, 16, 11, 0))

    visit = await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert visit is not None


@pytest.mark.asyncio
async def test_full_slot_rejected(coordinator, fake_db, mock_notifier):
    fake_db.add_visit("7", sgt(2026, 1, 15, 11, 0))
    fake_db.add_visit("8", sgt(2026, 1, 15, 11, 0))

    with pytest.raises(SlotFullError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert "create_visit" not in fake_db.calls
    assert_single_error(mock_notifier, SlotFullError.user_message)


@pytest.mark.asyncio
async def test_commit_failure_rolls_back(coordinator, fake_db, mock_notifier):
    fake_db.create_error = NetworkError("connection reset")

    with pytest.raises(NetworkError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert coordinator.store.visits == ()
    assert coordinator.state is BookingState.ROLLED_BACK
    assert not coordinator.action_loading
    assert_single_error(mock_notifier, NetworkError.user_message)


@pytest.mark.asyncio
async def test_conflict_at_commit_rolls_back(coordinator, fake_db, mock_notifier):
    """A constraint violation reported by the database is rolled back too."""
    fake_db.create_error = DuplicateBookingError("duplicate key value")

    with pytest.raises(DuplicateBookingError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert coordinator.store.visits == ()
    assert_single_error(mock_notifier, DuplicateBookingError.user_message)


@pytest.mark.asyncio
async def test_unexpected_error_reports_generic_failure(coordinator, fake_db, mock_notifier):
    fake_db.create_error = RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert coordinator.store.visits == ()
    assert_single_error(mock_notifier, GENERIC_BOOKING_FAILURE)


@pytest.mark.asyncio
async def test_commit_timeout_retried_then_rolled_back(fake_db, mock_notifier):
    client = ResilientRequestClient(
        telemetry=RequestTelemetry(show_delay=1.0), timeout=0.05, max_attempts=3
    )
    coordinator = make_coordinator(fake_db, client, mock_notifier)
    fake_db.create_delay = 0.2

    with pytest.raises(RequestTimeoutError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert fake_db.calls.count("create_visit") == 3
    assert coordinator.store.visits == ()
    assert_single_error(mock_notifier, RequestTimeoutError.user_message)


@pytest.mark.asyncio
async def test_optimistic_visit_visible_while_committing(coordinator, fake_db):
    fake_db.create_delay = 0.1

    task = asyncio.create_task(
        coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)
    )
    await asyncio.sleep(0.05)

    optimistic = coordinator.store.optimistic()
    assert len(optimistic) == 1
    assert optimistic[0].id.startswith("temp-")
    assert coordinator.action_loading

    visit = await task
    assert [v.id for v in coordinator.store.visits] == [visit.id]


@pytest.mark.asyncio
async def test_concurrent_submit_is_dropped(coordinator, fake_db, mock_notifier):
    """A second submit while the first is in flight does nothing."""
    fake_db.create_delay = 0.1

    first = asyncio.create_task(
        coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)
    )
    await asyncio.sleep(0)
    second = await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 30), now=NOW)

    assert second is None
    assert await first is not None
    assert fake_db.calls.count("create_visit") == 1
    mock_notifier.success.assert_awaited_once()


@pytest.mark.asyncio
async def test_hours_loaded_when_not_cached(fake_db, request_client, mock_notifier):
    loader = AsyncMock(return_value=BusinessHours.from_raw(BUSINESS_HOURS_RAW))
    coordinator = make_coordinator(
        fake_db, request_client, mock_notifier, business_hours=None, hours_loader=loader
    )

    visit = await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert visit is not None
    loader.assert_awaited_once()


@pytest.mark.asyncio
async def test_refreshed_hours_close_the_day(fake_db, request_client, mock_notifier):
    """Hours changed on the server since they were cached."""
    closed = dict(BUSINESS_HOURS_RAW, thursday={"closed": True})
    loader = AsyncMock(return_value=BusinessHours.from_raw(closed))
    coordinator = make_coordinator(fake_db, request_client, mock_notifier, hours_loader=loader)

    with pytest.raises(ClosedDayError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert "create_visit" not in fake_db.calls


@pytest.mark.asyncio
async def test_change_appointment(coordinator, fake_db, mock_notifier):
    old = fake_db.add_visit(USER_ROW_ID, sgt(2026, 1, 15, 14, 0))
    coordinator.store.replace([old])

    visit = await coordinator.change_appointment(
        USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW
    )

    assert fake_db.visits[0].status == VisitStatus.CANCELED.value
    assert [v.id for v in coordinator.store.visits] == [visit.id]
    mock_notifier.success.assert_awaited_once_with("Appointment changed to 11:00")


@pytest.mark.asyncio
async def test_change_appointment_within_own_slot(coordinator, fake_db):
    """The user's own booking does not count against the slot being moved into."""
    fake_db.add_visit(USER_ROW_ID, sgt(2026, 1, 15, 11, 0))
    fake_db.add_visit("7", sgt(2026, 1, 15, 11, 0))

    visit = await coordinator.change_appointment(
        USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW
    )

    assert visit is not None
    booked = [v for v in fake_db.visits if v.status == VisitStatus.BOOKED.value]
    assert len(booked) == 2


@pytest.mark.asyncio
async def test_change_appointment_failure_keeps_cancellation(coordinator, fake_db, mock_notifier):
    fake_db.add_visit(USER_ROW_ID, sgt(2026, 1, 15, 14, 0))
    fake_db.create_error = NetworkError("offline")

    with pytest.raises(NetworkError):
        await coordinator.change_appointment(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert fake_db.visits[0].status == VisitStatus.CANCELED.value
    assert coordinator.store.visits == ()
    assert_single_error(mock_notifier, NetworkError.user_message)


@pytest.mark.asyncio
async def test_invalid_user_rejected_before_create(coordinator, fake_db, mock_notifier):
    """A user removed from the clinic cannot book."""
    del fake_db.users[USER_ROW_ID]

    with pytest.raises(UserNotFoundError):
        await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert "validate_user" in fake_db.calls
    assert "create_visit" not in fake_db.calls
    assert coordinator.store.visits == ()
    assert coordinator.state is BookingState.ROLLED_BACK
    assert_single_error(mock_notifier, UserNotFoundError.user_message)


@pytest.mark.asyncio
async def test_failed_confirmation_keeps_committed_visit(coordinator, fake_db, mock_notifier):
    """The visit stays committed when the success notification fails."""
    mock_notifier.success.side_effect = RuntimeError("channel down")

    visit = await coordinator.book(USER_ROW_ID, sgt(2026, 1, 15, 11, 0), now=NOW)

    assert visit.id == "100"
    assert [v.id for v in coordinator.store.visits] == ["100"]
    assert coordinator.state is BookingState.COMMITTED
    assert not coordinator.action_loading
    mock_notifier.success.assert_awaited_once()
    mock_notifier.error.assert_not_awaited()
