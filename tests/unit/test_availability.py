"""
Unit tests for slot availability.
"""

from unittest.mock import AsyncMock

import pytest

from models.slot import Slot, SlotTime
from scheduling.availability import (
    SlotAvailabilityService,
    annotate,
    counts_by_time_key,
    normalise_time_key,
)
from tests.fakes import CLINIC_ID, THURSDAY, sgt
from utils.exceptions import NetworkError


def test_normalise_time_key():
    assert normalise_time_key("9:30") == "09:30:00"
    assert normalise_time_key("11:00:00") == "11:00:00"
    assert normalise_time_key("14") == "14:00:00"


def test_counts_by_time_key_merges_and_skips_bad_rows():
    rows = [
        {"visit_time": "11:00:00", "booking_count": 1},
        {"visit_time": "11:00", "booking_count": 1},
        {"visit_time": None, "booking_count": 5},
        {"visit_time": "noon", "booking_count": 5},
        {"visit_time": "11:30:00", "booking_count": None},
    ]

    assert counts_by_time_key(rows) == {"11:00:00": 2, "11:30:00": 0}


def test_annotate_capacity_invariant():
    """is_available == booking_count < capacity for every slot."""
    candidates = [SlotTime(hour=11, minute=m) for m in (0, 30)] + [SlotTime(hour=12, minute=0)]
    counts = {"11:00:00": 2, "11:30:00": 1}

    slots = annotate(candidates, counts, capacity=2)

    assert [s.booking_count for s in slots] == [2, 1, 0]
    for slot in slots:
        assert slot.is_available == (slot.booking_count < 2)
        assert slot.is_full == (not slot.is_available)
    assert slots[0].is_full


def test_slot_serialisation_includes_computed_fields():
    slot = Slot(hour=11, minute=0, booking_count=2)

    data = slot.model_dump()

    assert data["time_key"] == "11:00:00"
    assert data["is_full"] is True
    assert "capacity" not in data


@pytest.mark.asyncio
async def test_load_annotates_with_live_counts(fake_db, request_client):
    fake_db.add_visit("7", sgt(2026, 1, 15, 11, 0))
    fake_db.add_visit("8", sgt(2026, 1, 15, 11, 0))
    fake_db.add_visit("9", sgt(2026, 1, 15, 11, 30))
    service = SlotAvailabilityService(fake_db, request_client)
    candidates = [SlotTime(hour=11, minute=0), SlotTime(hour=11, minute=30)]

    slots = await service.load(CLINIC_ID, THURSDAY, candidates)

    assert [(s.label, s.booking_count, s.is_available) for s in slots] == [
        ("11:00", 2, False),
        ("11:30", 1, True),
    ]
    assert fake_db.calls.count("get_slot_availability") == 1


@pytest.mark.asyncio
async def test_load_without_candidates_skips_query(fake_db, request_client):
    service = SlotAvailabilityService(fake_db, request_client)

    assert await service.load(CLINIC_ID, THURSDAY, []) == []
    assert fake_db.calls == []


@pytest.mark.asyncio
async def test_failed_query_degrades_to_available(request_client):
    """A failed availability query shows every slot as available."""
    db = AsyncMock()
    db.get_slot_availability.side_effect = NetworkError("offline")
    service = SlotAvailabilityService(db, request_client)

    slots = await service.load(CLINIC_ID, THURSDAY, [SlotTime(hour=11, minute=0)])

    assert slots[0].booking_count == 0
    assert slots[0].is_available
    assert await service.fetch_counts(CLINIC_ID, THURSDAY) is None
