"""
Supabase client for the clinic scheduling core.
Handles all remote persistence: visits, users, clinics and slot counts.

Tables consumed:
- visits:  id, user_row_id, clinic_id, book_time, visit_time, status, is_first
- users:   row_id, clinic_id, full_name
- clinics: id, name, business_hours (JSON weekday table)

RPC consumed:
- get_slot_availability_admin(p_clinic_id, p_days) ->
  [{visit_date, visit_time, booking_count}]

The uniqueness/capacity constraints enforced by the database are the final
arbiter for concurrent bookings; their violations are translated into
DuplicateBookingError / SlotFullError here.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from models.clinic import ClinicInfo, UserValidation
from models.visit import Visit, VisitCreate, VisitStatus
from utils.exceptions import (
    DuplicateBookingError,
    NetworkError,
    RemoteServiceError,
    SchedulingError,
    SlotFullError,
    VisitNotFoundError,
)
from utils.datetime_utils import parse_iso_datetime, to_iso_string

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
RAISED_EXCEPTION = "P0001"


class SupabaseClient:
    """
    Supabase database client wrapper.

    The supabase-py client is synchronous; every query is executed in a worker
    thread so callers can put a deadline on it.
    """

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None):
        url = url or settings.supabase_url
        key = key or settings.supabase_key
        if not url or not key:
            raise ValueError("Supabase URL and key must be configured")

        self.client: SupabaseClientType = create_client(url, key)

    # ========== Helpers ==========

    async def _execute(self, query, action: str):
        """Execute a prepared query off the event loop, translating failures."""
        try:
            return await asyncio.to_thread(query.execute)
        except SchedulingError:
            raise
        except httpx.TimeoutException as e:
            # Retried by the request client like a local deadline
            raise TimeoutError(f"Timed out while trying to {action}") from e
        except httpx.TransportError as e:
            raise NetworkError(f"Network error while trying to {action}: {e}") from e
        except APIError as e:
            raise self._translate_api_error(e, action) from e
        except Exception as e:
            raise RemoteServiceError(f"Failed to {action}: {e}") from e

    @staticmethod
    def _translate_api_error(error: APIError, action: str) -> SchedulingError:
        message = error.message or str(error)
        if error.code == UNIQUE_VIOLATION:
            return DuplicateBookingError(f"Failed to {action}: {message}")
        if error.code == RAISED_EXCEPTION and "full" in message.lower():
            return SlotFullError(f"Failed to {action}: {message}")
        return RemoteServiceError(f"Failed to {action}: {message}")

    def _parse_visit(self, item: dict) -> Visit:
        """
        Parse visit data from database response.

        Args:
            item: Raw visit row

        Returns:
            Parsed Visit object
        """
        item = item.copy()
        for field in ["book_time", "visit_time"]:
            if item.get(field):
                item[field] = parse_iso_datetime(item[field])
        if not item.get("book_time") and item.get("visit_time"):
            item["book_time"] = item["visit_time"]
        return Visit(**item)

    # ========== Slot Operations ==========

    async def get_slot_availability(
        self, clinic_id: str, day: date, days: int = 14
    ) -> List[Dict[str, Any]]:
        """
        Get per-slot booking counts for one date.

        One RPC call per date; the function returns the whole horizon and is
        filtered down to the requested day here.

        Returns:
            List of {"visit_time": "HH:MM:SS", "booking_count": int}
        """
        query = self.client.rpc(
            "get_slot_availability_admin",
            {"p_clinic_id": clinic_id, "p_days": days},
        )
        response = await self._execute(query, "get slot availability")

        requested = day.isoformat()
        rows = []
        for item in response.data or []:
            if str(item.get("visit_date", ""))[:10] != requested:
                continue
            rows.append(
                {
                    "visit_time": item.get("visit_time"),
                    "booking_count": int(item.get("booking_count") or 0),
                }
            )
        return rows

    # ========== Visit Operations ==========

    async def create_visit(self, visit_data: VisitCreate) -> Visit:
        """Create a new visit and return it with the server-assigned id."""
        data = visit_data.model_dump()
        data["book_time"] = to_iso_string(visit_data.book_time)
        data["visit_time"] = to_iso_string(visit_data.visit_time)

        query = self.client.table("visits").insert(data)
        response = await self._execute(query, "create visit")

        if not response.data:
            raise RemoteServiceError("Failed to create visit: no data returned")

        return self._parse_visit(response.data[0])

    async def update_visit(self, visit_id: str, fields: Dict[str, Any]) -> bool:
        """
        Update a visit (status and/or visit_time).

        Raises:
            VisitNotFoundError: If no row matched visit_id
        """
        update_data = {}
        for key, value in fields.items():
            if isinstance(value, datetime):
                value = to_iso_string(value)
            elif isinstance(value, VisitStatus):
                value = value.value
            update_data[key] = value

        query = self.client.table("visits").update(update_data).eq("id", visit_id)
        response = await self._execute(query, "update visit")

        if not response.data:
            raise VisitNotFoundError(f"Visit {visit_id} not found")
        return True

    async def get_user_visits(self, clinic_id: str, user_row_id: str) -> List[Visit]:
        """Get all visits of a user at a clinic, most recent first."""
        query = (
            self.client.table("visits")
            .select("*")
            .eq("clinic_id", clinic_id)
            .eq("user_row_id", user_row_id)
            .order("book_time", desc=True)
        )
        response = await self._execute(query, "get user visits")

        return [self._parse_visit(item) for item in response.data or []]

    async def get_latest_booked_visit(
        self, clinic_id: str, user_row_id: str
    ) -> Optional[Visit]:
        """Most recent visit still in booked status."""
        query = (
            self.client.table("visits")
            .select("*")
            .eq("clinic_id", clinic_id)
            .eq("user_row_id", user_row_id)
            .eq("status", VisitStatus.BOOKED.value)
            .order("book_time", desc=True)
            .limit(1)
        )
        response = await self._execute(query, "get latest visit")

        if response.data:
            return self._parse_visit(response.data[0])
        return None

    # ========== User & Clinic Operations ==========

    async def validate_user(self, clinic_id: str, user_row_id: str) -> UserValidation:
        """Check that a user record exists at the clinic."""
        query = (
            self.client.table("users")
            .select("row_id, full_name")
            .eq("clinic_id", clinic_id)
            .eq("row_id", user_row_id)
            .limit(1)
        )
        response = await self._execute(query, "validate user")

        if not response.data:
            return UserValidation(valid=False)
        return UserValidation(valid=True, full_name=response.data[0].get("full_name"))

    async def get_clinic_info(self, clinic_id: str) -> ClinicInfo:
        """Get clinic record with its business-hours table."""
        query = (
            self.client.table("clinics")
            .select("id, name, business_hours")
            .eq("id", clinic_id)
            .limit(1)
        )
        response = await self._execute(query, "get clinic info")

        if not response.data:
            raise RemoteServiceError(f"Clinic {clinic_id} not found")
        try:
            return ClinicInfo(**response.data[0])
        except ValidationError as e:
            logger.error(f"Unreadable clinic record {clinic_id}: {e}")
            raise RemoteServiceError(f"Clinic {clinic_id} record is malformed") from e


# Global database client instance
_db_client: Optional[SupabaseClient] = None


def get_db_client() -> SupabaseClient:
    """Get or create database client instance."""
    global _db_client
    if _db_client is None:
        _db_client = SupabaseClient()
    return _db_client
