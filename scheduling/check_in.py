"""Front-desk check-in: turns the user's open visit into a checked-in one."""

import logging
from datetime import datetime
from typing import Optional

from db.supabase_client import SupabaseClient
from models.visit import Visit, VisitCreate, VisitStatus
from utils.datetime_utils import utc_now
from utils.request_client import ResilientRequestClient

logger = logging.getLogger(__name__)


class CheckInService:
    """
    Marks the most recent booked visit as checked in, or records a
    walk-in visit when the user has none.
    """

    def __init__(self, db: SupabaseClient, request_client: ResilientRequestClient):
        self.db = db
        self.request_client = request_client

    async def check_in(
        self, clinic_id: str, user_row_id: str, now: Optional[datetime] = None
    ) -> Visit:
        """
        Check a user in.

        Returns:
            The checked-in visit

        Raises:
            SchedulingError: If a remote call failed
        """
        now = now or utc_now()
        booked_visit = await self.request_client.call(
            lambda: self.db.get_latest_booked_visit(clinic_id, user_row_id),
            name="get_latest_booked_visit",
        )

        if booked_visit is not None:
            await self.request_client.call(
                lambda: self.db.update_visit(
                    booked_visit.id,
                    {"visit_time": now, "status": VisitStatus.CHECKED_IN},
                ),
                name="update_visit",
            )
            logger.info(f"User {user_row_id} checked in for visit {booked_visit.id}")
            return booked_visit.model_copy(
                update={"visit_time": now, "status": VisitStatus.CHECKED_IN.value}
            )

        walk_in = VisitCreate(
            user_row_id=user_row_id,
            clinic_id=clinic_id,
            book_time=now,
            visit_time=now,
            status=VisitStatus.CHECKED_IN,
            is_first=False,
        )
        visit = await self.request_client.call(
            lambda: self.db.create_visit(walk_in), name="create_visit"
        )
        logger.info(f"User {user_row_id} checked in as walk-in (visit {visit.id})")
        return visit
