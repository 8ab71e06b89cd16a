"""
Composition root for the clinic scheduling core.

Wires settings, the Supabase client, the notification channel, the session
cache and the clinic calendar into one ClinicApp per user session. Running
the module prints the bookable slots of the coming days.
"""

import asyncio
import logging
import sys
from datetime import timedelta
from typing import Optional

from config import settings
from db.supabase_client import SupabaseClient, get_db_client
from models.session import SessionRecord
from notifications.notifier import Notifier, TelegramNotifier, get_notifier
from scheduling.calendar import ClinicCalendar, DayStatus, split_am_pm
from scheduling.check_in import CheckInService
from session.cache import SessionCache
from session.entry import resolve_clinic_id, restore_identity, revalidate
from session.store import JsonFileStore, KeyValueStore
from utils.datetime_utils import clinic_now
from utils.exceptions import SchedulingError
from utils.logging_config import configure_component_logging
from utils.request_client import RequestTelemetry, ResilientRequestClient

logger = logging.getLogger("app")


class ClinicApp:
    """One user session against one clinic."""

    def __init__(
        self,
        db: SupabaseClient,
        notifier: Notifier,
        session: SessionCache,
        explicit_clinic_id: Optional[str] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.session = session
        self.telemetry = RequestTelemetry(
            notifier=notifier, show_delay=settings.loading_indicator_delay
        )
        self.request_client = ResilientRequestClient.from_settings(self.telemetry)

        self.clinic_id = resolve_clinic_id(explicit_clinic_id, session)
        self.calendar = ClinicCalendar(
            self.clinic_id, db, self.request_client, notifier
        )
        self.check_in = CheckInService(db, self.request_client)
        self.identity: Optional[SessionRecord] = None

    async def enter(self) -> Optional[SessionRecord]:
        """
        Page entry: reuse the cached identity when it is still valid and load
        the user's visits. Returns None when the user has to log in.
        """
        self.identity = restore_identity(self.session)
        if self.identity is None:
            return None

        if self.identity.clinic_id != self.clinic_id:
            logger.info(
                f"Cached session belongs to clinic {self.identity.clinic_id}, "
                f"entering {self.clinic_id}"
            )
        await self.calendar.load_business_hours()
        await self.calendar.load_visits(self.identity.record_id)
        return self.identity

    async def login(
        self, subject_id: str, record_id: str, full_name: Optional[str] = None
    ) -> SessionRecord:
        """Cache an identity issued by the login flow."""
        self.identity = self.session.save(subject_id, record_id, self.clinic_id, full_name)
        await self.calendar.load_visits(record_id)
        return self.identity

    async def refresh_identity(self) -> Optional[SessionRecord]:
        """Confirm the cached identity remotely; drops it if no longer valid."""
        self.identity = await revalidate(self.session, self.db, self.request_client)
        return self.identity

    async def close(self) -> None:
        await self.telemetry.close()
        if isinstance(self.notifier, TelegramNotifier):
            await self.notifier.bot.session.close()


def create_app(
    explicit_clinic_id: Optional[str] = None,
    db: Optional[SupabaseClient] = None,
    notifier: Optional[Notifier] = None,
    store: Optional[KeyValueStore] = None,
) -> ClinicApp:
    """Build a ClinicApp from settings; collaborators can be injected."""
    session = SessionCache(store or JsonFileStore(), ttl_days=settings.session_ttl_days)
    return ClinicApp(
        db=db or get_db_client(),
        notifier=notifier or get_notifier(),
        session=session,
        explicit_clinic_id=explicit_clinic_id,
    )


async def main() -> None:
    """Print the bookable slots for the coming week."""
    app = create_app(sys.argv[1] if len(sys.argv) > 1 else None)
    try:
        await app.calendar.load_business_hours()
        today = clinic_now(settings.clinic_timezone).date()

        for offset in range(7):
            day = today + timedelta(days=offset)
            status = app.calendar.day_status(day)
            if status is not DayStatus.OPEN:
                logger.info(f"{day.isoformat()}: {status.value}")
                continue

            am, pm = split_am_pm(await app.calendar.slots_for(day))
            free = [s.label for s in am + pm if s.is_available]
            logger.info(f"{day.isoformat()}: {len(free)} free slots {', '.join(free)}")

    except SchedulingError as e:
        logger.error(f"Could not load schedule: {e}")
        raise
    finally:
        await app.close()


if __name__ == "__main__":
    configure_component_logging(
        log_level=settings.log_level, log_file="scheduling.log", log_dir="logs"
    )

    try:
        settings.validate_all_required()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
