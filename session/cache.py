"""
Time-bounded session cache.

Remembers who the user is between visits so that page entry can skip the
remote identity check. Expiry is lazy: an expired record is purged the next
time it is checked. The clinic id survives clear() so the user lands on the
same clinic after logging out.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from models.session import SessionRecord
from session.store import KeyValueStore
from utils.constants import SESSION_TTL_DAYS
from utils.datetime_utils import epoch_millis, from_epoch_millis, utc_now
from utils.validation import validate_record_id

logger = logging.getLogger(__name__)

USER_ID_KEY = "user_id"
USER_ROW_ID_KEY = "user_row_id"
CLINIC_ID_KEY = "clinic_id"
LOGIN_TIMESTAMP_KEY = "login_timestamp"
FULL_NAME_KEY = "full_name"

# Removed on clear(); clinic_id is kept
SESSION_KEYS = (USER_ID_KEY, USER_ROW_ID_KEY, LOGIN_TIMESTAMP_KEY, FULL_NAME_KEY)


class SessionCache:
    """Session record stored in a KeyValueStore under fixed keys."""

    def __init__(
        self,
        store: KeyValueStore,
        ttl_days: int = SESSION_TTL_DAYS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.ttl = timedelta(days=ttl_days)
        self.clock = clock

    def save(
        self,
        subject_id: str,
        record_id: str,
        clinic_id: str,
        full_name: Optional[str] = None,
    ) -> SessionRecord:
        """Write the identity triple and stamp it with the current time."""
        if not validate_record_id(record_id):
            raise ValueError(f"Invalid user record id: {record_id!r}")
        now = self.clock()
        self.store.set_item(USER_ID_KEY, str(subject_id))
        self.store.set_item(USER_ROW_ID_KEY, str(record_id))
        self.store.set_item(CLINIC_ID_KEY, str(clinic_id))
        self.store.set_item(LOGIN_TIMESTAMP_KEY, str(epoch_millis(now)))
        if full_name:
            self.store.set_item(FULL_NAME_KEY, full_name)
        else:
            self.store.remove_item(FULL_NAME_KEY)

        logger.debug(f"Session saved for record {record_id} at clinic {clinic_id}")
        return SessionRecord(
            subject_id=str(subject_id),
            record_id=str(record_id),
            clinic_id=str(clinic_id),
            established_at=from_epoch_millis(epoch_millis(now)),
            full_name=full_name or None,
        )

    def _read(self) -> Optional[SessionRecord]:
        subject_id = self.store.get_item(USER_ID_KEY)
        record_id = self.store.get_item(USER_ROW_ID_KEY)
        clinic_id = self.store.get_item(CLINIC_ID_KEY)
        timestamp = self.store.get_item(LOGIN_TIMESTAMP_KEY)
        if not (subject_id and record_id and clinic_id and timestamp):
            return None

        try:
            established_at = from_epoch_millis(int(timestamp))
        except (ValueError, OverflowError, OSError):
            logger.warning(f"Discarding session with bad timestamp: {timestamp!r}")
            self.clear()
            return None

        return SessionRecord(
            subject_id=subject_id,
            record_id=record_id,
            clinic_id=clinic_id,
            established_at=established_at,
            full_name=self.store.get_item(FULL_NAME_KEY),
        )

    def is_valid(self) -> bool:
        """
        True if a complete record younger than the TTL is stored.

        An expired record is cleared as a side effect.
        """
        record = self._read()
        if record is None:
            return False

        if not record.is_fresh(self.clock(), self.ttl):
            logger.info(f"Session for record {record.record_id} expired, clearing")
            self.clear()
            return False
        return True

    def load(self) -> Optional[SessionRecord]:
        """The stored record if valid, otherwise None."""
        if not self.is_valid():
            return None
        return self._read()

    def clear(self) -> None:
        """Remove the identity and timestamp; keep the clinic id."""
        for key in SESSION_KEYS:
            self.store.remove_item(key)

    @property
    def clinic_id(self) -> Optional[str]:
        return self.store.get_item(CLINIC_ID_KEY)
