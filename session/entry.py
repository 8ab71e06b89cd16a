"""
Page-entry identity resolution.

Decides which clinic a session belongs to and whether the cached identity can
be reused without asking the remote service.
"""

import logging
from typing import Optional

from config import settings
from db.supabase_client import SupabaseClient
from models.session import SessionRecord
from session.cache import SessionCache
from utils.request_client import ResilientRequestClient
from utils.validation import validate_clinic_id

logger = logging.getLogger(__name__)


def resolve_clinic_id(
    explicit: Optional[str] = None,
    cache: Optional[SessionCache] = None,
    default: Optional[str] = None,
) -> str:
    """
    Pick the clinic id for this entry.

    Priority: explicit (e.g. from a link) > stored in the cache > default.
    Candidates that are not UUIDs are skipped.

    Raises:
        ValueError: If no candidate is a valid clinic id
    """
    stored = cache.clinic_id if cache is not None else None
    fallback = default or settings.default_clinic_id

    for source, candidate in (("explicit", explicit), ("stored", stored), ("default", fallback)):
        if not candidate:
            continue
        if validate_clinic_id(candidate):
            return candidate
        logger.warning(f"Ignoring invalid {source} clinic id: {candidate!r}")

    raise ValueError("No valid clinic id available")


def restore_identity(cache: SessionCache) -> Optional[SessionRecord]:
    """The cached identity if the session is still valid, otherwise None."""
    record = cache.load()
    if record is None:
        logger.debug("No valid cached session")
    return record


async def revalidate(
    cache: SessionCache,
    db: SupabaseClient,
    request_client: ResilientRequestClient,
) -> Optional[SessionRecord]:
    """
    Confirm the cached identity with the remote service.

    An invalid user clears the cache. A valid one re-saves the record, which
    refreshes its timestamp and the cached full name.

    Returns:
        Refreshed record, or None if there was nothing to check or the user
        is no longer valid
    """
    record = cache.load()
    if record is None:
        return None

    result = await request_client.call(
        lambda: db.validate_user(record.clinic_id, record.record_id),
        name="validate_user",
    )
    if not result.valid:
        logger.info(f"Cached user {record.record_id} is no longer valid, clearing session")
        cache.clear()
        return None

    return cache.save(
        record.subject_id,
        record.record_id,
        record.clinic_id,
        full_name=result.full_name or record.full_name,
    )
