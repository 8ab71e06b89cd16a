"""
Input validation utilities for identifiers and time values.
"""

import re
from typing import Any

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)


def validate_uuid(uuid_string: str) -> bool:
    """
    Validate UUID format.

    Args:
        uuid_string: UUID string

    Returns:
        True if valid UUID format, False otherwise
    """
    if not uuid_string or not isinstance(uuid_string, str):
        return False

    return bool(UUID_PATTERN.match(uuid_string.lower()))


def validate_clinic_id(clinic_id: Any) -> bool:
    """Clinic identifiers are UUIDs."""
    return validate_uuid(clinic_id)


def validate_record_id(record_id: Any) -> bool:
    """
    Validate a user record identifier.

    Row ids from the remote service are either positive integers or
    non-empty strings (numeric strings or UUIDs).
    """
    if isinstance(record_id, bool):
        return False
    if isinstance(record_id, int):
        return record_id > 0
    return isinstance(record_id, str) and bool(record_id.strip())

