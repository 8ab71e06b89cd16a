"""Local session cache and page-entry identity resolution."""

from .cache import SessionCache
from .entry import resolve_clinic_id, restore_identity, revalidate
from .store import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "SessionCache",
    "resolve_clinic_id",
    "restore_identity",
    "revalidate",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
]
