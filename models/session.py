"""Session record cached in the local key-value store."""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict


class SessionRecord(BaseModel):
    """Locally cached identity tuple. Never authoritative for authorization."""

    subject_id: str
    record_id: str
    clinic_id: str
    established_at: datetime
    full_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def age(self, now: datetime) -> timedelta:
        return now - self.established_at

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return self.age(now) < ttl
