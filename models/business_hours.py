"""Business hours models: the clinic's weekly opening table."""

import logging
from typing import Dict, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from utils.constants import WEEKDAY_KEYS
from utils.datetime_utils import minutes_of_day, parse_hhmm

logger = logging.getLogger(__name__)


class DayHours(BaseModel):
    """Opening hours for one weekday."""

    open: Optional[str] = Field(default=None, description="Opening time, HH:MM")
    close: Optional[str] = Field(default=None, description="Closing time, HH:MM")
    closed: bool = False

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {"open": "09:00", "close": "18:00", "closed": False}
        },
    )

    @field_validator("open", "close")
    @classmethod
    def check_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        parse_hhmm(value)
        return value.strip()

    @model_validator(mode="after")
    def check_open_day(self) -> "DayHours":
        # An open day without both bounds cannot be scheduled; treat it as closed
        if not self.closed and (self.open is None or self.close is None):
            self.closed = True
        return self


class DayWindow(BaseModel):
    """Resolved open window [open, close) for one calendar day, in minutes."""

    open_minutes: int = Field(..., ge=0, le=24 * 60)
    close_minutes: int = Field(..., ge=0, le=24 * 60)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_day_hours(cls, hours: DayHours) -> "DayWindow":
        open_h, open_m = parse_hhmm(hours.open)
        close_h, close_m = parse_hhmm(hours.close)
        return cls(
            open_minutes=minutes_of_day(open_h, open_m),
            close_minutes=minutes_of_day(close_h, close_m),
        )

    def contains(self, minute_of_day: int) -> bool:
        return self.open_minutes <= minute_of_day < self.close_minutes


class BusinessHours(BaseModel):
    """
    Weekly business-hours table keyed by weekday name (sunday..saturday).

    Missing weekdays are allowed here; the resolver treats them as closed.
    A weekday whose entry does not parse is kept as closed, so one bad day
    never makes the rest of the week unloadable.
    """

    days: Dict[str, DayHours] = Field(default_factory=dict)

    @field_validator("days", mode="before")
    @classmethod
    def normalise_keys(cls, value):
        if not isinstance(value, dict):
            return value
        days = {}
        for key, day in value.items():
            weekday = str(key).strip().lower()
            if weekday not in WEEKDAY_KEYS:
                continue
            try:
                days[weekday] = DayHours.model_validate(day)
            except ValidationError as e:
                logger.warning(f"Malformed business hours for {weekday}, treating as closed: {e}")
                days[weekday] = DayHours(closed=True)
        return days

    @classmethod
    def from_raw(cls, raw: Optional[dict]) -> "BusinessHours":
        """Build from the remote `business_hours` JSON column."""
        return cls(days=raw or {})

    def for_weekday(self, weekday: str) -> Optional[DayHours]:
        return self.days.get(weekday)
