"""Slot models for bookable 30-minute time buckets."""

from pydantic import BaseModel, ConfigDict, Field, computed_field

from utils.constants import SLOT_CAPACITY


class SlotTime(BaseModel):
    """Candidate slot start time within a day."""

    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(..., ge=0, le=59)

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def time_key(self) -> str:
        """Key used by the remote availability query, e.g. "11:30:00"."""
        return f"{self.hour:02d}:{self.minute:02d}:00"

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute


class Slot(SlotTime):
    """Time slot annotated with its live occupancy."""

    booking_count: int = Field(default=0, ge=0)
    capacity: int = Field(default=SLOT_CAPACITY, ge=1, exclude=True)

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "hour": 11,
                "minute": 0,
                "booking_count": 2,
                "is_available": False,
                "is_full": True,
                "time_key": "11:00:00",
            }
        },
    )

    @computed_field
    @property
    def is_available(self) -> bool:
        return self.booking_count < self.capacity

    @computed_field
    @property
    def is_full(self) -> bool:
        return not self.is_available
