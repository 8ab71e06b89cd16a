"""Visit models for clinic appointments."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VisitStatus(str, Enum):
    """Visit status."""

    BOOKED = "booked"
    CHECKED_IN = "checked-in"
    CANCELED = "canceled"


def _stringify_id(value: Any) -> Any:
    # Row ids arrive as ints or strings depending on the table
    if value is None or isinstance(value, str):
        return value
    return str(value)


class Visit(BaseModel):
    """
    Appointment record.

    `is_optimistic` is client-only: True while the create call is pending.
    """

    id: Optional[str] = None
    user_row_id: str = Field(..., description="User record id (remote row id)")
    clinic_id: str
    book_time: datetime
    visit_time: Optional[datetime] = None
    status: VisitStatus = VisitStatus.BOOKED
    is_first: bool = False
    is_optimistic: bool = Field(default=False, exclude=True)

    model_config = ConfigDict(
        use_enum_values=True,
        frozen=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": "128",
                "user_row_id": "42",
                "clinic_id": "5c366433-6dc9-4735-9181-a690201bd0b3",
                "book_time": "2026-01-15T03:00:00+00:00",
                "visit_time": "2026-01-15T03:00:00+00:00",
                "status": "booked",
                "is_first": False,
            }
        },
    )

    @field_validator("id", "user_row_id", "clinic_id", mode="before")
    @classmethod
    def stringify_ids(cls, value: Any) -> Any:
        return _stringify_id(value)

    @property
    def is_active(self) -> bool:
        """Only booked visits count against the one-per-day limit."""
        return self.status == VisitStatus.BOOKED.value


class VisitCreate(BaseModel):
    """Visit creation payload."""

    user_row_id: str
    clinic_id: str
    book_time: datetime
    visit_time: datetime
    status: VisitStatus = VisitStatus.BOOKED
    is_first: bool = False

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("user_row_id", "clinic_id", mode="before")
    @classmethod
    def stringify_ids(cls, value: Any) -> Any:
        return _stringify_id(value)
