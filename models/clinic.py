"""Clinic and user lookup models returned by the remote service."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.business_hours import BusinessHours


class ClinicInfo(BaseModel):
    """Clinic record; only the business-hours table is consumed here."""

    id: Optional[str] = None
    name: Optional[str] = None
    business_hours: BusinessHours = Field(default_factory=BusinessHours)

    model_config = ConfigDict(extra="ignore")

    @field_validator("business_hours", mode="before")
    @classmethod
    def wrap_table(cls, value):
        # The remote column is the bare weekday mapping
        if value is None:
            return BusinessHours()
        if isinstance(value, dict) and "days" not in value:
            return BusinessHours.from_raw(value)
        return value


class UserValidation(BaseModel):
    """Result of a remote user validation."""

    valid: bool
    full_name: Optional[str] = None

    model_config = ConfigDict(extra="ignore")
