"""
Configuration module for the clinic scheduling core.
Loads environment variables and provides typed configuration.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.constants import (
    BOOKING_HORIZON_DAYS,
    REQUEST_MAX_ATTEMPTS,
    REQUEST_TIMEOUT_SECONDS,
    SAME_DAY_LEAD_HOURS,
    SESSION_TTL_DAYS,
    SLOT_CAPACITY,
    SLOT_GRANULARITY_MINUTES,
)

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Clinic
    default_clinic_id: str = "5c366433-6dc9-4735-9181-a690201bd0b3"
    clinic_timezone: str = "Asia/Singapore"

    # Scheduling rules
    slot_granularity_minutes: int = SLOT_GRANULARITY_MINUTES
    slot_capacity: int = SLOT_CAPACITY
    booking_horizon_days: int = BOOKING_HORIZON_DAYS
    same_day_lead_hours: int = SAME_DAY_LEAD_HOURS

    # Session cache
    session_ttl_days: int = SESSION_TTL_DAYS
    session_store_path: str = ".session/store.json"

    # Remote calls
    request_timeout_seconds: float = REQUEST_TIMEOUT_SECONDS
    request_max_attempts: int = REQUEST_MAX_ATTEMPTS
    loading_indicator_delay_ms: int = 300

    # Notifications (optional Telegram delivery)
    bot_token: Optional[str] = None
    notify_chat_id: Optional[int] = None

    # Logging
    log_level: str = "INFO"
    environment: str = "development"  # development, staging, production

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def loading_indicator_delay(self) -> float:
        """Loading indicator delay in seconds."""
        return self.loading_indicator_delay_ms / 1000

    def validate_all_required(self) -> None:
        """
        Validate that all required settings are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        required_fields = [
            "supabase_url",
            "supabase_key",
        ]

        missing = []
        for field in required_fields:
            value = getattr(self, field, None)

            if not value:
                missing.append(field)
                continue

            # Check for placeholder values
            if str(value).lower().startswith("your_"):
                missing.append(field)

        if self.bot_token and self.notify_chat_id is None:
            missing.append("notify_chat_id")

        if self.slot_capacity < 1:
            missing.append("slot_capacity")

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


# Global settings instance
settings = Settings()
