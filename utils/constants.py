"""
Application-wide constants.
Centralizes magic numbers and configuration values.
"""

# Weekday keys of a business-hours table, indexed Sunday=0
WEEKDAY_KEYS = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)

# Scheduling defaults (overridable through settings)
SLOT_GRANULARITY_MINUTES = 30
SLOT_CAPACITY = 2
BOOKING_HORIZON_DAYS = 14
SAME_DAY_LEAD_HOURS = 1
MORNING_CUTOFF_HOUR = 12  # slots before 12:00 are "am"

# Session cache
SESSION_TTL_DAYS = 30

# Remote calls
REQUEST_TIMEOUT_SECONDS = 10.0
REQUEST_MAX_ATTEMPTS = 3
LOADING_INDICATOR_DELAY_SECONDS = 0.3

# Identifiers
OPTIMISTIC_ID_PREFIX = "temp-"
