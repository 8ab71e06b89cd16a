"""
Custom exception classes for the scheduling core.
Provides specific error types instead of generic exceptions.
"""


class SchedulingError(Exception):
    """Base exception for scheduling and booking operations."""

    user_message = "Something went wrong. Please try again."
    retryable = False


class ClosedDayError(SchedulingError):
    """Raised when the clinic is closed on the requested day or hours are missing."""

    user_message = "The clinic is closed on this day."


class HorizonExceededError(SchedulingError):
    """Raised when the requested date is in the past or beyond the booking horizon."""

    user_message = "This date is not open for booking."


class OutsideBusinessHoursError(ClosedDayError):
    """Raised when the requested time falls outside the day's business hours."""

    user_message = "This time is outside the clinic's business hours."


class DuplicateBookingError(SchedulingError):
    """Raised when the user already holds a booked visit on the target day."""

    user_message = "You already have an appointment on this day."


class UserNotFoundError(SchedulingError):
    """Raised when the booking user is no longer valid for the clinic."""

    user_message = "Your account could not be verified. Please log in again."


class SlotFullError(SchedulingError):
    """Raised when the selected slot has reached capacity."""

    user_message = "This time slot is full. Please choose another time."


class RemoteServiceError(SchedulingError):
    """Base exception for remote persistence failures."""

    user_message = "Request failed. Please try again."
    retryable = True


class RequestTimeoutError(RemoteServiceError, TimeoutError):
    """Raised when a remote call exceeds its deadline after exhausting retries."""

    user_message = "Request timeout. Please try again."


class NetworkError(RemoteServiceError):
    """Raised on connectivity failures that are not timeouts."""

    user_message = "Connection failed. Please check your network."


class VisitNotFoundError(RemoteServiceError):
    """Raised when a visit is not found."""

    retryable = False

