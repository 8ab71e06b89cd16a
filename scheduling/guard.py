"""Single-flight guard for user-triggered booking actions."""

import uuid
from typing import Optional


class SingleFlightGuard:
    """
    At most one attempt at a time; extra attempts are rejected, not queued.

    Acquire and release never suspend, so on a single event loop the
    check-then-set in try_acquire() cannot interleave.
    """

    def __init__(self):
        self.attempt_in_flight: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.attempt_in_flight is not None

    def try_acquire(self) -> Optional[str]:
        """Return a new attempt id, or None if another attempt is in flight."""
        if self.busy:
            return None
        self.attempt_in_flight = uuid.uuid4().hex
        return self.attempt_in_flight

    def release(self, attempt_id: str) -> None:
        if self.attempt_in_flight == attempt_id:
            self.attempt_in_flight = None
