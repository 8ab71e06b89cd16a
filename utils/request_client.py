"""
Resilient wrapper for remote calls.

Every remote operation runs under a timeout and is retried on timeout up to a
fixed attempt budget. A RequestTelemetry object counts in-flight calls and
drives a delayed loading indicator: it is shown only when a call is still in
flight after the delay, and hidden as soon as the count drops to zero.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from notifications.notifier import Notifier
from utils.constants import (
    LOADING_INDICATOR_DELAY_SECONDS,
    REQUEST_MAX_ATTEMPTS,
    REQUEST_TIMEOUT_SECONDS,
)
from utils.exceptions import RequestTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestTelemetry:
    """
    In-flight request counter with a delayed loading indicator.

    Construct one per session and pass it to every ResilientRequestClient
    sharing the indicator.
    """

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        show_delay: float = LOADING_INDICATOR_DELAY_SECONDS,
    ):
        self.notifier = notifier
        self.show_delay = show_delay
        self.in_flight = 0
        self.indicator_visible = False
        self._show_task: Optional[asyncio.Task] = None
        # Serialises show/hide so a hide never overtakes a pending show
        self._indicator_lock = asyncio.Lock()

    async def request_started(self) -> None:
        self.in_flight += 1
        if self.indicator_visible or self._show_task is not None:
            return
        self._show_task = asyncio.create_task(self._show_after_delay())

    async def request_finished(self) -> None:
        self.in_flight = max(0, self.in_flight - 1)
        if self.in_flight:
            return

        if self._show_task is not None:
            self._show_task.cancel()
            self._show_task = None
        async with self._indicator_lock:
            if self.indicator_visible and not self.in_flight:
                self.indicator_visible = False
                if self.notifier:
                    await self.notifier.hide_loading()

    async def _show_after_delay(self) -> None:
        try:
            await asyncio.sleep(self.show_delay)
        except asyncio.CancelledError:
            return
        self._show_task = None
        async with self._indicator_lock:
            if self.in_flight > 0 and not self.indicator_visible:
                self.indicator_visible = True
                if self.notifier:
                    await self.notifier.show_loading()

    async def close(self) -> None:
        """Cancel a pending indicator and hide a visible one."""
        self.in_flight = 0
        await self.request_finished()


class ResilientRequestClient:
    """Runs remote calls with a timeout, bounded retry-on-timeout and telemetry."""

    def __init__(
        self,
        telemetry: Optional[RequestTelemetry] = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        max_attempts: int = REQUEST_MAX_ATTEMPTS,
        retry_delay: float = 0.0,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.telemetry = telemetry or RequestTelemetry()
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    @classmethod
    def from_settings(cls, telemetry: Optional[RequestTelemetry] = None) -> "ResilientRequestClient":
        from config import settings

        return cls(
            telemetry=telemetry,
            timeout=settings.request_timeout_seconds,
            max_attempts=settings.request_max_attempts,
        )

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str = "remote call",
    ) -> T:
        """
        Run a remote operation.

        Args:
            operation: Zero-argument factory returning a fresh awaitable per attempt
            name: Operation name for logs and errors

        Returns:
            The operation's result

        Raises:
            RequestTimeoutError: If every attempt timed out
            Exception: Any non-timeout error from the operation, unchanged
        """
        await self.telemetry.request_started()
        try:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    return await asyncio.wait_for(operation(), timeout=self.timeout)
                except RequestTimeoutError:
                    # Nested client already spent its own budget
                    raise
                except asyncio.TimeoutError:
                    logger.warning(
                        f"{name} timed out after {self.timeout}s "
                        f"(attempt {attempt}/{self.max_attempts})"
                    )
                    if attempt < self.max_attempts and self.retry_delay:
                        await asyncio.sleep(self.retry_delay * attempt)

            raise RequestTimeoutError(
                f"{name} exceeded timeout ({self.timeout}s) "
                f"after {self.max_attempts} attempts"
            )
        finally:
            await self.telemetry.request_finished()
