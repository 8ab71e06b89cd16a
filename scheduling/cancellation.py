"""
Cancellation transaction coordinator.

IDLE -> COMMITTING -> COMMITTED | FAILED

Nothing is applied locally before the remote update, so a failure needs no
rollback; on success the visit is dropped from the local list.
"""

import logging
from enum import Enum
from typing import Optional

from db.supabase_client import SupabaseClient
from models.visit import VisitStatus
from notifications.notifier import Notifier
from scheduling.guard import SingleFlightGuard
from scheduling.visit_list import VisitListStore, VisitRemoved
from utils.exceptions import SchedulingError
from utils.request_client import ResilientRequestClient

logger = logging.getLogger(__name__)

GENERIC_CANCEL_FAILURE = "Failed to cancel appointment. Please try again."


class CancellationState(str, Enum):
    """Cancellation attempt states."""

    IDLE = "idle"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


class CancellationCoordinator:
    """Cancels one visit at a time."""

    def __init__(
        self,
        db: SupabaseClient,
        request_client: ResilientRequestClient,
        store: VisitListStore,
        notifier: Notifier,
        guard: Optional[SingleFlightGuard] = None,
    ):
        self.db = db
        self.request_client = request_client
        self.store = store
        self.notifier = notifier
        self.guard = guard or SingleFlightGuard()
        self.state = CancellationState.IDLE

    @property
    def action_loading(self) -> bool:
        return self.guard.busy

    async def cancel(self, visit_id: str) -> Optional[bool]:
        """
        Cancel a visit.

        Returns:
            True on success, None if another action was in flight

        Raises:
            SchedulingError: If the remote update failed (local list untouched)
        """
        attempt_id = self.guard.try_acquire()
        if attempt_id is None:
            logger.debug("Cancellation dropped: another action is in flight")
            return None

        try:
            self.state = CancellationState.COMMITTING
            await self.request_client.call(
                lambda: self.db.update_visit(visit_id, {"status": VisitStatus.CANCELED}),
                name="update_visit",
            )

            self.store.dispatch(VisitRemoved(visit_id))
            self.state = CancellationState.COMMITTED
            logger.info(f"Visit {visit_id} cancelled")
            await self.notifier.success("Appointment cancelled successfully")
            return True

        except Exception as e:
            self.state = CancellationState.FAILED
            if isinstance(e, SchedulingError):
                logger.warning(f"Cancellation of visit {visit_id} failed: {e}")
            else:
                logger.error(f"Unexpected cancellation failure for visit {visit_id}: {e}", exc_info=True)
            await self.notifier.error(GENERIC_CANCEL_FAILURE)
            raise

        finally:
            self.guard.release(attempt_id)
