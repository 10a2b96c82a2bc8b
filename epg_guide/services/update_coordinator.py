"""
Update Coordination

Guards EPG update passes so that at most one runs at a time, and owns the
update lifecycle state (idle/updating, last successful update).
"""
from datetime import datetime, timedelta
import logging
from typing import Awaitable, Callable, TypeVar

from epg_guide.services.guide_types import UpdateState, UpdateStatus
from epg_guide.utils.date_parsing import utc_now


logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpdateInProgressError(RuntimeError):
    """Raised internally when an update is requested while another one runs"""
    pass


class UpdateCoordinator:
    """
    Coordinates EPG update operations to prevent concurrent executions.

    The is_updating flag is the only mutual-exclusion mechanism. It is set
    synchronously before the update coroutine is awaited and cleared on every
    exit path, so a second trigger on the same event loop always observes it.
    """

    def __init__(self, stale_after: timedelta = timedelta(hours=24)):
        self.state = UpdateState()
        self.stale_after = stale_after

    async def execute(self, update_func: Callable[[], Awaitable[T]]) -> T:
        """
        Execute an update operation with concurrency protection.

        Args:
            update_func: Async function running one update pass

        Returns:
            Result from update_func

        Raises:
            UpdateInProgressError: If an update is already running
            Any exception raised by update_func
        """
        if self.state.is_updating:
            logger.warning("EPG update already in progress, skipping this request")
            raise UpdateInProgressError("EPG update operation already in progress")

        self.state.is_updating = True
        try:
            return await update_func()
        finally:
            self.state.is_updating = False

    def mark_success(self, completed_at: datetime | None = None) -> None:
        self.state.last_update = completed_at or utc_now()
        self.state.last_error = None

    def mark_failure(self, error: str) -> None:
        self.state.last_error = error

    @property
    def status(self) -> UpdateStatus:
        return self.state.status

    def is_updating(self) -> bool:
        """
        Check if an update operation is currently in progress.

        Returns:
            True if an update is running, False otherwise
        """
        return self.state.is_updating

    def needs_update(self, now: datetime | None = None) -> bool:
        """True if never updated or the last update is older than stale_after."""
        if self.state.last_update is None:
            return True
        elapsed = (now or utc_now()) - self.state.last_update
        return elapsed > self.stale_after
