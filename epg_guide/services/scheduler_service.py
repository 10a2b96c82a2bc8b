import logging
from datetime import datetime
from typing import Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger


logger = logging.getLogger(__name__)

UpdateJob = Callable[[], Awaitable[Any]]


class EPGScheduler:
    """Scheduler for automatic EPG updates"""

    def __init__(self, cron: str = "0 3 * * *", misfire_grace_sec: int = 3600):
        self.cron = cron
        self.misfire_grace_sec = misfire_grace_sec
        self.scheduler: AsyncIOScheduler | None = None
        self._job: UpdateJob | None = None

    async def _update_job(self) -> None:
        """Background job that runs the EPG update"""
        logger.info("Scheduled EPG update triggered")
        if self._job is None:
            logger.warning("No update job registered")
            return
        try:
            outcome = await self._job()
            if getattr(outcome, "status", None) == "failed":
                logger.error(f"Scheduled update failed: {outcome.error}")
        except Exception as e:
            logger.error(f"Exception in scheduled update: {e}", exc_info=True)

    def start(self, job: UpdateJob) -> None:
        """Start the scheduler with the EPG update job"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        try:
            trigger = CronTrigger.from_crontab(self.cron, timezone='UTC')
        except (ValueError, KeyError) as exc:
            logger.error("Invalid cron expression '%s': %s", self.cron, exc)
            raise

        self._job = job
        self.scheduler = AsyncIOScheduler(timezone='UTC')
        self.scheduler.add_job(
            self._update_job,
            trigger=trigger,
            id='epg_update',
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.misfire_grace_sec
        )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started. Next update: %s",
            next_time.isoformat() if next_time else "unknown"
        )

    def shutdown(self) -> None:
        """Shutdown the scheduler"""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")
            self.scheduler = None

    def is_running(self) -> bool:
        return bool(self.scheduler and self.scheduler.running)

    def get_next_run_time(self) -> datetime | None:
        """Get next scheduled update time"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job('epg_update')
        return job.next_run_time if job else None
