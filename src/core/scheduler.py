"""Scheduler for the recurring reminder jobs.

``ReminderScheduler`` is constructed once by the application lifespan and
started and stopped explicitly. It runs two interval jobs: a frequent pass
over pending explicit reminders and a twice-daily due-date sweep (which also
runs once right after start-up).
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.core.config import Settings, settings
from src.core.scheduler_tracker import JobTracker, job_tracker, retry_job_with_backoff
from src.services import due_date_sweep, reminder_service


logger = logging.getLogger(__name__)

EXPLICIT_REMINDERS_JOB = "explicit_reminders"
DUE_DATE_SWEEP_JOB = "due_date_sweep"
JOB_NAMES = [EXPLICIT_REMINDERS_JOB, DUE_DATE_SWEEP_JOB]


class ReminderScheduler:
    """Owns the APScheduler instance and the stop signal shared with running jobs."""

    def __init__(self, *, config: Settings | None = None, tracker: JobTracker | None = None) -> None:
        self._config = config or settings
        self._tracker = tracker or job_tracker
        self._scheduler = AsyncIOScheduler(timezone=UTC)
        self._stopping = False

    @property
    def running(self) -> bool:
        # AsyncIOScheduler.shutdown() completes on the event loop, so stop() is authoritative
        return self._scheduler.running and not self._stopping

    def stop_requested(self) -> bool:
        return self._stopping

    async def run_explicit_reminders(self) -> None:
        await reminder_service.process_pending_reminders(stop_requested=self.stop_requested)

    async def run_due_date_sweep(self) -> None:
        await due_date_sweep.run_due_date_sweep(stop_requested=self.stop_requested)

    async def _tracked(self, job_func: Callable[[], Awaitable[None]], job_name: str) -> None:
        if self._stopping:
            return
        await retry_job_with_backoff(job_func, job_name, tracker=self._tracker)

    def start(self) -> None:
        """Register the jobs and start the scheduler.

        This should be called during FastAPI app startup.
        """
        logger.info("Starting scheduler")
        self._stopping = False

        self._scheduler.add_job(
            self._tracked,
            args=[self.run_explicit_reminders, EXPLICIT_REMINDERS_JOB],
            trigger=IntervalTrigger(seconds=self._config.reminder_poll_interval_seconds),
            id=EXPLICIT_REMINDERS_JOB,
            name="Send Pending Explicit Reminders",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduled explicit reminders job: every %ds", self._config.reminder_poll_interval_seconds)

        self._scheduler.add_job(
            self._tracked,
            args=[self.run_due_date_sweep, DUE_DATE_SWEEP_JOB],
            trigger=IntervalTrigger(hours=self._config.due_date_sweep_interval_hours),
            id=DUE_DATE_SWEEP_JOB,
            name="Send Due-Date Reminders",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(UTC),
        )
        logger.info("Scheduled due-date sweep job: every %dh", self._config.due_date_sweep_interval_hours)

        self._scheduler.start()
        logger.info("Scheduler started successfully")

    def stop(self) -> None:
        """Stop scheduling new runs and signal running jobs to finish their current item.

        This should be called during FastAPI app shutdown.
        """
        logger.info("Stopping scheduler")
        self._stopping = True
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

