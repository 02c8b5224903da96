"""
Scheduled Job Configuration

Drives the periodic batch jobs with APScheduler:
- Reminder generation daily at NOTIFICATION_GENERATE_AT_HOUR (local time)
- Notification delivery every NOTIFICATION_DELIVERY_INTERVAL_MINUTES
  (only when NOTIFICATION_AUTO_SEND is on)
- Metrics recomputation daily at METRICS_RECOMPUTE_HOUR (local time)

Execution Context:
    The scheduler runs IN-PROCESS with FastAPI. It is started/stopped via
    FastAPI's lifespan context manager in studypulse/main.py.

    Flow:
        uvicorn starts FastAPI -> lifespan() builds NotificationScheduler
        -> start() -> APScheduler runs the jobs in the event loop

    Each job opens its own database session, so a job never shares a
    transaction with a request or with another job.

Overlap rules:
    Every job is registered with max_instances=1 and coalesce=True: two runs
    of the same job never overlap and missed runs collapse into one. On top
    of that, run_generation() remembers the civil date of its last successful
    run and is a no-op when triggered again the same day. Generation and
    delivery may run concurrently with each other.

Limitations:
    - Single instance only: If you scale to multiple backend replicas,
      each replica runs its own scheduler. Reminder generation stays safe
      (unique constraint), but delivery could push a notification twice.

Usage:
    scheduler = NotificationScheduler(async_session_maker, HttpPushSender.from_settings, clock)
    scheduler.start()
    ...
    scheduler.trigger_job_now("reminder_generation")
    await scheduler.stop()
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import Any, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studypulse.config import Settings, get_settings
from studypulse.models.metrics import BatchResult
from studypulse.models.notifications import DeliveryReport
from studypulse.services.clock import Clock
from studypulse.services.learning.metrics_service import MetricsService
from studypulse.services.notifications.delivery import NotificationDeliveryService
from studypulse.services.notifications.generator import NotificationGenerator

logger = logging.getLogger(__name__)

GENERATION_JOB_ID = "reminder_generation"
DELIVERY_JOB_ID = "notification_delivery"
METRICS_JOB_ID = "metrics_recompute"

# Returns an async context manager yielding a PushSender
SenderFactory = Callable[[], Any]


class NotificationScheduler:
    """
    Owner of the periodic reminder, delivery and metrics jobs.

    The batch logic lives in the services; this class only decides when
    they run, gives each run a fresh session and keeps a failed run from
    taking the driver down.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        sender_factory: SenderFactory,
        clock: Clock,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the scheduler (jobs are registered on start()).

        Args:
            session_factory: Creates one AsyncSession per job run.
            sender_factory: Creates the push sender for a delivery run.
            clock: Source of "now"/"today" for every job.
            settings: Application settings (default: get_settings()).
        """
        self.session_factory = session_factory
        self.sender_factory = sender_factory
        self.clock = clock
        self.settings = settings or get_settings()
        self.scheduler = AsyncIOScheduler(timezone=clock.tz)
        self.last_generated_on: Optional[date] = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self.scheduler.running

    # -------------------------------------------------------------------------
    # Batch runs
    # -------------------------------------------------------------------------

    async def run_generation(self, force: bool = False) -> Optional[BatchResult]:
        """
        Generate today's reminders once per civil day.

        Args:
            force: Run even if generation already succeeded today.

        Returns:
            BatchResult, or None when skipped because today was already done.
        """
        today = self.clock.today()
        if not force and self.last_generated_on == today:
            logger.info(f"Reminder generation already ran for {today}, skipping")
            return None

        async with self.session_factory() as db:
            generator = NotificationGenerator(db, self.clock)
            result = await generator.generate_for_today()

        self.last_generated_on = today
        logger.info(f"Reminder generation finished for {today}: {result.created} created")
        return result

    async def run_delivery(self) -> DeliveryReport:
        """Deliver every due notification once."""
        async with self.sender_factory() as sender:
            async with self.session_factory() as db:
                service = NotificationDeliveryService(db, sender, self.clock)
                return await service.deliver_due()

    async def run_metrics_sweep(self) -> BatchResult:
        """Recompute the metrics snapshot of every active learner."""
        async with self.session_factory() as db:
            service = MetricsService(db, self.clock)
            return await service.recompute_all()

    # -------------------------------------------------------------------------
    # Job wrappers (never raise into APScheduler)
    # -------------------------------------------------------------------------

    async def _generation_job(self) -> None:
        await self._run_job("Reminder generation", self.run_generation)

    async def _delivery_job(self) -> None:
        await self._run_job("Notification delivery", self.run_delivery)

    async def _metrics_job(self) -> None:
        await self._run_job("Metrics recomputation", self.run_metrics_sweep)

    async def _run_job(self, label: str, run: Callable[[], Awaitable[Any]]) -> None:
        """Run one batch, registered as in flight until it returns."""
        task = asyncio.current_task()
        self._in_flight.add(task)
        try:
            await run()
        except Exception as e:
            logger.error(f"{label} run failed: {e}", exc_info=True)
        finally:
            self._in_flight.discard(task)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def setup_jobs(self) -> None:
        """Register all jobs on the underlying APScheduler instance."""
        s = self.settings
        common = {
            "replace_existing": True,
            "max_instances": 1,
            "coalesce": True,
            "misfire_grace_time": s.SCHEDULER_MISFIRE_GRACE_SECONDS,
        }

        self.scheduler.add_job(
            self._generation_job,
            CronTrigger(hour=s.NOTIFICATION_GENERATE_AT_HOUR, minute=0, timezone=self.clock.tz),
            id=GENERATION_JOB_ID,
            name="Study Reminder Generation",
            **common,
        )

        if s.NOTIFICATION_AUTO_SEND:
            self.scheduler.add_job(
                self._delivery_job,
                IntervalTrigger(minutes=s.NOTIFICATION_DELIVERY_INTERVAL_MINUTES),
                id=DELIVERY_JOB_ID,
                name="Notification Delivery",
                **common,
            )

        self.scheduler.add_job(
            self._metrics_job,
            CronTrigger(hour=s.METRICS_RECOMPUTE_HOUR, minute=0, timezone=self.clock.tz),
            id=METRICS_JOB_ID,
            name="Learner Metrics Recomputation",
            **common,
        )

        logger.info("Scheduled jobs configured:")
        logger.info(
            f"  - Reminder generation: daily at {s.NOTIFICATION_GENERATE_AT_HOUR:02d}:00 "
            f"{self.clock.tz}"
        )
        if s.NOTIFICATION_AUTO_SEND:
            logger.info(
                f"  - Notification delivery: every {s.NOTIFICATION_DELIVERY_INTERVAL_MINUTES} minutes"
            )
        else:
            logger.info("  - Notification delivery: disabled (NOTIFICATION_AUTO_SEND=false)")
        logger.info(
            f"  - Metrics recomputation: daily at {s.METRICS_RECOMPUTE_HOUR:02d}:00 {self.clock.tz}"
        )

    def start(self) -> None:
        """Start the scheduler and configure jobs."""
        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        self.setup_jobs()
        self.scheduler.start()
        logger.info("Scheduler started")

    async def stop(self, wait: bool = True) -> None:
        """
        Stop the scheduler.

        No new runs start once this is called. With wait=True the runs
        already in flight are awaited to completion first; with wait=False
        they are cancelled by the shutdown.
        """
        if not self.scheduler.running:
            logger.warning("Scheduler not running")
            return

        self.scheduler.pause()
        if wait and self._in_flight:
            logger.info(f"Waiting for {len(self._in_flight)} running job(s) to finish")
            await asyncio.gather(*self._in_flight, return_exceptions=True)

        self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    def get_jobs(self) -> list[dict]:
        """Get list of scheduled jobs with their next run times."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run": next_run.isoformat() if next_run else None,
                    "trigger": str(job.trigger),
                }
            )
        return jobs

    def trigger_job_now(self, job_id: str) -> bool:
        """
        Manually trigger a scheduled job immediately.

        Args:
            job_id: ID of the job to trigger

        Returns:
            True if triggered successfully
        """
        job = self.scheduler.get_job(job_id)
        if job:
            job.modify(next_run_time=datetime.now(self.clock.tz))
            logger.info(f"Manually triggered job: {job_id}")
            return True

        logger.warning(f"Job not found: {job_id}")
        return False
