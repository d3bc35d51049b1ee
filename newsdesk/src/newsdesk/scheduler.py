"""
Periodic refresher for a running service.

Uses APScheduler to force-refresh all feeds on a fixed interval. This is
an external caller of the aggregator; the service itself never schedules.
"""

import uuid
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .logging_conf import bind_context, clear_context, get_logger
from .service import NewsService

logger = get_logger(__name__)

JOB_ID = "newsdesk_refresh"


class RefreshScheduler:
    """
    Background scheduler that keeps the cache warm.
    """

    def __init__(self, service: NewsService, interval_seconds: int = 300):
        """
        Initialize scheduler.

        Args:
            service: Service whose feeds are refreshed
            interval_seconds: Seconds between refreshes
        """
        self.service = service
        self.interval_seconds = interval_seconds
        self.scheduler = BackgroundScheduler()
        self._running = False

    def _create_job(self) -> None:
        self.scheduler.add_job(
            self._run_job,
            IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Feed Refresh",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("refresh_job_scheduled", interval_seconds=self.interval_seconds)

    def _run_job(self) -> None:
        """Execute a single refresh pass."""
        bind_context(run_id=uuid.uuid4().hex[:8])
        try:
            refreshed = self.service.refresh_all_feeds()
            logger.info("scheduled_refresh_completed", feeds_refreshed=refreshed)
        except Exception as e:
            logger.error("scheduled_refresh_failed", error=str(e))
        finally:
            clear_context()

    def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            logger.warning("scheduler_already_running")
            return

        self._create_job()
        self.scheduler.start()
        self._running = True

        logger.info("scheduler_started")

    def stop(self) -> None:
        """Stop the scheduler."""
        if not self._running:
            return

        self.scheduler.shutdown(wait=False)
        self._running = False

        logger.info("scheduler_stopped")

    @property
    def running(self) -> bool:
        return self._running

    def get_next_run(self) -> Optional[datetime]:
        """Get the next scheduled run time."""
        job = self.scheduler.get_job(JOB_ID)
        if job:
            return job.next_run_time
        return None
