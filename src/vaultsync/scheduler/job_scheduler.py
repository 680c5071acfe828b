"""Periodic reconciliation passes."""

from typing import Any, Dict, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..core.connector import VaultSyncConnector
from ..utils.logging import get_logger


SYNC_JOB_ID = "vaultsync_reconciliation"


class SchedulerError(Exception):
    """Raised when scheduler operations fail."""
    pass


class SyncScheduler:
    """Runs a reconciliation pass every ``interval_minutes``."""

    def __init__(self, connector: VaultSyncConnector, interval_minutes: int):
        """Initialize the scheduler.

        Args:
            connector: Connector whose ``sync`` is run
            interval_minutes: Minutes between passes, must be at least 1
        """
        if interval_minutes < 1:
            raise SchedulerError("Interval must be at least 1 minute")

        self.connector = connector
        self.interval_minutes = interval_minutes
        self.logger = get_logger(self.__class__.__name__)

        self.scheduler = AsyncIOScheduler(
            job_defaults={
                'coalesce': True,  # Combine multiple pending executions
                'max_instances': 1,  # Never overlap two passes
                'misfire_grace_time': 300
            }
        )
        self.job_stats: Dict[str, Any] = {"runs": 0, "errors": 0, "missed": 0}

        self.scheduler.add_listener(self._job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._job_missed, EVENT_JOB_MISSED)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """Start the scheduler with the periodic sync job."""
        if self.scheduler.running:
            self.logger.warning("Scheduler is already running")
            return

        try:
            self.scheduler.add_job(
                self.connector.sync,
                trigger=IntervalTrigger(minutes=self.interval_minutes),
                id=SYNC_JOB_ID,
                name="Periodic reconciliation",
                replace_existing=True
            )
            self.scheduler.start()
        except Exception as e:
            self.logger.error("Failed to start scheduler", error=str(e))
            raise SchedulerError(f"Failed to start scheduler: {e}")

        self.logger.info("Sync scheduler started", interval_minutes=self.interval_minutes)

    def stop(self, wait: bool = False) -> None:
        if not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=wait)
        self.logger.info("Sync scheduler stopped")

    def next_run_time(self) -> Optional[str]:
        job = self.scheduler.get_job(SYNC_JOB_ID)
        if job is None or job.next_run_time is None:
            return None
        return job.next_run_time.isoformat()

    def _job_executed(self, event) -> None:
        self.job_stats["runs"] += 1
        self.logger.debug("Scheduled sync executed", job_id=event.job_id)

    def _job_error(self, event) -> None:
        self.job_stats["errors"] += 1
        self.logger.error("Scheduled sync failed", job_id=event.job_id, error=str(event.exception))

    def _job_missed(self, event) -> None:
        self.job_stats["missed"] += 1
        self.logger.warning("Scheduled sync missed", job_id=event.job_id)
