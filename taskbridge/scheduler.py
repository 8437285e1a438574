"""Background scheduler for periodic sync"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from taskbridge.services.sync_service import SyncService

logger = logging.getLogger(__name__)

JOB_ID = "sync_cycle"


class SyncAlreadyRunning(RuntimeError):
    """Raised when a cycle is requested while another one is in flight."""


class SyncScheduler:
    """Runs SyncService.run_cycle on a fixed interval, one cycle at a time"""

    def __init__(self, service: SyncService, interval_seconds: int):
        self.service = service
        self.interval_seconds = interval_seconds
        self.scheduler = BackgroundScheduler()
        self._lock = threading.Lock()
        self.last_result: Optional[Dict[str, Any]] = None
        self.last_run_at: Optional[datetime] = None

    def start(self):
        """Start the scheduler; the first cycle runs right away"""
        self.scheduler.add_job(
            func=self._sync_job,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Starting Sync Service. Interval: {self.interval_seconds} seconds")

    def stop(self):
        """Stop the scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Sync scheduler stopped")

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(JOB_ID)
        return getattr(job, "next_run_time", None) if job is not None else None

    def run_now(self) -> Dict[str, Any]:
        """Run one cycle in the caller's thread.

        Raises SyncAlreadyRunning instead of queueing behind an in-flight cycle.
        """
        if not self._lock.acquire(blocking=False):
            raise SyncAlreadyRunning("A sync cycle is already running")
        try:
            result = self.service.run_cycle()
            self.last_result = result
            self.last_run_at = datetime.now(timezone.utc)
            return result
        finally:
            self._lock.release()

    def _sync_job(self):
        """Job function for the interval trigger"""
        try:
            self.run_now()
        except SyncAlreadyRunning:
            logger.warning("Skipping scheduled sync: previous cycle still running")
        except Exception as e:
            logger.error(f"Scheduled sync failed: {e}")
