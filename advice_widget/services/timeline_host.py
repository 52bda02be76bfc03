"""Background host that re-invokes the scheduler on the cadence it returns"""

import logging
import threading
from datetime import datetime

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from advice_widget.models.timeline import RefreshAck, ScheduleDecision
from advice_widget.services.timeline_scheduler import TimelineScheduler

logger = logging.getLogger(__name__)


class TimelineHost:
    """
    Keeps a current timeline by honoring each decision's next_refresh_at

    Every reload runs as a one-shot DateTrigger job that arms the next one.
    A manual refresh invalidates the cache and replaces the pending job with
    an immediate reload.
    """

    def __init__(
        self,
        timeline_scheduler: TimelineScheduler,
        scheduler: BackgroundScheduler | None = None,
    ) -> None:
        """
        Initialize host

        Args:
            timeline_scheduler: Scheduler producing decisions
            scheduler: Optional running BackgroundScheduler to share; a private
                one is created, started and shut down by the host otherwise
        """
        self.timeline_scheduler = timeline_scheduler
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or BackgroundScheduler()
        self.latest: ScheduleDecision | None = None
        self._job: Job | None = None
        self._armed = 0
        self._job_lock = threading.Lock()

    def start(self) -> None:
        """Start the scheduler (if owned) and request an immediate reload"""
        if self._owns_scheduler:
            self.scheduler.start()
        self._arm(run_date=None)
        logger.info("Timeline host started")

    def stop(self) -> None:
        """Cancel the pending reload and stop the scheduler (if owned)"""
        with self._job_lock:
            if self._job is not None:
                try:
                    self._job.remove()
                except JobLookupError:
                    logger.warning("Timeline job not found during shutdown")
                self._job = None

        if self._owns_scheduler:
            self.scheduler.shutdown(wait=False)
        logger.info("Timeline host stopped")

    def refresh(self) -> RefreshAck:
        """Manual refresh: clear the cache, then reload right away"""
        ack = self.timeline_scheduler.invalidate()
        self._arm(run_date=None)
        return ack

    def reload_timeline(self) -> ScheduleDecision:
        """Ask for a new timeline and arm the next reload at its refresh instant"""
        with self._job_lock:
            armed = self._armed

        try:
            decision = self.timeline_scheduler.schedule()
        except Exception as e:
            logger.error(f"Timeline reload failed: {e}", exc_info=True)
            entry = self.timeline_scheduler.placeholder()
            decision = ScheduleDecision(
                entries=[entry],
                next_refresh_at=entry.timestamp + self.timeline_scheduler.refresh_interval,
            )

        if self._arm(run_date=decision.next_refresh_at, expected=armed, decision=decision):
            logger.info(f"Next timeline reload at {decision.next_refresh_at.isoformat()}")
        else:
            logger.info("Refresh requested during reload, keeping its pending reload")
        return decision

    def _arm(
        self,
        run_date: datetime | None,
        expected: int | None = None,
        decision: ScheduleDecision | None = None,
    ) -> bool:
        """
        Replace the pending reload job; run_date None means now

        Args:
            run_date: When the reload should run
            expected: Skip arming unless no other arm happened since this count
            decision: Becomes `latest` together with the arm; a superseded
                reload leaves `latest` alone

        Returns:
            bool: True if a job was armed
        """
        with self._job_lock:
            if expected is not None and expected != self._armed:
                return False
            self._armed += 1
            if decision is not None:
                self.latest = decision

            if self._job is not None:
                try:
                    self._job.remove()
                except JobLookupError:
                    # Already fired; the scheduler drops finished date jobs itself
                    pass

            self._job = self.scheduler.add_job(
                self.reload_timeline,
                trigger=DateTrigger(run_date=run_date),
                name="Advice Timeline Reload",
                misfire_grace_time=None,
                coalesce=True,
            )
        return True
