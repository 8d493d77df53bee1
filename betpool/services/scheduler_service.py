"""
BetPool Automatic Settlement Scheduler Service

Runs settlement in the background with APScheduler. A single one-shot job is
kept pointed at the latest pending kickoff plus the auto-settle delay; it is
moved whenever picks change and removed when nothing is pending.
"""

import atexit
import logging
from datetime import datetime, timedelta, timezone

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from betpool.models import Player
from betpool.services.settlement_service import (
    SettlementService,
    collect_pending,
    latest_pending_kickoff,
)
from betpool.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)

AUTO_SETTLE_JOB_ID = "auto_settle"


class SchedulerService:
    """Manages the background auto-settlement job"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.settle_stats = {
            "last_run": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
            "results_settled": 0,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        atexit.register(self.shutdown)

        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self.scheduler.start()
            self.is_running = True
            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

        self.schedule_auto_settlement()

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _delay(self, key, default):
        return timedelta(minutes=self.app.config.get(key, default))

    def schedule_auto_settlement(self):
        """
        Point the auto-settle job at the latest pending kickoff plus the
        configured delay. Runs straight away when that moment has passed.

        Returns:
            The scheduled run time, or None when nothing is pending
        """
        if not self.is_running:
            return None

        with self.app.app_context():
            latest = latest_pending_kickoff(Player.get_roster())

        if latest is None:
            self.cancel_auto_settlement()
            return None

        now = get_utc_time()
        run_at = latest + self._delay("AUTO_SETTLE_DELAY_MINUTES", 135)

        if run_at <= now:
            # Leave a queued retry alone rather than re-running on every poll
            existing = self.scheduler.get_job(AUTO_SETTLE_JOB_ID)
            if existing is not None and existing.next_run_time is not None:
                return existing.next_run_time
            run_at = now

        self._add_job(run_at)
        return run_at

    def _add_job(self, run_at):
        self.scheduler.add_job(
            func=self._auto_settle,
            trigger=DateTrigger(run_date=run_at),
            id=AUTO_SETTLE_JOB_ID,
            name="Auto Settle Pending Predictions",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=3600,
        )
        logger.info(f"Auto-settle scheduled for {run_at.isoformat()}")

    def cancel_auto_settlement(self):
        """Drop the auto-settle job if one is queued"""
        if self.scheduler is None:
            return False
        try:
            self.scheduler.remove_job(AUTO_SETTLE_JOB_ID)
            logger.info("Auto-settle cancelled, nothing pending")
            return True
        except JobLookupError:
            return False

    def _auto_settle(self):
        """Scheduled settlement run"""
        with self.app.app_context():
            try:
                report = SettlementService().settle()
                self._update_stats(report)
                logger.info(f"Auto-settle: {report['message']}")

                # Results not final yet; try again later
                if collect_pending(Player.get_roster()):
                    retry_at = get_utc_time() + self._delay(
                        "AUTO_SETTLE_RETRY_MINUTES", 30
                    )
                    self._add_job(retry_at)

            except Exception as e:
                logger.error(f"Auto-settle failed: {e}", exc_info=True)
                self.settle_stats["last_error"] = str(e)
                self._update_stats(None)

    def _update_stats(self, report):
        """Update settlement statistics"""
        self.settle_stats["last_run"] = datetime.now(timezone.utc)
        self.settle_stats["total_runs"] += 1

        if report and report["success"]:
            self.settle_stats["successful_runs"] += 1
            self.settle_stats["results_settled"] += report["settled"]
            self.settle_stats["last_error"] = None
        else:
            self.settle_stats["failed_runs"] += 1
            if report:
                self.settle_stats["last_error"] = report.get("error")

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        return {"is_running": self.is_running, "jobs": jobs, "stats": self.settle_stats}


# Global scheduler instance
scheduler_service = SchedulerService()
