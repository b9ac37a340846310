"""
One-off delayed actions using APScheduler.
Backs the fallback purge of private uploads for abandoned submissions.
"""

import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from core.logging_config import get_logger
from core.settings import settings

logger = get_logger(__name__)

# Actions by id, shared with run_action so persisted jobs resolve after a restart
_actions: Dict[str, Callable[..., Any]] = {}


def run_action(action_id: str, args: Sequence[Any]) -> None:
    """Job entry point: dispatch a scheduled action to its registered callable"""
    action = _actions.get(action_id)
    if action is None:
        logger.error(f"No action registered for scheduled job '{action_id}'")
        return
    logger.info(f"Running scheduled action '{action_id}'")
    action(list(args))


def job_id_for(action_id: str, args: Sequence[Any]) -> str:
    digest = hashlib.sha256(json.dumps([action_id, list(args)], default=str).encode()).hexdigest()[:16]
    return f"{action_id}_{digest}"


class CleanupScheduler:
    """
    Fire-and-forget scheduler for delayed single run actions.

    Scheduling the same action with the same arguments again replaces the
    pending job, so there is at most one pending run per (action, args).
    """

    def __init__(self, jobstore_url: Optional[str] = None):
        jobstore_url = jobstore_url if jobstore_url is not None else settings.SCHEDULER_JOBSTORE_URL
        if jobstore_url:
            from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
            jobstore = SQLAlchemyJobStore(url=jobstore_url)
        else:
            jobstore = MemoryJobStore()

        self.scheduler = BackgroundScheduler(
            jobstores={"default": jobstore},
            timezone="UTC",
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 3600,
            },
        )
        self._running = False

        self.scheduler.add_listener(self._job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._job_error_listener, EVENT_JOB_ERROR)

    def start(self):
        if self._running:
            logger.warning("CleanupScheduler is already running")
            return

        self.scheduler.start()
        self._running = True
        logger.info("CleanupScheduler started")

    def stop(self):
        if not self._running:
            return

        self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("CleanupScheduler stopped")

    def is_running(self) -> bool:
        return self._running and self.scheduler.running

    def register_action(self, action_id: str, action: Callable[..., Any]) -> None:
        """Register the callable run for ``action_id``; it receives the job args as a list"""
        _actions[action_id] = action

    def schedule(self, delay_seconds: int, action_id: str, args: Sequence[Any]) -> Optional[str]:
        """
        Run ``action_id`` with ``args`` once, ``delay_seconds`` from now.

        Returns the job id, or None when the job could not be scheduled.
        Scheduling failures are logged, never raised.
        """
        job_id = job_id_for(action_id, args)
        run_at = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)

        try:
            self.scheduler.add_job(
                func=run_action,
                trigger=DateTrigger(run_date=run_at, timezone="UTC"),
                id=job_id,
                args=[action_id, list(args)],
                name=f"Scheduled action: {action_id}",
                replace_existing=True,
            )
        except Exception as e:
            logger.error(f"Failed to schedule action '{action_id}' with args {list(args)}: {e}")
            return None

        logger.info_ctx(
            f"Scheduled action '{action_id}' at {run_at.isoformat()}",
            job_id=job_id,
        )
        return job_id

    def get_pending_jobs(self) -> List[Dict[str, Any]]:
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run_time = getattr(job, "next_run_time", None)
            next_run = next_run_time.isoformat() if next_run_time else None
            jobs.append({
                "job_id": job.id,
                "name": job.name,
                "next_run": next_run,
                "args": list(job.args),
            })
        return jobs

    def _job_executed_listener(self, event):
        logger.debug(f"Job {event.job_id} executed successfully")

    def _job_error_listener(self, event):
        logger.error(f"Job {event.job_id} failed with exception: {event.exception}")


# Global instance
_cleanup_scheduler: Optional[CleanupScheduler] = None


def get_cleanup_scheduler() -> CleanupScheduler:
    global _cleanup_scheduler

    if _cleanup_scheduler is None:
        _cleanup_scheduler = CleanupScheduler()

    return _cleanup_scheduler
