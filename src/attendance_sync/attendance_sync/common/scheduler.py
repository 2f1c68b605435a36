from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class JobScheduler(Protocol):
    """Timers used by the ticker and by reconnect backoff.

    Job ids are unique: scheduling an id again replaces the previous job.
    """

    def every(self, seconds: float, func: Callable[[], None], *, job_id: str) -> None:
        raise NotImplementedError

    def later(self, seconds: float, func: Callable[[], None], *, job_id: str) -> None:
        raise NotImplementedError

    def cancel(self, job_id: str) -> None:
        raise NotImplementedError

    def shutdown(self) -> None:
        raise NotImplementedError


class BackgroundJobScheduler(JobScheduler):
    """APScheduler-backed implementation; starts on first use."""

    def __init__(self, scheduler: Optional[BackgroundScheduler] = None):
        self._scheduler = scheduler or BackgroundScheduler()

    def _ensure_started(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started")

    def every(self, seconds: float, func: Callable[[], None], *, job_id: str) -> None:
        self._ensure_started()
        self._scheduler.add_job(
            func=func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            name=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    def later(self, seconds: float, func: Callable[[], None], *, job_id: str) -> None:
        self._ensure_started()
        self._scheduler.add_job(
            func=func,
            trigger=DateTrigger(run_date=datetime.now() + timedelta(seconds=seconds)),
            id=job_id,
            name=job_id,
            replace_existing=True,
        )

    def cancel(self, job_id: str) -> None:
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            pass

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
