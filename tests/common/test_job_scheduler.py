from __future__ import annotations

from unittest.mock import MagicMock

from apscheduler.jobstores.base import JobLookupError
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from attendance_sync.common.scheduler import BackgroundJobScheduler


def make():
    backend = MagicMock()
    backend.running = False
    return BackgroundJobScheduler(backend), backend


def test_every_starts_backend_and_replaces_job():
    scheduler, backend = make()

    scheduler.every(1, print, job_id="tick")

    backend.start.assert_called_once()
    kwargs = backend.add_job.call_args.kwargs
    assert kwargs["id"] == "tick"
    assert kwargs["replace_existing"] is True
    assert kwargs["max_instances"] == 1
    assert isinstance(kwargs["trigger"], IntervalTrigger)


def test_later_uses_one_shot_trigger():
    scheduler, backend = make()

    scheduler.later(4, print, job_id="reconnect")

    assert isinstance(backend.add_job.call_args.kwargs["trigger"], DateTrigger)


def test_cancel_unknown_job_is_quiet():
    scheduler, backend = make()
    backend.remove_job.side_effect = JobLookupError("nope")

    scheduler.cancel("nope")

    backend.remove_job.assert_called_once_with("nope")


def test_shutdown_only_when_running():
    scheduler, backend = make()
    scheduler.shutdown()
    backend.shutdown.assert_not_called()

    backend.running = True
    scheduler.shutdown()
    backend.shutdown.assert_called_once_with(wait=False)
