from __future__ import annotations

import copy
from datetime import date, datetime, timedelta

import pytest

from attendance_sync.session.codec import from_payload


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 6, 9, 0, 0)


@pytest.fixture
def at(fixed_now):
    """``at(10, 15)`` -> that wall time on the fixed day."""

    def _at(hour: int, minute: int = 0, second: int = 0, *, days: int = 0) -> datetime:
        return fixed_now.replace(hour=hour, minute=minute, second=second) + timedelta(days=days)

    return _at


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock(fixed_now) -> Clock:
    return Clock(fixed_now)


class FakeSessionStore:
    """Payload dicts keyed by session id; ``fail_writes`` makes the next N writes raise."""

    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.fail_writes = 0
        self.fail_reads = False
        self.creates: list[dict] = []
        self.updates: list[tuple[str, dict]] = []

    def _maybe_fail(self):
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise ConnectionError("store unreachable")

    def create_session(self, payload):
        self._maybe_fail()
        self.creates.append(copy.deepcopy(payload))
        self.rows[str(payload["id"])] = copy.deepcopy(payload)
        return str(payload["id"])

    def update_session(self, session_id, patch):
        self._maybe_fail()
        self.updates.append((session_id, copy.deepcopy(patch)))
        row = self.rows.get(str(session_id))
        if row is None or int(row.get("revision") or 0) > int(patch.get("revision") or 0):
            return False
        row.update(copy.deepcopy(patch))
        return True

    def _sessions(self):
        if self.fail_reads:
            raise ConnectionError("store unreachable")
        return [from_payload(copy.deepcopy(p)) for p in self.rows.values()]

    def get_sessions_for_user(self, user_id, start_date, end_date):
        return [s for s in self._sessions() if s.user_id == int(user_id) and start_date <= s.work_date <= end_date]

    def get_today_session(self, user_id, today: date):
        return next((s for s in self._sessions() if s.user_id == int(user_id) and s.work_date == today), None)

    def get_current_session(self, user_id, today: date):
        mine = [s for s in self._sessions() if s.user_id == int(user_id) and s.work_date <= today]
        candidates = [s for s in mine if s.work_date == today or s.is_open]
        return max(candidates, key=lambda s: s.work_date, default=None)

    def list_sessions_for_date(self, work_date):
        return [s for s in self._sessions() if s.work_date == work_date]


@pytest.fixture
def store() -> FakeSessionStore:
    return FakeSessionStore()


class FakeScheduler:
    def __init__(self):
        self.jobs: dict[str, tuple[str, float, object]] = {}
        self.delays: list[float] = []
        self.cancelled: list[str] = []
        self.stopped = False

    def every(self, seconds, func, *, job_id):
        self.jobs[job_id] = ("every", seconds, func)

    def later(self, seconds, func, *, job_id):
        self.delays.append(seconds)
        self.jobs[job_id] = ("later", seconds, func)

    def cancel(self, job_id):
        self.cancelled.append(job_id)
        self.jobs.pop(job_id, None)

    def shutdown(self):
        self.stopped = True

    def fire(self, job_id):
        kind, _, func = self.jobs[job_id]
        if kind == "later":
            del self.jobs[job_id]
        func()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


class FakeProfiles:
    def __init__(self, profiles=()):
        self.profiles = list(profiles)

    def list_active_profiles(self):
        return [p for p in self.profiles if p.is_active]


@pytest.fixture
def profiles() -> FakeProfiles:
    return FakeProfiles()
