from __future__ import annotations

import copy
import logging
import threading
import time

import pytest

from attendance_sync.accounting.accumulator import ZERO_TOTALS
from attendance_sync.activity.model import Location
from attendance_sync.core.enums import Action, ActivityType, SessionStatus
from attendance_sync.core.exceptions import (
    AlreadyClockedIn,
    AlreadyCompletedToday,
    InvalidTransition,
    NotClockedIn,
)
from attendance_sync.session.codec import from_payload, to_payload
from attendance_sync.session.service import AttendanceService
from attendance_sync.status.machine import StatusMachine


@pytest.fixture
def service(clock):
    return AttendanceService(7, clock=clock)


def test_status_is_ready_before_clock_in(service, at):
    assert service.status(at(8)) == SessionStatus.READY
    assert service.available_actions(at(8)) == [Action.CLOCK_IN]
    assert service.current_totals(at(8)) == ZERO_TOTALS


def test_clock_in_creates_working_session(service, at):
    loc = Location.create(-6.2, 106.8, "Office")

    session = service.clock_in(loc, "morning", "https://cdn/selfie.jpg", now=at(9)).unwrap()

    assert session.status == SessionStatus.WORKING
    assert session.work_date == at(9).date()
    assert session.location == loc
    assert session.revision == 1
    assert session.dirty
    assert [e.type for e in session.activities] == [ActivityType.CLOCK_IN]
    assert session.activities.last.selfie_ref == "https://cdn/selfie.jpg"


def test_second_clock_in_is_rejected(service, at):
    service.clock_in(now=at(9))

    result = service.clock_in(now=at(10))

    assert isinstance(result.error, AlreadyClockedIn)
    assert isinstance(result.error, InvalidTransition)


def test_clock_in_after_clock_out_same_day_is_rejected(service, at):
    service.clock_in(now=at(9))
    service.clock_out(now=at(17))

    result = service.clock_in(now=at(18))

    assert isinstance(result.error, AlreadyCompletedToday)


def test_clock_out_without_session(service, at):
    result = service.clock_out(now=at(17))

    assert isinstance(result.error, NotClockedIn)


def test_double_break_start_leaves_log_unchanged(service, at):
    service.clock_in(now=at(9))
    service.record_activity(ActivityType.BREAK_START, now=at(12))
    before = copy.deepcopy(service.current)

    result = service.record_activity(ActivityType.BREAK_START, now=at(12, 5))

    assert isinstance(result.error, InvalidTransition)
    assert service.current.activities == before.activities
    assert service.current.revision == before.revision
    assert service.current.status == SessionStatus.BREAK


def test_out_of_order_action_is_rejected_without_mutation(service, at):
    service.clock_in(now=at(9))
    service.record_activity(ActivityType.BREAK_START, now=at(12))

    result = service.record_activity(ActivityType.BREAK_END, now=at(11))

    assert not result.is_ok
    assert len(service.current.activities) == 2
    assert service.current.status == SessionStatus.BREAK


def test_activity_before_clock_in_is_invalid(service, at):
    result = service.record_activity(ActivityType.OVERTIME_START, now=at(9))

    assert isinstance(result.error, InvalidTransition)
    assert service.current is None


def test_clock_out_freezes_totals(service, at, clock):
    service.clock_in(now=at(9))
    service.record_activity(ActivityType.BREAK_START, now=at(12))
    service.record_activity(ActivityType.BREAK_END, now=at(12, 30))
    session = service.clock_out(notes="done", now=at(17)).unwrap()

    frozen = session.computed_totals
    assert session.status == SessionStatus.OFFLINE
    assert session.notes == "done"
    assert service.current_totals(at(20)) == frozen
    assert frozen.break_millis == 30 * 60_000
    assert frozen.total_millis == 8 * 3_600_000


def test_current_totals_is_pure(service, at):
    service.clock_in(now=at(9))
    revision = service.current.revision

    first = service.current_totals(at(10))
    second = service.current_totals(at(10))

    assert first == second
    assert service.current.revision == revision


def test_listeners_receive_each_mutation(service, at):
    seen = []
    service.add_listener(lambda s: seen.append(s.revision))

    service.clock_in(now=at(9))
    service.record_activity(ActivityType.CLIENT_VISIT_START, now=at(10))
    service.record_activity(ActivityType.CLIENT_VISIT_START, now=at(10, 1))  # rejected

    assert seen == [1, 2]


def test_closed_session_from_yesterday_resets_to_ready(service, at):
    service.clock_in(now=at(9))
    service.clock_out(now=at(17))

    assert service.status(at(9, days=1)) == SessionStatus.READY
    assert service.clock_in(now=at(9, days=1)).is_ok
    assert service.current.work_date == at(9, days=1).date()


def test_open_session_stays_current_past_midnight(service, at):
    service.clock_in(now=at(22))
    service.record_activity(ActivityType.OVERTIME_START, now=at(23))

    assert service.status(at(1, days=1)) == SessionStatus.OVERTIME
    assert service.clock_out(now=at(2, days=1)).is_ok


class SlowMachine(StatusMachine):
    def transition(self, status, action):
        result = super().transition(status, action)
        time.sleep(0.05)
        return result


def test_concurrent_actions_see_each_other(clock, at):
    service = AttendanceService(7, machine=SlowMachine(), clock=clock)
    service.clock_in(now=at(9))
    results = []

    def start(activity_type):
        results.append(service.record_activity(activity_type, now=at(18)))

    threads = [
        threading.Thread(target=start, args=(ActivityType.OVERTIME_START,)),
        threading.Thread(target=start, args=(ActivityType.CLIENT_VISIT_START,)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert sorted(r.is_ok for r in results) == [False, True]
    assert isinstance(next(r.error for r in results if not r.is_ok), InvalidTransition)
    assert len(service.current.activities) == 2
    assert service.current.revision == 2


def test_load_rederives_status_from_log(service, at, caplog):
    other = AttendanceService(7)
    other.clock_in(now=at(9))
    payload = to_payload(other.record_activity(ActivityType.BREAK_START, now=at(12)).unwrap())
    payload["status"] = "working"

    with caplog.at_level(logging.WARNING):
        service.load(from_payload(payload), now=at(12, 10))

    assert service.current.status == SessionStatus.BREAK
    assert "its log says break" in caplog.text


def test_adopt_remote_needs_newer_revision(service, at):
    session = service.clock_in(now=at(9)).unwrap()
    echo = from_payload(to_payload(session))

    assert not service.adopt_remote(echo)
    assert service.current is session

    newer = from_payload({**to_payload(session), "revision": 4})
    assert service.adopt_remote(newer)
    assert service.current.revision == 4
