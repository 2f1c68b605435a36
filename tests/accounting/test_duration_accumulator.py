from __future__ import annotations

import random
from datetime import timedelta

from attendance_sync.accounting.accumulator import ZERO_TOTALS, DurationAccumulator, DurationTotals
from attendance_sync.activity.log import ActivityLog
from attendance_sync.activity.model import ActivityRecord
from attendance_sync.common.datetime_utils import elapsed_millis
from attendance_sync.core.enums import Action, ActivityType
from attendance_sync.session.service import AttendanceService
from attendance_sync.status.machine import ACTION_FOR_TYPE
from attendance_sync.status.policies.unlimited_break import UnlimitedBreakPolicy

MIN = 60_000


def log_of(*pairs):
    return ActivityLog([ActivityRecord.create(t, when) for t, when in pairs])


def test_totals_are_zero_at_clock_in(at):
    log = log_of((ActivityType.CLOCK_IN, at(9)))

    assert DurationAccumulator().compute(log, at(9), at(9)) == ZERO_TOTALS


def test_break_time_is_split_from_work(at):
    log = log_of(
        (ActivityType.CLOCK_IN, at(9)),
        (ActivityType.BREAK_START, at(10)),
        (ActivityType.BREAK_END, at(10, 15)),
    )

    totals = DurationAccumulator().compute(log, at(9), at(10, 15))

    assert totals == DurationTotals(work_millis=60 * MIN, break_millis=15 * MIN)
    assert totals.total_millis == 75 * MIN


def test_clock_out_from_overtime_freezes_at_clock_out(at):
    service = AttendanceService(1)
    service.clock_in(now=at(9))
    service.record_activity(ActivityType.OVERTIME_START, now=at(18))
    session = service.clock_out(now=at(19, 30)).unwrap()

    types = [e.type for e in session.activities]
    assert types[-2:] == [ActivityType.OVERTIME_END, ActivityType.CLOCK_OUT]
    assert session.activities.events()[-2].timestamp == at(19, 30)

    expected = DurationTotals(work_millis=9 * 60 * MIN, overtime_millis=90 * MIN)
    assert session.computed_totals == expected
    # Later "now" values are clamped to the clock-out instant.
    assert DurationAccumulator().compute(session.activities, at(9), at(23)) == expected


def test_trailing_span_goes_to_active_category(at):
    log = log_of((ActivityType.CLOCK_IN, at(9)), (ActivityType.CLIENT_VISIT_START, at(13)))

    totals = DurationAccumulator().compute(log, at(9), at(14, 30))

    assert totals.work_millis == 4 * 60 * MIN
    assert totals.client_visit_millis == 90 * MIN


def test_recompute_is_idempotent(at):
    log = log_of((ActivityType.CLOCK_IN, at(9)), (ActivityType.BREAK_START, at(12)))
    acc = DurationAccumulator()

    assert acc.compute(log, at(9), at(12, 40)) == acc.compute(log, at(9), at(12, 40))


def test_partition_holds_for_random_valid_sequences(at):
    rng = random.Random(20250106)
    acc = DurationAccumulator()

    for _ in range(200):
        service = AttendanceService(1, break_policy=UnlimitedBreakPolicy())
        now = at(8) + timedelta(milliseconds=rng.randint(0, 3_600_000))
        clock_in = now
        service.clock_in(now=now)

        for _ in range(rng.randint(0, 12)):
            now = now + timedelta(milliseconds=rng.randint(0, 90 * MIN))
            actions = [a for a in service.available_actions(now) if a != Action.CLOCK_OUT]
            if not actions:
                break
            action = rng.choice(actions)
            activity_type = next(t for t, a in ACTION_FOR_TYPE.items() if a == action)
            assert service.record_activity(activity_type, now=now).is_ok

        probe = now + timedelta(milliseconds=rng.randint(0, 60 * MIN))
        session = service.current
        totals = acc.compute(session.activities, clock_in, probe)
        assert totals.total_millis == elapsed_millis(clock_in, probe)
        assert min(totals.as_dict().values()) >= 0
