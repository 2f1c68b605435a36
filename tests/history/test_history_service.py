from __future__ import annotations

import pytest

from attendance_sync.core.enums import ActivityType
from attendance_sync.core.exceptions import ValidationError
from attendance_sync.history.service import HistoryService, summarize
from attendance_sync.session.codec import to_payload
from attendance_sync.session.service import AttendanceService


def add_day(store, at, days, *, overtime=False):
    service = AttendanceService(5)
    service.clock_in(now=at(9, days=days))
    service.record_activity(ActivityType.BREAK_START, now=at(12, days=days))
    service.record_activity(ActivityType.BREAK_END, now=at(13, days=days))
    if overtime:
        service.record_activity(ActivityType.OVERTIME_START, now=at(17, days=days))
    session = service.clock_out(now=at(18, days=days)).unwrap()
    store.create_session(to_payload(session))
    return session


def test_history_lists_recent_days_newest_first(store, at):
    add_day(store, at, -40)
    add_day(store, at, -2)
    add_day(store, at, -1, overtime=True)

    data = HistoryService(store).get_history(5, days=30, today=at(9).date())

    assert [r["work_date"] for r in data.rows] == ["2025-01-05", "2025-01-04"]
    assert data.rows[0]["overtime_hours"] == "01:00"
    assert data.rows[0]["clock_out"] == "18:00"
    assert data.summary["total_days"] == 2
    assert data.summary["total_work"] == "15:00"
    assert data.summary["total_break"] == "02:00"


def test_summarize_empty():
    summary = summarize([])

    assert summary["total_days"] == 0
    assert summary["total_work"] == "00:00"


def test_days_must_be_positive(store):
    with pytest.raises(ValidationError):
        HistoryService(store).get_history(5, days=0)
