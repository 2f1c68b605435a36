from __future__ import annotations

import pytest

from attendance_sync.core.enums import ActivityType, SessionStatus
from attendance_sync.core.exceptions import InvalidTransition
from attendance_sync.session.codec import from_payload, parse_status, patch_for_payload, to_payload
from attendance_sync.session.service import AttendanceService


def test_payload_carries_totals_and_activities(at):
    service = AttendanceService(3)
    service.clock_in(now=at(9))
    session = service.record_activity(ActivityType.BREAK_START, notes="lunch", now=at(12)).unwrap()

    payload = to_payload(session)

    assert payload["user_id"] == 3
    assert payload["date"] == "2025-01-06"
    assert payload["status"] == "break"
    assert payload["work_millis"] == 3 * 3_600_000
    assert [a["type"] for a in payload["activities"]] == ["clock_in", "break_start"]
    assert payload["activities"][1]["notes"] == "lunch"

    restored = from_payload(payload)
    assert restored.session_id == session.session_id
    assert restored.activities == session.activities
    assert restored.revision == session.revision


def test_from_payload_sorts_and_revalidates(at):
    payload = {
        "id": "s-1",
        "user_id": 1,
        "date": "2025-01-06",
        "clock_in": at(9).isoformat(),
        "status": "working",
        "activities": [
            {"id": "b", "type": "break_end", "timestamp": at(10).isoformat()},
            {"id": "a", "type": "clock_in", "timestamp": at(9).isoformat()},
        ],
    }

    with pytest.raises(InvalidTransition):
        from_payload(payload)


def test_patch_drops_identity_fields(at):
    service = AttendanceService(3)
    session = service.clock_in(now=at(9)).unwrap()

    patch = patch_for_payload(to_payload(session))

    assert "id" not in patch and "user_id" not in patch and "clock_in" not in patch
    assert patch["revision"] == 1


def test_completed_alias_maps_to_offline():
    assert parse_status("completed") == SessionStatus.OFFLINE
    assert parse_status("overtime") == SessionStatus.OVERTIME


def test_same_instant_events_reload_in_log_order(at):
    service = AttendanceService(3)
    service.clock_in(now=at(9))
    service.record_activity(ActivityType.OVERTIME_START, now=at(18))
    closed = service.clock_out(now=at(19, 30)).unwrap()
    payload = to_payload(closed)
    # Rows sharing a timestamp may come back from the store in either order.
    payload["activities"][-2], payload["activities"][-1] = payload["activities"][-1], payload["activities"][-2]

    restored = from_payload(payload)

    assert [e.type for e in restored.activities] == [
        ActivityType.CLOCK_IN,
        ActivityType.OVERTIME_START,
        ActivityType.OVERTIME_END,
        ActivityType.CLOCK_OUT,
    ]
    assert restored.status == SessionStatus.OFFLINE


def test_payload_activities_carry_log_position(at):
    service = AttendanceService(3)
    service.clock_in(now=at(9))
    session = service.clock_out(now=at(17)).unwrap()

    assert [a["seq"] for a in to_payload(session)["activities"]] == [0, 1]
