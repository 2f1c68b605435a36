from __future__ import annotations

from attendance_sync.core.enums import ActivityType, EmployeeStatus
from attendance_sync.roster.model import EmployeeProfile
from attendance_sync.roster.service import Roster
from attendance_sync.session.codec import to_payload
from attendance_sync.session.service import AttendanceService


def test_snapshots_join_profiles_and_sessions(at):
    ani = AttendanceService(1).clock_in(now=at(8)).unwrap()
    roster = Roster()
    roster.seed(
        [EmployeeProfile(1, "ani"), EmployeeProfile(2, "Budi"), EmployeeProfile(3, "Old", is_active=False)],
        [ani],
    )

    snaps = roster.snapshots(at(9).date())

    assert [(s.full_name, s.status) for s in snaps] == [
        ("ani", EmployeeStatus.ONLINE),
        ("Budi", EmployeeStatus.OFFLINE),
    ]
    assert snaps[0].clock_in == at(8)


def test_session_payload_overwrites_previous_entry(at):
    service = AttendanceService(4)
    session = service.clock_in(now=at(9)).unwrap()
    roster = Roster()
    roster.apply_session_payload(to_payload(session))

    service.record_activity(ActivityType.BREAK_START, now=at(12))
    roster.apply_session_payload(to_payload(session))

    assert roster.status_of(4, at(12).date()) == EmployeeStatus.BREAK
    assert roster.counts(at(12).date())["break"] == 1


def test_yesterdays_closed_session_reads_offline(at):
    service = AttendanceService(4)
    service.clock_in(now=at(9))
    session = service.clock_out(now=at(17)).unwrap()
    roster = Roster()
    roster.apply_session_payload(to_payload(session))

    assert roster.status_of(4, at(9, days=1).date()) == EmployeeStatus.OFFLINE
    [snap] = roster.snapshots(at(9, days=1).date())
    assert snap.clock_in is None


def test_profile_payload_accepts_id_and_name_keys():
    roster = Roster()

    profile = roster.apply_profile_payload({"id": "12", "name": "Dewi", "is_active": True})

    assert profile.user_id == 12
    assert profile.full_name == "Dewi"
    assert roster.status_of(12) == EmployeeStatus.OFFLINE
