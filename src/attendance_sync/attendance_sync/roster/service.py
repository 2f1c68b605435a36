from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Iterable, Optional

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..core.enums import EmployeeStatus
from ..session.codec import parse_status
from ..session.model import AttendanceSession
from ..status.machine import employee_status
from .model import EmployeeProfile, EmployeeSnapshot, SessionSnapshot

logger = logging.getLogger(__name__)


def _finished_before(snap: SessionSnapshot, today: Optional[date]) -> bool:
    """A closed session from an earlier day no longer says anything about today."""
    return today is not None and snap.work_date != today and snap.clock_out is not None


class Roster:
    """Cached statuses of other employees.

    Entries are overwritten on receipt; there is no merge logic. Profiles and
    today's session snapshots are kept apart and joined on read.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._profiles: dict[int, EmployeeProfile] = {}
        self._sessions: dict[int, SessionSnapshot] = {}

    def seed(
        self,
        profiles: Iterable[EmployeeProfile],
        sessions: Iterable[AttendanceSession],
    ) -> None:
        with self._lock:
            self._profiles = {p.user_id: p for p in profiles}
            self._sessions = {
                s.user_id: SessionSnapshot(
                    user_id=s.user_id,
                    session_id=s.session_id,
                    work_date=s.work_date,
                    status=employee_status(s.status),
                    clock_in=s.clock_in,
                    clock_out=s.clock_out,
                    revision=s.revision,
                    updated_at=s.updated_at,
                )
                for s in sessions
            }

    def apply_session_payload(self, payload: dict) -> SessionSnapshot:
        snapshot = SessionSnapshot(
            user_id=int(payload["user_id"]),
            session_id=str(payload["id"]),
            work_date=parse_iso_date(str(payload["date"])[:10]),
            status=employee_status(parse_status(payload["status"])),
            clock_in=parse_iso_datetime(payload.get("clock_in")),
            clock_out=parse_iso_datetime(payload.get("clock_out")),
            revision=int(payload.get("revision") or 0),
            updated_at=parse_iso_datetime(payload.get("updated_at")),
        )
        with self._lock:
            self._sessions[snapshot.user_id] = snapshot
        logger.debug("Roster: user %s is %s", snapshot.user_id, snapshot.status.value)
        return snapshot

    def apply_profile_payload(self, payload: dict) -> EmployeeProfile:
        user_id = int(payload.get("user_id") or payload["id"])
        profile = EmployeeProfile(
            user_id=user_id,
            full_name=payload.get("full_name") or payload.get("name") or "",
            department=payload.get("department"),
            position=payload.get("position"),
            is_active=bool(payload.get("is_active", True)),
        )
        with self._lock:
            self._profiles[user_id] = profile
        return profile

    def status_of(self, user_id: int, today: Optional[date] = None) -> EmployeeStatus:
        with self._lock:
            snap = self._sessions.get(int(user_id))
        if snap is None or _finished_before(snap, today):
            return EmployeeStatus.OFFLINE
        return snap.status

    def snapshots(self, today: Optional[date] = None) -> list[EmployeeSnapshot]:
        with self._lock:
            profiles = dict(self._profiles)
            sessions = dict(self._sessions)

        out: list[EmployeeSnapshot] = []
        for user_id in sorted(set(profiles) | set(sessions)):
            profile = profiles.get(user_id)
            if profile is not None and not profile.is_active:
                continue
            snap = sessions.get(user_id)
            stale = snap is not None and _finished_before(snap, today)
            out.append(
                EmployeeSnapshot(
                    user_id=user_id,
                    full_name=profile.full_name if profile else "",
                    department=profile.department if profile else None,
                    position=profile.position if profile else None,
                    status=EmployeeStatus.OFFLINE if snap is None or stale else snap.status,
                    clock_in=None if snap is None or stale else snap.clock_in,
                    updated_at=None if snap is None else snap.updated_at,
                )
            )
        out.sort(key=lambda e: (e.full_name.lower(), e.user_id))
        return out

    def counts(self, today: Optional[date] = None) -> dict[str, int]:
        counts = {s.value: 0 for s in EmployeeStatus}
        for snap in self.snapshots(today):
            counts[snap.status.value] += 1
        return counts
