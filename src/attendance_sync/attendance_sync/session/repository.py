from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceSession


class SessionStore(Protocol):
    """Remote persistence of attendance sessions, keyed by (user_id, work_date).

    Writes take plain payload dicts (see ``session.codec``) so the caller can
    snapshot a session before handing the write to another thread.
    """

    def create_session(self, payload: dict) -> str:
        raise NotImplementedError

    def update_session(self, session_id: str, patch: dict) -> bool:
        raise NotImplementedError

    def get_sessions_for_user(self, user_id: int, start_date: date, end_date: date) -> Sequence[AttendanceSession]:
        raise NotImplementedError

    def get_today_session(self, user_id: int, today: date) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def get_current_session(self, user_id: int, today: date) -> Optional[AttendanceSession]:
        """Today's session, or the latest one still open from an earlier day."""

        raise NotImplementedError

    def list_sessions_for_date(self, work_date: date) -> Sequence[AttendanceSession]:
        """All users' sessions of one day (seeds the live roster)."""

        raise NotImplementedError
