from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import parse_iso_datetime
from ..core.enums import ChangeType, Topic
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from ..realtime.bus import ChangeEvent, LocalRealtimeBus
from .codec import from_payload, to_payload
from .model import AttendanceSession
from .repository import SessionStore

logger = logging.getLogger(__name__)

_SESSION_COLUMNS = """
    session_id, user_id, work_date, clock_in, clock_out, status,
    work_millis, break_millis, overtime_millis, client_visit_millis,
    location_lat, location_lng, location_address, notes, selfie_ref,
    revision, updated_at
"""


def _location(row: dict) -> Optional[dict]:
    if row.get("location_lat") is None or row.get("location_lng") is None:
        return None
    return {
        "latitude": as_float(row["location_lat"]),
        "longitude": as_float(row["location_lng"]),
        "address": row.get("location_address") or "",
    }


def _split_location(location: Optional[dict]) -> tuple:
    if not location:
        return None, None, None
    return location.get("latitude"), location.get("longitude"), location.get("address")


class MySQLSessionStore(SessionStore):
    """Sessions in ``attendance_sessions`` with their ``activity_records``.

    When a bus is given, every successful write is published as a change
    event carrying the stored payload.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, bus: LocalRealtimeBus | None = None):
        self._conn_factory = conn_factory
        self._bus = bus

    # ----- reads -----

    def get_sessions_for_user(self, user_id: int, start_date: date, end_date: date) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE user_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date DESC
                """,
                (int(user_id), start_date, end_date),
            )
            rows = fetchall(cur)
            return [self._build(cur, r) for r in rows]

    def get_today_session(self, user_id: int, today: date) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE user_id=%s AND work_date=%s
                """,
                (int(user_id), today),
            )
            r = fetchone(cur)
            return self._build(cur, r) if r else None

    def get_current_session(self, user_id: int, today: date) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE user_id=%s AND work_date<=%s AND (work_date=%s OR clock_out IS NULL)
                ORDER BY work_date DESC
                LIMIT 1
                """,
                (int(user_id), today, today),
            )
            r = fetchone(cur)
            return self._build(cur, r) if r else None

    def list_sessions_for_date(self, work_date: date) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE work_date=%s
                ORDER BY user_id
                """,
                (work_date,),
            )
            rows = fetchall(cur)
            return [self._build(cur, r) for r in rows]

    # ----- writes -----

    def create_session(self, payload: dict) -> str:
        session_id = str(payload["id"])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT session_id FROM attendance_sessions WHERE session_id=%s", (session_id,))
            exists = fetchone(cur) is not None
            if not exists:
                lat, lng, address = _split_location(payload.get("location"))
                cur.execute(
                    """
                    INSERT INTO attendance_sessions(
                        session_id, user_id, work_date, clock_in, clock_out, status,
                        work_millis, break_millis, overtime_millis, client_visit_millis,
                        location_lat, location_lng, location_address, notes, selfie_ref,
                        revision, updated_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        session_id,
                        int(payload["user_id"]),
                        payload["date"],
                        parse_iso_datetime(payload["clock_in"]),
                        parse_iso_datetime(payload.get("clock_out")),
                        payload["status"],
                        int(payload.get("work_millis") or 0),
                        int(payload.get("break_millis") or 0),
                        int(payload.get("overtime_millis") or 0),
                        int(payload.get("client_visit_millis") or 0),
                        lat,
                        lng,
                        address,
                        payload.get("notes"),
                        payload.get("selfie_ref"),
                        int(payload.get("revision") or 0),
                        parse_iso_datetime(payload.get("updated_at")),
                    ),
                )
            self._insert_activities(cur, session_id, payload.get("activities") or [])

        if exists:
            # A retried create whose first attempt reached the server.
            self.update_session(session_id, payload)
        else:
            self._publish(ChangeType.INSERT, session_id)
        return session_id

    def update_session(self, session_id: str, patch: dict) -> bool:
        revision = int(patch.get("revision") or 0)
        lat, lng, address = _split_location(patch.get("location"))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET clock_out=%s, status=%s,
                    work_millis=%s, break_millis=%s, overtime_millis=%s, client_visit_millis=%s,
                    location_lat=%s, location_lng=%s, location_address=%s,
                    notes=%s, selfie_ref=%s, revision=%s, updated_at=%s
                WHERE session_id=%s AND revision<=%s
                """,
                (
                    parse_iso_datetime(patch.get("clock_out")),
                    patch["status"],
                    int(patch.get("work_millis") or 0),
                    int(patch.get("break_millis") or 0),
                    int(patch.get("overtime_millis") or 0),
                    int(patch.get("client_visit_millis") or 0),
                    lat,
                    lng,
                    address,
                    patch.get("notes"),
                    patch.get("selfie_ref"),
                    revision,
                    parse_iso_datetime(patch.get("updated_at")),
                    str(session_id),
                    revision,
                ),
            )
            if cur.rowcount <= 0:
                # Zero affected rows also happens for an identical re-send.
                cur.execute("SELECT revision FROM attendance_sessions WHERE session_id=%s", (str(session_id),))
                r = fetchone(cur)
                if not r or int(r["revision"]) < revision:
                    return False
            self._insert_activities(cur, str(session_id), patch.get("activities") or [])

        self._publish(ChangeType.UPDATE, str(session_id))
        return True

    # ----- helpers -----

    def _insert_activities(self, cur, session_id: str, activities: list[dict]) -> None:
        for position, a in enumerate(activities):
            lat, lng, address = _split_location(a.get("location"))
            cur.execute(
                """
                INSERT IGNORE INTO activity_records(
                    activity_id, session_id, seq, type, timestamp,
                    location_lat, location_lng, location_address, notes, selfie_ref
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    str(a["id"]),
                    session_id,
                    int(a.get("seq", position)),
                    a["type"],
                    parse_iso_datetime(a["timestamp"]),
                    lat,
                    lng,
                    address,
                    a.get("notes"),
                    a.get("selfie_ref"),
                ),
            )

    def _activities(self, cur, session_id: str) -> list[dict]:
        cur.execute(
            """
            SELECT activity_id, seq, type, timestamp, location_lat, location_lng, location_address, notes, selfie_ref
            FROM activity_records
            WHERE session_id=%s
            ORDER BY timestamp ASC, seq ASC
            """,
            (session_id,),
        )
        return [
            {
                "id": r["activity_id"],
                "seq": r["seq"],
                "type": r["type"],
                "timestamp": r["timestamp"],
                "location": _location(r),
                "notes": r.get("notes"),
                "selfie_ref": r.get("selfie_ref"),
            }
            for r in fetchall(cur)
        ]

    def _build(self, cur, r: dict) -> AttendanceSession:
        return from_payload(
            {
                "id": r["session_id"],
                "user_id": r["user_id"],
                "date": r["work_date"].isoformat(),
                "clock_in": r["clock_in"],
                "clock_out": r.get("clock_out"),
                "status": r["status"],
                "work_millis": r.get("work_millis"),
                "break_millis": r.get("break_millis"),
                "overtime_millis": r.get("overtime_millis"),
                "client_visit_millis": r.get("client_visit_millis"),
                "location": _location(r),
                "notes": r.get("notes"),
                "selfie_ref": r.get("selfie_ref"),
                "revision": r.get("revision"),
                "updated_at": r.get("updated_at"),
                "activities": self._activities(cur, r["session_id"]),
            }
        )

    def _publish(self, change: ChangeType, session_id: str) -> None:
        if self._bus is None:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM attendance_sessions WHERE session_id=%s", (session_id,))
            r = fetchone(cur)
            if not r:
                return
            payload = to_payload(self._build(cur, r))
        self._bus.publish(ChangeEvent(event_type=change, entity=Topic.ATTENDANCE_SESSIONS, payload=payload))
        logger.debug("Published %s for session %s", change.value, session_id)
