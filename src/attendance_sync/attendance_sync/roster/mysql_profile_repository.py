from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import EmployeeProfile
from .repository import ProfileRepository


class MySQLProfileRepository(ProfileRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active_profiles(self) -> Sequence[EmployeeProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, full_name, department, position, is_active
                FROM profiles
                WHERE is_active=1
                ORDER BY full_name
                """
            )
            rows = fetchall(cur)
            return [
                EmployeeProfile(
                    user_id=int(r["user_id"]),
                    full_name=r["full_name"],
                    department=r.get("department"),
                    position=r.get("position"),
                    is_active=bool(r.get("is_active", 1)),
                )
                for r in rows
            ]
