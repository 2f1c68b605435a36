from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Sequence

from ..accounting.accumulator import ZERO_TOTALS, DurationTotals
from ..common.datetime_utils import format_duration
from ..core.constants import DEFAULT_HISTORY_DAYS
from ..core.exceptions import ValidationError
from ..session.model import AttendanceSession
from ..session.repository import SessionStore


@dataclass(frozen=True)
class HistoryData:
    rows: list[dict]
    summary: dict


class HistoryService:
    """Read-only attendance history for one user."""

    def __init__(self, store: SessionStore):
        self._store = store

    def get_history(
        self,
        user_id: int,
        *,
        days: int = DEFAULT_HISTORY_DAYS,
        today: Optional[date] = None,
    ) -> HistoryData:
        if days <= 0:
            raise ValidationError("days must be positive")
        end = today or date.today()
        start = end - timedelta(days=days - 1)

        sessions = sorted(
            self._store.get_sessions_for_user(int(user_id), start, end),
            key=lambda s: s.work_date,
            reverse=True,
        )
        return HistoryData(rows=[self._row(s) for s in sessions], summary=summarize(sessions))

    @staticmethod
    def _row(s: AttendanceSession) -> dict:
        totals = s.computed_totals
        return {
            "session_id": s.session_id,
            "work_date": s.work_date.strftime("%Y-%m-%d"),
            "clock_in": s.clock_in.strftime("%H:%M"),
            "clock_out": s.clock_out.strftime("%H:%M") if s.clock_out else "-",
            "status": s.status.value,
            "work_hours": format_duration(totals.work_millis),
            "break_hours": format_duration(totals.break_millis),
            "overtime_hours": format_duration(totals.overtime_millis),
            "client_visit_hours": format_duration(totals.client_visit_millis),
            "notes": s.notes or "",
        }


def summarize(sessions: Sequence[AttendanceSession]) -> dict:
    totals: DurationTotals = ZERO_TOTALS
    for s in sessions:
        totals = totals + s.computed_totals

    return {
        "total_days": len({s.work_date for s in sessions}),
        "completed_days": sum(1 for s in sessions if not s.is_open),
        "totals": totals.as_dict(),
        "total_work": format_duration(totals.work_millis),
        "total_break": format_duration(totals.break_millis),
        "total_overtime": format_duration(totals.overtime_millis),
        "total_client_visit": format_duration(totals.client_visit_millis),
    }
