from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..accounting.accumulator import ZERO_TOTALS, DurationAccumulator, DurationTotals
from ..activity.log import ActivityLog
from ..activity.model import Location
from ..core.enums import SessionStatus
from ..status.machine import employee_status


def new_session_id() -> str:
    return str(uuid.uuid4())


@dataclass
class AttendanceSession:
    """Domain aggregate: one user's attendance for one calendar day.

    ``computed_totals`` is always derived from ``activities``; it is frozen
    at the clock-out instant once the session is closed. ``revision`` grows
    by one with every local mutation and orders writes against remote
    snapshots.
    """

    user_id: int
    work_date: date
    clock_in: datetime
    activities: ActivityLog = field(default_factory=ActivityLog)
    session_id: str = field(default_factory=new_session_id)
    clock_out: Optional[datetime] = None
    status: SessionStatus = SessionStatus.WORKING
    computed_totals: DurationTotals = ZERO_TOTALS
    location: Optional[Location] = None
    notes: Optional[str] = None
    selfie_ref: Optional[str] = None
    revision: int = 0
    updated_at: Optional[datetime] = None
    dirty: bool = False

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    @property
    def employee_status(self):
        return employee_status(self.status)

    def recompute(self, now: datetime, accumulator: Optional[DurationAccumulator] = None) -> DurationTotals:
        accumulator = accumulator or DurationAccumulator()
        self.status = self.activities.current_status()
        self.computed_totals = accumulator.compute(self.activities, self.clock_in, self.clock_out or now)
        return self.computed_totals

    def mark_mutated(self, now: datetime) -> None:
        self.revision += 1
        self.updated_at = now
        self.dirty = True
