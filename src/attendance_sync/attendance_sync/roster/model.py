from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class EmployeeProfile:
    user_id: int
    full_name: str
    department: Optional[str] = None
    position: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class SessionSnapshot:
    """What other devices know about one user's attendance today."""

    user_id: int
    session_id: str
    work_date: date
    status: EmployeeStatus
    clock_in: Optional[datetime] = None
    clock_out: Optional[datetime] = None
    revision: int = 0
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class EmployeeSnapshot:
    """Read-model for the "who's working now" view."""

    user_id: int
    full_name: str
    department: Optional[str]
    position: Optional[str]
    status: EmployeeStatus
    clock_in: Optional[datetime] = None
    updated_at: Optional[datetime] = None
