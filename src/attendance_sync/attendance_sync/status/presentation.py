from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Action, EmployeeStatus, SessionStatus
from .machine import allowed_actions


@dataclass(frozen=True)
class StatusDisplay:
    status: SessionStatus
    title: str
    subtitle: str
    colors: tuple[str, str]
    actions: tuple[Action, ...]

    def as_dict(self) -> dict:
        return {
            "status": self.status.value,
            "title": self.title,
            "subtitle": self.subtitle,
            "colors": list(self.colors),
            "actions": [a.value for a in self.actions],
        }


_DISPLAY = {
    SessionStatus.READY: ("Ready to Start", "Tap to begin your workday", ("#4A90E2", "#357ABD")),
    SessionStatus.WORKING: ("Currently Working", "Started at {clock_in}", ("#4CAF50", "#45A049")),
    SessionStatus.BREAK: ("On Break", "Enjoy your break time", ("#FF9800", "#F57C00")),
    SessionStatus.OVERTIME: ("Overtime Mode", "Working extended hours", ("#9C27B0", "#7B1FA2")),
    SessionStatus.CLIENT_VISIT: ("Client Visit", "Currently visiting client", ("#2196F3", "#1976D2")),
    SessionStatus.OFFLINE: ("Day Completed", "See you tomorrow", ("#9E9E9E", "#757575")),
}

EMPLOYEE_STATUS_COLORS = {
    EmployeeStatus.ONLINE: "#4CAF50",
    EmployeeStatus.BREAK: "#FF9800",
    EmployeeStatus.OFFLINE: "#9E9E9E",
}

EMPLOYEE_STATUS_LABELS = {
    EmployeeStatus.ONLINE: "Working",
    EmployeeStatus.BREAK: "On Break",
    EmployeeStatus.OFFLINE: "Offline",
}


def describe_status(
    status: SessionStatus,
    *,
    clock_in: Optional[datetime] = None,
    actions: Optional[list[Action]] = None,
) -> StatusDisplay:
    """Card shown for the current status.

    ``actions`` defaults to what the machine allows; callers pass the
    policy-filtered list when a break is no longer available.
    """
    status = SessionStatus(status)
    title, subtitle, colors = _DISPLAY[status]
    if "{clock_in}" in subtitle:
        subtitle = subtitle.format(clock_in=clock_in.strftime("%H:%M")) if clock_in else "Clocked in"
    return StatusDisplay(
        status=status,
        title=title,
        subtitle=subtitle,
        colors=colors,
        actions=tuple(actions if actions is not None else allowed_actions(status)),
    )
