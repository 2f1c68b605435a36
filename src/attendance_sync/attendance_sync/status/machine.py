"""Attendance status state machine.

The machine is pure: it never touches a session or a log. Callers ask for a
transition, get back the new status plus the activity types to record, and
only then mutate their own state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..core.enums import (
    END_TYPE_FOR,
    END_TYPES,
    START_TYPES,
    Action,
    ActivityType,
    Category,
    EmployeeStatus,
    SessionStatus,
)
from ..core.exceptions import InvalidTransition
from ..core.result import Err, Ok, Result


@dataclass(frozen=True)
class Transition:
    new_status: SessionStatus
    events: tuple[ActivityType, ...]


OVERRIDE_STATUSES: dict[SessionStatus, Category] = {
    SessionStatus.BREAK: Category.BREAK,
    SessionStatus.OVERTIME: Category.OVERTIME,
    SessionStatus.CLIENT_VISIT: Category.CLIENT_VISIT,
}

STATUS_FOR_CATEGORY: dict[Category, SessionStatus] = {
    Category.WORKING: SessionStatus.WORKING,
    **{category: status for status, category in OVERRIDE_STATUSES.items()},
}

TRANSITIONS: dict[tuple[SessionStatus, Action], Transition] = {
    (SessionStatus.READY, Action.CLOCK_IN): Transition(SessionStatus.WORKING, (ActivityType.CLOCK_IN,)),
    (SessionStatus.WORKING, Action.START_BREAK): Transition(SessionStatus.BREAK, (ActivityType.BREAK_START,)),
    (SessionStatus.BREAK, Action.END_BREAK): Transition(SessionStatus.WORKING, (ActivityType.BREAK_END,)),
    (SessionStatus.WORKING, Action.START_OVERTIME): Transition(SessionStatus.OVERTIME, (ActivityType.OVERTIME_START,)),
    (SessionStatus.OVERTIME, Action.END_OVERTIME): Transition(SessionStatus.WORKING, (ActivityType.OVERTIME_END,)),
    (SessionStatus.WORKING, Action.START_CLIENT_VISIT): Transition(
        SessionStatus.CLIENT_VISIT, (ActivityType.CLIENT_VISIT_START,)
    ),
    (SessionStatus.CLIENT_VISIT, Action.END_CLIENT_VISIT): Transition(
        SessionStatus.WORKING, (ActivityType.CLIENT_VISIT_END,)
    ),
    (SessionStatus.WORKING, Action.CLOCK_OUT): Transition(SessionStatus.OFFLINE, (ActivityType.CLOCK_OUT,)),
    **{
        (status, Action.CLOCK_OUT): Transition(SessionStatus.OFFLINE, (END_TYPE_FOR[category], ActivityType.CLOCK_OUT))
        for status, category in OVERRIDE_STATUSES.items()
    },
}

ACTION_FOR_TYPE: dict[ActivityType, Action] = {
    ActivityType.CLOCK_IN: Action.CLOCK_IN,
    ActivityType.CLOCK_OUT: Action.CLOCK_OUT,
    ActivityType.BREAK_START: Action.START_BREAK,
    ActivityType.BREAK_END: Action.END_BREAK,
    ActivityType.OVERTIME_START: Action.START_OVERTIME,
    ActivityType.OVERTIME_END: Action.END_OVERTIME,
    ActivityType.CLIENT_VISIT_START: Action.START_CLIENT_VISIT,
    ActivityType.CLIENT_VISIT_END: Action.END_CLIENT_VISIT,
}


def transition(status: SessionStatus, action: Action) -> Result[Transition]:
    """Look up ``(status, action)``; anything outside the table is rejected."""
    status = SessionStatus(status)
    action = Action(action)
    found = TRANSITIONS.get((status, action))
    if found is None:
        return Err(InvalidTransition(action, status))
    return Ok(found)


def allowed_actions(status: SessionStatus) -> list[Action]:
    return [action for (s, action) in TRANSITIONS if s == SessionStatus(status)]


def derive_status(events: Iterable) -> SessionStatus:
    """Status implied by an ordered sequence of activity records."""
    status = SessionStatus.READY
    for event in events:
        t = event.type
        if t == ActivityType.CLOCK_IN:
            status = SessionStatus.WORKING
        elif t == ActivityType.CLOCK_OUT:
            status = SessionStatus.OFFLINE
        elif t in START_TYPES:
            status = STATUS_FOR_CATEGORY[START_TYPES[t]]
        elif t in END_TYPES:
            status = SessionStatus.WORKING
    return status


def employee_status(status: SessionStatus) -> EmployeeStatus:
    """Collapse a session status into the snapshot other users see."""
    status = SessionStatus(status)
    if status == SessionStatus.BREAK:
        return EmployeeStatus.BREAK
    if status in (SessionStatus.WORKING, SessionStatus.OVERTIME, SessionStatus.CLIENT_VISIT):
        return EmployeeStatus.ONLINE
    return EmployeeStatus.OFFLINE


class StatusMachine:
    """Object facade over the transition table, handy for injection."""

    def transition(self, status: SessionStatus, action: Action) -> Result[Transition]:
        return transition(status, action)

    def allowed_actions(self, status: SessionStatus) -> list[Action]:
        return allowed_actions(status)

    def status_from_log(self, log) -> SessionStatus:
        return derive_status(log)
