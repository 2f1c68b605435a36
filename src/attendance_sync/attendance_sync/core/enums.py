from __future__ import annotations

from enum import Enum


class ActivityType(str, Enum):
    """Timestamped markers recorded inside one attendance day."""

    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    BREAK_START = "break_start"
    BREAK_END = "break_end"
    OVERTIME_START = "overtime_start"
    OVERTIME_END = "overtime_end"
    CLIENT_VISIT_START = "client_visit_start"
    CLIENT_VISIT_END = "client_visit_end"


class Category(str, Enum):
    """Mutually exclusive time buckets."""

    WORKING = "working"
    BREAK = "break"
    OVERTIME = "overtime"
    CLIENT_VISIT = "client_visit"


class SessionStatus(str, Enum):
    READY = "ready"
    WORKING = "working"
    BREAK = "break"
    OVERTIME = "overtime"
    CLIENT_VISIT = "client_visit"
    OFFLINE = "offline"


class Action(str, Enum):
    """User intents accepted by the status machine."""

    CLOCK_IN = "clock_in"
    START_BREAK = "start_break"
    END_BREAK = "end_break"
    START_OVERTIME = "start_overtime"
    END_OVERTIME = "end_overtime"
    START_CLIENT_VISIT = "start_client_visit"
    END_CLIENT_VISIT = "end_client_visit"
    CLOCK_OUT = "clock_out"


class EmployeeStatus(str, Enum):
    """Coarse status shown to other users (live roster)."""

    ONLINE = "online"
    OFFLINE = "offline"
    BREAK = "break"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    BACKOFF = "backoff"


class ChangeType(str, Enum):
    INSERT = "insert"
    UPDATE = "update"


class Topic(str, Enum):
    ATTENDANCE_SESSIONS = "attendance_sessions"
    PROFILES = "profiles"


class SelfieCategory(str, Enum):
    """Events that may carry a verification photo."""

    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    BREAK_START = "break_start"
    BREAK_END = "break_end"


# Override categories opened/closed by each activity type.
START_TYPES: dict[ActivityType, Category] = {
    ActivityType.BREAK_START: Category.BREAK,
    ActivityType.OVERTIME_START: Category.OVERTIME,
    ActivityType.CLIENT_VISIT_START: Category.CLIENT_VISIT,
}

END_TYPES: dict[ActivityType, Category] = {
    ActivityType.BREAK_END: Category.BREAK,
    ActivityType.OVERTIME_END: Category.OVERTIME,
    ActivityType.CLIENT_VISIT_END: Category.CLIENT_VISIT,
}

END_TYPE_FOR: dict[Category, ActivityType] = {category: t for t, category in END_TYPES.items()}
