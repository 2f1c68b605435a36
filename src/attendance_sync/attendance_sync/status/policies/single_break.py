from __future__ import annotations

from ...core.enums import ActivityType, SessionStatus
from .base import BreakPolicy


class SingleBreakPolicy(BreakPolicy):
    """One break per session; overtime and client visits may repeat."""

    name = "single"

    def can_start_break(self, session) -> bool:
        if session is None or session.status != SessionStatus.WORKING:
            return False
        return not session.activities.events_of_type(ActivityType.BREAK_START)
