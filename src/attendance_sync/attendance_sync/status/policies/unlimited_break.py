from __future__ import annotations

from ...core.enums import SessionStatus
from .base import BreakPolicy


class UnlimitedBreakPolicy(BreakPolicy):
    """Breaks allowed whenever the employee is working."""

    name = "unlimited"

    def can_start_break(self, session) -> bool:
        return session is not None and session.status == SessionStatus.WORKING
