from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ...session.model import AttendanceSession


class BreakPolicy(ABC):
    """Strategy Pattern: decide whether a break may be started now.

    This is a business rule evaluated by the caller before asking the status
    machine for ``start_break``; the machine itself never consults it.
    """

    name: str = ""

    @abstractmethod
    def can_start_break(self, session: Optional[AttendanceSession]) -> bool:
        raise NotImplementedError
