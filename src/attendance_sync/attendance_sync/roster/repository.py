from __future__ import annotations

from typing import Protocol, Sequence

from .model import EmployeeProfile


class ProfileRepository(Protocol):
    def list_active_profiles(self) -> Sequence[EmployeeProfile]:
        raise NotImplementedError
