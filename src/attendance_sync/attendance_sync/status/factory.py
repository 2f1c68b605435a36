from __future__ import annotations

from dataclasses import dataclass

from ..core.exceptions import ValidationError
from .policies.base import BreakPolicy
from .policies.single_break import SingleBreakPolicy
from .policies.unlimited_break import UnlimitedBreakPolicy


@dataclass
class BreakPolicyFactory:
    """Factory Pattern: choose the break policy from a settings name."""

    default: str = SingleBreakPolicy.name

    def for_name(self, name: str | None) -> BreakPolicy:
        key = (name or self.default).strip().lower()
        if key == SingleBreakPolicy.name:
            return SingleBreakPolicy()
        if key == UnlimitedBreakPolicy.name:
            return UnlimitedBreakPolicy()
        raise ValidationError(f"Unknown break policy: {name!r}")
