"""Tagged results for pure, recoverable operations.

Validation failures are returned as ``Err`` instead of raised so callers
decide how to surface them. ``unwrap()`` turns an ``Err`` back into the
carried exception for code that prefers try/except.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .exceptions import DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: DomainError

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]
