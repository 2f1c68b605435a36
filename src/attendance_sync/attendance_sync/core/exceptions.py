from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidTransition(DomainError):
    """Illegal status change; the session and its log stay untouched."""

    def __init__(self, action: Any, state: Any, message: Optional[str] = None):
        self.action = action
        self.state = state
        action_name = getattr(action, "value", action)
        state_name = getattr(state, "value", state)
        super().__init__(message or f"Cannot {action_name} while {state_name}")


class OutOfOrderEvent(DomainError):
    """Event timestamp is earlier than the last logged event."""

    def __init__(self, event: Any, last: Any):
        self.event = event
        self.last = last
        super().__init__(f"Event at {event.timestamp.isoformat()} precedes last event at {last.timestamp.isoformat()}")


class AlreadyClockedIn(InvalidTransition):
    """A session for today is already open."""


class AlreadyCompletedToday(InvalidTransition):
    """Today's session was already closed by a clock-out."""


class NotClockedIn(InvalidTransition):
    """No open session to act on."""


class SyncUnavailable(DomainError):
    """Realtime transport exhausted its reconnect attempts."""


class RemoteWriteFailed(DomainError):
    """Remote persistence rejected or failed a write; local state is kept."""


class TransportError(Exception):
    """Realtime transport could not be established or dropped."""


class SelfieUploadFailed(DomainError):
    """Verification photo could not be uploaded."""
