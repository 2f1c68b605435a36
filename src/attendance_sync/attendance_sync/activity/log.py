from __future__ import annotations

from typing import Iterable, Iterator, Optional

from ..core.enums import END_TYPES, START_TYPES, ActivityType, Category, SessionStatus
from ..core.exceptions import InvalidTransition, OutOfOrderEvent
from ..status.machine import ACTION_FOR_TYPE, derive_status
from .model import ActivityRecord


class ActivityLog:
    """Append-only, timestamp-ordered activity records of one attendance day.

    Past events are never edited or removed from the device.
    """

    def __init__(self, events: Iterable[ActivityRecord] = ()):
        self._events: list[ActivityRecord] = []
        for event in events:
            self.append(event)

    def __iter__(self) -> Iterator[ActivityRecord]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ActivityLog):
            return NotImplemented
        return self._events == other._events

    def __repr__(self) -> str:
        return f"ActivityLog({[e.type.value for e in self._events]!r})"

    @property
    def last(self) -> Optional[ActivityRecord]:
        return self._events[-1] if self._events else None

    @property
    def is_closed(self) -> bool:
        return any(e.type == ActivityType.CLOCK_OUT for e in self._events)

    def events(self) -> list[ActivityRecord]:
        return list(self._events)

    def events_of_type(self, type: ActivityType) -> list[ActivityRecord]:
        return [e for e in self._events if e.type == ActivityType(type)]

    def last_unmatched_start(self, category: Category) -> Optional[ActivityRecord]:
        """Most recent ``*_start`` of ``category`` with no ``*_end`` after it."""
        category = Category(category)
        for event in reversed(self._events):
            if END_TYPES.get(event.type) == category:
                return None
            if START_TYPES.get(event.type) == category:
                return event
        return None

    def active_category(self) -> Category:
        for category in (Category.BREAK, Category.OVERTIME, Category.CLIENT_VISIT):
            if self.last_unmatched_start(category) is not None:
                return category
        return Category.WORKING

    def current_status(self) -> SessionStatus:
        return derive_status(self._events)

    def append(self, event: ActivityRecord) -> ActivityRecord:
        last = self.last
        if last is not None and event.timestamp < last.timestamp:
            raise OutOfOrderEvent(event, last)
        self._check_category(event)
        self._events.append(event)
        return event

    def _check_category(self, event: ActivityRecord) -> None:
        status = self.current_status()
        action = ACTION_FOR_TYPE[event.type]

        if not self._events:
            if event.type != ActivityType.CLOCK_IN:
                raise InvalidTransition(action, status, "Log must start with clock_in")
            return

        if status == SessionStatus.OFFLINE or event.type == ActivityType.CLOCK_IN:
            raise InvalidTransition(action, status)

        active = self.active_category()
        if event.type in START_TYPES and active != Category.WORKING:
            raise InvalidTransition(action, status, f"{active.value} is already active")
        if event.type in END_TYPES and END_TYPES[event.type] != active:
            raise InvalidTransition(action, status, f"No open {END_TYPES[event.type].value} to end")
        if event.type == ActivityType.CLOCK_OUT and active != Category.WORKING:
            raise InvalidTransition(action, status, f"End {active.value} before clock_out")
