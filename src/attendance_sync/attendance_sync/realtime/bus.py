from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from ..core.enums import ChangeType, Topic
from ..core.exceptions import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """Push notification delivered by the realtime transport."""

    event_type: ChangeType
    entity: Topic
    payload: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Subscription:
    topic: Topic
    subscription_id: int


ChangeCallback = Callable[[ChangeEvent], None]


class RealtimeBus(Protocol):
    def subscribe(
        self,
        topic: Topic,
        callback: ChangeCallback,
        filter: Optional[dict] = None,
    ) -> Subscription:
        """Start delivering ``topic`` changes; raises ``TransportError`` when unreachable."""

        raise NotImplementedError

    def unsubscribe(self, subscription: Subscription) -> None:
        raise NotImplementedError


def matches(filter: Optional[dict], payload: dict) -> bool:
    """Equality filter on payload fields, e.g. ``{"user_id": 7}``."""
    if not filter:
        return True
    return all(payload.get(key) == value for key, value in filter.items())


class LocalRealtimeBus(RealtimeBus):
    """In-process bus: stores publish after writes, reconcilers subscribe.

    ``available`` models the transport; while it is False subscribing raises
    ``TransportError`` so reconnect handling can be exercised end to end.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._subscribers: dict[int, tuple[Topic, ChangeCallback, Optional[dict]]] = {}
        self.available = True

    def subscribe(self, topic: Topic, callback: ChangeCallback, filter: Optional[dict] = None) -> Subscription:
        if not self.available:
            raise TransportError(f"Realtime transport unavailable for {Topic(topic).value}")
        with self._lock:
            sub = Subscription(topic=Topic(topic), subscription_id=next(self._ids))
            self._subscribers[sub.subscription_id] = (sub.topic, callback, filter)
        logger.debug("Subscribed %s to %s", sub.subscription_id, sub.topic.value)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers.pop(subscription.subscription_id, None)
        logger.debug("Unsubscribed %s from %s", subscription.subscription_id, subscription.topic.value)

    def subscriber_count(self, topic: Optional[Topic] = None) -> int:
        with self._lock:
            return sum(1 for t, _, _ in self._subscribers.values() if topic is None or t == topic)

    def publish(self, event: ChangeEvent) -> int:
        with self._lock:
            targets = [cb for t, cb, f in self._subscribers.values() if t == event.entity and matches(f, event.payload)]

        delivered = 0
        for callback in targets:
            try:
                callback(event)
                delivered += 1
            except Exception:
                logger.exception("Realtime listener failed for %s", event.entity.value)
        return delivered
