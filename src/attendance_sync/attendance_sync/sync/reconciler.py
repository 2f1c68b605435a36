"""Keeps the device's session and roster consistent with the remote store.

Connection lifecycle::

    disconnected -> connecting -> connected
                         |            | transport lost
                         v            v
                      backoff <-------+
                         |  attempts exhausted
                         v
                    disconnected (SyncUnavailable until manual_refresh)

Local writes are optimistic: the in-memory session is already updated when a
write is attempted, and a failed write never touches it.
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.scheduler import JobScheduler
from ..core.constants import (
    DEFAULT_RECONNECT_BASE_SECONDS,
    DEFAULT_RECONNECT_MAX_ATTEMPTS,
    DEFAULT_WRITE_RETRIES,
)
from ..core.enums import ConnectionState, Topic
from ..core.exceptions import DomainError, RemoteWriteFailed, SyncUnavailable, TransportError
from ..core.result import Err, Ok, Result
from ..realtime.bus import ChangeEvent, RealtimeBus, Subscription
from ..roster.repository import ProfileRepository
from ..roster.service import Roster
from ..session.codec import from_payload, patch_for_payload, to_payload
from ..session.model import AttendanceSession
from ..session.repository import SessionStore
from ..session.service import AttendanceService

logger = logging.getLogger(__name__)

StateListener = Callable[[ConnectionState, Optional[SyncUnavailable]], None]

TOPICS = (Topic.ATTENDANCE_SESSIONS, Topic.PROFILES)


class SyncReconciler:
    def __init__(
        self,
        store: SessionStore,
        bus: RealtimeBus,
        scheduler: JobScheduler,
        sessions: AttendanceService,
        *,
        roster: Roster | None = None,
        profiles: ProfileRepository | None = None,
        base_delay_seconds: float = DEFAULT_RECONNECT_BASE_SECONDS,
        max_attempts: int = DEFAULT_RECONNECT_MAX_ATTEMPTS,
        write_retries: int = DEFAULT_WRITE_RETRIES,
        clock=None,
    ):
        self._store = store
        self._bus = bus
        self._scheduler = scheduler
        self._sessions = sessions
        self.roster = roster or Roster()
        self._profiles = profiles
        self._base_delay = float(base_delay_seconds)
        self._max_attempts = int(max_attempts)
        self._write_retries = max(int(write_retries), 0)
        self._clock = clock or now_local

        self._lock = threading.RLock()
        self._state = ConnectionState.DISCONNECTED
        self._attempts = 0
        self._unavailable: Optional[SyncUnavailable] = None
        self._subscriptions: dict[Topic, Subscription] = {}
        self._listeners: list[StateListener] = []

        self._created: set[str] = set()
        self._acked: dict[str, int] = {}
        self._pending: dict[str, dict] = {}

    @property
    def reconnect_job_id(self) -> str:
        return f"attendance-reconnect-{self._sessions.user_id}"

    # ----- state -----

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def unavailable(self) -> Optional[SyncUnavailable]:
        return self._unavailable

    def add_listener(self, listener: StateListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        logger.info("Realtime %s -> %s", self._state.value, state.value)
        self._state = state
        for listener in list(self._listeners):
            listener(state, self._unavailable)

    def status(self) -> dict:
        return {
            "state": self._state.value,
            "attempts": self._attempts,
            "unavailable": str(self._unavailable) if self._unavailable else None,
            "subscriptions": sorted(t.value for t in self._subscriptions),
            "pending_writes": len(self._pending),
        }

    # ----- connection -----

    def connect(self) -> None:
        """Open (or reopen) every topic subscription."""
        with self._lock:
            if self._unavailable is not None:
                logger.info("Sync unavailable; waiting for manual refresh")
                return
            self._scheduler.cancel(self.reconnect_job_id)
            self._set_state(ConnectionState.CONNECTING)
            try:
                for topic in TOPICS:
                    self._subscribe(topic)
            except TransportError as e:
                self._handle_transport_failure(e)
                return
            self._attempts = 0
            self._set_state(ConnectionState.CONNECTED)

    def on_transport_error(self, error: Exception | None = None) -> None:
        """Called by the transport when an established connection drops."""
        with self._lock:
            if self._state == ConnectionState.DISCONNECTED:
                return
            self._handle_transport_failure(error or TransportError("Connection lost"))

    def disconnect(self) -> None:
        with self._lock:
            self._scheduler.cancel(self.reconnect_job_id)
            self._release_subscriptions()
            self._attempts = 0
            self._set_state(ConnectionState.DISCONNECTED)

    def manual_refresh(self) -> None:
        """Clear ``SyncUnavailable``, reload remote state and reconnect."""
        with self._lock:
            self._unavailable = None
            self._attempts = 0
        self.refresh_roster()
        self.refresh_own_session()
        self.retry_pending()
        self.connect()

    def _subscribe(self, topic: Topic) -> None:
        # Replace before resubscribing so a topic never has two live channels.
        existing = self._subscriptions.pop(topic, None)
        if existing is not None:
            self._bus.unsubscribe(existing)
        self._subscriptions[topic] = self._bus.subscribe(topic, self.on_remote_change)

    def _release_subscriptions(self) -> None:
        for topic, sub in list(self._subscriptions.items()):
            try:
                self._bus.unsubscribe(sub)
            except TransportError as e:
                logger.warning("Unsubscribe from %s failed: %s", topic.value, e)
        self._subscriptions.clear()

    def _handle_transport_failure(self, error: Exception) -> None:
        self._release_subscriptions()
        self._attempts += 1
        if self._attempts > self._max_attempts:
            self._unavailable = SyncUnavailable(
                f"Realtime sync unavailable after {self._max_attempts} reconnect attempts: {error}"
            )
            logger.error("%s", self._unavailable)
            self._set_state(ConnectionState.DISCONNECTED)
            return

        delay = self._base_delay * (2 ** (self._attempts - 1))
        logger.warning(
            "Realtime transport failed (%s); reconnect %s/%s in %ss", error, self._attempts, self._max_attempts, delay
        )
        self._set_state(ConnectionState.BACKOFF)
        self._scheduler.later(delay, self.connect, job_id=self.reconnect_job_id)

    # ----- local writes -----

    def mark_persisted(self, session: AttendanceSession) -> None:
        """Record that ``session`` came from the store at its current revision."""
        with self._lock:
            self._created.add(session.session_id)
            self._acked[session.session_id] = max(self._acked.get(session.session_id, -1), session.revision)

    def apply_local_mutation(self, session: AttendanceSession) -> Result[dict]:
        return self.write_payload(to_payload(session))

    def write_payload(self, payload: dict) -> Result[dict]:
        """Send one session snapshot; older revisions than the last ack are dropped.

        The lock only guards the ack bookkeeping, never the store round-trip.
        """
        session_id = str(payload["id"])
        revision = int(payload.get("revision") or 0)

        with self._lock:
            if revision <= self._acked.get(session_id, -1):
                logger.debug("Skip stale write of %s rev %s", session_id, revision)
                return Ok(payload)
            created = session_id in self._created

        last_error: Exception | None = None
        for attempt in range(1 + self._write_retries):
            try:
                if created:
                    if not self._store.update_session(session_id, patch_for_payload(payload)):
                        raise RemoteWriteFailed(f"Store rejected update of {session_id} rev {revision}")
                else:
                    self._store.create_session(payload)
            except Exception as e:
                last_error = e
                logger.warning("Write of %s rev %s failed (attempt %s): %s", session_id, revision, attempt + 1, e)
                continue
            break
        else:
            with self._lock:
                current = self._pending.get(session_id)
                if current is None or int(current.get("revision") or 0) < revision:
                    self._pending[session_id] = payload
            return Err(RemoteWriteFailed(f"Could not save session {session_id}: {last_error}"))

        with self._lock:
            self._created.add(session_id)
            self._acked[session_id] = max(self._acked.get(session_id, -1), revision)
            pending = self._pending.get(session_id)
            if pending is not None and int(pending.get("revision") or 0) <= revision:
                del self._pending[session_id]
        self.roster.apply_session_payload(payload)
        self._sessions.mark_clean(session_id, revision)
        return Ok(payload)

    def has_pending(self) -> bool:
        return bool(self._pending)

    def retry_pending(self) -> list[Result[dict]]:
        with self._lock:
            payloads = list(self._pending.values())
        return [self.write_payload(p) for p in payloads]

    # ----- remote changes -----

    def on_remote_change(self, event: ChangeEvent) -> None:
        if event.entity == Topic.PROFILES:
            self.roster.apply_profile_payload(event.payload)
            return
        if event.entity != Topic.ATTENDANCE_SESSIONS:
            return

        payload = event.payload
        try:
            self.roster.apply_session_payload(payload)
        except (KeyError, ValueError) as e:
            logger.warning("Ignoring malformed session change: %s", e)
            return

        if int(payload["user_id"]) != self._sessions.user_id:
            return
        self._apply_own_session(payload)

    def _apply_own_session(self, payload: dict) -> None:
        session_id = str(payload["id"])
        try:
            session = from_payload(payload)
        except (DomainError, KeyError, ValueError) as e:
            logger.warning("Ignoring invalid remote session %s: %s", session_id, e)
            return

        # The service checks and replaces under its own lock; ours is not held across it.
        if not self._sessions.adopt_remote(session):
            return
        with self._lock:
            self._created.add(session_id)
            self._acked[session_id] = max(self._acked.get(session_id, -1), session.revision)

    # ----- reloads -----

    def refresh_own_session(self) -> Optional[AttendanceSession]:
        """Fetch the current session and adopt it when it is newer than local state.

        A session left open on an earlier day is still current.
        """
        today = self._clock().date()
        try:
            remote = self._store.get_current_session(self._sessions.user_id, today)
        except Exception as e:
            logger.warning("Could not load current session: %s", e)
            return self._sessions.current
        if remote is not None:
            self._apply_own_session(to_payload(remote))
        return self._sessions.current

    def refresh_roster(self) -> None:
        today = self._clock().date()
        try:
            profiles = list(self._profiles.list_active_profiles()) if self._profiles else []
            sessions = list(self._store.list_sessions_for_date(today))
            sessions += list(self._store.list_sessions_for_date(today - timedelta(days=1)))
        except Exception as e:
            logger.warning("Could not load roster: %s", e)
            return
        # Yesterday first so today's rows win.
        sessions.sort(key=lambda s: s.work_date)
        self.roster.seed(profiles, [s for s in sessions if s.work_date == today or s.is_open])
