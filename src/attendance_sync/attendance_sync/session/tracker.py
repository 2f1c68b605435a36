from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from ..accounting.accumulator import DurationTotals
from ..activity.model import Location
from ..common.datetime_utils import now_local
from ..common.scheduler import JobScheduler
from ..core.constants import DEFAULT_TICK_SECONDS
from ..core.enums import ActivityType
from ..core.result import Result
from ..sync.reconciler import SyncReconciler
from .codec import to_payload
from .model import AttendanceSession
from .repository import SessionStore
from .service import AttendanceService
from .verification import SelfieUploader, resolve_selfie_ref

logger = logging.getLogger(__name__)

TickListener = Callable[[DurationTotals], None]


class SessionTracker:
    """Runs one user's session on a device.

    Ties together the session service, the reconciler and the timers. Every
    job and subscription it starts is released by :meth:`stop`, and
    :meth:`scope` guarantees that on every exit path.
    """

    def __init__(
        self,
        service: AttendanceService,
        store: SessionStore,
        reconciler: SyncReconciler,
        scheduler: JobScheduler,
        *,
        uploader: Optional[SelfieUploader] = None,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        executor: Optional[Executor] = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._service = service
        self._store = store
        self._reconciler = reconciler
        self._scheduler = scheduler
        self._uploader = uploader
        self._tick_seconds = float(tick_seconds)
        self._executor = executor
        self._owns_executor = executor is None
        self._clock = clock or now_local
        self._tick_listeners: list[TickListener] = []
        self._running = False

    @property
    def service(self) -> AttendanceService:
        return self._service

    @property
    def reconciler(self) -> SyncReconciler:
        return self._reconciler

    @property
    def running(self) -> bool:
        return self._running

    @property
    def tick_job_id(self) -> str:
        return f"attendance-tick-{self._service.user_id}"

    def add_tick_listener(self, listener: TickListener) -> None:
        if listener not in self._tick_listeners:
            self._tick_listeners.append(listener)

    def remove_tick_listener(self, listener: TickListener) -> None:
        if listener in self._tick_listeners:
            self._tick_listeners.remove(listener)

    # ----- lifecycle -----

    def start(self) -> None:
        if self._running:
            return
        if self._executor is None:
            # One worker keeps remote writes in mutation order.
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="attendance-sync")
            self._owns_executor = True

        self._running = True
        self._load_current()
        self._service.add_listener(self._on_local_mutation)
        self._reconciler.refresh_roster()
        self._reconciler.connect()
        self._scheduler.every(self._tick_seconds, self.tick, job_id=self.tick_job_id)
        logger.info("Tracking attendance for user %s", self._service.user_id)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._scheduler.cancel(self.tick_job_id)
        self._reconciler.disconnect()
        self._service.remove_listener(self._on_local_mutation)
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=True)
            self._executor = None
        logger.info("Stopped tracking user %s", self._service.user_id)

    @contextmanager
    def scope(self) -> Iterator["SessionTracker"]:
        self.start()
        try:
            yield self
        finally:
            self.stop()

    def _load_current(self) -> None:
        now = self._clock()
        try:
            session = self._store.get_current_session(self._service.user_id, now.date())
        except Exception as e:
            logger.warning("Starting without remote session: %s", e)
            return
        if session is not None:
            self._service.load(session, now=now)
            self._reconciler.mark_persisted(session)

    # ----- ticker -----

    def tick(self) -> DurationTotals:
        totals = self._service.current_totals(self._clock())
        for listener in list(self._tick_listeners):
            listener(totals)
        return totals

    # ----- user actions -----

    def clock_in(
        self,
        location: Location | None = None,
        notes: str | None = None,
        selfie_ref: str | None = None,
    ) -> Result[AttendanceSession]:
        return self.record_activity(ActivityType.CLOCK_IN, location, notes, selfie_ref)

    def clock_out(
        self,
        location: Location | None = None,
        notes: str | None = None,
        selfie_ref: str | None = None,
    ) -> Result[AttendanceSession]:
        return self.record_activity(ActivityType.CLOCK_OUT, location, notes, selfie_ref)

    def record_activity(
        self,
        type: ActivityType | str,
        location: Location | None = None,
        notes: str | None = None,
        selfie_ref: str | None = None,
    ) -> Result[AttendanceSession]:
        activity_type = ActivityType(type)
        resolved = resolve_selfie_ref(self._uploader, selfie_ref, activity_type)
        if not resolved.is_ok:
            return resolved
        return self._service.record_activity(
            activity_type, location, notes, resolved.value, now=self._clock()
        )

    def refresh(self) -> None:
        self._reconciler.manual_refresh()

    # ----- persistence -----

    def _on_local_mutation(self, session: AttendanceSession) -> None:
        # Snapshot now; the session keeps changing on this thread.
        payload = to_payload(session)
        if self._executor is None:
            self._write(payload)
            return
        self._executor.submit(self._write, payload)

    def _write(self, payload: dict) -> None:
        result = self._reconciler.write_payload(payload)
        if not result.is_ok:
            logger.error("%s (kept for retry)", result.error)
