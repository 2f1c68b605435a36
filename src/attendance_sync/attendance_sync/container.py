from __future__ import annotations

from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .accounting.accumulator import DurationAccumulator
from .common.datetime_utils import now_local
from .common.scheduler import BackgroundJobScheduler, JobScheduler
from .core.constants import (
    DEFAULT_RECONNECT_BASE_SECONDS,
    DEFAULT_RECONNECT_MAX_ATTEMPTS,
    DEFAULT_TICK_SECONDS,
    DEFAULT_WRITE_RETRIES,
)
from .database.connection import DBConfig, DatabaseConnection
from .history.service import HistoryService
from .realtime.bus import LocalRealtimeBus, RealtimeBus
from .roster.mysql_profile_repository import MySQLProfileRepository
from .roster.repository import ProfileRepository
from .roster.service import Roster
from .session.mysql_session_repository import MySQLSessionStore
from .session.repository import SessionStore
from .session.service import AttendanceService
from .session.tracker import SessionTracker
from .session.verification import SelfieUploader
from .status.factory import BreakPolicyFactory
from .status.machine import StatusMachine
from .sync.reconciler import SyncReconciler


@dataclass(frozen=True)
class Container:
    store: SessionStore
    profiles_repo: Optional[ProfileRepository]
    bus: RealtimeBus
    scheduler: JobScheduler

    roster: Roster
    attendance_service: AttendanceService
    reconciler: SyncReconciler
    tracker: SessionTracker
    history_service: HistoryService
    clock: Callable[[], datetime]


def build_container(
    *,
    settings,
    store: SessionStore | None = None,
    profiles: ProfileRepository | None = None,
    bus: RealtimeBus | None = None,
    scheduler: JobScheduler | None = None,
    uploader: SelfieUploader | None = None,
    executor: Executor | None = None,
    clock=None,
) -> Container:
    """Wire the object graph; any collaborator can be swapped (tests pass fakes)."""
    clock = clock or now_local
    bus = bus or LocalRealtimeBus()

    if store is None:
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(getattr(settings, "DB_CONFIG")))
        store = MySQLSessionStore(conn, bus=bus if isinstance(bus, LocalRealtimeBus) else None)
        if profiles is None:
            profiles = MySQLProfileRepository(conn)

    scheduler = scheduler or BackgroundJobScheduler()
    user_id = int(getattr(settings, "DEVICE_USER_ID"))

    attendance_service = AttendanceService(
        user_id,
        machine=StatusMachine(),
        accumulator=DurationAccumulator(),
        break_policy=BreakPolicyFactory().for_name(getattr(settings, "BREAK_POLICY", None)),
        clock=clock,
    )
    roster = Roster()
    reconciler = SyncReconciler(
        store,
        bus,
        scheduler,
        attendance_service,
        roster=roster,
        profiles=profiles,
        base_delay_seconds=getattr(settings, "RECONNECT_BASE_SECONDS", DEFAULT_RECONNECT_BASE_SECONDS),
        max_attempts=getattr(settings, "RECONNECT_MAX_ATTEMPTS", DEFAULT_RECONNECT_MAX_ATTEMPTS),
        write_retries=getattr(settings, "WRITE_RETRIES", DEFAULT_WRITE_RETRIES),
        clock=clock,
    )
    tracker = SessionTracker(
        attendance_service,
        store,
        reconciler,
        scheduler,
        uploader=uploader,
        executor=executor,
        tick_seconds=getattr(settings, "TICK_SECONDS", DEFAULT_TICK_SECONDS),
        clock=clock,
    )
    history_service = HistoryService(store)

    return Container(
        store=store,
        profiles_repo=profiles,
        bus=bus,
        scheduler=scheduler,
        roster=roster,
        attendance_service=attendance_service,
        reconciler=reconciler,
        tracker=tracker,
        history_service=history_service,
        clock=clock,
    )
