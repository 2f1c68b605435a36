from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Callable, Optional

from ..accounting.accumulator import ZERO_TOTALS, DurationAccumulator, DurationTotals
from ..activity.log import ActivityLog
from ..activity.model import ActivityRecord, Location
from ..common.datetime_utils import now_local
from ..common.validators import optional_text
from ..core.enums import Action, ActivityType, SessionStatus
from ..core.exceptions import (
    AlreadyClockedIn,
    AlreadyCompletedToday,
    DomainError,
    InvalidTransition,
    NotClockedIn,
)
from ..core.result import Err, Ok, Result
from ..status.machine import ACTION_FOR_TYPE, StatusMachine
from ..status.policies.base import BreakPolicy
from ..status.policies.single_break import SingleBreakPolicy
from .model import AttendanceSession

logger = logging.getLogger(__name__)

MutationListener = Callable[[AttendanceSession], None]


class AttendanceService:
    """Single owner of one user's "today" session.

    Every mutating call validates through the status machine and the log,
    and leaves the session untouched on rejection. Successful mutations bump
    the session revision and notify listeners (the sync layer persists them).
    Mutations are serialized: request threads, the ticker and remote changes
    all reach the same session.
    """

    def __init__(
        self,
        user_id: int,
        *,
        machine: StatusMachine | None = None,
        accumulator: DurationAccumulator | None = None,
        break_policy: BreakPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._user_id = int(user_id)
        self._machine = machine or StatusMachine()
        self._accumulator = accumulator or DurationAccumulator()
        self._break_policy = break_policy or SingleBreakPolicy()
        self._clock = clock or now_local
        self._current: Optional[AttendanceSession] = None
        self._lock = threading.RLock()
        self._listeners: list[MutationListener] = []

    @property
    def user_id(self) -> int:
        return self._user_id

    @property
    def current(self) -> Optional[AttendanceSession]:
        return self._current

    def add_listener(self, listener: MutationListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def today_session(self, today: date | None = None) -> Optional[AttendanceSession]:
        """Session acted on for ``today``.

        A closed session from an earlier day is history and the day starts
        over at ``ready``; a session still open past midnight stays current
        until it is clocked out.
        """
        today = today or self._clock().date()
        session = self._current
        if session is None:
            return None
        if session.work_date == today or session.is_open:
            return session
        return None

    def status(self, now: datetime | None = None) -> SessionStatus:
        now = now or self._clock()
        session = self.today_session(now.date())
        return session.status if session else SessionStatus.READY

    def load(self, session: Optional[AttendanceSession], *, now: datetime | None = None) -> None:
        """Adopt a session fetched from the store (no revision bump).

        The status is re-derived from the activity log; a stored status that
        disagrees with it is logged and replaced.
        """
        with self._lock:
            if session is not None:
                if session.user_id != self._user_id:
                    raise DomainError("Session belongs to another user")
                derived = self._machine.status_from_log(session.activities)
                if derived != session.status:
                    logger.warning(
                        "Session %s stored as %s but its log says %s", session.session_id, session.status.value, derived.value
                    )
                session.recompute(now or self._clock(), self._accumulator)
                session.dirty = False
            self._current = session

    def replace_session(self, session: AttendanceSession, *, now: datetime | None = None) -> None:
        with self._lock:
            self.load(session, now=now)
        logger.info("Local session %s replaced by remote revision %s", session.session_id, session.revision)

    def adopt_remote(self, session: AttendanceSession, *, now: datetime | None = None) -> bool:
        """Replace the local session with a remote copy if the copy is newer.

        For the same session only a higher revision wins (our own echoes and
        stale snapshots are ignored); a session from an earlier day than the
        local one never replaces it.
        """
        with self._lock:
            local = self._current
            if local is not None and local.session_id == session.session_id:
                if session.revision <= local.revision:
                    logger.debug(
                        "Ignore remote rev %s of %s (local rev %s)", session.revision, session.session_id, local.revision
                    )
                    return False
            elif local is not None and local.work_date > session.work_date:
                return False
            self.replace_session(session, now=now)
            return True

    def mark_clean(self, session_id: str, revision: int) -> None:
        """The store acknowledged ``revision``; clear ``dirty`` unless newer edits exist."""
        with self._lock:
            session = self._current
            if session is not None and session.session_id == session_id and session.revision == revision:
                session.dirty = False

    # ----- lifecycle -----

    def clock_in(
        self,
        location: Location | None = None,
        notes: str | None = None,
        selfie_ref: str | None = None,
        *,
        now: datetime | None = None,
    ) -> Result[AttendanceSession]:
        now = now or self._clock()
        with self._lock:
            today = now.date()

            existing = self.today_session(today)
            if existing is not None:
                if existing.is_open:
                    return self._reject(AlreadyClockedIn(Action.CLOCK_IN, existing.status, "Already clocked in today"))
                return self._reject(
                    AlreadyCompletedToday(Action.CLOCK_IN, existing.status, "Attendance already completed today")
                )

            result = self._machine.transition(SessionStatus.READY, Action.CLOCK_IN)
            if not result.is_ok:
                return self._reject(result.error)

            event = ActivityRecord.create(
                ActivityType.CLOCK_IN, now, location=location, notes=notes, selfie_ref=selfie_ref
            )
            session = AttendanceSession(
                user_id=self._user_id,
                work_date=today,
                clock_in=now,
                activities=ActivityLog([event]),
                location=location,
                notes=optional_text(notes),
                selfie_ref=optional_text(selfie_ref),
            )
            session.recompute(now, self._accumulator)
            self._current = session
            logger.info("User %s clocked in at %s (session %s)", self._user_id, now.isoformat(), session.session_id)
            self._mutated(session, now)
            return Ok(session)

    def clock_out(
        self,
        location: Location | None = None,
        notes: str | None = None,
        selfie_ref: str | None = None,
        *,
        now: datetime | None = None,
    ) -> Result[AttendanceSession]:
        """Close today's session; an active override category is ended first."""
        now = now or self._clock()
        with self._lock:
            session = self.today_session(now.date())
            if session is None:
                return self._reject(NotClockedIn(Action.CLOCK_OUT, SessionStatus.READY, "Not clocked in today"))
            if not session.is_open:
                return self._reject(NotClockedIn(Action.CLOCK_OUT, session.status, "Already clocked out today"))

            result = self._append_transition(
                session, Action.CLOCK_OUT, now, location=location, notes=notes, selfie_ref=selfie_ref
            )
            if not result.is_ok:
                return result

            session.clock_out = now
            if optional_text(notes):
                session.notes = optional_text(notes)
            session.recompute(now, self._accumulator)
            logger.info("User %s clocked out at %s (session %s)", self._user_id, now.isoformat(), session.session_id)
            self._mutated(session, now)
            return Ok(session)

    def record_activity(
        self,
        type: ActivityType | str,
        location: Location | None = None,
        notes: str | None = None,
        selfie_ref: str | None = None,
        *,
        now: datetime | None = None,
    ) -> Result[AttendanceSession]:
        activity_type = ActivityType(type)
        if activity_type == ActivityType.CLOCK_IN:
            return self.clock_in(location, notes, selfie_ref, now=now)
        if activity_type == ActivityType.CLOCK_OUT:
            return self.clock_out(location, notes, selfie_ref, now=now)

        now = now or self._clock()
        with self._lock:
            session = self.today_session(now.date())
            action = ACTION_FOR_TYPE[activity_type]
            if session is None:
                return self._reject(InvalidTransition(action, SessionStatus.READY))

            if action == Action.START_BREAK and session.status == SessionStatus.WORKING:
                if not self._break_policy.can_start_break(session):
                    return self._reject(InvalidTransition(action, session.status, "Break already taken today"))

            result = self._append_transition(
                session, action, now, location=location, notes=notes, selfie_ref=selfie_ref
            )
            if not result.is_ok:
                return result

            session.recompute(now, self._accumulator)
            logger.info("User %s recorded %s (status=%s)", self._user_id, activity_type.value, session.status.value)
            self._mutated(session, now)
            return Ok(session)

    # ----- reads -----

    def current_totals(self, now: datetime | None = None) -> DurationTotals:
        """Pure read, cheap enough for a 1-second ticker."""
        now = now or self._clock()
        session = self.today_session(now.date())
        if session is None:
            return ZERO_TOTALS
        if not session.is_open:
            return session.computed_totals
        return self._accumulator.compute(session.activities, session.clock_in, now)

    def can_start_break(self, now: datetime | None = None) -> bool:
        now = now or self._clock()
        return self._break_policy.can_start_break(self.today_session(now.date()))

    def available_actions(self, now: datetime | None = None) -> list[Action]:
        now = now or self._clock()
        status = self.status(now)
        actions = self._machine.allowed_actions(status)
        if Action.START_BREAK in actions and not self.can_start_break(now):
            actions.remove(Action.START_BREAK)
        return actions

    # ----- internals -----

    def _append_transition(
        self,
        session: AttendanceSession,
        action: Action,
        now: datetime,
        *,
        location: Location | None,
        notes: str | None,
        selfie_ref: str | None,
    ) -> Result[AttendanceSession]:
        result = self._machine.transition(session.status, action)
        if not result.is_ok:
            return self._reject(result.error)

        # Validate against a copy so a rejected append leaves the session as it was.
        candidate = ActivityLog(session.activities)
        try:
            for activity_type in result.value.events:
                implicit = activity_type != result.value.events[-1]
                candidate.append(
                    ActivityRecord.create(
                        activity_type,
                        now,
                        location=location,
                        notes=None if implicit else notes,
                        selfie_ref=None if implicit else selfie_ref,
                    )
                )
        except DomainError as e:
            return self._reject(e)

        session.activities = candidate
        return Ok(session)

    def _mutated(self, session: AttendanceSession, now: datetime) -> None:
        session.mark_mutated(now)
        for listener in list(self._listeners):
            listener(session)

    def _reject(self, error: DomainError) -> Err:
        logger.warning("User %s: %s", self._user_id, error)
        return Err(error)
