"""Plain-dict form of sessions shared by the store, the bus and the HTTP layer."""

from __future__ import annotations

from typing import Any, Optional

from ..accounting.accumulator import DurationTotals
from ..activity.log import ActivityLog
from ..activity.model import ActivityRecord, Location
from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..core.enums import ActivityType, SessionStatus
from .model import AttendanceSession

# Older rows store the closed state as "completed".
_STATUS_ALIASES = {"completed": SessionStatus.OFFLINE}


def location_to_dict(location: Optional[Location]) -> Optional[dict]:
    if location is None:
        return None
    return {"latitude": location.latitude, "longitude": location.longitude, "address": location.address}


def location_from_dict(data: Optional[dict]) -> Optional[Location]:
    if not data or data.get("latitude") is None or data.get("longitude") is None:
        return None
    return Location.create(data["latitude"], data["longitude"], data.get("address"))


def activity_to_dict(event: ActivityRecord) -> dict:
    return {
        "id": event.activity_id,
        "type": event.type.value,
        "timestamp": event.timestamp.isoformat(),
        "location": location_to_dict(event.location),
        "notes": event.notes,
        "selfie_ref": event.selfie_ref,
    }


def activity_from_dict(data: dict) -> ActivityRecord:
    return ActivityRecord(
        activity_id=str(data["id"]),
        type=ActivityType(data["type"]),
        timestamp=parse_iso_datetime(data["timestamp"]),
        location=location_from_dict(data.get("location")),
        notes=data.get("notes"),
        selfie_ref=data.get("selfie_ref"),
    )


def parse_status(value: Any) -> SessionStatus:
    if isinstance(value, SessionStatus):
        return value
    return _STATUS_ALIASES.get(str(value)) or SessionStatus(str(value))


def to_payload(session: AttendanceSession) -> dict:
    payload = {
        "id": session.session_id,
        "user_id": session.user_id,
        "date": session.work_date.isoformat(),
        "clock_in": session.clock_in.isoformat(),
        "clock_out": session.clock_out.isoformat() if session.clock_out else None,
        "status": session.status.value,
        "location": location_to_dict(session.location),
        "notes": session.notes,
        "selfie_ref": session.selfie_ref,
        "revision": session.revision,
        "updated_at": session.updated_at.isoformat() if session.updated_at else None,
        "activities": [{**activity_to_dict(e), "seq": i} for i, e in enumerate(session.activities)],
    }
    payload.update(session.computed_totals.as_dict())
    return payload


def _log_order(item: tuple) -> tuple:
    # Events sharing a timestamp (an implicit end and its clock_out) keep log position.
    position, data = item
    seq = data.get("seq")
    return parse_iso_datetime(data["timestamp"]), position if seq is None else int(seq)


def from_payload(data: dict) -> AttendanceSession:
    """Rebuild a session; the activity log is re-validated on the way in."""
    raw = sorted(enumerate(data.get("activities") or []), key=_log_order)
    activities = [activity_from_dict(a) for _, a in raw]
    return AttendanceSession(
        session_id=str(data["id"]),
        user_id=int(data["user_id"]),
        work_date=parse_iso_date(str(data["date"])[:10]),
        clock_in=parse_iso_datetime(data["clock_in"]),
        clock_out=parse_iso_datetime(data.get("clock_out")),
        activities=ActivityLog(activities),
        status=parse_status(data.get("status") or SessionStatus.WORKING),
        computed_totals=DurationTotals.from_dict(data),
        location=location_from_dict(data.get("location")),
        notes=data.get("notes"),
        selfie_ref=data.get("selfie_ref"),
        revision=int(data.get("revision") or 0),
        updated_at=parse_iso_datetime(data.get("updated_at")),
    )


_IMMUTABLE_KEYS = ("id", "user_id", "date", "clock_in")


def patch_for_payload(payload: dict) -> dict:
    """Mutable fields sent on update (everything except identity and day key)."""
    return {k: v for k, v in payload.items() if k not in _IMMUTABLE_KEYS}
