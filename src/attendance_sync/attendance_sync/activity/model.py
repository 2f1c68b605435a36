from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.validators import optional_text, require_coordinates
from ..core.enums import ActivityType


@dataclass(frozen=True)
class Location:
    """Coordinate + address snapshot supplied by the location provider."""

    latitude: float
    longitude: float
    address: str = ""

    @classmethod
    def create(cls, latitude: float, longitude: float, address: Optional[str] = None) -> "Location":
        lat, lng = require_coordinates(latitude, longitude)
        return cls(latitude=lat, longitude=lng, address=(address or "").strip())


def new_activity_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ActivityRecord:
    """Domain entity: one timestamped marker in a session.

    ``activity_id`` is generated on the device and stays stable across sync.
    """

    type: ActivityType
    timestamp: datetime
    location: Optional[Location] = None
    notes: Optional[str] = None
    selfie_ref: Optional[str] = None
    activity_id: str = field(default_factory=new_activity_id)

    @classmethod
    def create(
        cls,
        type: ActivityType,
        timestamp: datetime,
        *,
        location: Optional[Location] = None,
        notes: Optional[str] = None,
        selfie_ref: Optional[str] = None,
    ) -> "ActivityRecord":
        return cls(
            type=ActivityType(type),
            timestamp=timestamp,
            location=location,
            notes=optional_text(notes),
            selfie_ref=optional_text(selfie_ref),
        )
