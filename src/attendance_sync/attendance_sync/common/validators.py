from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def require_coordinates(latitude: float, longitude: float) -> tuple[float, float]:
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        raise ValidationError("Coordinates must be numeric")
    if not -90.0 <= lat <= 90.0:
        raise ValidationError(f"Latitude out of range: {lat}")
    if not -180.0 <= lng <= 180.0:
        raise ValidationError(f"Longitude out of range: {lng}")
    return lat, lng
