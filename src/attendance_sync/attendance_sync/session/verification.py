from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..core.enums import ActivityType, SelfieCategory
from ..core.exceptions import SelfieUploadFailed
from ..core.result import Err, Ok, Result

logger = logging.getLogger(__name__)

_DURABLE_PREFIXES = ("http://", "https://")


class SelfieUploader(Protocol):
    """Image/verification collaborator: turns a local image into a durable URL."""

    def upload(self, local_ref: str, category: SelfieCategory) -> str:
        raise NotImplementedError


def selfie_category_for(activity_type: ActivityType) -> Optional[SelfieCategory]:
    try:
        return SelfieCategory(ActivityType(activity_type).value)
    except ValueError:
        return None


def resolve_selfie_ref(
    uploader: Optional[SelfieUploader],
    ref: Optional[str],
    activity_type: ActivityType,
) -> Result[Optional[str]]:
    """Upload a local photo reference; durable URLs and empty refs pass through.

    Only the returned reference is kept; image bytes never reach this core.
    """
    ref = (ref or "").strip() or None
    if ref is None or ref.startswith(_DURABLE_PREFIXES) or uploader is None:
        return Ok(ref)

    category = selfie_category_for(activity_type)
    if category is None:
        return Err(SelfieUploadFailed(f"{ActivityType(activity_type).value} does not take a verification photo"))

    try:
        url = uploader.upload(ref, category)
    except Exception as e:
        logger.warning("Selfie upload failed for %s: %s", category.value, e)
        return Err(SelfieUploadFailed(f"Failed to upload selfie: {e}"))
    return Ok(url)
