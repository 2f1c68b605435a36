import os


def get_settings_module() -> str:
    """Settings module for ``APP_ENV`` (development unless told otherwise)."""
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "attendance_sync.config.production"

    if env in {"test", "testing"}:
        return "attendance_sync.config.testing"

    return "attendance_sync.config.development"
