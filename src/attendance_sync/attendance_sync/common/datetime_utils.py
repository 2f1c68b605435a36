from __future__ import annotations

from datetime import date, datetime, timedelta

from ..core.constants import MILLIS_PER_HOUR, MILLIS_PER_MINUTE


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def elapsed_millis(start: datetime, end: datetime) -> int:
    """Whole milliseconds between two instants (never negative)."""
    delta: timedelta = end - start
    millis = (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000
    return max(millis, 0)


def format_duration(millis: int) -> str:
    """Render a duration as HH:MM; hours are not wrapped at 24."""
    millis = max(int(millis), 0)
    hours = millis // MILLIS_PER_HOUR
    minutes = (millis % MILLIS_PER_HOUR) // MILLIS_PER_MINUTE
    return f"{hours:02d}:{minutes:02d}"


def format_clock(millis: int) -> str:
    """HH:MM:SS variant used by the live elapsed-time display."""
    millis = max(int(millis), 0)
    seconds = (millis // 1000) % 60
    return f"{format_duration(millis)}:{seconds:02d}"
