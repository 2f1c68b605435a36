from datetime import datetime

from attendance_sync.common.datetime_utils import elapsed_millis, format_clock, format_duration, parse_iso_datetime


def test_format_duration_pads_minutes():
    assert format_duration(98 * 60_000) == "01:38"


def test_format_duration_does_not_wrap_hours():
    assert format_duration(27 * 3_600_000 + 15 * 60_000) == "27:15"


def test_format_duration_floors_partial_minutes():
    assert format_duration(59_999) == "00:00"
    assert format_duration(-5) == "00:00"


def test_format_clock_shows_seconds():
    assert format_clock(3_600_000 + 61_500) == "01:01:01"


def test_elapsed_millis_never_negative():
    a = datetime(2025, 1, 6, 9, 0, 0, 500_000)
    b = datetime(2025, 1, 7, 9, 0, 1)

    assert elapsed_millis(a, b) == 86_400_000 + 500
    assert elapsed_millis(b, a) == 0


def test_parse_iso_datetime_passthrough():
    now = datetime(2025, 1, 6, 9, 0)

    assert parse_iso_datetime(now) is now
    assert parse_iso_datetime(None) is None
    assert parse_iso_datetime("2025-01-06T09:00:00") == now
