"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MILLIS_PER_MINUTE = 60_000
MILLIS_PER_HOUR = 3_600_000

DEFAULT_TICK_SECONDS = 1
DEFAULT_RECONNECT_BASE_SECONDS = 1
DEFAULT_RECONNECT_MAX_ATTEMPTS = 5
DEFAULT_WRITE_RETRIES = 1
DEFAULT_HISTORY_DAYS = 30
