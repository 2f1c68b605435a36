import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_test_db"),
}

DEBUG = False
TESTING = True

DEVICE_USER_ID = 1

TICK_SECONDS = 1
RECONNECT_BASE_SECONDS = 1
RECONNECT_MAX_ATTEMPTS = 5
WRITE_RETRIES = 1

BREAK_POLICY = "single"

LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

AUTO_INIT_DB = False
