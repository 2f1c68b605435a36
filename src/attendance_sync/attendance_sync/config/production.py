import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_db"),
}

DEBUG = False

DEVICE_USER_ID = int(os.getenv("DEVICE_USER_ID", "0"))

TICK_SECONDS = float(os.getenv("TICK_SECONDS", "1"))
RECONNECT_BASE_SECONDS = float(os.getenv("RECONNECT_BASE_SECONDS", "1"))
RECONNECT_MAX_ATTEMPTS = int(os.getenv("RECONNECT_MAX_ATTEMPTS", "5"))
WRITE_RETRIES = int(os.getenv("WRITE_RETRIES", "1"))

BREAK_POLICY = os.getenv("BREAK_POLICY", "single")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
