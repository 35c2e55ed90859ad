"""
Runtime configuration, read from environment variables.
"""
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Storage
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./attendance.db")
LABELED_IMAGES_DIR = os.getenv("LABELED_IMAGES_DIR", "./labeled_images")

# Check-in rules
CHECK_IN_WINDOW_SECONDS = int(os.getenv("CHECK_IN_WINDOW_SECONDS", "60"))
REQUIRE_REGISTERED_NAME = _env_flag("REQUIRE_REGISTERED_NAME")
UNKNOWN_LABEL = os.getenv("UNKNOWN_LABEL", "unknown")

# Statistics
RECENT_CHECK_INS_LIMIT = int(os.getenv("RECENT_CHECK_INS_LIMIT", "10"))
TOP_USERS_LIMIT = int(os.getenv("TOP_USERS_LIMIT", "5"))
TREND_DAYS = int(os.getenv("TREND_DAYS", "7"))

# Logging
LOG_FILE = os.getenv("LOG_FILE", "logs/attendance.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_MAX_SIZE = int(os.getenv("LOG_MAX_SIZE_MB", "20")) * 1024 * 1024
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

# HTTP
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
