"""
Runtime configuration read from environment variables.
"""
import os

from quest_damage.constants import (
    DEFAULT_CHECK_INTERVAL_MINUTES,
    DEFAULT_CLEANUP_HOUR,
    DEFAULT_GRACE_PERIOD_DAYS,
    DEFAULT_LOG_DIRECTORY_PROD,
    DEFAULT_MAX_WORKERS,
    MAX_DAMAGE_PER_SESSION,
)


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


DATABASE_URL = os.getenv("QUEST_DAMAGE_DATABASE_URL", "sqlite:///./quest_damage.db")

API_KEY = os.getenv("QUEST_DAMAGE_API_KEY", "your-secret-key-change-me")

LOG_DIR = os.getenv("QUEST_DAMAGE_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("QUEST_DAMAGE_LOG_FILE", "app.log")

MAX_WORKERS = max(1, _int_env("QUEST_DAMAGE_MAX_WORKERS", DEFAULT_MAX_WORKERS))
CHECK_INTERVAL_MINUTES = max(1, _int_env("QUEST_DAMAGE_CHECK_INTERVAL_MINUTES", DEFAULT_CHECK_INTERVAL_MINUTES))
CLEANUP_HOUR = min(23, max(0, _int_env("QUEST_DAMAGE_CLEANUP_HOUR", DEFAULT_CLEANUP_HOUR)))
GRACE_PERIOD_DAYS = max(0, _int_env("QUEST_DAMAGE_GRACE_PERIOD_DAYS", DEFAULT_GRACE_PERIOD_DAYS))
MAX_PER_SESSION = max(0, _int_env("QUEST_DAMAGE_MAX_PER_SESSION", MAX_DAMAGE_PER_SESSION))
