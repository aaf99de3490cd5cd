"""
Application-wide constants.
Damage amounts, recurrence kinds and defaults for the health pool.
"""

# Recurrence kinds
RECURRENCE_DAILY = "daily"
RECURRENCE_WEEKLY = "weekly"
RECURRENCE_ONE_TIME = "one_time"
RECURRENCE_SCHEDULED = "scheduled"

RECURRENCE_TYPES = (
    RECURRENCE_DAILY,
    RECURRENCE_WEEKLY,
    RECURRENCE_ONE_TIME,
    RECURRENCE_SCHEDULED,
)

# Damage per missed period
DAILY_QUEST_DAMAGE_PER_DAY = 3
WEEKLY_QUEST_DAMAGE = 8
ONE_TIME_QUEST_DAMAGE = 10
SCHEDULED_QUEST_DAMAGE_PER_OCCURRENCE = 5

# Maximum damage that can be applied in one calculation pass
MAX_DAMAGE_PER_SESSION = 12

# Days after the due date before damage starts
DEFAULT_GRACE_PERIOD_DAYS = 0

# Player health pool
DEFAULT_PLAYER_HEALTH = 50
DEFAULT_PLAYER_MAX_HEALTH = 50

# Worker pool for per-quest calculation
DEFAULT_MAX_WORKERS = 4

# Scheduler
DEFAULT_CHECK_INTERVAL_MINUTES = 60
DEFAULT_CLEANUP_HOUR = 3

# Logging
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/quest_damage"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"

# CORS
CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]
