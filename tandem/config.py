import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/tandem.db")

# Runtime
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
IS_DEVELOPMENT = ENVIRONMENT == "development"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Sessions
SESSION_EXPIRE_DAYS = int(os.getenv("SESSION_EXPIRE_DAYS", "30"))

# Leagues
ACTIVE_LEAGUE_WINDOW_DAYS = 7
TEAM_SIZE = 2

# Challenges
DAILY_CHALLENGE_DURATION_MINUTES = 24 * 60
DUO_MULTIPLIER = 2

# Streaks (bonus every STREAK_BONUS_INTERVAL consecutive days)
STREAK_BONUS_INTERVAL = int(os.getenv("STREAK_BONUS_INTERVAL", "3"))
STREAK_BONUS_POINTS = int(os.getenv("STREAK_BONUS_POINTS", "25"))

# Scheduler (daily challenge generation and streak sweep, UTC)
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "false").lower() in ("1", "true", "yes")
DAILY_JOBS_HOUR = int(os.getenv("DAILY_JOBS_HOUR", "0"))
