from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from .config import DAILY_JOBS_HOUR
from .database import engine
from .logging import get_logger
from .services.challenges import create_daily_challenges
from .services.streaks import reset_broken_streaks

logger = get_logger(__name__)


def run_daily_challenges() -> None:
    with Session(engine) as db:
        create_daily_challenges(db)


def run_streak_sweep() -> None:
    with Session(engine) as db:
        reset_broken_streaks(db)


def create_scheduler(hour: Optional[int] = None) -> AsyncIOScheduler:
    """Daily jobs: a fresh challenge set and the broken-streak sweep (UTC)."""
    hour = DAILY_JOBS_HOUR if hour is None else hour

    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_streak_sweep,
        "cron",
        hour=hour,
        minute=0,
        id="reset_streak",
        replace_existing=True
    )
    scheduler.add_job(
        run_daily_challenges,
        "cron",
        hour=hour,
        minute=5,
        id="create_daily_challenges",
        replace_existing=True
    )
    logger.info("scheduler_configured", hour=hour)
    return scheduler
