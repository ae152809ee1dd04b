"""
Team streaks.

A streak counts consecutive days on which a team completed at least one
challenge. The same day-gap rule drives both the completion path and the
daily sweep:

- gap 0 (already completed today): unchanged
- gap 1 (completed yesterday): +1
- gap > 1 or never completed: back to 1 on completion, 0 in the sweep

Every newly counted day that lands the streak on a multiple of STREAK_BONUS_INTERVAL
the team earns STREAK_BONUS_POINTS. The streak keeps counting after a bonus.
"""
from dataclasses import dataclass, asdict
from datetime import date, datetime, UTC
from typing import Any, Dict, Optional
from sqlmodel import Session, select

from ..config import STREAK_BONUS_INTERVAL, STREAK_BONUS_POINTS
from ..errors import NotFound
from ..logging import get_logger
from ..models.team import Team

logger = get_logger(__name__)


@dataclass
class StreakChange:
    previous_streak: int
    new_streak: int
    days_difference: Optional[int]
    bonus_awarded: int = 0

    @property
    def counted(self) -> bool:
        """False when today had already been counted."""
        return self.days_difference is None or self.days_difference > 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def days_since(last_completion_date: Optional[date], today: date) -> Optional[int]:
    """Whole days between the last completion and today; None if there never was one."""
    if last_completion_date is None:
        return None
    return (today - last_completion_date).days


def is_broken(last_completion_date: Optional[date], today: date) -> bool:
    """A streak is broken once a full day passes without a completion."""
    gap = days_since(last_completion_date, today)
    return gap is not None and gap > 1


def next_streak(current_streak: int, last_completion_date: Optional[date], today: date) -> StreakChange:
    """Streak after a completion today."""
    current_streak = current_streak or 0
    gap = days_since(last_completion_date, today)

    if gap is not None and gap <= 0:
        # Already counted today (or the stored date is ahead of ours)
        new_streak = current_streak
    elif gap == 1:
        new_streak = current_streak + 1
    else:
        new_streak = 1

    change = StreakChange(
        previous_streak=current_streak,
        new_streak=new_streak,
        days_difference=gap
    )
    if change.counted and new_streak % STREAK_BONUS_INTERVAL == 0:
        change.bonus_awarded = STREAK_BONUS_POINTS
    return change


def register_completion(db: Session, team: Team, today: Optional[date] = None) -> StreakChange:
    """
    Apply a completion event to a team's streak.

    Stages the update on the session; the caller commits.
    """
    today = today or datetime.now(UTC).date()
    change = next_streak(team.current_streak, team.last_completion_date, today)

    if not change.counted:
        logger.info("streak_unchanged", team_id=team.id, current_streak=team.current_streak)
        return change

    team.current_streak = change.new_streak
    team.last_completion_date = today
    if change.bonus_awarded:
        team.streak_bonus_points = (team.streak_bonus_points or 0) + change.bonus_awarded
    db.add(team)

    logger.info(
        "streak_updated",
        team_id=team.id,
        previous_streak=change.previous_streak,
        new_streak=change.new_streak,
        days_difference=change.days_difference,
        bonus_awarded=change.bonus_awarded
    )
    return change


def update_team_streak(db: Session, team_id: int, today: Optional[date] = None) -> StreakChange:
    team = db.get(Team, team_id)
    if not team:
        raise NotFound("Team not found")

    change = register_completion(db, team, today)
    db.commit()
    db.refresh(team)
    return change


def reset_broken_streaks(db: Session, today: Optional[date] = None) -> int:
    """Daily sweep: zero the streak of every team that missed a day. Returns the count."""
    today = today or datetime.now(UTC).date()

    teams = db.exec(
        select(Team).where(
            Team.last_completion_date != None,  # noqa: E711
            Team.current_streak != 0
        )
    ).all()

    updated = 0
    for team in teams:
        if is_broken(team.last_completion_date, today):
            team.current_streak = 0
            db.add(team)
            updated += 1

    db.commit()
    logger.info("streaks_swept", teams_updated=updated)
    return updated
