from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from ..database import get_session
from ..models.team import Team
from ..services.streaks import reset_broken_streaks, update_team_streak

router = APIRouter(tags=["streaks"])


class StreakUpdate(BaseModel):
    team_id: int


@router.post("/update_team_streak")
async def update_streak(body: StreakUpdate, db: Session = Depends(get_session)):
    """Count today as a completion day for the team."""
    change = update_team_streak(db, body.team_id)
    team = db.get(Team, body.team_id)

    if not change.counted:
        return {
            "message": "Already completed challenge today",
            "current_streak": team.current_streak
        }

    return {
        "data": team.model_dump(),
        "streak_change": change.to_dict()
    }


@router.post("/reset_streak")
async def reset_streak(db: Session = Depends(get_session)):
    """Daily sweep, usually triggered by cron."""
    updated = reset_broken_streaks(db)
    return {"message": "Streaks updated", "teams_updated": updated}
