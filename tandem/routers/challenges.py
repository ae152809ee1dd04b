from datetime import datetime
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from ..database import get_session
from ..models.challenge import Difficulty
from ..services import challenges as challenge_service
from ..services.progress import assign_challenge_to_team, bind_challenge

router = APIRouter(tags=["challenges"])


class ChallengeCreate(BaseModel):
    start_time: datetime
    duration: int = Field(gt=0)
    earning_points: int = Field(ge=0)
    difficulty: Difficulty
    length: float = Field(gt=0)


class TeamChallengeCreate(BaseModel):
    team_id: int
    challenge_id: int


class ChallengeAssign(BaseModel):
    user_id: int
    challenge_id: int


@router.post("/add_challenge", status_code=status.HTTP_201_CREATED)
async def add_challenge(body: ChallengeCreate, db: Session = Depends(get_session)):
    challenge = challenge_service.add_challenge(
        db,
        start_time=body.start_time,
        duration=body.duration,
        earning_points=body.earning_points,
        difficulty=body.difficulty,
        length=body.length
    )
    return {"data": [challenge.model_dump()]}


@router.post("/create_daily_challenges", status_code=status.HTTP_201_CREATED)
async def create_daily_challenges(db: Session = Depends(get_session)):
    """Generate today's set of five challenges."""
    challenges = challenge_service.create_daily_challenges(db)
    return {"data": [c.model_dump() for c in challenges]}


@router.post("/create_team_challenge", status_code=status.HTTP_201_CREATED)
async def create_team_challenge(body: TeamChallengeCreate, db: Session = Depends(get_session)):
    """Bind a challenge to a team directly (admin tooling)."""
    team_challenge = bind_challenge(db, body.team_id, body.challenge_id)
    return {"data": [team_challenge.model_dump()]}


@router.post("/assign_challenge_to_team")
async def assign_challenge(body: ChallengeAssign, db: Session = Depends(get_session)):
    """Pick a challenge for the requesting user's team."""
    team_challenge = assign_challenge_to_team(db, body.user_id, body.challenge_id)
    return {
        "message": "Team challenge successfully created.",
        "team_challenge_id": team_challenge.id
    }
