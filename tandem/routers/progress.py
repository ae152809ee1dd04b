from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from ..database import get_session
from ..models.contribution import JourneyType
from ..services.progress import ContributionResult, record_contribution

router = APIRouter(tags=["progress"])


class ContributionCreate(BaseModel):
    user_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    start_latitude: Optional[float] = None
    start_longitude: Optional[float] = None
    end_latitude: Optional[float] = None
    end_longitude: Optional[float] = None
    distance_covered: float = Field(ge=0)  # metres
    route: List[Dict[str, Any]]
    journey_type: Optional[str] = None


class CompletionCreate(BaseModel):
    user_id: int
    start_time: datetime
    end_time: Optional[datetime] = None
    start_latitude: float
    start_longitude: float
    end_latitude: float
    end_longitude: float
    distance_covered: float = Field(ge=0)


def parse_journey_type(value: Optional[str]) -> JourneyType:
    """Unknown or missing journey types count as solo."""
    try:
        return JourneyType(value)
    except ValueError:
        return JourneyType.SOLO


def progress_summary(result: ContributionResult) -> Dict[str, Any]:
    progress = result.progress
    summary = {
        "team_challenge_id": result.team_challenge_id,
        "challenge_completed": progress.completed,
        "newly_completed": result.newly_completed,
        "total_distance_km": progress.total_distance_km,
        "required_distance_km": progress.required_distance_km,
        "duo_distance_km": progress.duo_distance_km,
        "multiplier": progress.multiplier,
        "streak": result.streak
    }
    if result.errors:
        summary["warnings"] = result.errors
    return summary


@router.post("/create_user_contribution", status_code=status.HTTP_201_CREATED)
async def create_user_contribution(body: ContributionCreate, db: Session = Depends(get_session)):
    """Log a journey segment and report progress on the team's active challenge."""
    result = record_contribution(
        db,
        user_id=body.user_id,
        start_time=body.start_time,
        end_time=body.end_time,
        start_latitude=body.start_latitude,
        start_longitude=body.start_longitude,
        end_latitude=body.end_latitude,
        end_longitude=body.end_longitude,
        distance_covered=body.distance_covered,
        route=body.route,
        journey_type=parse_journey_type(body.journey_type)
    )

    return {"data": {**result.contribution.model_dump(), **progress_summary(result)}}


@router.post("/complete_team_challenge", status_code=status.HTTP_201_CREATED)
async def complete_team_challenge(body: CompletionCreate, db: Session = Depends(get_session)):
    """Log a solo segment with start and end coordinates; returns the completion summary."""
    result = record_contribution(
        db,
        user_id=body.user_id,
        start_time=body.start_time,
        end_time=body.end_time,
        start_latitude=body.start_latitude,
        start_longitude=body.start_longitude,
        end_latitude=body.end_latitude,
        end_longitude=body.end_longitude,
        distance_covered=body.distance_covered
    )

    return {
        "data": {
            "user_contribution_id": result.contribution.id,
            **progress_summary(result)
        }
    }
