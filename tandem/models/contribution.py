from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, List, Optional
from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class JourneyType(str, Enum):
    SOLO = "solo"
    DUO = "duo"


class UserContribution(SQLModel, table=True):
    """One recorded movement segment counted toward a team challenge."""
    __tablename__ = "user_contributions"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_challenge_id: int = Field(foreign_key="team_challenges.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    start_time: datetime
    end_time: datetime
    start_latitude: Optional[float] = Field(default=None)
    start_longitude: Optional[float] = Field(default=None)
    end_latitude: Optional[float] = Field(default=None)
    end_longitude: Optional[float] = Field(default=None)

    distance_covered: float  # metres
    route: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    journey_type: JourneyType = Field(default=JourneyType.SOLO)
    active: bool = Field(default=False)
    contribution_details: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
