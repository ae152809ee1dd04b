from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field


class TeamChallenge(SQLModel, table=True):
    """A challenge bound to one team, tracked until the distance target is met."""
    __tablename__ = "team_challenges"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    challenge_id: int = Field(foreign_key="challenges.id", index=True)

    # Scoring
    multiplier: int = Field(default=1)
    bonus_points: int = Field(default=0)

    # Status (terminal once completed)
    is_completed: bool = Field(default=False, index=True)
    assigned_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: Optional[datetime] = Field(default=None)
