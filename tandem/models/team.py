from datetime import date, datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field


class Team(SQLModel, table=True):
    """A pair of users competing inside one league room."""
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    league_room_id: int = Field(foreign_key="league_rooms.id", index=True)

    # Streak state
    current_streak: int = Field(default=0)
    last_completion_date: Optional[date] = Field(default=None)
    streak_bonus_points: int = Field(default=0)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TeamMembership(SQLModel, table=True):
    __tablename__ = "team_memberships"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    date_joined: date = Field(default_factory=lambda: datetime.now(UTC).date())
    date_left: Optional[date] = Field(default=None)  # null while active
