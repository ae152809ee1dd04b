from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field


class LeagueRoom(SQLModel, table=True):
    __tablename__ = "league_rooms"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    ended_at: Optional[datetime] = Field(default=None)
