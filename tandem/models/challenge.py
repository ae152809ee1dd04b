from datetime import datetime, UTC
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Challenge(SQLModel, table=True):
    __tablename__ = "challenges"

    id: Optional[int] = Field(default=None, primary_key=True)
    start_time: datetime
    duration: int  # minutes
    length: float  # target distance in km
    difficulty: Difficulty = Field(index=True)
    earning_points: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
