from datetime import datetime, UTC
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class EntryStatus(str, Enum):
    UNASSIGNED = "UNASSIGNED"
    ASSIGNED = "ASSIGNED"


class WaitingRoom(SQLModel, table=True):
    """Pre-match queue that users gather in before a league is formed."""
    __tablename__ = "waiting_rooms"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class WaitingRoomEntry(SQLModel, table=True):
    """One user's seat in a waiting room. Frozen once ASSIGNED to a league."""
    __tablename__ = "waiting_room_entries"

    id: Optional[int] = Field(default=None, primary_key=True)
    waiting_room_id: int = Field(foreign_key="waiting_rooms.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    league_room_id: Optional[int] = Field(default=None, foreign_key="league_rooms.id", index=True)
    status: EntryStatus = Field(default=EntryStatus.UNASSIGNED, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
