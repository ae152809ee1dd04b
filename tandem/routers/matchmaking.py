from typing import List, Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from ..database import get_session
from ..services import matchmaking

router = APIRouter(tags=["matchmaking"])


class WaitingRoomCreate(BaseModel):
    user_id: int = Field(alias="userId")


class WaitingRoomJoin(BaseModel):
    user_id: int = Field(alias="userId")
    waiting_room_id: int = Field(alias="waitingRoomId")


class WaitingRoomLookup(BaseModel):
    user_id: int = Field(alias="userId")


class WaitingRoomUsers(BaseModel):
    waiting_room_id: int


class LeagueFormation(BaseModel):
    user_id: int
    league_room_name: Optional[str] = None


class TeamCreate(BaseModel):
    user_ids: List[int] = Field(min_length=1)
    league_room_id: int


@router.post("/create_waiting_room", status_code=status.HTTP_201_CREATED)
async def create_waiting_room(body: WaitingRoomCreate, db: Session = Depends(get_session)):
    entry = matchmaking.create_waiting_room(db, body.user_id)
    return {
        "message": "Waiting room created successfully.",
        "waiting_room_id": entry.waiting_room_id,
        "created_at": entry.created_at
    }


@router.post("/join_waiting_room")
async def join_waiting_room(body: WaitingRoomJoin, db: Session = Depends(get_session)):
    entry = matchmaking.join_waiting_room(db, body.user_id, body.waiting_room_id)
    return {
        "message": "Successfully joined waiting room.",
        "waiting_room_id": entry.waiting_room_id,
        "created_at": entry.created_at
    }


@router.post("/get_waiting_room_id")
async def get_waiting_room_id(body: WaitingRoomLookup, db: Session = Depends(get_session)):
    message, waiting_room_id = matchmaking.get_waiting_room_id(db, body.user_id)
    return {"message": message, "waiting_room_id": waiting_room_id}


@router.post("/get_waiting_room_users")
async def get_waiting_room_users(body: WaitingRoomUsers, db: Session = Depends(get_session)):
    return matchmaking.get_waiting_room_users(db, body.waiting_room_id)


@router.post("/create_league_room", status_code=status.HTTP_201_CREATED)
async def create_league_room(body: LeagueFormation, db: Session = Depends(get_session)):
    """Form a league from the user's waiting room, pairing everyone into teams."""
    league, teams = matchmaking.form_league(db, body.user_id, name=body.league_room_name)
    return {
        "message": "League room created successfully.",
        "league_room_id": league.id,
        "league_room_name": league.name,
        "team_count": len(teams),
        "teams": [
            {"team_id": team.id, "team_name": team.name, "members": members}
            for team, members in teams
        ]
    }


@router.post("/create_team", status_code=status.HTTP_201_CREATED)
async def create_team(body: TeamCreate, db: Session = Depends(get_session)):
    team = matchmaking.create_team(db, body.user_ids, body.league_room_id)
    return {
        "team_id": team.id,
        "team_name": team.name,
        "league_room_id": team.league_room_id,
        "members": body.user_ids
    }
