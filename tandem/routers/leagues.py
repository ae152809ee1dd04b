from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from ..config import ACTIVE_LEAGUE_WINDOW_DAYS
from ..database import get_session
from ..services import matchmaking
from ..services.scoring import get_team_points

router = APIRouter(tags=["leagues"])


class LeagueRequest(BaseModel):
    league_room_id: int


class ActiveLeagueRequest(BaseModel):
    user_id: int


@router.post("/get_league_teams")
async def get_league_teams(body: LeagueRequest, db: Session = Depends(get_session)):
    return matchmaking.get_league_teams(db, body.league_room_id)


@router.post("/get_team_points")
async def team_points(body: LeagueRequest, db: Session = Depends(get_session)):
    return {"data": get_team_points(db, body.league_room_id)}


@router.post("/get_active_league_room_id")
async def get_active_league_room_id(body: ActiveLeagueRequest, db: Session = Depends(get_session)):
    active = matchmaking.get_active_league_room(db, body.user_id)

    if not active:
        return {
            "message": f"No active league room found for this user within the last {ACTIVE_LEAGUE_WINDOW_DAYS} days.",
            "league_room_id": None
        }

    entry, league = active
    return {
        "message": "Active league room found.",
        "waiting_room_id": entry.waiting_room_id,
        "league_room_id": league.id,
        "created_at": league.created_at
    }


@router.post("/end_league_room")
async def end_league_room(body: LeagueRequest, db: Session = Depends(get_session)):
    league, already_ended, closed = matchmaking.end_league_room(db, body.league_room_id)

    if already_ended:
        return {"message": "League room already ended"}

    return {
        "message": "League room ended successfully and team memberships updated with date_left.",
        "leagueRoom": league.model_dump(),
        "memberships_closed": closed
    }
