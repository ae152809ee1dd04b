from typing import Any, Dict, List
from sqlmodel import Session, select

from ..models.challenge import Challenge
from ..models.team import Team
from ..models.team_challenge import TeamChallenge
from .matchmaking import get_league_or_404


def calculate_points(earning_points: int, multiplier: int) -> int:
    """Points a completed team challenge is worth."""
    return earning_points * (multiplier or 1)


def get_team_points(db: Session, league_room_id: int) -> List[Dict[str, Any]]:
    """
    Point totals for every team in a league.

    total_points = sum of earning_points * multiplier over completed
    team challenges, plus the team's streak bonus points.
    """
    get_league_or_404(db, league_room_id)

    teams = db.exec(
        select(Team).where(Team.league_room_id == league_room_id).order_by(Team.id)
    ).all()

    team_points: Dict[int, Dict[str, Any]] = {}
    for team in teams:
        team_points[team.id] = {
            "team_id": team.id,
            "team_name": team.name,
            "total_points": 0,
            "completed_challenges": 0,
            "streak_bonus": team.streak_bonus_points or 0
        }

    completed = db.exec(
        select(TeamChallenge, Challenge)
        .join(Challenge, Challenge.id == TeamChallenge.challenge_id)
        .join(Team, Team.id == TeamChallenge.team_id)
        .where(
            Team.league_room_id == league_room_id,
            TeamChallenge.is_completed == True  # noqa: E712
        )
    ).all()

    for team_challenge, challenge in completed:
        entry = team_points[team_challenge.team_id]
        entry["total_points"] += calculate_points(challenge.earning_points, team_challenge.multiplier)
        entry["completed_challenges"] += 1

    for entry in team_points.values():
        entry["total_points"] += entry["streak_bonus"]

    return list(team_points.values())
