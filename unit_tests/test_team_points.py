import pytest
from datetime import datetime, UTC
from tandem.errors import NotFound
from tandem.models import Challenge, Difficulty, LeagueRoom, Team, TeamChallenge
from tandem.services.scoring import calculate_points, get_team_points


def test_calculate_points_with_multiplier():
    assert calculate_points(40, 1) == 40
    assert calculate_points(40, 2) == 80

def test_calculate_points_missing_multiplier():
    assert calculate_points(40, 0) == 40


def _challenge(session, earning_points):
    challenge = Challenge(
        start_time=datetime(2024, 12, 12, tzinfo=UTC),
        duration=1440,
        length=5,
        difficulty=Difficulty.MEDIUM,
        earning_points=earning_points
    )
    session.add(challenge)
    session.commit()
    session.refresh(challenge)
    return challenge

def test_team_points(session):
    league = LeagueRoom(name="Points League")
    session.add(league)
    session.commit()

    first = Team(name="First", league_room_id=league.id, streak_bonus_points=25)
    second = Team(name="Second", league_room_id=league.id)
    session.add(first)
    session.add(second)
    session.commit()

    session.add(TeamChallenge(team_id=first.id, challenge_id=_challenge(session, 40).id, multiplier=2, is_completed=True))
    session.add(TeamChallenge(team_id=first.id, challenge_id=_challenge(session, 18).id, multiplier=1, is_completed=True))
    # Still running, not scored yet
    session.add(TeamChallenge(team_id=second.id, challenge_id=_challenge(session, 70).id, multiplier=2))
    session.commit()

    points = get_team_points(session, league.id)

    assert points == [
        {"team_id": first.id, "team_name": "First", "total_points": 80 + 18 + 25,
         "completed_challenges": 2, "streak_bonus": 25},
        {"team_id": second.id, "team_name": "Second", "total_points": 0,
         "completed_challenges": 0, "streak_bonus": 0},
    ]

def test_team_points_unknown_league(session):
    with pytest.raises(NotFound):
        get_team_points(session, 404)
