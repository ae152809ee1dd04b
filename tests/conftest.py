from datetime import datetime, UTC
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from tandem.database import get_session
from tandem.models import (
    Challenge,
    Difficulty,
    LeagueRoom,
    Team,
    TeamChallenge,
    TeamMembership,
    User,
)

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def _create_user(session: Session, name: str, email: Optional[str] = None) -> User:
    user = User(
        name=name,
        email=email or f"{name.lower()}@example.com",
        password_hash="hashed_secret"
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def _create_challenge(session: Session, length: float = 5, earning_points: int = 40) -> Challenge:
    challenge = Challenge(
        start_time=datetime.now(UTC),
        duration=24 * 60,
        length=length,
        difficulty=Difficulty.MEDIUM,
        earning_points=earning_points
    )
    session.add(challenge)
    session.commit()
    session.refresh(challenge)
    return challenge


@pytest.fixture(name="league")
def league_fixture(session: Session) -> LeagueRoom:
    league = LeagueRoom(name="Test League")
    session.add(league)
    session.commit()
    session.refresh(league)
    return league


@pytest.fixture(name="alice")
def alice_fixture(session: Session) -> User:
    return _create_user(session, "Alice")


@pytest.fixture(name="bob")
def bob_fixture(session: Session) -> User:
    return _create_user(session, "Bob")


@pytest.fixture(name="team")
def team_fixture(session: Session, league: LeagueRoom, alice: User, bob: User) -> Team:
    """A two-person team (Alice & Bob) in the test league."""
    team = Team(name="Alice & Bob", league_room_id=league.id)
    session.add(team)
    session.commit()
    session.refresh(team)

    for user in (alice, bob):
        session.add(TeamMembership(team_id=team.id, user_id=user.id))
    session.commit()

    return team


@pytest.fixture(name="team_challenge")
def team_challenge_fixture(session: Session, team: Team) -> TeamChallenge:
    """An active 5 km challenge worth 40 points for the test team."""
    challenge = _create_challenge(session, length=5, earning_points=40)
    team_challenge = TeamChallenge(team_id=team.id, challenge_id=challenge.id)
    session.add(team_challenge)
    session.commit()
    session.refresh(team_challenge)
    return team_challenge


@pytest.fixture(name="make_user")
def make_user_fixture(session: Session):
    def make_user(name: str, email: Optional[str] = None) -> User:
        return _create_user(session, name, email)
    return make_user


@pytest.fixture(name="make_challenge")
def make_challenge_fixture(session: Session):
    def make_challenge(length: float = 5, earning_points: int = 40) -> Challenge:
        return _create_challenge(session, length, earning_points)
    return make_challenge
