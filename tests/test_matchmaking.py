import random
from datetime import datetime, timedelta, UTC

from sqlmodel import select
from tandem.models import (
    EntryStatus,
    LeagueRoom,
    Team,
    TeamMembership,
    WaitingRoomEntry,
)
from tandem.services.matchmaking import pair_participants


def open_room(client, user_id):
    response = client.post("/create_waiting_room", json={"userId": user_id})
    assert response.status_code == 201
    return response.json()["waiting_room_id"]


def test_create_waiting_room(client, session, alice):
    response = client.post("/create_waiting_room", json={"userId": alice.id})

    assert response.status_code == 201
    data = response.json()
    entry = session.exec(select(WaitingRoomEntry).where(WaitingRoomEntry.user_id == alice.id)).one()
    assert data["waiting_room_id"] == entry.waiting_room_id
    assert entry.status == EntryStatus.UNASSIGNED
    assert entry.league_room_id is None


def test_create_waiting_room_twice_conflicts(client, alice):
    room_id = open_room(client, alice.id)

    response = client.post("/create_waiting_room", json={"userId": alice.id})
    assert response.status_code == 409
    assert response.json()["waiting_room_id"] == room_id


def test_create_waiting_room_unknown_user(client):
    response = client.post("/create_waiting_room", json={"userId": 42})
    assert response.status_code == 404
    assert response.json() == {"error": "User not found."}


def test_join_waiting_room(client, alice, bob):
    room_id = open_room(client, alice.id)

    response = client.post("/join_waiting_room", json={"userId": bob.id, "waitingRoomId": room_id})
    assert response.status_code == 200
    assert response.json()["waiting_room_id"] == room_id

    users = client.post("/get_waiting_room_users", json={"waiting_room_id": room_id}).json()
    assert users == [
        {"user_id": alice.id, "name": "Alice"},
        {"user_id": bob.id, "name": "Bob"},
    ]


def test_join_same_room_twice_conflicts(client, alice, bob):
    room_id = open_room(client, alice.id)
    client.post("/join_waiting_room", json={"userId": bob.id, "waitingRoomId": room_id})

    response = client.post("/join_waiting_room", json={"userId": bob.id, "waitingRoomId": room_id})
    assert response.status_code == 409


def test_join_while_holding_another_room_conflicts(client, alice, bob):
    room_id = open_room(client, alice.id)
    own_room = open_room(client, bob.id)

    response = client.post("/join_waiting_room", json={"userId": bob.id, "waitingRoomId": room_id})
    assert response.status_code == 409
    assert response.json()["waiting_room_id"] == own_room


def test_join_unknown_room(client, alice):
    response = client.post("/join_waiting_room", json={"userId": alice.id, "waitingRoomId": 99})
    assert response.status_code == 404


def test_get_waiting_room_id(client, alice, bob):
    response = client.post("/get_waiting_room_id", json={"userId": alice.id})
    assert response.status_code == 200
    assert response.json()["waiting_room_id"] is None

    room_id = open_room(client, alice.id)
    response = client.post("/get_waiting_room_id", json={"userId": alice.id})
    assert response.json()["waiting_room_id"] == room_id


def test_get_waiting_room_users_empty(client):
    response = client.post("/get_waiting_room_users", json={"waiting_room_id": 7})
    assert response.status_code == 200
    assert response.json() == []


def test_league_formation_rejects_odd_count(client, session, make_user):
    users = [make_user(name) for name in ("Ann", "Ben", "Cid")]
    room_id = open_room(client, users[0].id)
    for user in users[1:]:
        client.post("/join_waiting_room", json={"userId": user.id, "waitingRoomId": room_id})

    response = client.post("/create_league_room", json={"user_id": users[0].id})

    assert response.status_code == 400
    assert "even" in response.json()["error"]
    assert session.exec(select(LeagueRoom)).all() == []
    assert session.exec(select(Team)).all() == []


def test_league_formation_pairs_everyone(client, session, make_user):
    users = [make_user(name) for name in ("Ann", "Ben", "Cid", "Dee")]
    room_id = open_room(client, users[0].id)
    for user in users[1:]:
        client.post("/join_waiting_room", json={"userId": user.id, "waitingRoomId": room_id})

    response = client.post("/create_league_room", json={"user_id": users[2].id})

    assert response.status_code == 201
    data = response.json()
    assert data["team_count"] == 2

    members = sorted(uid for team in data["teams"] for uid in team["members"])
    assert members == sorted(u.id for u in users)
    assert all(len(team["members"]) == 2 for team in data["teams"])

    entries = session.exec(select(WaitingRoomEntry).where(WaitingRoomEntry.waiting_room_id == room_id)).all()
    assert all(e.status == EntryStatus.ASSIGNED for e in entries)
    assert all(e.league_room_id == data["league_room_id"] for e in entries)

    # Once assigned, nobody can join the room any more
    late = make_user("Eve")
    response = client.post("/join_waiting_room", json={"userId": late.id, "waitingRoomId": room_id})
    assert response.status_code == 404


def test_league_formation_without_waiting_room(client, alice):
    response = client.post("/create_league_room", json={"user_id": alice.id})
    assert response.status_code == 404


def test_pair_participants_is_a_partition():
    pairs = pair_participants([1, 2, 3, 4, 5, 6], random.Random(7))

    assert len(pairs) == 3
    assert sorted(uid for pair in pairs for uid in pair) == [1, 2, 3, 4, 5, 6]


def test_create_team(client, session, league, alice, bob):
    response = client.post(
        "/create_team",
        json={"user_ids": [alice.id, bob.id], "league_room_id": league.id}
    )

    assert response.status_code == 201
    data = response.json()
    assert data["team_name"] == "Alice & Bob"
    assert data["members"] == [alice.id, bob.id]

    memberships = session.exec(select(TeamMembership).where(TeamMembership.team_id == data["team_id"])).all()
    assert {m.user_id for m in memberships} == {alice.id, bob.id}
    assert all(m.date_left is None for m in memberships)


def test_create_team_unknown_league(client, alice, bob):
    response = client.post("/create_team", json={"user_ids": [alice.id, bob.id], "league_room_id": 5})
    assert response.status_code == 400


def test_create_team_unknown_user(client, league, alice):
    response = client.post("/create_team", json={"user_ids": [alice.id, 404], "league_room_id": league.id})
    assert response.status_code == 400
    assert response.json()["error"] == "One or more user_ids are invalid"


def test_create_team_rejects_user_with_active_team(client, team, league, alice, make_user):
    carol = make_user("Carol")
    response = client.post("/create_team", json={"user_ids": [alice.id, carol.id], "league_room_id": league.id})

    assert response.status_code == 400
    assert response.json()["details"] == [f"user_id {alice.id} has an active team membership"]


def test_end_league_room_closes_memberships(client, session, league, team):
    response = client.post("/end_league_room", json={"league_room_id": league.id})

    assert response.status_code == 200
    assert response.json()["memberships_closed"] == 2

    memberships = session.exec(select(TeamMembership).where(TeamMembership.team_id == team.id)).all()
    assert all(m.date_left == datetime.now(UTC).date() for m in memberships)

    session.refresh(league)
    assert league.ended_at is not None

    response = client.post("/end_league_room", json={"league_room_id": league.id})
    assert response.json() == {"message": "League room already ended"}


def test_end_unknown_league_room(client):
    response = client.post("/end_league_room", json={"league_room_id": 123})
    assert response.status_code == 404


def test_active_league_room(client, session, alice, bob):
    room_id = open_room(client, alice.id)
    client.post("/join_waiting_room", json={"userId": bob.id, "waitingRoomId": room_id})
    league_id = client.post("/create_league_room", json={"user_id": alice.id}).json()["league_room_id"]

    response = client.post("/get_active_league_room_id", json={"user_id": bob.id})
    assert response.status_code == 200
    assert response.json()["league_room_id"] == league_id
    assert response.json()["waiting_room_id"] == room_id

    # Leagues older than the activity window no longer count
    league = session.get(LeagueRoom, league_id)
    league.created_at = datetime.now(UTC) - timedelta(days=8)
    session.add(league)
    session.commit()

    response = client.post("/get_active_league_room_id", json={"user_id": bob.id})
    assert response.json()["league_room_id"] is None


def test_get_league_teams(client, alice, bob):
    room_id = open_room(client, alice.id)
    client.post("/join_waiting_room", json={"userId": bob.id, "waitingRoomId": room_id})
    league_id = client.post("/create_league_room", json={"user_id": bob.id}).json()["league_room_id"]

    response = client.post("/get_league_teams", json={"league_room_id": league_id})

    assert response.status_code == 200
    data = response.json()
    assert data["owner_id"] == alice.id
    assert len(data["teams"]) == 1
    team = data["teams"][0]
    assert team["current_streak"] == 0
    assert {m["user_id"] for m in team["members"]} == {alice.id, bob.id}
