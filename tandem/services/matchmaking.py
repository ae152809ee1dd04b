import random
from datetime import date, datetime, timedelta, UTC
from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlmodel import Session, select, col

from ..config import ACTIVE_LEAGUE_WINDOW_DAYS, TEAM_SIZE
from ..database import as_utc
from ..errors import BadRequest, Conflict, NotFound
from ..logging import get_logger
from ..models.user import User
from ..models.waiting_room import WaitingRoom, WaitingRoomEntry, EntryStatus
from ..models.league_room import LeagueRoom
from ..models.team import Team, TeamMembership
from .auth import get_user_or_404

logger = get_logger(__name__)


def get_open_entry(db: Session, user_id: int) -> Optional[WaitingRoomEntry]:
    """The user's unassigned waiting-room entry, if any."""
    statement = select(WaitingRoomEntry).where(
        WaitingRoomEntry.user_id == user_id,
        WaitingRoomEntry.status == EntryStatus.UNASSIGNED
    )
    return db.exec(statement).first()


def get_active_membership(db: Session, user_id: int) -> Optional[TeamMembership]:
    """The user's current team membership (date_left still empty)."""
    statement = select(TeamMembership).where(
        TeamMembership.user_id == user_id,
        TeamMembership.date_left == None  # noqa: E711
    )
    return db.exec(statement).first()


# Waiting rooms

def create_waiting_room(db: Session, user_id: int) -> WaitingRoomEntry:
    """Open a new waiting room with the user as its first participant."""
    get_user_or_404(db, user_id)

    existing = get_open_entry(db, user_id)
    if existing:
        logger.warning("waiting_room_exists", user_id=user_id, waiting_room_id=existing.waiting_room_id)
        raise Conflict(
            "User already has an active waiting room.",
            waiting_room_id=existing.waiting_room_id
        )

    room = WaitingRoom()
    db.add(room)
    db.flush()

    entry = WaitingRoomEntry(waiting_room_id=room.id, user_id=user_id)
    db.add(entry)
    db.commit()
    db.refresh(entry)

    logger.info("waiting_room_created", user_id=user_id, waiting_room_id=room.id)
    return entry


def join_waiting_room(db: Session, user_id: int, waiting_room_id: int) -> WaitingRoomEntry:
    get_user_or_404(db, user_id)

    # A room is joinable while it still has unassigned participants
    open_seat = db.exec(
        select(WaitingRoomEntry).where(
            WaitingRoomEntry.waiting_room_id == waiting_room_id,
            WaitingRoomEntry.status == EntryStatus.UNASSIGNED
        )
    ).first()
    if not open_seat:
        raise NotFound("Active waiting room not found.")

    existing = get_open_entry(db, user_id)
    if existing and existing.waiting_room_id == waiting_room_id:
        raise Conflict("User is already in this waiting room.", waiting_room_id=waiting_room_id)
    if existing:
        raise Conflict(
            "User already has an active waiting room.",
            waiting_room_id=existing.waiting_room_id
        )

    entry = WaitingRoomEntry(waiting_room_id=waiting_room_id, user_id=user_id)
    db.add(entry)
    db.commit()
    db.refresh(entry)

    logger.info("waiting_room_joined", user_id=user_id, waiting_room_id=waiting_room_id)
    return entry


def get_waiting_room_id(db: Session, user_id: int) -> Tuple[str, Optional[int]]:
    """
    Find the waiting room to show a user.

    The unassigned room wins; otherwise the most recent room the user was in.
    """
    get_user_or_404(db, user_id)

    existing = get_open_entry(db, user_id)
    if existing:
        return "Existing waiting room found.", existing.waiting_room_id

    latest = db.exec(
        select(WaitingRoomEntry)
        .where(WaitingRoomEntry.user_id == user_id)
        .order_by(col(WaitingRoomEntry.created_at).desc(), col(WaitingRoomEntry.id).desc())
    ).first()
    if latest:
        return "Latest waiting room found.", latest.waiting_room_id

    return "No waiting room found.", None


def get_waiting_room_users(db: Session, waiting_room_id: int) -> List[Dict[str, Any]]:
    statement = (
        select(User.id, User.name)
        .join(WaitingRoomEntry, WaitingRoomEntry.user_id == User.id)
        .where(WaitingRoomEntry.waiting_room_id == waiting_room_id)
        .order_by(WaitingRoomEntry.id)
    )
    rows = db.exec(statement).all()

    users = []
    seen = set()
    for user_id, name in rows:
        if user_id in seen:
            continue
        seen.add(user_id)
        users.append({"user_id": user_id, "name": name})
    return users


# Teams

def pair_participants(user_ids: Sequence[int], rng: Optional[random.Random] = None) -> List[List[int]]:
    """Shuffle participants and split them into teams of TEAM_SIZE."""
    if len(user_ids) % TEAM_SIZE != 0:
        raise ValueError(f"cannot split {len(user_ids)} participants into teams of {TEAM_SIZE}")

    shuffled = list(user_ids)
    (rng or random.Random()).shuffle(shuffled)
    return [shuffled[i:i + TEAM_SIZE] for i in range(0, len(shuffled), TEAM_SIZE)]


def _check_no_active_membership(db: Session, user_ids: Sequence[int]) -> None:
    busy = [uid for uid in user_ids if get_active_membership(db, uid)]
    if busy:
        raise BadRequest(
            "One or more users already belong to an active team.",
            details=[f"user_id {uid} has an active team membership" for uid in busy]
        )


def _add_team(db: Session, users: Sequence[User], league_room_id: int, joined: date) -> Team:
    """Stage a team and its memberships in the current transaction."""
    team = Team(
        name=" & ".join(user.name for user in users),
        league_room_id=league_room_id
    )
    db.add(team)
    db.flush()

    for user in users:
        db.add(TeamMembership(team_id=team.id, user_id=user.id, date_joined=joined))

    return team


def create_team(db: Session, user_ids: List[int], league_room_id: int) -> Team:
    if len(set(user_ids)) != len(user_ids):
        raise BadRequest("user_ids must not contain duplicates")

    if not db.get(LeagueRoom, league_room_id):
        raise BadRequest("Invalid league_room_id. League room not found.")

    users = db.exec(select(User).where(col(User.id).in_(user_ids))).all()
    if len(users) != len(user_ids):
        logger.warning("create_team_invalid_users", user_ids=user_ids)
        raise BadRequest("One or more user_ids are invalid")

    _check_no_active_membership(db, user_ids)

    # Keep the requested member order in the team name
    by_id = {user.id: user for user in users}
    team = _add_team(db, [by_id[uid] for uid in user_ids], league_room_id, datetime.now(UTC).date())
    db.commit()
    db.refresh(team)

    logger.info("team_created", team_id=team.id, league_room_id=league_room_id, user_ids=user_ids)
    return team


# League rooms

def form_league(
    db: Session,
    user_id: int,
    name: Optional[str] = None,
    rng: Optional[random.Random] = None
) -> Tuple[LeagueRoom, List[Tuple[Team, List[int]]]]:
    """
    Turn the user's waiting room into a league room.

    Requires an even number of participants. Everyone is shuffled into pairs,
    each pair becomes a team, and every waiting-room entry is marked ASSIGNED.
    Nothing is written when a check fails.
    """
    get_user_or_404(db, user_id)

    entry = get_open_entry(db, user_id)
    if not entry:
        raise NotFound("User is not in an active waiting room.")

    entries = db.exec(
        select(WaitingRoomEntry)
        .where(
            WaitingRoomEntry.waiting_room_id == entry.waiting_room_id,
            WaitingRoomEntry.status == EntryStatus.UNASSIGNED
        )
        .order_by(WaitingRoomEntry.id)
    ).all()

    participant_ids = [e.user_id for e in entries]
    if len(participant_ids) % TEAM_SIZE != 0:
        logger.warning(
            "league_formation_rejected",
            waiting_room_id=entry.waiting_room_id,
            participants=len(participant_ids)
        )
        raise BadRequest(
            "An even number of participants is required to form a league.",
            details=[f"waiting room {entry.waiting_room_id} has {len(participant_ids)} participants"]
        )

    _check_no_active_membership(db, participant_ids)

    users = {u.id: u for u in db.exec(select(User).where(col(User.id).in_(participant_ids))).all()}

    league = LeagueRoom(name=name or f"League {entry.waiting_room_id}")
    db.add(league)
    db.flush()

    today = datetime.now(UTC).date()
    teams = []
    for pair in pair_participants(participant_ids, rng):
        team = _add_team(db, [users[uid] for uid in pair], league.id, today)
        teams.append((team, pair))

    for e in entries:
        e.league_room_id = league.id
        e.status = EntryStatus.ASSIGNED
        db.add(e)

    db.commit()
    db.refresh(league)
    for team, _ in teams:
        db.refresh(team)

    logger.info(
        "league_formed",
        league_room_id=league.id,
        waiting_room_id=entry.waiting_room_id,
        team_count=len(teams)
    )
    return league, teams


def get_active_league_room(
    db: Session,
    user_id: int,
    now: Optional[datetime] = None
) -> Optional[Tuple[WaitingRoomEntry, LeagueRoom]]:
    """The newest league the user was assigned to that is recent and still running."""
    get_user_or_404(db, user_id)

    now = as_utc(now) or datetime.now(UTC)
    window_start = now - timedelta(days=ACTIVE_LEAGUE_WINDOW_DAYS)

    statement = (
        select(WaitingRoomEntry, LeagueRoom)
        .join(LeagueRoom, LeagueRoom.id == WaitingRoomEntry.league_room_id)
        .where(
            WaitingRoomEntry.user_id == user_id,
            WaitingRoomEntry.status == EntryStatus.ASSIGNED,
            LeagueRoom.created_at >= window_start,
            LeagueRoom.ended_at == None  # noqa: E711
        )
        .order_by(col(LeagueRoom.created_at).desc())
    )
    return db.exec(statement).first()


def get_league_or_404(db: Session, league_room_id: int) -> LeagueRoom:
    league = db.get(LeagueRoom, league_room_id)
    if not league:
        raise NotFound("League room not found")
    return league


def end_league_room(
    db: Session,
    league_room_id: int,
    now: Optional[datetime] = None
) -> Tuple[LeagueRoom, bool, int]:
    """
    Close a league room and every open membership of its teams.

    Returns (league, already_ended, memberships_closed).
    """
    league = get_league_or_404(db, league_room_id)

    if league.ended_at is not None:
        return league, True, 0

    now = as_utc(now) or datetime.now(UTC)
    league.ended_at = now
    db.add(league)

    memberships = db.exec(
        select(TeamMembership)
        .join(Team, Team.id == TeamMembership.team_id)
        .where(
            Team.league_room_id == league_room_id,
            TeamMembership.date_left == None  # noqa: E711
        )
    ).all()

    for membership in memberships:
        membership.date_left = now.date()
        db.add(membership)

    db.commit()
    db.refresh(league)

    logger.info("league_ended", league_room_id=league_room_id, memberships_closed=len(memberships))
    return league, False, len(memberships)


def get_league_teams(db: Session, league_room_id: int) -> Dict[str, Any]:
    """Teams of a league with their streaks and members, plus the league owner."""
    get_league_or_404(db, league_room_id)

    owner = db.exec(
        select(WaitingRoomEntry)
        .where(WaitingRoomEntry.league_room_id == league_room_id)
        .order_by(WaitingRoomEntry.created_at, WaitingRoomEntry.id)
    ).first()

    teams = db.exec(
        select(Team).where(Team.league_room_id == league_room_id).order_by(Team.id)
    ).all()

    teams_data = []
    for team in teams:
        members = db.exec(
            select(User.id, User.name)
            .join(TeamMembership, TeamMembership.user_id == User.id)
            .where(TeamMembership.team_id == team.id)
            .order_by(TeamMembership.id)
        ).all()

        teams_data.append({
            "team_id": team.id,
            "team_name": team.name,
            "current_streak": team.current_streak or 0,
            "last_completion_date": team.last_completion_date,
            "streak_bonus_points": team.streak_bonus_points,
            "members": [{"user_id": m[0], "name": m[1]} for m in members]
        })

    return {
        "teams": teams_data,
        "owner_id": owner.user_id if owner else None
    }
