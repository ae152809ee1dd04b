"""
Challenge assignment, contributions and completion.

A team challenge goes ASSIGNED -> COMPLETED exactly once. The flip is a
conditional UPDATE on is_completed, so when two contributions cross the
target at the same time only one of them gets the completion side effects
(completed_at and the streak update).
"""
from dataclasses import dataclass, field
from datetime import datetime, time, UTC
from typing import Any, Dict, List, Optional
from sqlalchemy import update
from sqlmodel import Session, select, func, col

from ..config import DUO_MULTIPLIER
from ..database import as_utc
from ..errors import BadRequest, NotFound
from ..logging import get_logger
from ..models.challenge import Challenge
from ..models.contribution import UserContribution, JourneyType
from ..models.team import Team
from ..models.team_challenge import TeamChallenge
from .auth import get_user_or_404
from .matchmaking import get_active_membership
from .streaks import register_completion

logger = get_logger(__name__)


@dataclass
class Progress:
    total_distance_km: float
    duo_distance_km: float
    required_distance_km: float
    completed: bool
    multiplier: int


@dataclass
class ContributionResult:
    contribution: UserContribution
    team_challenge_id: int
    progress: Progress
    newly_completed: bool = False
    streak: Optional[Dict[str, Any]] = None
    errors: List[str] = field(default_factory=list)


def evaluate_progress(
    total_meters: float,
    duo_meters: float,
    required_km: float,
    current_multiplier: int = 1
) -> Progress:
    """
    Compare logged distance with a challenge target.

    Completed once the total reaches the target. The duo multiplier applies
    once duo journeys cover at least half the target; it never goes down.
    """
    required_meters = required_km * 1000
    multiplier = current_multiplier or 1
    if duo_meters >= required_meters / 2:
        multiplier = max(multiplier, DUO_MULTIPLIER)

    return Progress(
        total_distance_km=total_meters / 1000,
        duo_distance_km=duo_meters / 1000,
        required_distance_km=required_km,
        completed=total_meters >= required_meters,
        multiplier=multiplier
    )


def get_active_team_challenge(db: Session, team_id: int) -> Optional[TeamChallenge]:
    """The team's newest challenge that is not completed yet."""
    statement = (
        select(TeamChallenge)
        .where(
            TeamChallenge.team_id == team_id,
            TeamChallenge.is_completed == False  # noqa: E712
        )
        .order_by(col(TeamChallenge.id).desc())
    )
    return db.exec(statement).first()


# Assignment

def bind_challenge(
    db: Session,
    team_id: int,
    challenge_id: int,
    now: Optional[datetime] = None
) -> TeamChallenge:
    """
    Bind a challenge to a team after checking the assignment rules.

    - a challenge active for any team cannot be picked again
    - a team cannot pick a challenge it already holds
    - a team holds at most one active challenge per calendar day
    """
    now = as_utc(now) or datetime.now(UTC)

    challenge = db.get(Challenge, challenge_id)
    if not challenge:
        raise NotFound("Challenge not found.")

    # Serialize assignments per team where the database supports row locks
    team = db.exec(select(Team).where(Team.id == team_id).with_for_update()).first()
    if not team:
        raise NotFound("Team not found.")

    already_bound = db.exec(
        select(TeamChallenge).where(
            TeamChallenge.team_id == team_id,
            TeamChallenge.challenge_id == challenge_id
        )
    ).first()
    if already_bound:
        raise BadRequest("This challenge is already assigned to the team.")

    taken = db.exec(
        select(TeamChallenge).where(
            TeamChallenge.challenge_id == challenge_id,
            TeamChallenge.is_completed == False  # noqa: E712
        )
    ).first()
    if taken:
        raise BadRequest("This challenge has already been picked by another team and is still active.")

    day_start = datetime.combine(now.date(), time.min, tzinfo=UTC)
    active_today = db.exec(
        select(TeamChallenge).where(
            TeamChallenge.team_id == team_id,
            TeamChallenge.is_completed == False,  # noqa: E712
            TeamChallenge.assigned_at >= day_start
        )
    ).first()
    if active_today:
        raise BadRequest(
            "Team already has an active challenge today.",
            details=[f"team_challenge_id {active_today.id} is still active"]
        )

    team_challenge = TeamChallenge(
        team_id=team_id,
        challenge_id=challenge_id,
        multiplier=1,
        is_completed=False,
        assigned_at=now
    )
    db.add(team_challenge)
    db.commit()
    db.refresh(team_challenge)

    logger.info(
        "challenge_assigned",
        team_id=team_id,
        challenge_id=challenge_id,
        team_challenge_id=team_challenge.id
    )
    return team_challenge


def assign_challenge_to_team(
    db: Session,
    user_id: int,
    challenge_id: int,
    now: Optional[datetime] = None
) -> TeamChallenge:
    """Pick a challenge on behalf of the user's current team."""
    get_user_or_404(db, user_id)

    membership = get_active_membership(db, user_id)
    if not membership:
        raise BadRequest("User is not part of any active team.")

    return bind_challenge(db, membership.team_id, challenge_id, now)


# Contributions

def _logged_meters(db: Session, team_challenge_id: int, journey_type: Optional[JourneyType] = None) -> float:
    statement = select(func.coalesce(func.sum(UserContribution.distance_covered), 0.0)).where(
        UserContribution.team_challenge_id == team_challenge_id
    )
    if journey_type is not None:
        statement = statement.where(UserContribution.journey_type == journey_type)
    return float(db.exec(statement).one())


def _mark_completed(db: Session, team_challenge_id: int, completed_at: datetime) -> bool:
    """Flip is_completed if nobody else has. True when this call made the transition."""
    result = db.connection().execute(
        update(TeamChallenge)
        .where(
            TeamChallenge.id == team_challenge_id,
            TeamChallenge.is_completed == False  # noqa: E712
        )
        .values(is_completed=True, completed_at=completed_at)
    )
    return result.rowcount == 1


def record_contribution(
    db: Session,
    user_id: int,
    start_time: datetime,
    distance_covered: float,
    end_time: Optional[datetime] = None,
    start_latitude: Optional[float] = None,
    start_longitude: Optional[float] = None,
    end_latitude: Optional[float] = None,
    end_longitude: Optional[float] = None,
    route: Optional[List[Dict[str, Any]]] = None,
    journey_type: JourneyType = JourneyType.SOLO,
    now: Optional[datetime] = None
) -> ContributionResult:
    """
    Log a movement segment against the user's active team challenge.

    The contribution, the multiplier and the completion flip commit together.
    The streak update for a fresh completion commits separately; if it fails
    for any reason the contribution stands, the failure is logged and a
    warning is returned.
    """
    now = as_utc(now) or datetime.now(UTC)

    membership = get_active_membership(db, user_id)
    if not membership:
        logger.warning("contribution_without_team", user_id=user_id)
        raise BadRequest("User is not part of any active team.")

    team_challenge = get_active_team_challenge(db, membership.team_id)
    if not team_challenge:
        raise BadRequest("No active challenge found")

    challenge = db.get(Challenge, team_challenge.challenge_id)
    team_challenge_id = team_challenge.id

    contribution = UserContribution(
        team_challenge_id=team_challenge_id,
        user_id=user_id,
        start_time=as_utc(start_time),
        end_time=as_utc(end_time) or now,
        start_latitude=start_latitude,
        start_longitude=start_longitude,
        end_latitude=end_latitude,
        end_longitude=end_longitude,
        distance_covered=distance_covered,
        route=route or [],
        journey_type=journey_type,
        active=False,
        contribution_details=f"Distance covered: {distance_covered}m"
    )
    db.add(contribution)
    db.flush()

    progress = evaluate_progress(
        total_meters=_logged_meters(db, team_challenge_id),
        duo_meters=_logged_meters(db, team_challenge_id, JourneyType.DUO),
        required_km=challenge.length,
        current_multiplier=team_challenge.multiplier
    )

    if progress.multiplier != team_challenge.multiplier:
        team_challenge.multiplier = progress.multiplier
        db.add(team_challenge)
        db.flush()
        logger.info("duo_multiplier_applied", team_challenge_id=team_challenge_id, multiplier=progress.multiplier)

    newly_completed = False
    if progress.completed:
        newly_completed = _mark_completed(db, team_challenge_id, now)

    db.commit()
    db.refresh(contribution)

    result = ContributionResult(
        contribution=contribution,
        team_challenge_id=team_challenge_id,
        progress=progress,
        newly_completed=newly_completed
    )

    logger.info(
        "contribution_recorded",
        contribution_id=contribution.id,
        team_challenge_id=team_challenge_id,
        total_distance_km=progress.total_distance_km,
        required_distance_km=progress.required_distance_km,
        completed=progress.completed
    )

    if not newly_completed:
        return result

    logger.info("team_challenge_completed", team_challenge_id=team_challenge_id, team_id=membership.team_id)

    try:
        team = db.get(Team, membership.team_id)
        change = register_completion(db, team, now.date())
        if change.bonus_awarded:
            team_challenge = db.get(TeamChallenge, team_challenge_id)
            team_challenge.bonus_points = change.bonus_awarded
            db.add(team_challenge)
        db.commit()
        result.streak = change.to_dict()
    except Exception as exc:
        # Contribution and completion are already committed
        db.rollback()
        logger.exception("streak_update_failed", team_id=membership.team_id, team_challenge_id=team_challenge_id)
        result.errors.append(f"Streak update failed: {exc.__class__.__name__}")

    db.refresh(result.contribution)
    return result
