import random
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional
from sqlmodel import Session

from ..config import DAILY_CHALLENGE_DURATION_MINUTES
from ..database import as_utc
from ..logging import get_logger
from ..models.challenge import Challenge, Difficulty

logger = get_logger(__name__)

BASE_POINTS = {
    Difficulty.EASY: 10,
    Difficulty.MEDIUM: 20,
    Difficulty.HARD: 30,
}

# Inclusive km ranges per difficulty
LENGTH_RANGES = {
    Difficulty.EASY: (1, 3),
    Difficulty.MEDIUM: (4, 7),
    Difficulty.HARD: (8, 10),
}

# How many challenges of each difficulty a daily set contains
DAILY_MIX = [
    (Difficulty.EASY, 2),
    (Difficulty.MEDIUM, 2),
    (Difficulty.HARD, 1),
]


def calculate_points(length: float, difficulty: Difficulty) -> int:
    """
    Points a challenge is worth.

    earning_points = base + length * 4, with base 10 (easy), 20 (medium), 30 (hard).
    """
    return int(BASE_POINTS[Difficulty(difficulty)] + length * 4)


def generate_challenges(rng: Optional[random.Random] = None) -> List[Dict[str, Any]]:
    """Generate the daily set: 2 easy, 2 medium and 1 hard challenge."""
    rng = rng or random.Random()
    generated = []

    for difficulty, count in DAILY_MIX:
        low, high = LENGTH_RANGES[difficulty]
        for _ in range(count):
            length = rng.randint(low, high)
            generated.append({
                "length": length,
                "difficulty": difficulty,
                "earning_points": calculate_points(length, difficulty),
            })

    return generated


def add_challenge(
    db: Session,
    start_time: datetime,
    duration: int,
    earning_points: int,
    difficulty: Difficulty,
    length: float
) -> Challenge:
    challenge = Challenge(
        start_time=as_utc(start_time),
        duration=duration,
        earning_points=earning_points,
        difficulty=difficulty,
        length=length
    )
    db.add(challenge)
    db.commit()
    db.refresh(challenge)
    logger.info("challenge_added", challenge_id=challenge.id, difficulty=challenge.difficulty.value)
    return challenge


def create_daily_challenges(
    db: Session,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None
) -> List[Challenge]:
    """Insert a freshly generated daily challenge set, all starting now and lasting a day."""
    start_time = as_utc(now) or datetime.now(UTC)

    challenges = [
        Challenge(
            start_time=start_time,
            duration=DAILY_CHALLENGE_DURATION_MINUTES,
            **generated
        )
        for generated in generate_challenges(rng)
    ]
    db.add_all(challenges)
    db.commit()

    for challenge in challenges:
        db.refresh(challenge)

    logger.info("daily_challenges_created", challenge_ids=[c.id for c in challenges])
    return challenges
