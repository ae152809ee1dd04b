from .user import User
from .session import Session
from .waiting_room import WaitingRoom, WaitingRoomEntry, EntryStatus
from .league_room import LeagueRoom
from .team import Team, TeamMembership
from .challenge import Challenge, Difficulty
from .team_challenge import TeamChallenge
from .contribution import UserContribution, JourneyType

__all__ = [
    "User",
    "Session",
    "WaitingRoom",
    "WaitingRoomEntry",
    "EntryStatus",
    "LeagueRoom",
    "Team",
    "TeamMembership",
    "Challenge",
    "Difficulty",
    "TeamChallenge",
    "UserContribution",
    "JourneyType",
]
