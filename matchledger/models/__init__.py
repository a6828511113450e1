"""
League data models.

- ``matchledger.models.models``: SQLAlchemy tables for the SQL backend
- ``matchledger.models.schemas``: pydantic records used everywhere else

Usage:
    from matchledger.models import MatchRecord, PlayerStatsRecord, DRAW
"""
from matchledger.models.models import Base, User, Match, PlayerStats
from matchledger.models.schemas import (
    DRAW,
    default_display_name,
    UserRecord,
    NewMatch,
    MatchRecord,
    PlayerStatsRecord,
    LeaderboardEntry,
)

__all__ = [
    "Base",
    "User",
    "Match",
    "PlayerStats",
    "DRAW",
    "default_display_name",
    "UserRecord",
    "NewMatch",
    "MatchRecord",
    "PlayerStatsRecord",
    "LeaderboardEntry",
]
