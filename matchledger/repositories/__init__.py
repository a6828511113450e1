"""
Repository layer for SQL data access.

Usage:
    from matchledger.repositories import MatchRepository
    from matchledger.core.database import get_session_factory

    db = get_session_factory()()
    matches = MatchRepository(db).find_for_player("0xabc...")
    db.close()
"""

from matchledger.repositories.base import BaseRepository
from matchledger.repositories.league_repositories import (
    UserRepository,
    MatchRepository,
    PlayerStatsRepository,
)

__all__ = [
    "BaseRepository",
    "UserRepository",
    "MatchRepository",
    "PlayerStatsRepository",
]
