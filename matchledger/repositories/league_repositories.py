"""
Repositories for the three league tables.

Usage:
    repo = MatchRepository(db)
    recent = repo.find_for_player("0xabc...", limit=50)
"""
from typing import List, Optional

from sqlalchemy import or_

from matchledger.models import User, Match, PlayerStats
from matchledger.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for league members."""

    pk_name = "wallet_address"

    def __init__(self, db):
        super().__init__(User, db)


class MatchRepository(BaseRepository[Match]):
    """Repository for recorded matches."""

    def __init__(self, db):
        super().__init__(Match, db)

    def find_recent(self, limit: Optional[int] = None) -> List[Match]:
        """All matches, newest first."""
        return self.find_all(limit=limit, order_by="-created_at")

    def find_for_player(self, wallet_address: str, limit: Optional[int] = None) -> List[Match]:
        """Matches where the address is either participant, newest first."""
        return self.where(
            or_(Match.player1 == wallet_address, Match.player2 == wallet_address),
            order_by="-created_at",
            limit=limit,
        )


class PlayerStatsRepository(BaseRepository[PlayerStats]):
    """Repository for aggregate player stats rows."""

    pk_name = "user_id"

    def __init__(self, db):
        super().__init__(PlayerStats, db)

    def leaderboard(self, limit: Optional[int] = None) -> List[PlayerStats]:
        return self.find_all(limit=limit, order_by="-wins")
