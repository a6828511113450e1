"""
Storage interface for league data.

``LeagueStore`` is implemented by:
- ``RestStore``: hosted relational backend over HTTPS
- ``SqlStore``: SQLAlchemy database
- ``MemoryStore``: process-local collections
- ``FallbackStore``: a primary store that falls through to a ``MemoryStore``

Stores know nothing about tombstones; filtering deleted matches is the
service layer's job.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from matchledger.models import UserRecord, NewMatch, MatchRecord, PlayerStatsRecord


class BackendError(Exception):
    """The storage backend rejected or failed an operation."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class LeagueStore(ABC):
    """Async row operations for the users, matches and player_stats tables."""

    name = "store"

    # Users

    @abstractmethod
    async def save_user(self, user: UserRecord) -> UserRecord:
        """Insert or update on ``wallet_address``."""

    @abstractmethod
    async def get_user(self, wallet_address: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def list_users(self) -> List[UserRecord]:
        ...

    @abstractmethod
    async def delete_user(self, wallet_address: str) -> bool:
        ...

    # Matches

    @abstractmethod
    async def insert_match(self, match: NewMatch) -> MatchRecord:
        """Insert a match; the store assigns ``id`` and ``created_at``."""

    @abstractmethod
    async def get_match(self, match_id: int) -> Optional[MatchRecord]:
        ...

    @abstractmethod
    async def update_match_winner(self, match_id: int, winner: str) -> Optional[MatchRecord]:
        ...

    @abstractmethod
    async def list_matches(self, limit: int) -> List[MatchRecord]:
        """Most recent first."""

    @abstractmethod
    async def list_matches_for_player(self, wallet_address: str, limit: int) -> List[MatchRecord]:
        """Matches where the address is either participant, most recent first."""

    @abstractmethod
    async def delete_match(self, match_id: int) -> bool:
        """Remove the row. True when the backend reports a removal."""

    async def delete_match_alternate(self, match_id: int) -> bool:
        """Second deletion path; stores with only one path reuse ``delete_match``."""
        return await self.delete_match(match_id)

    async def match_exists(self, match_id: int) -> bool:
        return await self.get_match(match_id) is not None

    # Player stats

    @abstractmethod
    async def upsert_stats(self, stats: PlayerStatsRecord) -> PlayerStatsRecord:
        """Insert or update on ``user_id``."""

    @abstractmethod
    async def get_stats(self, user_id: str) -> Optional[PlayerStatsRecord]:
        ...

    @abstractmethod
    async def list_stats(self) -> List[PlayerStatsRecord]:
        ...

    async def close(self) -> None:
        """Release network or database resources."""
