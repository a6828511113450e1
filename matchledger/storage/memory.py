"""In-process store keyed the same way as the backend tables.

Data lives only as long as the process. Used as the fallback store and for
``STORAGE_BACKEND=memory``.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from matchledger.models import UserRecord, NewMatch, MatchRecord, PlayerStatsRecord
from matchledger.storage.base import LeagueStore


def _newest_first(matches: List[MatchRecord]) -> List[MatchRecord]:
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(matches, key=lambda m: (m.created_at or epoch, m.id), reverse=True)


class MemoryStore(LeagueStore):
    name = "memory"

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.matches: List[MatchRecord] = []
        self.player_stats: Dict[str, PlayerStatsRecord] = {}
        self._next_match_id = 1

    async def save_user(self, user: UserRecord) -> UserRecord:
        stored = user.model_copy(update={
            "created_at": user.created_at or datetime.now(timezone.utc)
        })
        self.users[user.wallet_address] = stored
        return stored

    async def get_user(self, wallet_address: str) -> Optional[UserRecord]:
        return self.users.get(wallet_address)

    async def list_users(self) -> List[UserRecord]:
        return list(self.users.values())

    async def delete_user(self, wallet_address: str) -> bool:
        return self.users.pop(wallet_address, None) is not None

    async def insert_match(self, match: NewMatch) -> MatchRecord:
        record = MatchRecord(
            **match.model_dump(),
            id=self._next_match_id,
            created_at=datetime.now(timezone.utc),
        )
        self._next_match_id += 1
        self.matches.append(record)
        return record

    async def get_match(self, match_id: int) -> Optional[MatchRecord]:
        for match in self.matches:
            if match.id == match_id:
                return match
        return None

    async def update_match_winner(self, match_id: int, winner: str) -> Optional[MatchRecord]:
        for index, match in enumerate(self.matches):
            if match.id == match_id:
                self.matches[index] = match.model_copy(update={"winner": winner})
                return self.matches[index]
        return None

    async def list_matches(self, limit: int) -> List[MatchRecord]:
        return _newest_first(self.matches)[:limit]

    async def list_matches_for_player(self, wallet_address: str, limit: int) -> List[MatchRecord]:
        return _newest_first([m for m in self.matches if m.involves(wallet_address)])[:limit]

    async def delete_match(self, match_id: int) -> bool:
        before = len(self.matches)
        self.matches = [m for m in self.matches if m.id != match_id]
        return len(self.matches) < before

    async def upsert_stats(self, stats: PlayerStatsRecord) -> PlayerStatsRecord:
        self.player_stats[stats.user_id] = stats
        return stats

    async def get_stats(self, user_id: str) -> Optional[PlayerStatsRecord]:
        return self.player_stats.get(user_id)

    async def list_stats(self) -> List[PlayerStatsRecord]:
        return sorted(self.player_stats.values(), key=lambda s: s.wins, reverse=True)

    def reserve_ids_below(self, next_id: int) -> None:
        """Never hand out a match id lower than ``next_id``."""
        self._next_match_id = max(self._next_match_id, next_id)
