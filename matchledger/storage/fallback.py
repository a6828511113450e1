"""
Primary store with an in-memory fallback.

Every operation goes to the primary store first. If that call raises for
any reason (backend down, missing table, permission denied, open circuit
breaker) the failure is logged and counted, and the same operation runs
against the fallback ``MemoryStore`` instead. Results from the two stores
are never merged: the fallback only answers when the primary call itself
failed.
"""
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from matchledger.core.logging import get_logger
from matchledger.core.metrics import record_backend_failure
from matchledger.models import UserRecord, NewMatch, MatchRecord, PlayerStatsRecord
from matchledger.storage.base import LeagueStore
from matchledger.storage.memory import MemoryStore

logger = get_logger(__name__)

R = TypeVar("R")


class FallbackStore(LeagueStore):
    name = "fallback"

    def __init__(self, primary: LeagueStore, fallback: Optional[MemoryStore] = None):
        self.primary = primary
        self.fallback = fallback or MemoryStore()

    async def _attempt(
        self,
        operation: str,
        primary_call: Callable[[], Awaitable[R]],
        fallback_call: Callable[[], Awaitable[R]],
    ) -> R:
        try:
            return await primary_call()
        except Exception as e:
            logger.warning(
                f"{self.primary.name} store failed on {operation}, using in-memory fallback: {e}",
                extra={"operation": operation, "error_type": type(e).__name__},
            )
            record_backend_failure(operation, e)
            return await fallback_call()

    def _both(self, method: str, *args: Any) -> tuple:
        return (
            lambda: getattr(self.primary, method)(*args),
            lambda: getattr(self.fallback, method)(*args),
        )

    # Users

    async def save_user(self, user: UserRecord) -> UserRecord:
        return await self._attempt("save_user", *self._both("save_user", user))

    async def get_user(self, wallet_address: str) -> Optional[UserRecord]:
        return await self._attempt("get_user", *self._both("get_user", wallet_address))

    async def list_users(self) -> List[UserRecord]:
        return await self._attempt("list_users", *self._both("list_users"))

    async def delete_user(self, wallet_address: str) -> bool:
        deleted = await self._attempt("delete_user", *self._both("delete_user", wallet_address))
        await self.fallback.delete_user(wallet_address)
        return deleted

    # Matches

    async def insert_match(self, match: NewMatch) -> MatchRecord:
        return await self._attempt("insert_match", *self._both("insert_match", match))

    async def get_match(self, match_id: int) -> Optional[MatchRecord]:
        return await self._attempt("get_match", *self._both("get_match", match_id))

    async def update_match_winner(self, match_id: int, winner: str) -> Optional[MatchRecord]:
        return await self._attempt(
            "update_match_winner", *self._both("update_match_winner", match_id, winner)
        )

    async def list_matches(self, limit: int) -> List[MatchRecord]:
        return await self._attempt("list_matches", *self._both("list_matches", limit))

    async def list_matches_for_player(self, wallet_address: str, limit: int) -> List[MatchRecord]:
        return await self._attempt(
            "list_matches_for_player",
            *self._both("list_matches_for_player", wallet_address, limit),
        )

    async def delete_match(self, match_id: int) -> bool:
        """Delete through the primary store and drop any fallback copy."""
        removed_locally = await self.fallback.delete_match(match_id)
        removed = await self.primary.delete_match(match_id)
        return removed or removed_locally

    async def delete_match_alternate(self, match_id: int) -> bool:
        return await self.primary.delete_match_alternate(match_id)

    async def match_exists(self, match_id: int) -> bool:
        return await self._attempt("match_exists", *self._both("match_exists", match_id))

    # Player stats

    async def upsert_stats(self, stats: PlayerStatsRecord) -> PlayerStatsRecord:
        return await self._attempt("upsert_stats", *self._both("upsert_stats", stats))

    async def get_stats(self, user_id: str) -> Optional[PlayerStatsRecord]:
        return await self._attempt("get_stats", *self._both("get_stats", user_id))

    async def list_stats(self) -> List[PlayerStatsRecord]:
        return await self._attempt("list_stats", *self._both("list_stats"))

    async def close(self) -> None:
        await self.primary.close()
        await self.fallback.close()
