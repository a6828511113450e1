"""
Match recording, winner declaration and deletion.

Deleted matches are tombstoned locally before the backend is touched, and
every read filters tombstoned ids out. A backend that refuses or silently
ignores a delete therefore never brings a deleted match back into listings
or stats.
"""
import asyncio
from dataclasses import dataclass
from typing import List, Optional, Tuple

from matchledger.core.logging import get_logger
from matchledger.core.metrics import match_deletions_total
from matchledger.models import DRAW, NewMatch, MatchRecord
from matchledger.services.stats_service import StatsService
from matchledger.storage import LeagueStore, MemoryStore, FallbackStore, TombstoneSet

logger = get_logger(__name__)

MIN_OPPONENT_LENGTH = 10


class MatchValidationError(ValueError):
    """A match or winner submission that cannot be recorded."""


@dataclass
class DeletionOutcome:
    match_id: int
    found: bool
    removed_remotely: bool
    deleted: bool = True


class MatchService:
    def __init__(
        self,
        store: LeagueStore,
        tombstones: TombstoneSet,
        stats: StatsService,
        delete_settle_delay: float = 0.5,
        match_limit: int = 1000,
    ):
        self.store = store
        self.tombstones = tombstones
        self.stats = stats
        self.delete_settle_delay = delete_settle_delay
        self.match_limit = match_limit
        self._reserve_tombstoned_ids()

    def _reserve_tombstoned_ids(self) -> None:
        ids = self.tombstones.ids()
        if ids:
            self._reserve_local_id(ids[-1])

    def _reserve_local_id(self, match_id: int) -> None:
        # Locally numbered matches must not reuse an id that is tombstoned
        memory = self.store.fallback if isinstance(self.store, FallbackStore) else self.store
        if isinstance(memory, MemoryStore):
            memory.reserve_ids_below(match_id + 1)

    async def create_match(
        self,
        player1: str,
        opponent: str,
        player1_score: int,
        player2_score: int,
        player1_team: Optional[str] = None,
        player2_team: Optional[str] = None,
    ) -> MatchRecord:
        opponent = (opponent or "").strip()
        if len(opponent) < MIN_OPPONENT_LENGTH:
            raise MatchValidationError("Please select or enter a valid opponent address")
        if player1_score < 0 or player2_score < 0:
            raise MatchValidationError("Scores cannot be negative")

        match = await self.store.insert_match(NewMatch(
            player1=player1,
            player2=opponent,
            player1_score=player1_score,
            player2_score=player2_score,
            player1_team=(player1_team or "").strip() or None,
            player2_team=(player2_team or "").strip() or None,
        ))
        logger.info(
            f"Recorded match {match.id}: {player1} {player1_score}-{player2_score} {opponent}"
        )
        await self.stats.apply_match(match)
        return match

    async def get_match(self, match_id: int) -> Optional[MatchRecord]:
        if self.is_deleted(match_id):
            return None
        return await self.store.get_match(match_id)

    async def declare_winner(
        self, match_id: int, winner: str, viewer: Optional[str] = None
    ) -> Optional[Tuple[MatchRecord, Optional[str]]]:
        """
        Record the winner of a match.

        ``winner`` is one of the two player addresses or ``"draw"``; a draw
        is only accepted when the scores are level. Returns the updated
        match and the result from ``viewer``'s side (``win``, ``loss`` or
        ``draw``; ``None`` for a non-participant), or ``None`` when the
        match does not exist.
        """
        match = await self.get_match(match_id)
        if match is None:
            return None

        if winner not in (match.player1, match.player2, DRAW):
            raise MatchValidationError("Winner must be one of the match players or 'draw'")
        if winner == DRAW and match.player1_score != match.player2_score:
            raise MatchValidationError("A draw can only be declared when the scores are equal")

        updated = await self.store.update_match_winner(match_id, winner)
        if updated is None:
            return None

        if winner == DRAW:
            outcome = "draw"
        elif viewer is None or not updated.involves(viewer):
            outcome = None
        else:
            outcome = "win" if viewer == winner else "loss"
        return updated, outcome

    async def list_matches(self, limit: Optional[int] = None) -> List[MatchRecord]:
        matches = await self.store.list_matches(limit or self.match_limit)
        return self.tombstones.filter(matches)

    async def list_matches_for_player(
        self, wallet_address: str, limit: Optional[int] = None
    ) -> List[MatchRecord]:
        matches = await self.store.list_matches_for_player(wallet_address, limit or self.match_limit)
        return self.tombstones.filter(matches)

    def is_deleted(self, match_id: int) -> bool:
        return self.tombstones.contains(match_id)

    def clear_tombstones(self) -> None:
        """Forget every deleted id. Matches still present in the backend reappear."""
        count = len(self.tombstones)
        self.tombstones.clear()
        logger.warning(f"Cleared {count} deleted match ids")

    async def _try_delete(self, match_id: int) -> bool:
        try:
            if await self.store.delete_match(match_id):
                return True
        except Exception as e:
            logger.warning(f"Delete of match {match_id} failed, trying alternate path: {e}")
        try:
            return await self.store.delete_match_alternate(match_id)
        except Exception as e:
            logger.error(f"Alternate delete of match {match_id} failed: {e}")
            return False

    async def _still_present(self, match_id: int) -> bool:
        try:
            return await self.store.match_exists(match_id)
        except Exception as e:
            logger.error(f"Could not verify deletion of match {match_id}: {e}")
            return True

    async def delete_match(self, match_id: int) -> DeletionOutcome:
        """
        Delete a match and take it out of both players' stats.

        The id is tombstoned first, so the match disappears from every read
        no matter what the backend does afterwards. The outcome always
        reports ``deleted=True``; ``removed_remotely`` says whether the
        backend row is actually gone.
        """
        self.tombstones.add(match_id)
        self._reserve_local_id(match_id)

        try:
            match = await self.store.get_match(match_id)
        except Exception as e:
            logger.error(f"Failed to fetch match {match_id} before deletion: {e}")
            match = None

        if match is None:
            logger.info(f"Match {match_id} not found; tombstoned only")
            match_deletions_total.labels(outcome="not_found").inc()
            return DeletionOutcome(match_id=match_id, found=False, removed_remotely=False)

        try:
            await self._try_delete(match_id)
            removed = not await self._still_present(match_id)
            if not removed:
                logger.warning(f"Match {match_id} still present after delete, retrying once")
                await self._try_delete(match_id)
                removed = not await self._still_present(match_id)
            if not removed:
                logger.warning(f"Backend kept match {match_id}; hidden by tombstone only")

            if self.delete_settle_delay > 0:
                await asyncio.sleep(self.delete_settle_delay)
            await self.stats.reverse_match(match)
        except Exception:
            logger.exception(f"Unexpected error while deleting match {match_id}")
            removed = False

        match_deletions_total.labels(
            outcome="removed_remotely" if removed else "retained_remotely"
        ).inc()
        logger.info(f"Deleted match {match_id} (removed remotely: {removed})")
        return DeletionOutcome(match_id=match_id, found=True, removed_remotely=removed)
