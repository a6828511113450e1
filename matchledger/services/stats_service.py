"""
Player statistics reconciliation.

Stats rows are a cache. The authoritative numbers come from replaying
every visible (non-tombstoned) match a player took part in, which
``get_stats`` does on each read before writing the result back. The
incremental ``apply_match``/``reverse_match`` updates only keep the
cached row close between reads.
"""
import asyncio
from typing import Dict, Iterable, List, Optional, Set

from matchledger.core.logging import get_logger
from matchledger.core.metrics import stats_recomputes_total
from matchledger.models import (
    MatchRecord,
    PlayerStatsRecord,
    LeaderboardEntry,
    default_display_name,
)
from matchledger.storage import LeagueStore, TombstoneSet

logger = get_logger(__name__)

_COUNTERS = ("wins", "losses", "draws", "goals_for", "goals_against", "total_games")


def match_contribution(user_id: str, match: MatchRecord) -> Dict[str, int]:
    """What one match adds to ``user_id``'s counters."""
    own, other = match.scores_for(user_id)
    return {
        "wins": int(own > other),
        "losses": int(own < other),
        "draws": int(own == other),
        "goals_for": own,
        "goals_against": other,
        "total_games": 1,
    }


def fold_matches(user_id: str, matches: Iterable[MatchRecord]) -> PlayerStatsRecord:
    """
    Build a player's stats from scratch.

    Matches the player is not part of are ignored. The result always
    satisfies ``total_games == wins + losses + draws``.
    """
    totals = dict.fromkeys(_COUNTERS, 0)
    for match in matches:
        if not match.involves(user_id):
            continue
        for field, value in match_contribution(user_id, match).items():
            totals[field] += value
    return PlayerStatsRecord(user_id=user_id, **totals)


class StatsService:
    def __init__(
        self,
        store: LeagueStore,
        tombstones: TombstoneSet,
        settle_delay: float = 0.2,
        match_limit: int = 1000,
    ):
        self.store = store
        self.tombstones = tombstones
        self.settle_delay = settle_delay
        self.match_limit = match_limit

    async def _settle(self) -> None:
        # Give the backend time to make preceding writes readable
        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)

    async def _stored_or_empty(self, user_id: str) -> PlayerStatsRecord:
        try:
            stored = await self.store.get_stats(user_id)
        except Exception as e:
            logger.error(f"Failed to read stored stats for {user_id}: {e}")
            stored = None
        return stored or PlayerStatsRecord.empty(user_id)

    async def recompute(self, user_id: str) -> PlayerStatsRecord:
        """Replay the player's visible matches and persist the result."""
        try:
            matches = await self.store.list_matches_for_player(user_id, self.match_limit)
            stats = fold_matches(user_id, self.tombstones.filter(matches))
            stats_recomputes_total.inc()
            return await self.store.upsert_stats(stats)
        except Exception:
            logger.exception(f"Stats recompute failed for {user_id}")
            return await self._stored_or_empty(user_id)

    async def get_stats(self, user_id: str) -> PlayerStatsRecord:
        await self._settle()
        return await self.recompute(user_id)

    async def _adjust(self, match: MatchRecord, sign: int) -> None:
        for user_id in match.participants():
            current = await self._stored_or_empty(user_id)
            delta = match_contribution(user_id, match)
            updated = {
                field: max(0, getattr(current, field) + sign * delta[field])
                for field in _COUNTERS
            }
            await self.store.upsert_stats(PlayerStatsRecord(user_id=user_id, **updated))

    async def apply_match(self, match: MatchRecord) -> None:
        """Optimistically add one game to each participant's stored row."""
        try:
            await self._adjust(match, 1)
        except Exception:
            # Next recompute repairs the row
            logger.exception(f"Failed to apply match {match.id} to player stats")

    async def reverse_match(self, match: MatchRecord) -> List[PlayerStatsRecord]:
        """Take a match back out of the stored rows, then recompute each participant."""
        try:
            await self._adjust(match, -1)
        except Exception:
            logger.exception(f"Failed to reverse match {match.id} in player stats")
        return [await self.recompute(user_id) for user_id in match.participants()]

    async def known_players(self) -> List[str]:
        """Everyone with a profile, a stats row or a visible match."""
        players: Set[str] = set()
        players.update(u.wallet_address for u in await self.store.list_users())
        players.update(s.user_id for s in await self.store.list_stats())
        matches = self.tombstones.filter(await self.store.list_matches(self.match_limit))
        for match in matches:
            players.update(match.participants())
        return sorted(players)

    async def refresh_all(self) -> int:
        """Recompute every known player. Returns how many were refreshed."""
        players = await self.known_players()
        for user_id in players:
            await self.recompute(user_id)
        logger.info(f"Refreshed stats for {len(players)} players")
        return len(players)

    async def leaderboard(self, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        await self._settle()
        names = {u.wallet_address: u.display_name for u in await self.store.list_users()}
        rows = [await self.recompute(user_id) for user_id in await self.known_players()]
        rows.sort(key=lambda s: (-s.wins, s.losses, s.user_id))
        if limit is not None:
            rows = rows[:limit]

        return [
            LeaderboardEntry(
                **row.model_dump(),
                rank=rank,
                display_name=names.get(row.user_id) or default_display_name(row.user_id),
            )
            for rank, row in enumerate(rows, start=1)
        ]
