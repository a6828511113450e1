"""Player stats and leaderboard routes. Every read recomputes from matches."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from matchledger.core.auth import get_current_address
from matchledger.core.dependencies import get_stats_service
from matchledger.models import PlayerStatsRecord, LeaderboardEntry
from matchledger.services import StatsService

router = APIRouter(tags=["stats"])


@router.get("/stats/me", response_model=PlayerStatsRecord)
async def get_my_stats(
    address: str = Depends(get_current_address),
    stats: StatsService = Depends(get_stats_service),
):
    return await stats.get_stats(address)


@router.get("/stats/{address}", response_model=PlayerStatsRecord)
async def get_player_stats(address: str, stats: StatsService = Depends(get_stats_service)):
    return await stats.get_stats(address)


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    limit: Optional[int] = Query(None, ge=1, le=500),
    stats: StatsService = Depends(get_stats_service),
):
    """Players ranked by wins, then fewest losses."""
    return await stats.leaderboard(limit)
