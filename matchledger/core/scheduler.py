"""
Background stats refresh.

Recomputes every known player's stats on a fixed interval so the
leaderboard stays current even when nobody reads individual stats.

Scheduler: APScheduler (AsyncIOScheduler)
"""
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from matchledger.core.logging import get_logger
from matchledger.core.metrics import stats_refresh_runs_total
from matchledger.services import StatsService

logger = get_logger(__name__)

JOB_ID = "stats_refresh"


class StatsRefreshScheduler:
    def __init__(self, stats: StatsService, interval_seconds: int = 120):
        self.stats = stats
        self.interval_seconds = interval_seconds
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

    async def refresh(self) -> None:
        try:
            count = await self.stats.refresh_all()
            stats_refresh_runs_total.labels(status="success").inc()
            logger.info(f"Stats refresh: {count} players")
        except Exception as e:
            stats_refresh_runs_total.labels(status="failure").inc()
            logger.error(f"Stats refresh failed: {e}")

    async def start(self) -> None:
        if self.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": self.interval_seconds,
            }
        )
        self.scheduler.add_job(
            self.refresh,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Refresh player stats",
        )
        self.scheduler.start()
        self.running = True
        logger.info(f"Scheduled stats refresh every {self.interval_seconds}s")

    async def stop(self) -> None:
        if not self.running:
            return
        self.scheduler.shutdown(wait=False)
        self.running = False
        logger.info("Scheduler stopped")
