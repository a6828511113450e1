"""
SQLAlchemy-backed store for self-hosted deployments.

Each operation runs in its own session and commits before returning, the
same granularity as one request against the hosted backend. Session work
is blocking, so it runs in the default thread pool executor.
"""
import asyncio
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, List, Optional, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from matchledger.models import UserRecord, NewMatch, MatchRecord, PlayerStatsRecord
from matchledger.repositories import UserRepository, MatchRepository, PlayerStatsRepository
from matchledger.storage.base import LeagueStore

R = TypeVar("R")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlStore(LeagueStore):
    name = "sql"

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def _run(self, func: Callable[..., R], *args: Any) -> R:
        # Run blocking session work in thread pool
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    # Users

    def _save_user(self, user: UserRecord) -> UserRecord:
        with self._session() as db:
            repo = UserRepository(db)
            existing = repo.find_by_id(user.wallet_address)
            created_at = user.created_at or (_as_utc(existing.created_at) if existing else None)
            instance = repo.upsert(
                user.wallet_address,
                display_name=user.display_name,
                created_at=created_at or datetime.now(timezone.utc),
            )
            repo.flush()
            return UserRecord.model_validate(instance)

    async def save_user(self, user: UserRecord) -> UserRecord:
        return await self._run(self._save_user, user)

    def _get_user(self, wallet_address: str) -> Optional[UserRecord]:
        with self._session() as db:
            instance = UserRepository(db).find_by_id(wallet_address)
            return UserRecord.model_validate(instance) if instance else None

    async def get_user(self, wallet_address: str) -> Optional[UserRecord]:
        return await self._run(self._get_user, wallet_address)

    def _list_users(self) -> List[UserRecord]:
        with self._session() as db:
            return [UserRecord.model_validate(u) for u in UserRepository(db).find_all()]

    async def list_users(self) -> List[UserRecord]:
        return await self._run(self._list_users)

    def _delete_user(self, wallet_address: str) -> bool:
        with self._session() as db:
            return UserRepository(db).delete(wallet_address)

    async def delete_user(self, wallet_address: str) -> bool:
        return await self._run(self._delete_user, wallet_address)

    # Matches

    def _insert_match(self, match: NewMatch) -> MatchRecord:
        with self._session() as db:
            repo = MatchRepository(db)
            instance = repo.create(**match.model_dump(), created_at=datetime.now(timezone.utc))
            repo.flush()
            return MatchRecord.model_validate(instance)

    async def insert_match(self, match: NewMatch) -> MatchRecord:
        return await self._run(self._insert_match, match)

    def _get_match(self, match_id: int) -> Optional[MatchRecord]:
        with self._session() as db:
            instance = MatchRepository(db).find_by_id(match_id)
            return MatchRecord.model_validate(instance) if instance else None

    async def get_match(self, match_id: int) -> Optional[MatchRecord]:
        return await self._run(self._get_match, match_id)

    def _update_match_winner(self, match_id: int, winner: str) -> Optional[MatchRecord]:
        with self._session() as db:
            repo = MatchRepository(db)
            instance = repo.update(match_id, winner=winner)
            if instance is None:
                return None
            repo.flush()
            return MatchRecord.model_validate(instance)

    async def update_match_winner(self, match_id: int, winner: str) -> Optional[MatchRecord]:
        return await self._run(self._update_match_winner, match_id, winner)

    def _list_matches(self, limit: int) -> List[MatchRecord]:
        with self._session() as db:
            return [MatchRecord.model_validate(m) for m in MatchRepository(db).find_recent(limit)]

    async def list_matches(self, limit: int) -> List[MatchRecord]:
        return await self._run(self._list_matches, limit)

    def _list_matches_for_player(self, wallet_address: str, limit: int) -> List[MatchRecord]:
        with self._session() as db:
            rows = MatchRepository(db).find_for_player(wallet_address, limit=limit)
            return [MatchRecord.model_validate(m) for m in rows]

    async def list_matches_for_player(self, wallet_address: str, limit: int) -> List[MatchRecord]:
        return await self._run(self._list_matches_for_player, wallet_address, limit)

    def _delete_match(self, match_id: int) -> bool:
        with self._session() as db:
            return MatchRepository(db).delete(match_id)

    async def delete_match(self, match_id: int) -> bool:
        return await self._run(self._delete_match, match_id)

    def _match_exists(self, match_id: int) -> bool:
        with self._session() as db:
            return MatchRepository(db).exists(match_id)

    async def match_exists(self, match_id: int) -> bool:
        return await self._run(self._match_exists, match_id)

    # Player stats

    def _upsert_stats(self, stats: PlayerStatsRecord) -> PlayerStatsRecord:
        with self._session() as db:
            repo = PlayerStatsRepository(db)
            fields = stats.model_dump(exclude={"user_id"})
            instance = repo.upsert(stats.user_id, **fields)
            repo.flush()
            return PlayerStatsRecord.model_validate(instance)

    async def upsert_stats(self, stats: PlayerStatsRecord) -> PlayerStatsRecord:
        return await self._run(self._upsert_stats, stats)

    def _get_stats(self, user_id: str) -> Optional[PlayerStatsRecord]:
        with self._session() as db:
            instance = PlayerStatsRepository(db).find_by_id(user_id)
            return PlayerStatsRecord.model_validate(instance) if instance else None

    async def get_stats(self, user_id: str) -> Optional[PlayerStatsRecord]:
        return await self._run(self._get_stats, user_id)

    def _list_stats(self) -> List[PlayerStatsRecord]:
        with self._session() as db:
            return [PlayerStatsRecord.model_validate(s) for s in PlayerStatsRepository(db).leaderboard()]

    async def list_stats(self) -> List[PlayerStatsRecord]:
        return await self._run(self._list_stats)
