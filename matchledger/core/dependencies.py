"""
Service wiring and FastAPI dependencies.

One ``ServiceContainer`` per process holds the store, the tombstone set,
the services built on them and the auth client. Routes receive services
through the ``get_*`` dependencies; tests swap the whole container with
``app.dependency_overrides[get_container]``.
"""
from typing import Optional

from fastapi import Depends

from matchledger.core.config import Settings, settings
from matchledger.core.logging import get_logger
from matchledger.services import MatchService, StatsService, UserService, WalletAuthClient
from matchledger.storage import LeagueStore, LocalStorage, TombstoneSet, build_store

logger = get_logger(__name__)


class ServiceContainer:
    def __init__(
        self,
        store: LeagueStore,
        tombstones: TombstoneSet,
        auth_client: WalletAuthClient,
        recompute_settle_delay: float = 0.2,
        delete_settle_delay: float = 0.5,
        match_limit: int = 1000,
        storage_backend: str = "memory",
    ):
        self.store = store
        self.tombstones = tombstones
        self.auth_client = auth_client
        self.storage_backend = storage_backend
        self.stats = StatsService(
            store, tombstones, settle_delay=recompute_settle_delay, match_limit=match_limit
        )
        self.matches = MatchService(
            store, tombstones, self.stats,
            delete_settle_delay=delete_settle_delay, match_limit=match_limit,
        )
        self.users = UserService(store)

    @classmethod
    def from_settings(cls, config: Settings) -> "ServiceContainer":
        return cls(
            store=build_store(config),
            tombstones=TombstoneSet(LocalStorage(config.TOMBSTONE_PATH)),
            auth_client=WalletAuthClient(
                config.AUTH_PROVIDER_URL,
                config.AUTH_SECRET_KEY,
                domain=config.AUTH_DOMAIN,
                timeout=config.AUTH_TIMEOUT_SECONDS,
            ),
            recompute_settle_delay=config.recompute_settle_delay,
            delete_settle_delay=config.delete_settle_delay,
            match_limit=config.MATCH_LIST_LIMIT,
            storage_backend=config.STORAGE_BACKEND,
        )

    async def close(self) -> None:
        await self.store.close()
        await self.auth_client.close()


_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    global _container
    if _container is None:
        _container = ServiceContainer.from_settings(settings)
        logger.info(f"Service container ready (storage: {_container.store.name})")
    return _container


async def shutdown_container() -> None:
    global _container
    if _container is not None:
        await _container.close()
        _container = None


def get_stats_service(container: ServiceContainer = Depends(get_container)) -> StatsService:
    return container.stats


def get_match_service(container: ServiceContainer = Depends(get_container)) -> MatchService:
    return container.matches


def get_user_service(container: ServiceContainer = Depends(get_container)) -> UserService:
    return container.users


def get_auth_client(container: ServiceContainer = Depends(get_container)) -> WalletAuthClient:
    return container.auth_client
