"""Pick the storage backend from configuration."""
from matchledger.core.circuit_breaker import create_backend_breaker
from matchledger.core.config import Settings
from matchledger.core.logging import get_logger
from matchledger.storage.base import LeagueStore
from matchledger.storage.fallback import FallbackStore
from matchledger.storage.memory import MemoryStore

logger = get_logger(__name__)


def build_store(settings: Settings) -> LeagueStore:
    """
    Build the store named by ``STORAGE_BACKEND``.

    ``rest`` and ``sql`` are wrapped in a ``FallbackStore``. ``rest`` without
    a ``BACKEND_URL`` degrades to a plain ``MemoryStore``.
    """
    backend = settings.STORAGE_BACKEND

    if backend == "rest":
        if not settings.BACKEND_URL:
            logger.warning("BACKEND_URL not set - using in-memory storage only")
            return MemoryStore()
        from matchledger.storage.rest import RestStore
        primary = RestStore(
            settings.BACKEND_URL,
            settings.BACKEND_API_KEY,
            timeout=settings.BACKEND_TIMEOUT_SECONDS,
            breaker=create_backend_breaker(
                fail_max=settings.BACKEND_BREAKER_FAIL_MAX,
                reset_timeout=settings.BACKEND_BREAKER_RESET_TIMEOUT,
            ),
        )
        logger.info(f"Using hosted backend at {settings.BACKEND_URL}")
        return FallbackStore(primary)

    if backend == "sql":
        from matchledger.core.database import get_engine, get_session_factory, init_db
        from matchledger.storage.sql import SqlStore
        init_db(get_engine(settings.DATABASE_URL))
        logger.info("Using SQL storage backend")
        return FallbackStore(SqlStore(get_session_factory(settings.DATABASE_URL)))

    logger.info("Using in-memory storage backend")
    return MemoryStore()
