"""
Main FastAPI application for the Match Ledger API.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from prometheus_fastapi_instrumentator import Instrumentator

from matchledger.core.config import settings
from matchledger.core.dependencies import get_container, shutdown_container
from matchledger.core.logging import configure_logging, get_logger
from matchledger.core.middleware import CorrelationIdMiddleware
from matchledger.core.scheduler import StatsRefreshScheduler
from matchledger.api.routes import auth, users, matches, stats, admin

# Load environment variables from .env file
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


def get_rate_limit_key(request: Request) -> str:
    """
    Get the rate limit key for a request.

    Uses IP address, with fallback to X-Forwarded-For for proxied requests.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=["60/minute"],
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    missing = settings.validate_required_secrets()
    if missing:
        if settings.is_production():
            raise RuntimeError(f"Missing required settings: {', '.join(missing)}")
        logger.warning(f"Missing settings (running degraded): {', '.join(missing)}")

    container = app.dependency_overrides.get(get_container, get_container)()

    scheduler = None
    if settings.STATS_REFRESH_ENABLED:
        scheduler = StatsRefreshScheduler(
            container.stats, interval_seconds=settings.STATS_REFRESH_INTERVAL_SECONDS
        )
        await scheduler.start()

    logger.info("Application started")

    yield

    if scheduler is not None:
        await scheduler.stop()
    await shutdown_container()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Match results, player stats and leaderboard for a wallet-authenticated gaming league",
    lifespan=lifespan
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Correlation ID middleware goes before CORS so the header is always set
app.add_middleware(CorrelationIdMiddleware)

# Prometheus metrics must be wired before routes are added
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(matches.router, prefix="/api/v1")
app.include_router(stats.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


@app.get("/")
@limiter.limit("60/minute")
async def root(request: Request):
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "api_version": "v1",
            "auth": "/api/v1/auth",
            "users": "/api/v1/users",
            "matches": "/api/v1/matches",
            "stats": "/api/v1/stats",
            "leaderboard": "/api/v1/leaderboard",
            "docs": "/docs",
            "health": "/health"
        }
    }


@app.get("/health")
@limiter.limit("120/minute")
async def health_check(request: Request):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION
    }


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    content = {"error": "Internal server error"}
    # Backend error text stays in the logs outside debug mode
    if settings.DEBUG:
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("matchledger.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
