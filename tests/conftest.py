"""Shared pytest fixtures for matchledger tests."""
import json
from pathlib import Path
from typing import Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from matchledger.core.circuit_breaker import create_backend_breaker
from matchledger.core.dependencies import ServiceContainer, get_container
from matchledger.services import MatchService, StatsService, UserService, WalletAuthClient
from matchledger.storage import (
    FallbackStore,
    LocalStorage,
    MemoryStore,
    RestStore,
    SqlStore,
    TombstoneSet,
)

ALICE = "0xA11CE00000000000000000000000000000000001"
BOB = "0xB0B0000000000000000000000000000000000002"
CAROL = "0xCA201000000000000000000000000000000000003"

BACKEND_URL = "https://backend.test"
AUTH_URL = "https://auth.test"


# =============================================================================
# STORAGE
# =============================================================================

@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def tombstone_path(tmp_path: Path) -> Path:
    return tmp_path / "local_storage.json"


@pytest.fixture
def tombstones(tombstone_path: Path) -> TombstoneSet:
    return TombstoneSet(LocalStorage(str(tombstone_path)))


@pytest.fixture
def sql_session_factory() -> Generator[sessionmaker, None, None]:
    """Isolated in-memory SQLite database shared by every session."""
    from matchledger.models import Base

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def sql_store(sql_session_factory: sessionmaker) -> SqlStore:
    return SqlStore(sql_session_factory)


def failing_backend(request: httpx.Request) -> httpx.Response:
    """A hosted backend whose tables are missing."""
    return httpx.Response(
        404,
        json={"code": "42P01", "message": f'relation "{request.url.path}" does not exist'},
    )


@pytest.fixture
def broken_rest_store() -> RestStore:
    return RestStore(
        BACKEND_URL,
        "test-key",
        breaker=create_backend_breaker(fail_max=1000, name="test_backend"),
        transport=httpx.MockTransport(failing_backend),
    )


@pytest.fixture
def fallback_store(broken_rest_store: RestStore) -> FallbackStore:
    return FallbackStore(broken_rest_store)


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def stats_service(memory_store, tombstones) -> StatsService:
    return StatsService(memory_store, tombstones, settle_delay=0)


@pytest.fixture
def match_service(memory_store, tombstones, stats_service) -> MatchService:
    return MatchService(memory_store, tombstones, stats_service, delete_settle_delay=0)


@pytest.fixture
def user_service(memory_store) -> UserService:
    return UserService(memory_store)


# =============================================================================
# AUTH PROVIDER
# =============================================================================

def session_token(address: str) -> str:
    return f"token:{address}"


def signature_for(address: str) -> str:
    return f"signed:{address}"


def fake_auth_provider(request: httpx.Request) -> httpx.Response:
    """
    Stand-in for the wallet auth provider.

    A payload is valid when signed with ``signed:<address>``; session
    tokens are ``token:<address>``.
    """
    if request.headers.get("x-secret-key") != "auth-secret":
        return httpx.Response(401, json={"error": "bad secret"})

    body = json.loads(request.content or b"{}")
    path = request.url.path

    if path == "/v1/auth/payload":
        return httpx.Response(200, json={
            "address": body["address"],
            "domain": body["domain"],
            "nonce": "n-1",
            "statement": "Sign in to Match Ledger",
        })
    if path == "/v1/auth/verify":
        payload = body["payload"]
        valid = body["signature"] == signature_for(payload.get("address", ""))
        return httpx.Response(200, json={"valid": valid, "payload": payload if valid else None})
    if path == "/v1/auth/token":
        return httpx.Response(200, json={"token": session_token(body["payload"]["address"])})
    if path == "/v1/auth/token/verify":
        token = body.get("jwt", "")
        if token.startswith("token:"):
            return httpx.Response(200, json={"valid": True, "parsedJWT": {"sub": token[len("token:"):]}})
        return httpx.Response(200, json={"valid": False})
    return httpx.Response(404)


@pytest.fixture
def auth_client() -> WalletAuthClient:
    return WalletAuthClient(
        AUTH_URL,
        "auth-secret",
        domain="league.test",
        transport=httpx.MockTransport(fake_auth_provider),
    )


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def container(memory_store, tombstones, auth_client) -> ServiceContainer:
    return ServiceContainer(
        store=memory_store,
        tombstones=tombstones,
        auth_client=auth_client,
        recompute_settle_delay=0,
        delete_settle_delay=0,
        storage_backend="memory",
    )


@pytest.fixture
def test_client(container: ServiceContainer) -> Generator[TestClient, None, None]:
    """TestClient wired to the in-memory container."""
    from matchledger.main import app

    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def sign_in(client: TestClient, address: str) -> None:
    client.cookies.set("jwt", session_token(address))
