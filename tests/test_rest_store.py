"""Tests for the hosted backend client against a mocked PostgREST API."""
import json
from typing import List

import httpx
import pytest

from matchledger.core.circuit_breaker import create_backend_breaker
from matchledger.models import NewMatch, PlayerStatsRecord, UserRecord
from matchledger.storage import BackendError, RestStore

from conftest import ALICE, BOB, BACKEND_URL

MATCH_ROW = {
    "id": 42,
    "player1": ALICE,
    "player2": BOB,
    "player1_score": 3,
    "player2_score": 1,
    "player1_team": None,
    "player2_team": None,
    "created_at": "2025-03-01T12:00:00+00:00",
    "winner": None,
}


class RecordingBackend:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def make_store(backend: RecordingBackend) -> RestStore:
    return RestStore(
        BACKEND_URL,
        "anon-key",
        breaker=create_backend_breaker(fail_max=1000, name="rest_store_test"),
        transport=httpx.MockTransport(backend),
    )


class TestRequests:

    @pytest.mark.asyncio
    async def test_auth_headers_and_base_path(self):
        backend = RecordingBackend(httpx.Response(200, json=[]))
        store = make_store(backend)

        assert await store.get_user(ALICE) is None

        request = backend.requests[0]
        assert request.url.path == "/rest/v1/users"
        assert request.url.params["wallet_address"] == f"eq.{ALICE}"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["authorization"] == "Bearer anon-key"
        await store.close()

    @pytest.mark.asyncio
    async def test_player_matches_query(self):
        backend = RecordingBackend(httpx.Response(200, json=[MATCH_ROW]))
        store = make_store(backend)

        matches = await store.list_matches_for_player(ALICE, 1000)

        assert [m.id for m in matches] == [42]
        params = backend.requests[0].url.params
        assert params["or"] == f"(player1.eq.{ALICE},player2.eq.{ALICE})"
        assert params["order"] == "created_at.desc"
        assert params["limit"] == "1000"

    @pytest.mark.asyncio
    async def test_insert_match_returns_backend_row(self):
        backend = RecordingBackend(httpx.Response(201, json=[MATCH_ROW]))
        store = make_store(backend)

        match = await store.insert_match(NewMatch(player1=ALICE, player2=BOB, player1_score=3, player2_score=1))

        assert match.id == 42
        assert match.created_at is not None
        request = backend.requests[0]
        assert request.method == "POST"
        assert request.headers["prefer"] == "return=representation"
        assert json.loads(request.content)[0]["player1"] == ALICE

    @pytest.mark.asyncio
    async def test_insert_without_returned_row_raises(self):
        store = make_store(RecordingBackend(httpx.Response(201, json=[])))

        with pytest.raises(BackendError):
            await store.insert_match(NewMatch(player1=ALICE, player2=BOB, player1_score=1, player2_score=0))

    @pytest.mark.asyncio
    async def test_upsert_stats_uses_conflict_key(self):
        row = PlayerStatsRecord(user_id=ALICE, wins=1, total_games=1)
        backend = RecordingBackend(httpx.Response(201, json=[row.model_dump()]))
        store = make_store(backend)

        saved = await store.upsert_stats(row)

        assert saved == row
        request = backend.requests[0]
        assert request.url.path == "/rest/v1/player_stats"
        assert request.url.params["on_conflict"] == "user_id"
        assert "resolution=merge-duplicates" in request.headers["prefer"]

    @pytest.mark.asyncio
    async def test_save_user_upserts_on_wallet_address(self):
        backend = RecordingBackend(httpx.Response(201, json=[{
            "wallet_address": ALICE, "display_name": "Alice", "created_at": "2025-01-01T00:00:00Z",
        }]))
        store = make_store(backend)

        user = await store.save_user(UserRecord(wallet_address=ALICE, display_name="Alice"))

        assert user.created_at is not None
        assert backend.requests[0].url.params["on_conflict"] == "wallet_address"

    @pytest.mark.asyncio
    async def test_delete_paths(self):
        backend = RecordingBackend(httpx.Response(200, json=[]), httpx.Response(200, json=True))
        store = make_store(backend)

        assert await store.delete_match(42) is False
        assert await store.delete_match_alternate(42) is True

        delete, rpc = backend.requests
        assert delete.method == "DELETE"
        assert delete.url.params["id"] == "eq.42"
        assert rpc.url.path == "/rest/v1/rpc/delete_match_by_id"
        assert json.loads(rpc.content) == {"match_id": 42}

    @pytest.mark.asyncio
    async def test_update_winner_on_missing_match(self):
        store = make_store(RecordingBackend(httpx.Response(200, json=[])))
        assert await store.update_match_winner(7, ALICE) is None


class TestErrors:

    @pytest.mark.asyncio
    async def test_error_status_raises_backend_error(self):
        backend = RecordingBackend(httpx.Response(
            403, json={"code": "42501", "message": "permission denied for table matches"}
        ))
        store = make_store(backend)

        with pytest.raises(BackendError) as exc_info:
            await store.list_matches(10)

        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "42501"
        assert "permission denied" in str(exc_info.value)
        # HTTP errors are not retried
        assert len(backend.requests) == 1

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self):
        attempts = []

        def flaky(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=[])

        store = RestStore(
            BACKEND_URL, "anon-key",
            breaker=create_backend_breaker(fail_max=1000, name="rest_retry_test"),
            transport=httpx.MockTransport(flaky),
        )

        assert await store.list_users() == []
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_unexpected_shape_raises(self):
        store = make_store(RecordingBackend(httpx.Response(200, json={"rows": []})))

        with pytest.raises(BackendError):
            await store.list_stats()
