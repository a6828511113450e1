"""
Hosted relational backend client (PostgREST API).

Every table operation is a single HTTPS request against
``{BACKEND_URL}/rest/v1/{table}`` authenticated with the project API key:

- select: ``GET /matches?or=(player1.eq.X,player2.eq.X)&order=created_at.desc&limit=N``
- insert: ``POST /matches`` with ``Prefer: return=representation``
- upsert: ``POST /player_stats?on_conflict=user_id`` with ``Prefer: resolution=merge-duplicates``
- update: ``PATCH /matches?id=eq.N``
- delete: ``DELETE /matches?id=eq.N``

Filter and ordering semantics are left entirely to the backend. Transport
errors are retried; HTTP error statuses raise ``BackendError`` straight
away (permission denials do not get better on retry). All requests go
through the backend circuit breaker.
"""
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from matchledger.core.circuit_breaker import CircuitBreaker, backend_breaker
from matchledger.core.logging import get_logger
from matchledger.models import UserRecord, NewMatch, MatchRecord, PlayerStatsRecord
from matchledger.storage.base import BackendError, LeagueStore

logger = get_logger(__name__)

RETURN_REPRESENTATION = "return=representation"
MERGE_DUPLICATES = "resolution=merge-duplicates,return=representation"


class RestStore(LeagueStore):
    """LeagueStore backed by the hosted PostgREST API."""

    name = "rest"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        breaker: Optional[CircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Project URL, e.g. ``https://xyz.supabase.co``
            api_key: Project API key, sent as ``apikey`` and bearer token
            timeout: Request timeout in seconds
            breaker: Circuit breaker; defaults to the shared backend breaker
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.base_url = f"{base_url.rstrip('/')}/rest/v1"
        self.api_key = api_key
        self.timeout = timeout
        self.breaker = breaker or backend_breaker
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                headers=self._get_headers(),
                transport=self._transport,
            )
        return self._client

    def _get_headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Prefer": RETURN_REPRESENTATION,
        }

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        client = await self._get_client()
        headers = {"Prefer": prefer} if prefer else None
        return await client.request(method, path, params=params, json=json, headers=headers)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        with self.breaker.calling():
            response = await self._send(method, path, params=params, json=json, prefer=prefer)
            if response.is_error:
                raise _backend_error(method, path, response)

        if not response.content:
            return None
        return response.json()

    async def _rows(self, method: str, table: str, **kwargs) -> List[Dict[str, Any]]:
        data = await self._request(method, f"/{table}", **kwargs)
        if data is None:
            return []
        if not isinstance(data, list):
            raise BackendError(f"Unexpected response shape from {method} /{table}: {type(data).__name__}")
        return data

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def save_user(self, user: UserRecord) -> UserRecord:
        rows = await self._rows(
            "POST", "users",
            params={"on_conflict": "wallet_address"},
            json=[user.model_dump(mode="json", exclude_none=True)],
            prefer=MERGE_DUPLICATES,
        )
        return UserRecord.model_validate(rows[0]) if rows else user

    async def get_user(self, wallet_address: str) -> Optional[UserRecord]:
        rows = await self._rows(
            "GET", "users",
            params={"select": "*", "wallet_address": f"eq.{wallet_address}", "limit": 1},
        )
        return UserRecord.model_validate(rows[0]) if rows else None

    async def list_users(self) -> List[UserRecord]:
        rows = await self._rows("GET", "users", params={"select": "*"})
        return [UserRecord.model_validate(row) for row in rows]

    async def delete_user(self, wallet_address: str) -> bool:
        rows = await self._rows(
            "DELETE", "users", params={"wallet_address": f"eq.{wallet_address}"}
        )
        return bool(rows)

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    async def insert_match(self, match: NewMatch) -> MatchRecord:
        rows = await self._rows("POST", "matches", json=[match.model_dump(mode="json")])
        if not rows:
            raise BackendError("Match insert returned no row")
        return MatchRecord.model_validate(rows[0])

    async def get_match(self, match_id: int) -> Optional[MatchRecord]:
        rows = await self._rows(
            "GET", "matches", params={"select": "*", "id": f"eq.{match_id}", "limit": 1}
        )
        return MatchRecord.model_validate(rows[0]) if rows else None

    async def update_match_winner(self, match_id: int, winner: str) -> Optional[MatchRecord]:
        rows = await self._rows(
            "PATCH", "matches", params={"id": f"eq.{match_id}"}, json={"winner": winner}
        )
        return MatchRecord.model_validate(rows[0]) if rows else None

    async def list_matches(self, limit: int) -> List[MatchRecord]:
        rows = await self._rows(
            "GET", "matches",
            params={"select": "*", "order": "created_at.desc", "limit": limit},
        )
        return [MatchRecord.model_validate(row) for row in rows]

    async def list_matches_for_player(self, wallet_address: str, limit: int) -> List[MatchRecord]:
        rows = await self._rows(
            "GET", "matches",
            params={
                "select": "*",
                "or": f"(player1.eq.{wallet_address},player2.eq.{wallet_address})",
                "order": "created_at.desc",
                "limit": limit,
            },
        )
        return [MatchRecord.model_validate(row) for row in rows]

    async def delete_match(self, match_id: int) -> bool:
        rows = await self._rows("DELETE", "matches", params={"id": f"eq.{match_id}"})
        return bool(rows)

    async def delete_match_alternate(self, match_id: int) -> bool:
        """Delete through the ``delete_match_by_id`` database function."""
        result = await self._request(
            "POST", "/rpc/delete_match_by_id", json={"match_id": match_id}
        )
        return bool(result)

    async def match_exists(self, match_id: int) -> bool:
        rows = await self._rows(
            "GET", "matches", params={"select": "id", "id": f"eq.{match_id}", "limit": 1}
        )
        return bool(rows)

    # ------------------------------------------------------------------
    # Player stats
    # ------------------------------------------------------------------

    async def upsert_stats(self, stats: PlayerStatsRecord) -> PlayerStatsRecord:
        rows = await self._rows(
            "POST", "player_stats",
            params={"on_conflict": "user_id"},
            json=[stats.model_dump()],
            prefer=MERGE_DUPLICATES,
        )
        return PlayerStatsRecord.model_validate(rows[0]) if rows else stats

    async def get_stats(self, user_id: str) -> Optional[PlayerStatsRecord]:
        rows = await self._rows(
            "GET", "player_stats", params={"select": "*", "user_id": f"eq.{user_id}", "limit": 1}
        )
        return PlayerStatsRecord.model_validate(rows[0]) if rows else None

    async def list_stats(self) -> List[PlayerStatsRecord]:
        rows = await self._rows(
            "GET", "player_stats", params={"select": "*", "order": "wins.desc"}
        )
        return [PlayerStatsRecord.model_validate(row) for row in rows]


def _backend_error(method: str, path: str, response: httpx.Response) -> BackendError:
    """Build a BackendError from a PostgREST error body ({code, message, ...})."""
    code = None
    message = response.text
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code")
        message = body.get("message") or message

    logger.warning(
        f"Backend {method} {path} failed with {response.status_code}: {message}",
        extra={"status": response.status_code, "code": code},
    )
    return BackendError(message, status_code=response.status_code, code=code)
