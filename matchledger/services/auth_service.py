"""
Wallet sign-in through the hosted auth provider.

The provider implements the sign-in-with-wallet protocol: it issues login
payloads for the wallet to sign, verifies signed payloads and mints and
verifies session tokens. This client only relays those calls over HTTPS:

- ``POST /v1/auth/payload``       -> login payload for an address
- ``POST /v1/auth/verify``        -> ``{"valid": bool, "payload": {...}}``
- ``POST /v1/auth/token``         -> ``{"token": "..."}``
- ``POST /v1/auth/token/verify``  -> ``{"valid": bool, "parsedJWT": {...}}``
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from matchledger.core.logging import get_logger

logger = get_logger(__name__)


class AuthProviderError(Exception):
    """The auth provider was unreachable or rejected the request."""


@dataclass
class VerifiedPayload:
    valid: bool
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def address(self) -> Optional[str]:
        return self.payload.get("address")


@dataclass
class TokenVerification:
    valid: bool
    claims: Dict[str, Any] = field(default_factory=dict)

    @property
    def address(self) -> Optional[str]:
        """Wallet address carried by the token (``address`` claim, else ``sub``)."""
        return self.claims.get("address") or self.claims.get("sub")


class WalletAuthClient:
    def __init__(
        self,
        base_url: str,
        secret_key: str,
        domain: str = "localhost",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.domain = domain
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "x-secret-key": self.secret_key,
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _send(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        client = await self._get_client()
        return await client.post(path, json=body)

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        if not self.base_url:
            raise AuthProviderError("Auth provider is not configured")
        try:
            response = await self._send(path, body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Auth provider returned {e.response.status_code} for {path}")
            raise AuthProviderError(f"Auth provider returned {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Auth provider request to {path} failed: {e}")
            raise AuthProviderError(f"Auth provider request failed: {e}") from e
        if not isinstance(data, dict):
            raise AuthProviderError("Unexpected auth provider response")
        return data

    async def generate_payload(self, address: str, chain_id: Optional[int] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"address": address, "domain": self.domain}
        if chain_id is not None:
            body["chainId"] = chain_id
        return await self._post("/v1/auth/payload", body)

    async def verify_payload(self, payload: Dict[str, Any], signature: str) -> VerifiedPayload:
        data = await self._post("/v1/auth/verify", {"payload": payload, "signature": signature})
        return VerifiedPayload(valid=bool(data.get("valid")), payload=data.get("payload") or {})

    async def issue_token(self, payload: Dict[str, Any]) -> str:
        data = await self._post("/v1/auth/token", {"payload": payload})
        token = data.get("token") or data.get("jwt")
        if not token:
            raise AuthProviderError("Auth provider did not return a token")
        return token

    async def verify_token(self, token: str) -> TokenVerification:
        data = await self._post("/v1/auth/token/verify", {"jwt": token})
        if not data.get("valid"):
            return TokenVerification(valid=False)
        return TokenVerification(valid=True, claims=data.get("parsedJWT") or data.get("claims") or {})
