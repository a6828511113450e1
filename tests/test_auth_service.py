"""Tests for the wallet auth provider client."""
import httpx
import pytest

from matchledger.services import AuthProviderError, WalletAuthClient

from conftest import ALICE, AUTH_URL, session_token, signature_for


class TestWalletAuthClient:

    @pytest.mark.asyncio
    async def test_generate_payload(self, auth_client):
        payload = await auth_client.generate_payload(ALICE, chain_id=8453)

        assert payload["address"] == ALICE
        assert payload["domain"] == "league.test"

    @pytest.mark.asyncio
    async def test_verify_payload(self, auth_client):
        payload = await auth_client.generate_payload(ALICE)

        good = await auth_client.verify_payload(payload, signature_for(ALICE))
        bad = await auth_client.verify_payload(payload, "signed:someone-else")

        assert good.valid and good.address == ALICE
        assert not bad.valid and bad.address is None

    @pytest.mark.asyncio
    async def test_issue_and_verify_token(self, auth_client):
        token = await auth_client.issue_token({"address": ALICE})

        result = await auth_client.verify_token(token)

        assert token == session_token(ALICE)
        assert result.valid
        assert result.address == ALICE
        assert not (await auth_client.verify_token("garbage")).valid

    @pytest.mark.asyncio
    async def test_provider_error_status(self):
        client = WalletAuthClient(
            AUTH_URL, "wrong-secret", transport=httpx.MockTransport(lambda r: httpx.Response(401))
        )

        with pytest.raises(AuthProviderError):
            await client.verify_token("token")

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self):
        client = WalletAuthClient("", "")

        with pytest.raises(AuthProviderError, match="not configured"):
            await client.generate_payload(ALICE)

    @pytest.mark.asyncio
    async def test_missing_token_in_response(self):
        client = WalletAuthClient(
            AUTH_URL, "secret", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={}))
        )

        with pytest.raises(AuthProviderError):
            await client.issue_token({"address": ALICE})
