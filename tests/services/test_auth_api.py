import asyncio
import json

import httpx
import pytest

from app.core.exceptions import InvalidInput, SignatureInvalid, TransportFailure, UpstreamFailure
from app.services.auth_api import AuthApiClient

BASE_URL = "https://api.seekerchat.app/"
AUTH_BODY = {
    "access_token": "header.payload.signature",
    "refresh_token": "3f1c7a52-1d6b-4f55-9a0e-5c3f4b8a2e71",
    "token_type": "bearer",
    "expires_in": 604800,
    "user_id": "user-1",
}


def make_client(handler) -> AuthApiClient:
    return AuthApiClient(BASE_URL, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestAuthApiClient:
    """Test cases for the credential exchange client"""

    def test_exchange(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=AUTH_BODY)

        response = asyncio.run(make_client(handler).exchange("Wallet1", "message", "Sig1"))
        assert response.user_id == "user-1"
        assert response.expires_in == 604800
        assert seen["method"] == "POST"
        assert seen["url"] == "https://api.seekerchat.app/auth"
        assert seen["body"] == {"wallet_address": "Wallet1", "message": "message", "signature": "Sig1"}

    @pytest.mark.parametrize(
        "status_code, error_class",
        [
            (400, InvalidInput),
            (401, SignatureInvalid),
            (500, UpstreamFailure),
            (404, TransportFailure),
        ],
    )
    def test_exchange_errors(self, status_code, error_class):
        client = make_client(lambda request: httpx.Response(status_code, json={"error": "nope"}))
        with pytest.raises(error_class, match="nope"):
            asyncio.run(client.exchange("Wallet1", "message", "Sig1"))

    def test_exchange_unexpected_body(self):
        client = make_client(lambda request: httpx.Response(200, json={"ok": True}))
        with pytest.raises(TransportFailure):
            asyncio.run(client.exchange("Wallet1", "message", "Sig1"))

    def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportFailure):
            asyncio.run(make_client(handler).exchange("Wallet1", "message", "Sig1"))

    def test_fetch_profile(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["authorization"] = request.headers.get("Authorization")
            seen["path"] = request.url.path
            return httpx.Response(200, json={
                "user_id": "user-1",
                "wallet_address": "Wallet1",
                "display_name": None,
                "avatar_url": None,
                "genesis_token_type": "saga",
                "genesis_token_mint": "SagaMint111",
            })

        profile = asyncio.run(make_client(handler).fetch_profile("cred-1"))
        assert profile.genesis_token_type == "saga"
        assert seen == {"authorization": "Bearer cred-1", "path": "/users/me"}
