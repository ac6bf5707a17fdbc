from unittest.mock import patch

import jwt
import pytest
from fastapi import status
from fastapi.testclient import TestClient

from app.core.siws import build_siws_message, generate_nonce
from tests.conftest import TEST_SECRET


def signed_body(keypair) -> dict:
    message = build_siws_message(keypair.address, generate_nonce())
    return {
        "wallet_address": keypair.address,
        "message": message,
        "signature": keypair.sign_base58(message),
    }


class TestAuthAPI:
    """Test cases for the POST /auth credential exchange endpoint"""

    def test_exchange_success(self, client: TestClient, keypair):
        response = client.post("/auth", json=signed_body(keypair))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert set(data) == {"access_token", "refresh_token", "token_type", "expires_in", "user_id"}
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 604800

        claims = jwt.decode(data["access_token"], TEST_SECRET, algorithms=["HS256"], audience="authenticated")
        assert claims["sub"] == data["user_id"]
        assert claims["role"] == "authenticated"
        assert claims["iss"] == "supabase"
        assert claims["wallet_address"] == keypair.address
        assert claims["exp"] - claims["iat"] == 604800

    def test_exchange_cors_headers(self, client: TestClient, keypair):
        response = client.post("/auth", json=signed_body(keypair))
        assert response.headers["access-control-allow-origin"] == "*"

    def test_same_wallet_same_user(self, client: TestClient, keypair):
        body = signed_body(keypair)
        first = client.post("/auth", json=body).json()
        second = client.post("/auth", json=body).json()
        assert first["user_id"] == second["user_id"]

    def test_different_wallets_different_users(self, client: TestClient, keypair, other_keypair):
        first = client.post("/auth", json=signed_body(keypair)).json()
        second = client.post("/auth", json=signed_body(other_keypair)).json()
        assert first["user_id"] != second["user_id"]

    def test_credential_opens_profile(self, client: TestClient, keypair):
        tokens = client.post("/auth", json=signed_body(keypair)).json()
        response = client.get("/users/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user_id"] == tokens["user_id"]

    @pytest.mark.parametrize("missing", ["wallet_address", "message", "signature"])
    def test_missing_field(self, client: TestClient, keypair, missing):
        body = signed_body(keypair)
        del body[missing]
        response = client.post("/auth", json=body)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Missing wallet_address, message, or signature"}

    def test_empty_field(self, client: TestClient, keypair):
        body = signed_body(keypair)
        body["signature"] = ""
        response = client.post("/auth", json=body)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_non_json_body(self, client: TestClient):
        response = client.post("/auth", content=b"wallet=abc", headers={"Content-Type": "text/plain"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "error" in response.json()

    def test_non_object_body(self, client: TestClient):
        response = client.post("/auth", json=["abc"])
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_non_string_field(self, client: TestClient, keypair):
        body = signed_body(keypair)
        body["signature"] = 12345
        response = client.post("/auth", json=body)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_malformed_values(self, client: TestClient):
        response = client.post("/auth", json={"wallet_address": "abc", "message": "hello", "signature": "xyz"})
        assert response.status_code in (status.HTTP_400_BAD_REQUEST, status.HTTP_401_UNAUTHORIZED)
        assert "error" in response.json()

    def test_invalid_base58(self, client: TestClient):
        response = client.post("/auth", json={"wallet_address": "x", "message": "x", "signature": "not-base58!!"})
        assert response.status_code in (status.HTTP_400_BAD_REQUEST, status.HTTP_401_UNAUTHORIZED)
        assert response.headers["access-control-allow-origin"] == "*"

    def test_oversized_signature_rejected_without_decoding(self, client: TestClient, keypair):
        body = signed_body(keypair)
        body["signature"] = "z" * 20000
        with patch("app.core.solana_auth.base58.decode") as decode:
            response = client.post("/auth", json=body)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Invalid signature"}
        decode.assert_not_called()

    def test_oversized_wallet_address_rejected(self, client: TestClient, keypair):
        body = signed_body(keypair)
        body["wallet_address"] = "z" * 20000
        body["message"] = body["message"] + body["wallet_address"]
        with patch("app.core.solana_auth.base58.decode") as decode:
            response = client.post("/auth", json=body)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        decode.assert_not_called()

    def test_signature_from_other_wallet(self, client: TestClient, keypair, other_keypair):
        body = signed_body(keypair)
        body["signature"] = other_keypair.sign_base58(body["message"])
        response = client.post("/auth", json=body)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Invalid signature"}

    def test_message_without_address(self, client: TestClient, keypair):
        message = "Sign in to SeekerChat"
        response = client.post("/auth", json={
            "wallet_address": keypair.address,
            "message": message,
            "signature": keypair.sign_base58(message),
        })
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"error": "Message does not match wallet address"}

    def test_options(self, client: TestClient):
        response = client.options("/auth")
        assert response.status_code == status.HTTP_200_OK
        assert response.text == "ok"
        assert response.headers["access-control-allow-origin"] == "*"

    def test_preflight(self, client: TestClient):
        response = client.options("/auth", headers={
            "Origin": "https://seekerchat.app",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        })
        assert response.status_code == status.HTTP_200_OK
        assert "access-control-allow-origin" in response.headers
