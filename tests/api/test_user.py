from fastapi import status
from fastapi.testclient import TestClient

from app.core.jwt_utils import create_access_token
from app.core.siws import build_siws_message, generate_nonce
from app.services.genesis_token import GenesisTokenResult, GenesisTokenType
from app.services.verification_cache import GenesisTokenRecord
from tests.conftest import TEST_SECRET, FakeVerifier


def login(client: TestClient, keypair) -> dict:
    message = build_siws_message(keypair.address, generate_nonce())
    tokens = client.post("/auth", json={
        "wallet_address": keypair.address,
        "message": message,
        "signature": keypair.sign_base58(message),
    }).json()
    return {"Authorization": f"Bearer {tokens['access_token']}"}


class TestProfileAPI:
    """Test cases for GET /users/me"""

    def test_profile(self, client: TestClient, keypair):
        response = client.get("/users/me", headers=login(client, keypair))
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["wallet_address"] == keypair.address
        assert data["genesis_token_type"] == "none"
        assert data["genesis_token_mint"] == "pending"

    def test_missing_credential(self, client: TestClient):
        response = client.get("/users/me")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_bad_credential(self, client: TestClient):
        response = client.get("/users/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_credential_for_unknown_user(self, client: TestClient, keypair):
        token = create_access_token("no-such-user", keypair.address, TEST_SECRET)
        response = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestGenesisTokenAPI:
    """Test cases for GET /users/me/genesis-token"""

    def test_token_found_updates_profile(self, client: TestClient, keypair, override_token_gate):
        override_token_gate(FakeVerifier())
        headers = login(client, keypair)

        response = client.get("/users/me/genesis-token", headers=headers)
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["wallet_address"] == keypair.address
        assert data["has_token"] is True
        assert data["token_type"] == "saga"
        assert data["mint_address"] == "SagaMint111"
        assert isinstance(data["checked_at"], int)

        profile = client.get("/users/me", headers=headers).json()
        assert profile["genesis_token_type"] == "saga"
        assert profile["genesis_token_mint"] == "SagaMint111"

    def test_no_token(self, client: TestClient, keypair, override_token_gate):
        override_token_gate(FakeVerifier(GenesisTokenResult.none()))
        headers = login(client, keypair)

        data = client.get("/users/me/genesis-token", headers=headers).json()
        assert data["has_token"] is False
        assert data["token_type"] == "none"
        assert data["mint_address"] is None

        profile = client.get("/users/me", headers=headers).json()
        assert profile["genesis_token_mint"] == "pending"

    def test_result_is_cached(self, client: TestClient, keypair, override_token_gate):
        verifier = FakeVerifier()
        override_token_gate(verifier)
        headers = login(client, keypair)

        client.get("/users/me/genesis-token", headers=headers)
        client.get("/users/me/genesis-token", headers=headers)
        assert verifier.calls == [keypair.address]

        client.get("/users/me/genesis-token?refresh=true", headers=headers)
        assert verifier.calls == [keypair.address, keypair.address]

    def test_cached_record_served(self, client: TestClient, keypair, override_token_gate):
        verifier = FakeVerifier(GenesisTokenResult.none())
        gate = override_token_gate(verifier)
        cached = GenesisTokenRecord.from_result(
            keypair.address,
            GenesisTokenResult(True, GenesisTokenType.SEEKER, "SeekerMint1"),
            checked_at=gate.cache.clock(),
        )
        gate.cache.store(cached)

        data = client.get("/users/me/genesis-token", headers=login(client, keypair)).json()
        assert data["token_type"] == "seeker"
        assert verifier.calls == []

    def test_requires_credential(self, client: TestClient, override_token_gate):
        override_token_gate(FakeVerifier())
        response = client.get("/users/me/genesis-token")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
