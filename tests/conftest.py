import os

os.environ.setdefault("ENCODE_KEY", "test-secret-key-with-at-least-32-bytes!!")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import asyncio
from typing import Dict, Generator, List, Optional

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from app.core import base58
from app.core.dependencies import get_token_gate
from app.db.base import Base
from app.db.session import get_db
from app.services.genesis_token import GenesisTokenResult, GenesisTokenType
from app.services.solana_rpc import Asset, MintInfo, TokenAccount


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_SECRET = os.environ["ENCODE_KEY"]


def override_get_db() -> Generator:
    """Override database dependency for testing"""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the FastAPI application"""
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


class Keypair:
    """ED25519 keypair with its Solana (base58) address"""

    def __init__(self):
        self.private_key = Ed25519PrivateKey.generate()
        public_bytes = self.private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.address = base58.encode(public_bytes)

    def sign(self, message: bytes) -> bytes:
        return self.private_key.sign(message)

    def sign_base58(self, message: str) -> str:
        return base58.encode(self.sign(message.encode("utf-8")))


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def other_keypair() -> Keypair:
    return Keypair()


class FakeStore:
    """Dict-backed KeyValueStore"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        self.data[key] = value
        return True

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


class FakeRpc:
    """Stand-in for SolanaRpcClient that records calls"""

    def __init__(
        self,
        assets: Optional[List[Asset]] = None,
        accounts: Optional[List[TokenAccount]] = None,
        mints: Optional[Dict[str, MintInfo]] = None,
        fail: Optional[Dict[str, Exception]] = None,
        delay: float = 0.0,
    ):
        self.assets = assets or []
        self.accounts = accounts or []
        self.mints = mints or {}
        self.fail = fail or {}
        self.delay = delay
        self.calls: List[str] = []

    async def _enter(self, method: str) -> None:
        self.calls.append(method)
        if self.delay:
            await asyncio.sleep(self.delay)
        if method in self.fail:
            raise self.fail[method]

    async def search_assets(self, owner_address, collection, page=1, limit=1):
        await self._enter("searchAssets")
        return self.assets

    async def get_token_accounts_by_owner(self, owner_address, program_id):
        await self._enter("getTokenAccountsByOwner")
        return self.accounts

    async def get_mint_info(self, mint_address):
        await self._enter("getAccountInfo")
        return self.mints.get(mint_address)


class FakeVerifier:
    """Stand-in for GenesisTokenVerifier with a fixed result"""

    def __init__(self, result: Optional[GenesisTokenResult] = None, delay: float = 0.0):
        self.result = result or GenesisTokenResult(
            has_token=True, token_type=GenesisTokenType.SAGA, mint_address="SagaMint111"
        )
        self.delay = delay
        self.calls: List[str] = []

    async def verify(self, wallet_address: str) -> GenesisTokenResult:
        self.calls.append(wallet_address)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.result


@pytest.fixture
def override_token_gate():
    """Install a TokenGate built on a given verifier for the app under test"""
    from app.services.token_gate import TokenGate
    from app.services.verification_cache import VerificationCache

    def install(verifier) -> TokenGate:
        gate = TokenGate(verifier, VerificationCache(FakeStore()))
        app.dependency_overrides[get_token_gate] = lambda: gate
        return gate

    return install
