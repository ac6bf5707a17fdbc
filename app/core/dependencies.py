"""
FastAPI Dependencies

Handlers receive explicitly constructed collaborators instead of reaching for module
globals, so tests can swap any of them through app.dependency_overrides.

Usage in endpoints:
    @router.get("/protected")
    def protected_route(claims: dict = Depends(get_current_claims)):
        return {"user": claims["sub"]}

Flow for protected endpoints:
1. Client sends request with Authorization: Bearer <token> header
2. _extract_token() strips the Bearer prefix
3. verify_token() validates the JWT (from jwt_utils.py)
4. The decoded claims reach the route handler
"""

from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.cache import HybridCacheManager
from app.core.config import settings
from app.core.exceptions import WalletAuthError
from app.core.jwt_utils import verify_token
from app.db.session import get_db
from app.services.genesis_token import GenesisTokenVerifier
from app.services.solana_rpc import SolanaRpcClient
from app.services.token_gate import TokenGate
from app.services.user_store import UserStore
from app.services.verification_cache import VerificationCache
from app.services.wallet_auth import CredentialExchangeService


def get_secret_key() -> str:
    if not settings.ENCODE_KEY:
        raise WalletAuthError("ENCODE_KEY is not configured")
    return settings.ENCODE_KEY


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_credential_exchange_service(
    user_store: UserStore = Depends(get_user_store),
    secret_key: str = Depends(get_secret_key),
) -> CredentialExchangeService:
    return CredentialExchangeService(
        user_store=user_store,
        secret_key=secret_key,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
    )


@lru_cache(maxsize=1)
def get_token_gate() -> TokenGate:
    """Process-wide token gate: its in-flight table must be shared between requests."""
    rpc = SolanaRpcClient(settings.SOLANA_RPC_URL, timeout=settings.SOLANA_RPC_TIMEOUT)
    verifier = GenesisTokenVerifier(
        rpc,
        saga_collection=settings.SAGA_GENESIS_COLLECTION,
        seeker_mint_authority=settings.SEEKER_MINT_AUTHORITY,
        token_program_id=settings.TOKEN_2022_PROGRAM_ID,
    )
    cache = VerificationCache(
        HybridCacheManager.from_settings(settings),
        ttl_seconds=settings.GENESIS_CACHE_TTL_SECONDS,
    )
    return TokenGate(verifier, cache)


def _extract_token(authorization: Optional[str]) -> str:
    """
    Extract the JWT from an Authorization header.
    Supports both "Bearer <token>" and plain token formats.

    Raises:
        HTTPException 401: If Authorization header is missing or invalid
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
        )

    authorization = authorization.strip()
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    else:
        token = authorization
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
        )
    return token


def get_current_claims(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    secret_key: str = Depends(get_secret_key),
) -> Dict[str, Any]:
    """Decoded claims of the caller's session credential."""
    token = _extract_token(authorization)
    return verify_token(token, secret_key, audience=settings.JWT_AUDIENCE)
