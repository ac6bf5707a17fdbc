"""
JWT Session Credential Utilities

This module mints and verifies the session credential returned by POST /auth.
After a wallet signature is verified, create_access_token() produces an HS256 JWT
(base64url header.payload.signature) that the data service accepts as an
authenticated session.

Flow:
1. Wallet signature verified -> create_access_token() mints the credential
2. Client sends it as Authorization: Bearer <token> -> verify_token() validates it
3. Protected endpoints use get_current_claims() from dependencies.py

The JWT contains:
- sub: user id assigned by the users table
- aud / role: "authenticated"
- iss: issuer expected by the data service
- iat / exp: issued-at and expiry (7 days by default)
- wallet_address: the authenticated Solana wallet address

The signing secret is always passed in by the caller.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status

DEFAULT_EXPIRES_IN = 60 * 60 * 24 * 7  # 7 days
DEFAULT_AUDIENCE = "authenticated"
DEFAULT_ISSUER = "supabase"
ALGORITHM = "HS256"


def create_access_token(
    user_id: str,
    wallet_address: str,
    secret_key: str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = DEFAULT_ISSUER,
    audience: str = DEFAULT_AUDIENCE,
    now: Optional[datetime] = None,
) -> str:
    """
    Create a signed session credential for an authenticated wallet.

    Args:
        user_id: Identifier of the user record
        wallet_address: The verified Solana wallet address
        secret_key: HMAC secret shared with the data service
        expires_in: Lifetime in seconds
        issuer: Value of the iss claim
        audience: Value of the aud and role claims
        now: Issue time, defaults to the current UTC time

    Returns:
        A JWT string usable in an Authorization: Bearer <token> header

    Raises:
        ValueError: If user_id, wallet_address or secret_key is empty
    """
    if not user_id or not wallet_address:
        raise ValueError("user_id and wallet_address are required")
    if not secret_key:
        raise ValueError("secret_key is required")

    issued_at = int((now or datetime.now(timezone.utc)).timestamp())
    payload: Dict[str, Any] = {
        "sub": user_id,
        "aud": audience,
        "role": audience,
        "iss": issuer,
        "iat": issued_at,
        "exp": issued_at + expires_in,
        "wallet_address": wallet_address,
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def verify_token(
    token: str,
    secret_key: str,
    audience: str = DEFAULT_AUDIENCE,
) -> Dict[str, Any]:
    """
    Verify and decode a session credential.

    Checks signature, expiration, audience and the required sub/wallet_address claims.

    Raises:
        HTTPException 401: If token is missing, expired, invalid, or missing claims
    """
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM], audience=audience)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    if not payload.get("sub") or not payload.get("wallet_address"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    return payload
