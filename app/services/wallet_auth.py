"""
Credential exchange: verified wallet signature -> session credential.

Stateless per request. Steps, in order:
1. all fields present                       (InvalidInput -> 400)
2. ED25519 signature valid for the address  (SignatureInvalid -> 401)
3. signed message names the address         (SignatureInvalid -> 401)
4. lookup-or-create the user row            (UpstreamFailure -> 500)
5. mint the JWT and build the response

Nothing is written before step 4, so a failed attempt can always be retried.
There is no consumed-nonce ledger: a still-valid signed message may be replayed to
obtain a new credential for the same wallet.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from app.core.exceptions import InvalidInput, SignatureInvalid
from app.core.jwt_utils import DEFAULT_AUDIENCE, DEFAULT_EXPIRES_IN, DEFAULT_ISSUER, create_access_token
from app.core.siws import is_siws_message, parse_iso_timestamp, parse_siws_message
from app.core.solana_auth import verify_signed_message
from app.schemas.auth import AuthResponse
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialExchangeService:
    def __init__(
        self,
        user_store: UserStore,
        secret_key: str,
        expires_in: int = DEFAULT_EXPIRES_IN,
        issuer: str = DEFAULT_ISSUER,
        audience: str = DEFAULT_AUDIENCE,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if not secret_key:
            raise ValueError("secret_key is required")
        self.user_store = user_store
        self.secret_key = secret_key
        self.expires_in = expires_in
        self.issuer = issuer
        self.audience = audience
        self.clock = clock

    def exchange(
        self,
        wallet_address: Optional[str],
        message: Optional[str],
        signature: Optional[str],
    ) -> AuthResponse:
        """
        Verify a signed SIWS message and mint a session credential.

        Raises:
            InvalidInput: If a field is missing or empty
            SignatureInvalid: If the signature or the address binding does not hold
            UpstreamFailure: If the user row cannot be created
        """
        if not wallet_address or not message or not signature:
            raise InvalidInput("Missing wallet_address, message, or signature")

        if not verify_signed_message(wallet_address, message, signature):
            raise SignatureInvalid("Invalid signature")

        if wallet_address not in message:
            raise SignatureInvalid("Message does not match wallet address")

        now = self.clock()
        self._check_expiration(message, now)

        user_id = self.user_store.get_or_create(wallet_address)

        access_token = create_access_token(
            user_id=user_id,
            wallet_address=wallet_address,
            secret_key=self.secret_key,
            expires_in=self.expires_in,
            issuer=self.issuer,
            audience=self.audience,
            now=now,
        )
        logger.info("Issued session credential for wallet %s", wallet_address)

        return AuthResponse(
            access_token=access_token,
            refresh_token=str(uuid.uuid4()),
            token_type="bearer",
            expires_in=self.expires_in,
            user_id=user_id,
        )

    @staticmethod
    def _check_expiration(message: str, now: datetime) -> None:
        """Reject a SIWS message whose Expiration Time has passed. Free-form messages pass."""
        if not is_siws_message(message):
            return
        try:
            challenge = parse_siws_message(message)
        except ValueError:
            raise SignatureInvalid("Malformed sign-in message")
        if not challenge.expiration_time:
            return
        try:
            expires_at = parse_iso_timestamp(challenge.expiration_time)
        except ValueError:
            raise SignatureInvalid("Malformed expiration time")
        if expires_at <= now:
            raise SignatureInvalid("Message expired")
