"""
Client-side wallet session pipeline.

Orchestrates, strictly in sequence:
    1. connect: authorize via the wallet bridge, sign a SIWS challenge, sanity-check the
       signature locally, exchange it for a session credential, persist the session
    2. verify: Genesis Token check for the session's wallet (cached, single-flight)
    3. profile: load the user profile once the wallet is verified

Verification never starts without a session and the profile is never loaded without a
positive verification. The session lives in a secure key/value store; disconnect
revokes the bridge token and clears every persisted field.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from app.core import base58
from app.core.cache import KeyValueStore
from app.core.exceptions import InvalidInput, SignatureInvalid, WalletBridgeError
from app.core.siws import build_siws_message, encode_siws_message, generate_nonce
from app.core.solana_auth import verify_signature
from app.schemas.user import ProfileResponse
from app.services.auth_api import AuthApiClient
from app.services.token_gate import TokenGate
from app.services.verification_cache import GenesisTokenRecord

logger = logging.getLogger(__name__)

WALLET_ADDRESS_KEY = "seekerchat_wallet_address"
MWA_AUTH_TOKEN_KEY = "seekerchat_mwa_auth_token"
SESSION_CREDENTIAL_KEY = "seekerchat_session_credential"
USER_ID_KEY = "seekerchat_user_id"

SESSION_KEYS = (WALLET_ADDRESS_KEY, MWA_AUTH_TOKEN_KEY, SESSION_CREDENTIAL_KEY, USER_ID_KEY)


@dataclass(frozen=True)
class AppIdentity:
    name: str = "SeekerChat"
    uri: str = "https://seekerchat.app"
    icon: str = "favicon.ico"


@dataclass(frozen=True)
class BridgeAuthorization:
    address: str
    device_auth_token: str


class WalletBridge(Protocol):
    """Holds the private key; signs on request. Failures raise WalletBridgeError."""

    async def authorize(self, identity: AppIdentity) -> BridgeAuthorization:
        ...

    async def reauthorize(self, device_auth_token: str, identity: AppIdentity) -> BridgeAuthorization:
        ...

    async def sign_bytes(self, device_auth_token: str, message: bytes) -> bytes:
        ...

    async def deauthorize(self, device_auth_token: str) -> None:
        ...


@dataclass(frozen=True)
class WalletSession:
    wallet_address: str
    device_auth_token: Optional[str] = None
    session_credential: Optional[str] = None
    user_id: Optional[str] = None

    def __post_init__(self):
        if (self.device_auth_token or self.session_credential) and not self.wallet_address:
            raise ValueError("A device token or credential requires a wallet address")


@dataclass(frozen=True)
class AccessState:
    session: Optional[WalletSession] = None
    genesis_token: Optional[GenesisTokenRecord] = None
    profile: Optional[ProfileResponse] = None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None and bool(self.session.session_credential)

    @property
    def has_token(self) -> bool:
        return self.genesis_token is not None and self.genesis_token.has_token

    @property
    def is_ready(self) -> bool:
        return self.is_authenticated and self.has_token


class WalletSessionManager:
    def __init__(
        self,
        bridge: WalletBridge,
        auth_api: AuthApiClient,
        secure_store: KeyValueStore,
        token_gate: TokenGate,
        identity: AppIdentity = AppIdentity(),
        domain: Optional[str] = None,
        statement: Optional[str] = None,
    ):
        self.bridge = bridge
        self.auth_api = auth_api
        self.secure_store = secure_store
        self.token_gate = token_gate
        self.identity = identity
        self.domain = domain
        self.statement = statement
        self.session: Optional[WalletSession] = None

    def load(self) -> Optional[WalletSession]:
        """Restore the persisted session. A record without a wallet address is wiped."""
        wallet_address = self.secure_store.get(WALLET_ADDRESS_KEY)
        device_auth_token = self.secure_store.get(MWA_AUTH_TOKEN_KEY)
        session_credential = self.secure_store.get(SESSION_CREDENTIAL_KEY)
        user_id = self.secure_store.get(USER_ID_KEY)

        if not wallet_address:
            if device_auth_token or session_credential:
                logger.warning("Discarding persisted credentials without a wallet address")
                self._clear_store()
            self.session = None
            return None

        self.session = WalletSession(
            wallet_address=wallet_address,
            device_auth_token=device_auth_token or None,
            session_credential=session_credential or None,
            user_id=user_id or None,
        )
        return self.session

    async def connect(self) -> WalletSession:
        """
        Authorize with the wallet, sign a fresh challenge and exchange it for a credential.

        Raises:
            WalletBridgeError: If the wallet refuses to authorize or sign
            SignatureInvalid: If the wallet's signature fails the local check or the server check
            InvalidInput / UpstreamFailure / TransportFailure: From the credential exchange
        """
        authorization = await self._authorize()
        address = authorization.address

        message = build_siws_message(
            address=address,
            nonce=generate_nonce(),
            statement=self.statement,
            domain=self.domain,
        )
        message_bytes = encode_siws_message(message)
        signature = await self.bridge.sign_bytes(authorization.device_auth_token, message_bytes)

        if not verify_signature(message_bytes, signature, address):
            raise SignatureInvalid("Wallet returned a signature that does not verify")

        tokens = await self.auth_api.exchange(address, message, base58.encode(signature))

        session = WalletSession(
            wallet_address=address,
            device_auth_token=authorization.device_auth_token,
            session_credential=tokens.access_token,
            user_id=tokens.user_id,
        )
        self._persist(session)
        self.session = session
        return session

    async def verify_token(self, force_refresh: bool = False) -> Optional[GenesisTokenRecord]:
        """
        Check the Genesis Token for the current session's wallet.

        Returns None when the session was torn down while the check was in flight.

        Raises:
            InvalidInput: If there is no authenticated session
        """
        session = self.session
        if session is None or not session.session_credential:
            raise InvalidInput("Connect a wallet before verifying the Genesis Token")

        record = await self.token_gate.check(session.wallet_address, force_refresh=force_refresh)
        if self.session is not session:
            logger.info("Session changed during verification of %s, result discarded", session.wallet_address)
            return None
        return record

    async def load_profile(self, genesis_token: Optional[GenesisTokenRecord]) -> ProfileResponse:
        """
        Raises:
            InvalidInput: If there is no authenticated session or the wallet is not verified
        """
        session = self.session
        if session is None or not session.session_credential:
            raise InvalidInput("Connect a wallet before loading the profile")
        if genesis_token is None or not genesis_token.has_token:
            raise InvalidInput("Genesis Token not verified")
        if genesis_token.wallet_address != session.wallet_address:
            raise InvalidInput("Genesis Token record belongs to another wallet")
        return await self.auth_api.fetch_profile(session.session_credential)

    async def bootstrap(self) -> AccessState:
        """Restore the session, then verify the token, then load the profile."""
        session = self.session or self.load()
        if session is None or not session.session_credential:
            return AccessState(session=session)

        record = await self.verify_token()
        if record is None:
            return AccessState(session=self.session)
        if not record.has_token:
            return AccessState(session=session, genesis_token=record)

        profile = await self.load_profile(record)
        return AccessState(session=session, genesis_token=record, profile=profile)

    async def disconnect(self) -> None:
        """Revoke the device token (best effort), clear the store and the token cache."""
        session = self.session or self.load()
        self.session = None

        if session is not None and session.device_auth_token:
            try:
                await self.bridge.deauthorize(session.device_auth_token)
            except WalletBridgeError as e:
                logger.warning("Failed to revoke device token for %s: %s", session.wallet_address, e)

        self._clear_store()
        if session is not None:
            self.token_gate.invalidate(session.wallet_address)

    async def _authorize(self) -> BridgeAuthorization:
        """Reuse the stored device token when the wallet still accepts it."""
        stored = self.secure_store.get(MWA_AUTH_TOKEN_KEY)
        if stored:
            try:
                return await self.bridge.reauthorize(stored, self.identity)
            except WalletBridgeError as e:
                logger.info("Stored device token rejected, authorizing again: %s", e)
        return await self.bridge.authorize(self.identity)

    def _persist(self, session: WalletSession) -> None:
        # wallet address first: credentials are never stored without it
        self.secure_store.set(WALLET_ADDRESS_KEY, session.wallet_address)
        self.secure_store.set(MWA_AUTH_TOKEN_KEY, session.device_auth_token or "")
        self.secure_store.set(SESSION_CREDENTIAL_KEY, session.session_credential or "")
        self.secure_store.set(USER_ID_KEY, session.user_id or "")

    def _clear_store(self) -> None:
        # credentials first, wallet address last
        for key in reversed(SESSION_KEYS):
            self.secure_store.delete(key)
