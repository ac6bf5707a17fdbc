"""
TTL-bound cache of the last Genesis Token check per wallet.

Records are stored as JSON (camelCase keys, checkedAt in epoch milliseconds) in any
KeyValueStore. Stale, foreign or unparsable records read as absent; corruption is
never surfaced to the caller.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from app.core.cache import KeyValueStore
from app.core.exceptions import CacheCorruption
from app.services.genesis_token import GenesisTokenResult, GenesisTokenType

logger = logging.getLogger(__name__)

GENESIS_TOKEN_CACHE_KEY = "seekerchat_genesis_token"
CACHE_TTL_SECONDS = 60 * 60  # re-verify every hour


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class GenesisTokenRecord:
    wallet_address: str
    has_token: bool
    token_type: GenesisTokenType
    mint_address: Optional[str]
    checked_at: int  # epoch milliseconds

    def __post_init__(self):
        if self.mint_address is not None and not isinstance(self.mint_address, str):
            raise ValueError("mintAddress must be a string")
        self.result  # raises ValueError when the token invariants do not hold

    @property
    def result(self) -> GenesisTokenResult:
        return GenesisTokenResult(
            has_token=self.has_token,
            token_type=self.token_type,
            mint_address=self.mint_address,
        )

    @classmethod
    def from_result(cls, wallet_address: str, result: GenesisTokenResult, checked_at: int) -> "GenesisTokenRecord":
        return cls(
            wallet_address=wallet_address,
            has_token=result.has_token,
            token_type=result.token_type,
            mint_address=result.mint_address,
            checked_at=checked_at,
        )

    def to_json(self) -> str:
        return json.dumps({
            "walletAddress": self.wallet_address,
            "hasToken": self.has_token,
            "tokenType": self.token_type.value,
            "mintAddress": self.mint_address,
            "checkedAt": self.checked_at,
        })

    @classmethod
    def from_json(cls, raw: str) -> "GenesisTokenRecord":
        """
        Raises:
            CacheCorruption: If raw is not a valid record
        """
        try:
            data = json.loads(raw)
            checked_at = data["checkedAt"]
            has_token = data["hasToken"]
            if not isinstance(checked_at, int) or isinstance(checked_at, bool):
                raise ValueError("checkedAt must be an integer")
            if not isinstance(has_token, bool):
                raise ValueError("hasToken must be a boolean")
            return cls(
                wallet_address=str(data["walletAddress"]),
                has_token=has_token,
                token_type=GenesisTokenType(data.get("tokenType") or GenesisTokenType.NONE.value),
                mint_address=data.get("mintAddress"),
                checked_at=checked_at,
            )
        except (TypeError, ValueError, KeyError) as e:
            raise CacheCorruption(f"Unreadable genesis token record: {e}")


class VerificationCache:
    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        clock: Callable[[], int] = now_ms,
    ):
        self.backend = store
        self.ttl_ms = ttl_seconds * 1000
        self.clock = clock

    @staticmethod
    def key_for(wallet_address: str) -> str:
        return f"{GENESIS_TOKEN_CACHE_KEY}:{wallet_address}"

    def load(self, wallet_address: str) -> Optional[GenesisTokenRecord]:
        raw = self.backend.get(self.key_for(wallet_address))
        if not raw:
            return None
        try:
            record = GenesisTokenRecord.from_json(raw)
        except CacheCorruption as e:
            logger.debug("Ignoring cached record for %s: %s", wallet_address, e)
            return None

        if record.wallet_address != wallet_address:
            return None
        age = self.clock() - record.checked_at
        if age < 0 or age >= self.ttl_ms:
            return None
        return record

    def store(self, record: GenesisTokenRecord) -> None:
        self.backend.set(
            self.key_for(record.wallet_address),
            record.to_json(),
            ttl_seconds=self.ttl_ms // 1000,
        )

    def invalidate(self, wallet_address: str) -> None:
        self.backend.delete(self.key_for(wallet_address))
