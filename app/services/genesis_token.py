"""
Genesis Token ownership verification.

Two independent strategies, tried in order, first success wins:
    A. Saga: DAS searchAssets by the verified Saga Genesis collection
    B. Seeker: Token-2022 accounts whose mint was created by the Seeker mint authority

Each strategy absorbs its own transport and parsing errors and reports NotFound, so a
flaky index never blocks strategy B and the gate degrades to "re-check later" instead
of a false denial. Read-only and safe to call repeatedly.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from app.core.exceptions import TransportFailure
from app.services.solana_rpc import SolanaRpcClient

logger = logging.getLogger(__name__)


class GenesisTokenType(str, Enum):
    SAGA = "saga"
    SEEKER = "seeker"
    NONE = "none"


@dataclass(frozen=True)
class Found:
    token_type: GenesisTokenType
    mint_address: str


@dataclass(frozen=True)
class NotFound:
    reason: str = ""


StrategyOutcome = Union[Found, NotFound]


@dataclass(frozen=True)
class GenesisTokenResult:
    has_token: bool
    token_type: GenesisTokenType
    mint_address: Optional[str]

    def __post_init__(self):
        if self.has_token and (self.token_type is GenesisTokenType.NONE or not self.mint_address):
            raise ValueError("has_token requires a token type and a mint address")
        if not self.has_token and (self.token_type is not GenesisTokenType.NONE or self.mint_address):
            raise ValueError("A result without a token carries no token type or mint")

    @classmethod
    def from_outcome(cls, outcome: StrategyOutcome) -> "GenesisTokenResult":
        if isinstance(outcome, Found):
            return cls(has_token=True, token_type=outcome.token_type, mint_address=outcome.mint_address)
        return cls.none()

    @classmethod
    def none(cls) -> "GenesisTokenResult":
        return cls(has_token=False, token_type=GenesisTokenType.NONE, mint_address=None)


class GenesisTokenVerifier:
    def __init__(
        self,
        rpc: SolanaRpcClient,
        saga_collection: str,
        seeker_mint_authority: str,
        token_program_id: str,
    ):
        self.rpc = rpc
        self.saga_collection = saga_collection
        self.seeker_mint_authority = seeker_mint_authority
        self.token_program_id = token_program_id

    async def verify(self, wallet_address: str) -> GenesisTokenResult:
        outcome = await self.check_saga(wallet_address)
        if isinstance(outcome, NotFound):
            outcome = await self.check_seeker(wallet_address)
        return GenesisTokenResult.from_outcome(outcome)

    async def check_saga(self, wallet_address: str) -> StrategyOutcome:
        """Strategy A: any asset owned by the wallet in the Saga Genesis collection."""
        try:
            assets = await self.rpc.search_assets(wallet_address, self.saga_collection, page=1, limit=1)
        except TransportFailure as e:
            logger.warning("Saga Genesis Token check failed for %s: %s", wallet_address, e)
            return NotFound(reason=str(e))

        if not assets:
            return NotFound()
        return Found(GenesisTokenType.SAGA, assets[0].id)

    async def check_seeker(self, wallet_address: str) -> StrategyOutcome:
        """Strategy B: a held Token-2022 mint whose mint authority is the Seeker authority."""
        try:
            accounts = await self.rpc.get_token_accounts_by_owner(wallet_address, self.token_program_id)
            for account in accounts:
                if account.amount <= 0:
                    continue
                mint = await self.rpc.get_mint_info(account.mint)
                if mint is not None and mint.mint_authority == self.seeker_mint_authority:
                    return Found(GenesisTokenType.SEEKER, account.mint)
        except TransportFailure as e:
            logger.warning("Seeker Genesis Token check failed for %s: %s", wallet_address, e)
            return NotFound(reason=str(e))
        return NotFound()
