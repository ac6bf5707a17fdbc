"""
Single-flight Genesis Token gate.

Serves fresh cached records without touching the chain and otherwise runs at most one
verification per wallet at a time: concurrent callers await the same task. The chain
strategies have no cancellation primitive, so invalidate() never aborts an in-flight
verification; it bumps the wallet's epoch and the stale result is not cached.
"""

import asyncio
import logging
from typing import Dict, Tuple

from app.services.genesis_token import GenesisTokenVerifier
from app.services.verification_cache import GenesisTokenRecord, VerificationCache

logger = logging.getLogger(__name__)


class TokenGate:
    def __init__(self, verifier: GenesisTokenVerifier, cache: VerificationCache):
        self.verifier = verifier
        self.cache = cache
        # wallet -> (epoch the task started under, task)
        self._in_flight: Dict[str, Tuple[int, "asyncio.Task[GenesisTokenRecord]"]] = {}
        self._epochs: Dict[str, int] = {}

    def epoch(self, wallet_address: str) -> int:
        return self._epochs.get(wallet_address, 0)

    def is_verifying(self, wallet_address: str) -> bool:
        return wallet_address in self._in_flight

    async def check(self, wallet_address: str, force_refresh: bool = False) -> GenesisTokenRecord:
        """
        Return the Genesis Token record for a wallet.

        Args:
            wallet_address: Wallet to check
            force_refresh: Skip the cache lookup (a current in-flight check is still joined)
        """
        if not force_refresh:
            cached = self.cache.load(wallet_address)
            if cached is not None:
                return cached

        epoch = self.epoch(wallet_address)
        entry = self._in_flight.get(wallet_address)
        if entry is None or entry[0] != epoch:
            # a task started before invalidate() belongs to a torn-down session
            task = asyncio.ensure_future(self._verify(wallet_address, epoch))
            self._in_flight[wallet_address] = (epoch, task)
            task.add_done_callback(lambda done: self._forget(wallet_address, done))
        else:
            task = entry[1]
            logger.debug("Joining in-flight verification for %s", wallet_address)

        # one waiter being cancelled must not cancel the shared verification
        return await asyncio.shield(task)

    def invalidate(self, wallet_address: str) -> None:
        """Drop the cached record and discard the result of any in-flight check."""
        self._epochs[wallet_address] = self.epoch(wallet_address) + 1
        self.cache.invalidate(wallet_address)

    async def _verify(self, wallet_address: str, epoch: int) -> GenesisTokenRecord:
        result = await self.verifier.verify(wallet_address)
        record = GenesisTokenRecord.from_result(wallet_address, result, checked_at=self.cache.clock())
        if self.epoch(wallet_address) == epoch:
            self.cache.store(record)
        else:
            logger.info("Discarding verification result for %s: session was torn down", wallet_address)
        return record

    def _forget(self, wallet_address: str, task: "asyncio.Task[GenesisTokenRecord]") -> None:
        entry = self._in_flight.get(wallet_address)
        if entry is not None and entry[1] is task:
            del self._in_flight[wallet_address]
