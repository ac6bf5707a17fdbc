"""
Minimal async Solana JSON-RPC client (DAS-compatible endpoint such as Helius).

Responses are decoded once here into small dataclasses; anything unexpected on the
wire (HTTP errors, timeouts, JSON-RPC error members, malformed payloads) surfaces as
TransportFailure.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from app.core.exceptions import TransportFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Asset:
    id: str


@dataclass(frozen=True)
class TokenAccount:
    pubkey: str
    mint: str
    amount: int  # raw base units


@dataclass(frozen=True)
class MintInfo:
    address: str
    mint_authority: Optional[str]


def _parsed_info(account: Any) -> Dict[str, Any]:
    """Helper: account.data.parsed.info of a jsonParsed account, or {}"""
    if not isinstance(account, dict):
        return {}
    data = account.get("data")
    if not isinstance(data, dict):
        return {}
    parsed = data.get("parsed")
    if not isinstance(parsed, dict):
        return {}
    info = parsed.get("info")
    return info if isinstance(info, dict) else {}


class SolanaRpcClient:
    def __init__(
        self,
        rpc_url: str,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        # when None, a short-lived client is opened per call
        self._http_client = http_client

    async def call(self, method: str, params: Any, request_id: str = "seekerchat") -> Any:
        """
        Send one JSON-RPC 2.0 request and return its result member.

        Raises:
            TransportFailure: On network/HTTP errors, JSON-RPC errors or a malformed body
        """
        body = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.rpc_url, json=body, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.rpc_url, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise TransportFailure(f"{method} failed: {e}")
        except ValueError as e:
            raise TransportFailure(f"{method} returned invalid JSON: {e}")

        if not isinstance(data, dict):
            raise TransportFailure(f"{method} returned a non-object response")
        if data.get("error"):
            error = data["error"]
            detail = error.get("message") if isinstance(error, dict) else error
            raise TransportFailure(f"{method} error: {detail}")
        if "result" not in data:
            raise TransportFailure(f"{method} response has no result")
        return data["result"]

    async def search_assets(
        self,
        owner_address: str,
        collection: str,
        page: int = 1,
        limit: int = 1,
    ) -> List[Asset]:
        """DAS searchAssets: assets owned by owner_address grouped under a collection."""
        result = await self.call(
            "searchAssets",
            {
                "ownerAddress": owner_address,
                "grouping": ["collection", collection],
                "page": page,
                "limit": limit,
            },
            request_id="saga-genesis-check",
        )
        if not isinstance(result, dict):
            raise TransportFailure("searchAssets result is not an object")
        items = result.get("items") or []
        if not isinstance(items, list):
            raise TransportFailure("searchAssets items is not a list")
        return [
            Asset(id=item["id"])
            for item in items
            if isinstance(item, dict) and isinstance(item.get("id"), str) and item["id"]
        ]

    async def get_token_accounts_by_owner(self, owner_address: str, program_id: str) -> List[TokenAccount]:
        """getTokenAccountsByOwner (jsonParsed) restricted to one token program."""
        result = await self.call(
            "getTokenAccountsByOwner",
            [owner_address, {"programId": program_id}, {"encoding": "jsonParsed"}],
        )
        if not isinstance(result, dict) or not isinstance(result.get("value"), list):
            raise TransportFailure("getTokenAccountsByOwner result has no value list")

        accounts = []
        for entry in result["value"]:
            if not isinstance(entry, dict):
                continue
            info = _parsed_info(entry.get("account"))
            mint = info.get("mint")
            if not isinstance(mint, str):
                continue
            token_amount = info.get("tokenAmount") or {}
            try:
                amount = int(token_amount.get("amount", 0))
            except (TypeError, ValueError, AttributeError):
                logger.debug("Skipping token account with unreadable amount: %s", entry.get("pubkey"))
                continue
            accounts.append(TokenAccount(pubkey=str(entry.get("pubkey", "")), mint=mint, amount=amount))
        return accounts

    async def get_mint_info(self, mint_address: str) -> Optional[MintInfo]:
        """getAccountInfo (jsonParsed) for a mint; None when the account does not exist."""
        result = await self.call("getAccountInfo", [mint_address, {"encoding": "jsonParsed"}])
        if not isinstance(result, dict):
            raise TransportFailure("getAccountInfo result is not an object")
        account = result.get("value")
        if account is None:
            return None
        info = _parsed_info(account)
        authority = info.get("mintAuthority")
        return MintInfo(
            address=mint_address,
            mint_authority=authority if isinstance(authority, str) else None,
        )
