from enum import Enum
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from starlette.concurrency import run_in_threadpool

from app.core.dependencies import get_current_claims, get_token_gate, get_user_store
from app.schemas.user import GenesisTokenResponse, ProfileResponse
from app.services.token_gate import TokenGate
from app.services.user_store import UserStore

router = APIRouter()
group_tags: List[str | Enum] = ["user"]


@router.get(
    "/me",
    tags=group_tags,
    response_model=ProfileResponse,
    status_code=status.HTTP_200_OK,
)
def get_profile(
    claims: Dict[str, Any] = Depends(get_current_claims),
    user_store: UserStore = Depends(get_user_store),
) -> ProfileResponse:
    """
    Profile of the caller, identified by the sub claim of the session credential.
    """
    user = user_store.get_by_id(claims["sub"])
    if user is None or user.wallet_address != claims["wallet_address"]:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return ProfileResponse.from_user(user)


@router.get(
    "/me/genesis-token",
    tags=group_tags,
    response_model=GenesisTokenResponse,
    status_code=status.HTTP_200_OK,
)
async def get_genesis_token(
    refresh: bool = Query(default=False, description="Bypass the one-hour verification cache"),
    claims: Dict[str, Any] = Depends(get_current_claims),
    user_store: UserStore = Depends(get_user_store),
    token_gate: TokenGate = Depends(get_token_gate),
) -> GenesisTokenResponse:
    """
    Verify that the caller's wallet holds a Saga or Seeker Genesis Token.

    Query Parameters:
    - refresh: re-check on-chain even if a fresh result is cached (default: false)

    A positive result is recorded on the user row.
    """
    wallet_address = claims["wallet_address"]
    record = await token_gate.check(wallet_address, force_refresh=refresh)

    if record.has_token and record.mint_address:
        await run_in_threadpool(
            user_store.update_genesis_token,
            claims["sub"],
            record.token_type.value,
            record.mint_address,
        )

    return GenesisTokenResponse(
        wallet_address=record.wallet_address,
        has_token=record.has_token,
        token_type=record.token_type.value,
        mint_address=record.mint_address,
        checked_at=record.checked_at,
    )
