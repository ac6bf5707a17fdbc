import json
from enum import Enum
from typing import List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.core.dependencies import get_credential_exchange_service
from app.core.exceptions import InvalidInput
import app.schemas.auth as schemas
from app.services.wallet_auth import CredentialExchangeService

router = APIRouter()
group_tags: List[str | Enum] = ["Auth"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


async def _read_auth_request(request: Request) -> schemas.AuthRequest:
    """Parse the JSON body by hand so malformed bodies answer 400 {error} instead of 422."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInput("Request body must be JSON")
    if not isinstance(body, dict):
        raise InvalidInput("Request body must be a JSON object")
    try:
        return schemas.AuthRequest.model_validate(body)
    except ValidationError:
        raise InvalidInput("wallet_address, message and signature must be strings")


@router.options("/auth", include_in_schema=False)
def auth_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post(
    "/auth",
    tags=group_tags,
    response_model=schemas.AuthResponse,
    responses={
        400: {"model": schemas.ErrorResponse},
        401: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
    },
)
async def exchange_credential(
    request: Request,
    service: CredentialExchangeService = Depends(get_credential_exchange_service),
) -> JSONResponse:
    """
    Exchange a signed SIWS message for a session credential.

    Body:
    - wallet_address: base58 public key
    - message: the plaintext SIWS message that was signed
    - signature: base58 ED25519 signature of the UTF-8 message

    Returns:
    - access_token (HS256 JWT, 7 days), refresh_token, token_type, expires_in, user_id
    """
    body = await _read_auth_request(request)
    result = await run_in_threadpool(
        service.exchange, body.wallet_address, body.message, body.signature
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=result.model_dump(),
        headers=CORS_HEADERS,
    )
