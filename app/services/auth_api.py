"""
Client for the credential exchange and profile endpoints.

Maps HTTP statuses back onto the error taxonomy so the session manager can tell
"try again" (InvalidInput), "fresh challenge needed" (SignatureInvalid) and upstream
failures apart.
"""

from typing import Any, Dict, Optional

import httpx

from app.core.exceptions import InvalidInput, SignatureInvalid, TransportFailure, UpstreamFailure
from app.schemas.auth import AuthResponse
from app.schemas.user import ProfileResponse

_STATUS_ERRORS = {
    400: InvalidInput,
    401: SignatureInvalid,
}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)


class AuthApiClient:
    def __init__(self, base_url: str, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            if self._http_client is not None:
                return await self._http_client.request(method, url, timeout=self.timeout, **kwargs)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportFailure(f"{method} {path} failed: {e}")

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        message = _error_message(response)
        error_class = _STATUS_ERRORS.get(response.status_code)
        if error_class is not None:
            raise error_class(message)
        if response.status_code >= 500:
            raise UpstreamFailure(message)
        raise TransportFailure(message)

    async def exchange(self, wallet_address: str, message: str, signature: str) -> AuthResponse:
        """POST /auth with a signed challenge; returns the session credential."""
        body: Dict[str, str] = {
            "wallet_address": wallet_address,
            "message": message,
            "signature": signature,
        }
        response = await self._request("POST", "/auth", json=body)
        self._raise_for_status(response)
        try:
            return AuthResponse.model_validate(response.json())
        except ValueError as e:
            raise TransportFailure(f"Unexpected /auth response: {e}")

    async def fetch_profile(self, session_credential: str) -> ProfileResponse:
        response = await self._request(
            "GET",
            "/users/me",
            headers={"Authorization": f"Bearer {session_credential}"},
        )
        self._raise_for_status(response)
        try:
            return ProfileResponse.model_validate(response.json())
        except ValueError as e:
            raise TransportFailure(f"Unexpected /users/me response: {e}")
