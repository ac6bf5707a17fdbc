from typing import Optional

from pydantic import BaseModel, Field


class AuthRequest(BaseModel):
    """Request model for POST /auth - presence is checked by the service (400 on missing)"""

    wallet_address: Optional[str] = Field(None, description="Wallet address (base58 public key)")
    message: Optional[str] = Field(None, description="Plaintext SIWS message that was signed")
    signature: Optional[str] = Field(None, description="ED25519 signature (base58)")


class AuthResponse(BaseModel):
    """Response model for credential exchange - output"""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str


class ErrorResponse(BaseModel):
    error: str
