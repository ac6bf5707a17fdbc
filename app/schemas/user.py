from typing import Optional

from pydantic import BaseModel

from app.models.users import User


class ProfileResponse(BaseModel):
    """Response model for user profile"""

    user_id: str
    wallet_address: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    genesis_token_type: str = "none"
    genesis_token_mint: str = "pending"

    @classmethod
    def from_user(cls, user: User) -> "ProfileResponse":
        return cls(
            user_id=str(user.id),
            wallet_address=str(user.wallet_address),
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            genesis_token_type=str(user.genesis_token_type),
            genesis_token_mint=str(user.genesis_token_mint),
        )


class GenesisTokenResponse(BaseModel):
    """Response model for Genesis Token verification"""

    wallet_address: str
    has_token: bool
    token_type: str
    mint_address: Optional[str] = None
    checked_at: int  # epoch milliseconds
