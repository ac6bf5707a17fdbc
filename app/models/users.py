import uuid

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from app.db.base import Base

UNVERIFIED_TOKEN_TYPE = "none"
UNVERIFIED_TOKEN_MINT = "pending"


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Model for users table, keyed by wallet address
    Example:
    {
        "id": "550e8400-e29b-41d4-a716-446655440000",
        "wallet_address": "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU",
        "genesis_token_type": "seeker",
        "genesis_token_mint": "9aK1...",
        "display_name": null,
        "avatar_url": null,
        "created_at": "2024-01-01T12:00:00",
        "last_active_at": "2024-01-01T12:00:00"
    }
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_user_id)
    wallet_address = Column(String(64), nullable=False, unique=True, index=True)
    genesis_token_type = Column(
        String(16), nullable=False, default=UNVERIFIED_TOKEN_TYPE
    )
    genesis_token_mint = Column(
        String(64), nullable=False, default=UNVERIFIED_TOKEN_MINT
    )
    display_name = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_active_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
