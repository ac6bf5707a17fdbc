"""
User records in the data service, keyed by wallet address.

The credential exchange only needs "lookup-or-create returns an id"; the profile and
token-gate endpoints read and update the same rows.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import UpstreamFailure
from app.models.users import User

logger = logging.getLogger(__name__)


class UserStore:
    def __init__(self, db: Session):
        self.db = db

    def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        try:
            return (
                self.db.query(User)
                .filter(User.wallet_address == wallet_address)
                .first()
            )
        except SQLAlchemyError as e:
            raise UpstreamFailure(f"Failed to read user: {e}")

    def get_by_id(self, user_id: str) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as e:
            raise UpstreamFailure(f"Failed to read user: {e}")

    def get_or_create(self, wallet_address: str) -> str:
        """
        Return the id of the user owning wallet_address, creating the row on first use.

        Idempotent: a concurrent insert for the same wallet loses on the unique
        constraint and the existing row is returned instead.

        Raises:
            UpstreamFailure: If the row can neither be read nor created
        """
        user = self.get_by_wallet(wallet_address)
        now = datetime.now(timezone.utc)
        if user is not None:
            user.last_active_at = now  # type: ignore
            self._commit()
            return str(user.id)

        user = User(wallet_address=wallet_address, last_active_at=now)
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_by_wallet(wallet_address)
            if existing is None:
                raise UpstreamFailure("Failed to create user: unique constraint violated")
            return str(existing.id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise UpstreamFailure(f"Failed to create user: {e}")

        logger.info("Created user %s for wallet %s", user.id, wallet_address)
        return str(user.id)

    def update_genesis_token(self, user_id: str, token_type: str, mint_address: str) -> None:
        user = self.get_by_id(user_id)
        if user is None:
            return
        user.genesis_token_type = token_type  # type: ignore
        user.genesis_token_mint = mint_address  # type: ignore
        self._commit()

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise UpstreamFailure(f"Failed to update user: {e}")
