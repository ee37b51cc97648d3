"""Repository for resolving users."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from watchnext_recommendation_service.errors import StoreError
from watchnext_recommendation_service.models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """
    Repository for the users table.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: str) -> User | None:
        """Get a user by ID."""
        try:
            return self.db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"User store unavailable while reading {user_id}") from e

    def user_exists(self, user_id: str) -> bool:
        return self.get_user(user_id) is not None

    def get_or_create_user(self, user_id: str, email: str | None = None, name: str | None = None) -> User:
        """
        Get a user, creating the row on first sight.

        Args:
            user_id: User ID from the sign-in system
            email: Optional email
            name: Optional display name

        Returns:
            User object
        """
        user = self.get_user(user_id)
        if user:
            return user

        try:
            user = User(id=user_id, email=email, name=name)
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"User store unavailable while creating {user_id}") from e

        logger.info(f"Created user {user_id}")
        return user
