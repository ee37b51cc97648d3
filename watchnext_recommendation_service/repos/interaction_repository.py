"""Repository for user interactions (the interaction store)."""

import logging
from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from watchnext_recommendation_service.errors import StoreError
from watchnext_recommendation_service.models import UserInteraction
from watchnext_recommendation_service.recommenders.types import Interaction, MediaType

logger = logging.getLogger(__name__)


class InteractionRepository:
    """
    Repository for reading and recording likes/dislikes.

    Reads return immutable Interaction values; writes return the ORM row.
    Database failures surface as StoreError.
    """

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, error: SQLAlchemyError) -> StoreError:
        self.db.rollback()
        logger.error(f"Interaction store error while {action}: {error}")
        return StoreError(f"Interaction store unavailable while {action}")

    # noinspection PyTypeChecker
    def list_for_user(self, user_id: str, liked: Optional[bool] = None) -> List[Interaction]:
        """
        Get a user's interactions, newest first.

        Args:
            user_id: User ID
            liked: Only likes (True) or only dislikes (False); None for both

        Returns:
            List of Interaction values
        """
        try:
            query = self.db.query(UserInteraction).filter(UserInteraction.user_id == user_id)
            if liked is not None:
                query = query.filter(UserInteraction.liked == liked)
            rows = query.order_by(UserInteraction.created_at.desc(), UserInteraction.id.desc()).all()
        except SQLAlchemyError as e:
            raise self._fail(f"listing interactions for {user_id}", e) from e

        return [row.to_interaction() for row in rows]

    # noinspection PyTypeChecker
    def list_all(self) -> List[Interaction]:
        """Get every interaction of every user."""
        try:
            rows = self.db.query(UserInteraction).order_by(UserInteraction.id).all()
        except SQLAlchemyError as e:
            raise self._fail("listing all interactions", e) from e

        return [row.to_interaction() for row in rows]

    def get(self, user_id: str, item_id: int) -> UserInteraction | None:
        """Get a user's interaction with one item."""
        try:
            return (
                self.db.query(UserInteraction)
                .filter(UserInteraction.user_id == user_id, UserInteraction.item_id == item_id)
                .first()
            )
        except SQLAlchemyError as e:
            raise self._fail(f"reading interaction {user_id}/{item_id}", e) from e

    def record(
            self,
            user_id: str,
            item_id: int,
            liked: bool,
            media_type: Optional[MediaType] = None
    ) -> UserInteraction:
        """
        Store or update a like/dislike.

        Args:
            user_id: User ID
            item_id: Item ID
            liked: True for like, False for dislike
            media_type: Optional media type of the item

        Returns:
            UserInteraction row
        """
        existing = self.get(user_id, item_id)
        media_value = media_type.value if media_type is not None else None

        try:
            if existing:
                existing.liked = liked  # type: ignore[assignment]
                if media_value is not None:
                    existing.media_type = media_value  # type: ignore[assignment]
                existing.updated_at = datetime.now(UTC)  # type: ignore[assignment]
                interaction = existing
            else:
                interaction = UserInteraction(
                    user_id=user_id,
                    item_id=item_id,
                    liked=liked,
                    media_type=media_value,
                )
                self.db.add(interaction)

            self.db.commit()
            self.db.refresh(interaction)
        except SQLAlchemyError as e:
            raise self._fail(f"recording interaction {user_id}/{item_id}", e) from e

        logger.info(f"Recorded {'like' if liked else 'dislike'} of {item_id} by {user_id}")
        return interaction

    def bulk_record(self, rows: List[dict], batch_size: int = 500) -> int:
        """
        Store many interactions, updating existing (user, item) pairs.

        Args:
            rows: Dicts with user_id, item_id, liked and optional media_type
            batch_size: Commit interval

        Returns:
            Number of interactions written
        """
        # Last row wins for repeated (user, item) pairs
        unique_rows = list({(row["user_id"], row["item_id"]): row for row in rows}.values())

        count = 0
        try:
            for i in range(0, len(unique_rows), batch_size):
                for row in unique_rows[i:i + batch_size]:
                    media_type = MediaType.parse(row.get("media_type"))
                    existing = (
                        self.db.query(UserInteraction)
                        .filter(
                            UserInteraction.user_id == row["user_id"],
                            UserInteraction.item_id == row["item_id"],
                        )
                        .first()
                    )
                    if existing:
                        existing.liked = row["liked"]
                        if media_type is not None:
                            existing.media_type = media_type.value
                    else:
                        self.db.add(UserInteraction(
                            user_id=row["user_id"],
                            item_id=row["item_id"],
                            liked=row["liked"],
                            media_type=media_type.value if media_type else None,
                        ))
                    count += 1
                self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail("bulk recording interactions", e) from e

        logger.info(f"✓ Stored {count} interactions")
        return count

    def delete(self, user_id: str, item_id: int) -> bool:
        """
        Delete a user's interaction with an item.

        Returns:
            True if deleted, False if not found
        """
        try:
            count = (
                self.db.query(UserInteraction)
                .filter(UserInteraction.user_id == user_id, UserInteraction.item_id == item_id)
                .delete()
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._fail(f"deleting interaction {user_id}/{item_id}", e) from e

        return count > 0

    def count_interactions(self) -> int:
        """Count all stored interactions."""
        try:
            return self.db.query(UserInteraction).count()
        except SQLAlchemyError as e:
            raise self._fail("counting interactions", e) from e
