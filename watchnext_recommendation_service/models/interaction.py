"""Stores one like/dislike per user and item."""

from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint

from watchnext_recommendation_service.models.base import Base
from watchnext_recommendation_service.recommenders.types import Interaction, MediaType


class UserInteraction(Base):
    """A user's verdict on a movie or show.

    Each (user_id, item_id) pair appears at most once; re-rating updates
    the existing row.
    """

    __tablename__ = "interactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, nullable=False)
    media_type = Column(String(10), nullable=True)  # "movie" / "tv"
    liked = Column(Boolean, nullable=False)

    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "item_id", name="uq_interactions_user_item"),
        Index("idx_interactions_user_id", "user_id"),
        Index("idx_interactions_item_id", "item_id"),
    )

    def to_interaction(self) -> Interaction:
        """Project the row onto the immutable value the pipeline reads."""
        return Interaction(
            user_id=self.user_id,
            item_id=self.item_id,
            liked=bool(self.liked),
            timestamp=self.created_at,
            media_type=MediaType.parse(self.media_type),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "item_id": self.item_id,
            "media_type": self.media_type,
            "liked": self.liked,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return (
            f"<UserInteraction(user_id='{self.user_id}', item_id={self.item_id}, "
            f"liked={self.liked})>"
        )
