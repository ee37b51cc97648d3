"""Users that interactions belong to."""
from datetime import datetime, UTC

from sqlalchemy import Column, DateTime, String

from watchnext_recommendation_service.models.base import Base


class User(Base):
    """A user the service can recommend for.

    Identity is owned by the sign-in system; this table only mirrors ids.
    """
    __tablename__ = 'users'

    id = Column(String(64), primary_key=True)
    email = Column(String(255), unique=True, nullable=True)
    name = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}')>"
