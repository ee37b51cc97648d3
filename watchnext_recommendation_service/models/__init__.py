"""SQLAlchemy models"""

from watchnext_recommendation_service.models.base import Base
from watchnext_recommendation_service.models.interaction import UserInteraction
from watchnext_recommendation_service.models.user import User

__all__ = [
    "Base",
    "User",
    "UserInteraction",
]
