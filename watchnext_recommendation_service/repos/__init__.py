"""Repository classes"""

from watchnext_recommendation_service.repos.interaction_repository import InteractionRepository
from watchnext_recommendation_service.repos.user_repository import UserRepository

__all__ = [
    "InteractionRepository",
    "UserRepository",
]
