"""Service classes"""

from .genre_cache import GenreCache
from .recommendation_service import RecommendationService
from .tmdb_client import TMDBClient

__all__ = ["GenreCache", "RecommendationService", "TMDBClient"]
