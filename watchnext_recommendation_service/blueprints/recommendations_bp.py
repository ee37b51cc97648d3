"""Get personalized recommendations for a user."""
import azure.functions as func
import logging
import json

from sqlalchemy.orm import Session

from watchnext_recommendation_service.errors import (
    RecommendationPipelineError,
    StoreError,
    UserNotFoundError,
)
from watchnext_recommendation_service.models.database import session_scope
from watchnext_recommendation_service.repos import InteractionRepository, UserRepository
from watchnext_recommendation_service.services import GenreCache, RecommendationService, TMDBClient

# Initialize blueprint
bp = func.Blueprint()

# Shared across requests: the provider's connection pool and the genre names
metadata_provider = TMDBClient()
genre_cache = GenreCache(metadata_provider)

logger = logging.getLogger(__name__)


def build_recommendation_service(db: Session) -> RecommendationService:
    """Wire a request-scoped service onto a database session."""
    return RecommendationService(
        interaction_store=InteractionRepository(db),
        metadata_provider=metadata_provider,
        genre_cache=genre_cache,
        user_store=UserRepository(db),
    )


def _json_response(body, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body, default=str),
        status_code=status_code,
        mimetype="application/json"
    )


@bp.route(route="users/{user_id}/recommendations", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_user_recommendations(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get up to 20 recommendations for a user.

    An empty history yields popular content; a failure to compute returns
    503 with a retry hint rather than an empty list.
    """
    try:
        user_id = req.route_params.get('user_id')

        if not user_id:
            return _json_response({"error": "user_id is required"}, status_code=400)

        with session_scope() as db:
            service = build_recommendation_service(db)
            result = service.recommend(user_id)
            recommendations = service.serialize(result)

        return _json_response({
            "user_id": user_id,
            "count": len(recommendations),
            "recommendations": recommendations
        })

    except UserNotFoundError as e:
        return _json_response({"error": str(e)}, status_code=404)

    except RecommendationPipelineError as e:
        logger.error(f"Recommendation pipeline failed: {str(e)}", exc_info=True)
        return _json_response({
            "error": "Failed to generate recommendations",
            "details": str(e),
            "retryable": True
        }, status_code=503)

    except Exception as e:
        logger.error(f"Error getting recommendations: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, status_code=500)


# noinspection PyUnusedLocal
@bp.route(route="recommendations/health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint; reports 503 when the interaction store is unreachable."""
    body = {
        "status": "healthy",
        "service": "watchnext-recommendation-service",
        "version": "1.0.0",
        "genres_loaded": genre_cache.populated
    }

    try:
        with session_scope() as db:
            body["interactions"] = InteractionRepository(db).count_interactions()
        body["database"] = "connected"
    except StoreError as e:
        logger.error(f"Health check could not reach the interaction store: {str(e)}")
        body["status"] = "degraded"
        body["database"] = "unavailable"
        return _json_response(body, status_code=503)

    return _json_response(body)
