"""Get the detail view of a movie or show."""
import azure.functions as func
import logging
import json

from watchnext_recommendation_service.blueprints.recommendations_bp import genre_cache, metadata_provider
from watchnext_recommendation_service.config import get_tmdb_image_base_url
from watchnext_recommendation_service.errors import ExternalServiceError, ItemNotFoundError
from watchnext_recommendation_service.recommenders.types import MediaType

bp = func.Blueprint()

logger = logging.getLogger(__name__)


def _json_response(body, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body, default=str),
        status_code=status_code,
        mimetype="application/json"
    )


@bp.route(route="items/{item_id}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def get_item_details(req: func.HttpRequest) -> func.HttpResponse:
    """
    Get details, cast and streaming providers for an item.

    Query Parameters:
        - type: "movie" (default) or "tv"
    """
    try:
        item_id = req.route_params.get('item_id')
        if not item_id:
            return _json_response({"error": "item_id is required"}, status_code=400)

        try:
            item_id = int(item_id)
        except ValueError:
            return _json_response({"error": "item_id must be an integer"}, status_code=400)

        media_type = MediaType.parse(req.params.get('type') or 'movie')
        if media_type is None:
            return _json_response({"error": "type must be 'movie' or 'tv'"}, status_code=400)

        details = metadata_provider.get_details(item_id, media_type)
        genre_cache.ensure_populated()

        return _json_response(details.to_dict(genre_cache, get_tmdb_image_base_url()))

    except ItemNotFoundError as e:
        return _json_response({"error": str(e)}, status_code=404)

    except ExternalServiceError as e:
        logger.error(f"Error fetching item details: {str(e)}", exc_info=True)
        return _json_response({
            "error": "Failed to fetch details from TMDB",
            "details": str(e),
            "retryable": True
        }, status_code=502)

    except Exception as e:
        logger.error(f"Error fetching item details: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, status_code=500)
