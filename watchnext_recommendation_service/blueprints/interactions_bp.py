"""Record, list and remove a user's likes and dislikes."""
import azure.functions as func
import logging
import json

from watchnext_recommendation_service.errors import StoreError
from watchnext_recommendation_service.models.database import session_scope
from watchnext_recommendation_service.recommenders.types import Interaction, MediaType
from watchnext_recommendation_service.repos import InteractionRepository, UserRepository

bp = func.Blueprint()

logger = logging.getLogger(__name__)


def _json_response(body, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(body, default=str),
        status_code=status_code,
        mimetype="application/json"
    )


def _interaction_to_dict(interaction: Interaction) -> dict:
    return {
        "item_id": interaction.item_id,
        "liked": interaction.liked,
        "media_type": interaction.media_type.value if interaction.media_type else None,
        "timestamp": interaction.timestamp.isoformat() if interaction.timestamp else None,
    }


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    value = value.strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"expected true or false, got {value!r}")


@bp.route(route="users/{user_id}/interactions", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
def record_interaction(req: func.HttpRequest) -> func.HttpResponse:
    """
    Like or dislike an item.

    Body:
        - item_id: Item ID (integer)
        - liked: true to like, false to dislike
        - media_type: Optional "movie" or "tv"
    """
    try:
        user_id = req.route_params.get('user_id')
        if not user_id:
            return _json_response({"error": "user_id is required"}, status_code=400)

        try:
            body = req.get_json()
        except ValueError:
            return _json_response({"error": "Request body must be JSON"}, status_code=400)

        body = body or {}
        item_id = body.get('item_id')
        liked = body.get('liked')

        if item_id is None or not isinstance(liked, bool):
            return _json_response({
                "error": "Missing fields",
                "received": {"item_id": item_id, "liked": liked}
            }, status_code=400)

        try:
            item_id = int(item_id)
        except (TypeError, ValueError):
            return _json_response({"error": "item_id must be an integer"}, status_code=400)

        media_type = MediaType.parse(body.get('media_type'))

        with session_scope() as db:
            UserRepository(db).get_or_create_user(user_id)
            interaction = InteractionRepository(db).record(user_id, item_id, liked, media_type)
            payload = interaction.to_dict()

        return _json_response({"success": True, "interaction": payload})

    except StoreError as e:
        logger.error(f"Error recording interaction: {str(e)}", exc_info=True)
        return _json_response({"error": "Database error", "details": str(e)}, status_code=503)

    except Exception as e:
        logger.error(f"Error recording interaction: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, status_code=500)


@bp.route(route="users/{user_id}/interactions", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def list_interactions(req: func.HttpRequest) -> func.HttpResponse:
    """
    List a user's interactions, newest first.

    Query Parameters:
        - liked: "true" for likes only, "false" for dislikes only
    """
    try:
        user_id = req.route_params.get('user_id')
        if not user_id:
            return _json_response({"error": "user_id is required"}, status_code=400)

        try:
            liked = _parse_bool(req.params.get('liked'))
        except ValueError as e:
            return _json_response({"error": f"liked: {e}"}, status_code=400)

        with session_scope() as db:
            interactions = InteractionRepository(db).list_for_user(user_id, liked=liked)

        return _json_response({
            "user_id": user_id,
            "count": len(interactions),
            "interactions": [_interaction_to_dict(i) for i in interactions]
        })

    except StoreError as e:
        logger.error(f"Error listing interactions: {str(e)}", exc_info=True)
        return _json_response({"error": "Database error", "details": str(e)}, status_code=503)

    except Exception as e:
        logger.error(f"Error listing interactions: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, status_code=500)


@bp.route(route="users/{user_id}/interactions/{item_id}", methods=["DELETE"], auth_level=func.AuthLevel.ANONYMOUS)
def delete_interaction(req: func.HttpRequest) -> func.HttpResponse:
    """Remove a user's like or dislike of an item."""
    try:
        user_id = req.route_params.get('user_id')
        item_id = req.route_params.get('item_id')

        if not user_id or not item_id:
            return _json_response({"error": "user_id and item_id are required"}, status_code=400)

        try:
            item_id = int(item_id)
        except ValueError:
            return _json_response({"error": "item_id must be an integer"}, status_code=400)

        with session_scope() as db:
            deleted = InteractionRepository(db).delete(user_id, item_id)

        if not deleted:
            return _json_response({"error": "Interaction not found"}, status_code=404)

        return _json_response({"success": True})

    except StoreError as e:
        logger.error(f"Error deleting interaction: {str(e)}", exc_info=True)
        return _json_response({"error": "Database error", "details": str(e)}, status_code=503)

    except Exception as e:
        logger.error(f"Error deleting interaction: {str(e)}", exc_info=True)
        return _json_response({"error": "Internal server error"}, status_code=500)
