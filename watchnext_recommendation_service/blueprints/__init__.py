"""Azure Functions blueprints"""

from watchnext_recommendation_service.blueprints.interactions_bp import bp as interactions_bp
from watchnext_recommendation_service.blueprints.items_bp import bp as items_bp
from watchnext_recommendation_service.blueprints.recommendations_bp import bp as recommendations_bp

__all__ = [
    "interactions_bp",
    "items_bp",
    "recommendations_bp",
]
