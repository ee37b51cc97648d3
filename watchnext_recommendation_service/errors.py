"""Error types raised by the recommendation pipeline."""


class RecommendationError(Exception):
    """Base class for all errors raised by this service."""

    code: str = "recommendation_error"
    status: int = 500

    def __init__(self, message: str = "", *, code: str | None = None, status: int | None = None):
        super().__init__(message or self.__class__.__name__)
        if code:
            self.code = code
        if status:
            self.status = status


class NotFoundError(RecommendationError):
    code = "not_found"
    status = 404


class ItemNotFoundError(NotFoundError):
    """The metadata provider has no record for an item."""

    code = "item_not_found"

    def __init__(self, item_id: int, message: str = ""):
        super().__init__(message or f"Item {item_id} not found")
        self.item_id = item_id


class ExternalServiceError(RecommendationError):
    """The metadata provider is unreachable, rate limited or returned garbage."""

    code = "external_service_error"
    status = 502


class RecommendationPipelineError(RecommendationError):
    """The pipeline as a whole could not produce a result."""

    code = "pipeline_error"
    status = 503


class StoreError(RecommendationPipelineError):
    """The interaction store is unavailable."""

    code = "store_unavailable"


class UserNotFoundError(RecommendationPipelineError, NotFoundError):
    """The target user cannot be resolved."""

    code = "user_not_found"
    status = 404

    def __init__(self, user_id: str, message: str = ""):
        super().__init__(message or f"User {user_id} not found")
        self.user_id = user_id


class RecommendationCancelledError(RecommendationPipelineError):
    """The caller abandoned the request before it completed."""

    code = "cancelled"
    status = 499
