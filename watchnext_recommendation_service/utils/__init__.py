"""Shared helpers"""

from watchnext_recommendation_service.utils.concurrency import bounded_map, is_cancelled

__all__ = ["bounded_map", "is_cancelled"]
