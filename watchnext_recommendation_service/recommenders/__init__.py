"""Candidate generators, similarity and aggregation"""

from watchnext_recommendation_service.recommenders.aggregator import Aggregator
from watchnext_recommendation_service.recommenders.collaborative import CollaborativeRecommender
from watchnext_recommendation_service.recommenders.content_based import ContentBasedRecommender
from watchnext_recommendation_service.recommenders.similarity import SimilarityEngine
from watchnext_recommendation_service.recommenders.trending import TrendingRecommender

__all__ = [
    "Aggregator",
    "CollaborativeRecommender",
    "ContentBasedRecommender",
    "SimilarityEngine",
    "TrendingRecommender",
]
