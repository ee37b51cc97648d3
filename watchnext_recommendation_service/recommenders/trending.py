"""Trending feed as a recommendation signal and as the global fallback."""
from typing import AbstractSet, List, Optional
import logging

from watchnext_recommendation_service.config import (
    MAX_FALLBACK_RESULTS,
    MAX_TRENDING_SIGNAL_RESULTS,
)
from watchnext_recommendation_service.recommenders.base import CandidateGenerator, guarded
from watchnext_recommendation_service.recommenders.types import (
    Candidate,
    CandidateSource,
    GeneratorResult,
)

logger = logging.getLogger(__name__)

TRENDING_REASON = "Trending now"
FALLBACK_REASON = "Popular and highly rated"


class TrendingRecommender(CandidateGenerator):
    """Score trending items by their rating."""

    source = CandidateSource.TRENDING

    def __init__(
            self,
            provider,
            signal_limit: int = MAX_TRENDING_SIGNAL_RESULTS,
            fallback_limit: int = MAX_FALLBACK_RESULTS
    ):
        self.provider = provider
        self.signal_limit = signal_limit
        self.fallback_limit = fallback_limit

    def generate(
            self,
            liked_ids: Optional[AbstractSet[int]] = None,
            disliked_ids: Optional[AbstractSet[int]] = None,
            as_fallback: bool = False
    ) -> List[Candidate]:
        items = self.provider.get_trending(limit=self.fallback_limit)

        if liked_ids is not None or disliked_ids is not None:
            seen = set(liked_ids or ()) | set(disliked_ids or ())
            items = [item for item in items if item.id not in seen]

        if as_fallback:
            limit, reason, source = self.fallback_limit, FALLBACK_REASON, CandidateSource.FALLBACK
        else:
            limit, reason, source = self.signal_limit, TRENDING_REASON, self.source

        return [
            Candidate.from_summary(item, source=source, similarity_score=item.rating / 10, reason=reason)
            for item in items[:limit]
        ]

    def fallback(
            self,
            liked_ids: Optional[AbstractSet[int]] = None,
            disliked_ids: Optional[AbstractSet[int]] = None
    ) -> GeneratorResult:
        """Run in the fallback role: up to fallback_limit popular items."""
        return guarded(
            CandidateSource.FALLBACK,
            self.generate,
            liked_ids,
            disliked_ids,
            as_fallback=True
        )
