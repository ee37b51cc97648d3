"""Merge, deduplicate and rank candidates from every generator."""
from typing import AbstractSet, Callable, Dict, List, Mapping, Optional, Sequence
import logging

from watchnext_recommendation_service.config import (
    COLLABORATIVE_WEIGHT,
    CONTENT_BASED_WEIGHT,
    MAX_RECOMMENDATIONS,
    TRENDING_WEIGHT,
)
from watchnext_recommendation_service.recommenders.types import (
    Candidate,
    CandidateSource,
    GeneratorResult,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_WEIGHTS: Dict[CandidateSource, float] = {
    CandidateSource.COLLABORATIVE: COLLABORATIVE_WEIGHT,
    CandidateSource.CONTENT_BASED: CONTENT_BASED_WEIGHT,
    CandidateSource.TRENDING: TRENDING_WEIGHT,
}

SOURCE_PRECEDENCE = list(CandidateSource)


class Aggregator:
    """
    Combine generator outputs into the final ranked list.

    Candidates for the same item are merged by summing both their source
    weights and their similarity scores, so an item confirmed by several
    generators outranks one found by a single generator. Ranking is by
    summed score; equal scores keep first-seen order, with sources visited
    collaborative, then content-based, then trending.
    """

    def __init__(
            self,
            weights: Optional[Mapping[CandidateSource, float]] = None,
            max_results: int = MAX_RECOMMENDATIONS
    ):
        self.weights = dict(DEFAULT_SOURCE_WEIGHTS if weights is None else weights)
        self.max_results = max_results

    def merge(
            self,
            results: Sequence[GeneratorResult],
            excluded: AbstractSet[int] = frozenset()
    ) -> List[Candidate]:
        """Merge, rank and truncate; failed results contribute nothing."""
        ordered = sorted(results, key=lambda r: SOURCE_PRECEDENCE.index(r.source))

        merged: Dict[int, Candidate] = {}
        for result in ordered:
            weight = self.weights.get(result.source, 0.0)
            for candidate in result.candidates:
                if candidate.item_id in excluded:
                    continue
                existing = merged.get(candidate.item_id)
                if existing is None:
                    merged[candidate.item_id] = candidate.with_weight(weight)
                else:
                    existing.source_weight += weight
                    existing.similarity_score += candidate.similarity_score

        # sorted() is stable, so ties keep insertion order
        ranked = sorted(merged.values(), key=lambda c: -c.similarity_score)
        return ranked[:self.max_results]

    def fallback_chain(
            self,
            fallback: Optional[Callable[[], GeneratorResult]] = None,
            excluded: AbstractSet[int] = frozenset()
    ) -> List[Candidate]:
        """
        Popular items when available, otherwise a single onboarding placeholder.

        Args:
            fallback: Produces the trending fallback result
            excluded: Item ids that must not be returned
        """
        if fallback is not None:
            result = fallback()
            if result.ok:
                candidates = [c for c in result.candidates if c.item_id not in excluded]
                if candidates:
                    return candidates[:self.max_results]
                logger.info("Fallback produced no candidates")
            else:
                logger.warning(f"Fallback failed, returning placeholder: {result.error}")

        return [Candidate.placeholder()]

    def aggregate(
            self,
            results: Sequence[GeneratorResult],
            excluded: AbstractSet[int] = frozenset(),
            fallback: Optional[Callable[[], GeneratorResult]] = None
    ) -> List[Candidate]:
        ranked = self.merge(results, excluded)
        if ranked:
            return ranked

        logger.info("No candidates after merge, using fallback chain")
        return self.fallback_chain(fallback, excluded)
