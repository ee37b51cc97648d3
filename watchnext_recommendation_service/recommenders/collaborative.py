"""Collaborative filtering: items liked by users with similar taste."""
from collections import Counter
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence
import logging
import threading

from watchnext_recommendation_service.config import (
    MAX_COLLABORATIVE_RESULTS,
    get_max_concurrent_lookups,
    get_metadata_timeout,
)
from watchnext_recommendation_service.recommenders.base import CandidateGenerator, exclude_seen
from watchnext_recommendation_service.recommenders.types import (
    Candidate,
    CandidateSource,
    Interaction,
    MediaType,
    SimilarityScore,
)
from watchnext_recommendation_service.utils import bounded_map

logger = logging.getLogger(__name__)


class CollaborativeRecommender(CandidateGenerator):
    """Recommend unseen items that similar users liked, most-liked first."""

    source = CandidateSource.COLLABORATIVE

    def __init__(
            self,
            provider,
            max_results: int = MAX_COLLABORATIVE_RESULTS,
            max_workers: Optional[int] = None,
            lookup_timeout: Optional[float] = None
    ):
        self.provider = provider
        self.max_results = max_results
        self.max_workers = max_workers or get_max_concurrent_lookups()
        # Deadline for the whole lookup batch
        self.lookup_timeout = lookup_timeout if lookup_timeout is not None else get_metadata_timeout() * 2

    def count_liked_items(
            self,
            similar_users: Sequence[SimilarityScore],
            corpus: Iterable[Interaction],
            seen: AbstractSet[int]
    ) -> tuple[Counter, Dict[int, MediaType]]:
        """Count likes per unseen item among similar users, remembering any media type hint."""
        similar_ids = {s.user_id for s in similar_users}
        counts: Counter = Counter()
        hints: Dict[int, MediaType] = {}

        for interaction in corpus:
            if interaction.user_id not in similar_ids or not interaction.liked:
                continue
            if interaction.item_id in seen:
                continue
            counts[interaction.item_id] += 1
            if interaction.media_type is not None:
                hints.setdefault(interaction.item_id, interaction.media_type)

        return counts, hints

    def generate(
            self,
            similar_users: Sequence[SimilarityScore],
            corpus: Iterable[Interaction],
            liked_ids: AbstractSet[int],
            disliked_ids: AbstractSet[int],
            cancel_event: Optional[threading.Event] = None
    ) -> List[Candidate]:
        if not similar_users:
            return []

        seen = set(liked_ids) | set(disliked_ids)
        counts, hints = self.count_liked_items(similar_users, corpus, seen)

        top_items = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:self.max_results]
        if not top_items:
            return []

        summaries = bounded_map(
            lambda pair: self.provider.get_by_id(pair[0], hints.get(pair[0])),
            top_items,
            max_workers=self.max_workers,
            timeout=self.lookup_timeout,
            cancel_event=cancel_event,
            label="collaborative-lookup"
        )

        denominator = max(1, len(similar_users))
        candidates = []
        for (item_id, count), summary in zip(top_items, summaries):
            if summary is None:
                continue
            candidates.append(Candidate.from_summary(
                summary,
                source=self.source,
                similarity_score=count / denominator,
                reason=f"Liked by {count} users with similar taste"
            ))

        dropped = len(top_items) - len(candidates)
        if dropped:
            logger.info(f"Dropped {dropped} collaborative candidates without metadata")

        return exclude_seen(candidates, seen)
