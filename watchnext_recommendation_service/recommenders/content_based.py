"""Content-based filtering on the genres of liked items."""
from collections import Counter
from typing import AbstractSet, List, Optional, Sequence
import logging

from watchnext_recommendation_service.config import MAX_RESULTS_PER_GENRE, MAX_TOP_GENRES
from watchnext_recommendation_service.errors import ExternalServiceError, NotFoundError
from watchnext_recommendation_service.recommenders.base import CandidateGenerator, exclude_seen
from watchnext_recommendation_service.recommenders.types import (
    Candidate,
    CandidateSource,
    ItemSummary,
)

logger = logging.getLogger(__name__)


class ContentBasedRecommender(CandidateGenerator):
    """
    Recommend popular items from the genres the user likes most.

    The genre profile is a tally of genre ids across the liked items. For
    each of the top genres the provider's popular-by-genre list is filtered
    against what the user has already rated.
    """

    source = CandidateSource.CONTENT_BASED

    def __init__(
            self,
            provider,
            genre_cache,
            max_genres: int = MAX_TOP_GENRES,
            per_genre: int = MAX_RESULTS_PER_GENRE,
            genre_query_limit: int = 10
    ):
        self.provider = provider
        self.genre_cache = genre_cache
        self.max_genres = max_genres
        self.per_genre = per_genre
        self.genre_query_limit = genre_query_limit

    def top_genres(self, liked_summaries: Sequence[ItemSummary]) -> List[tuple[int, int]]:
        """Return (genre_id, count) for the most frequent genres, lower id first on ties."""
        counts = Counter(g for summary in liked_summaries for g in summary.genre_ids)
        return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:self.max_genres]

    def generate(
            self,
            liked_summaries: Sequence[ItemSummary],
            liked_ids: AbstractSet[int],
            disliked_ids: AbstractSet[int]
    ) -> List[Candidate]:
        if not liked_summaries:
            return []

        top_genres = self.top_genres(liked_summaries)
        if not top_genres:
            logger.info("No genres found in liked items, skipping content-based recommendations")
            return []

        self.genre_cache.ensure_populated()

        seen = set(liked_ids) | set(disliked_ids) | {s.id for s in liked_summaries}
        candidates: List[Candidate] = []
        last_error: Optional[Exception] = None
        failed = 0

        for genre_id, count in top_genres:
            try:
                popular = self.provider.get_popular_by_genre(genre_id, limit=self.genre_query_limit)
            except (ExternalServiceError, NotFoundError) as e:
                logger.warning(f"Popular-by-genre query for genre {genre_id} failed: {e}")
                last_error = e
                failed += 1
                continue

            picks = [item for item in popular if item.id not in seen][:self.per_genre]
            genre_name = self.genre_cache.name_for(genre_id)
            score = count / len(liked_summaries)

            candidates.extend(
                Candidate.from_summary(
                    item,
                    source=self.source,
                    similarity_score=score,
                    reason=f"Similar to your liked {genre_name} content"
                )
                for item in picks
            )

        if failed == len(top_genres) and last_error is not None:
            raise last_error

        return exclude_seen(candidates, seen)
