"""Service orchestrating personalized recommendations for a user."""
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Sequence
import logging
import threading
import time

from watchnext_recommendation_service.config import (
    get_generator_timeout,
    get_max_concurrent_lookups,
    get_metadata_timeout,
    get_tmdb_image_base_url,
)
from watchnext_recommendation_service.errors import (
    ExternalServiceError,
    RecommendationCancelledError,
    UserNotFoundError,
)
from watchnext_recommendation_service.recommenders import (
    Aggregator,
    CollaborativeRecommender,
    ContentBasedRecommender,
    SimilarityEngine,
    TrendingRecommender,
)
from watchnext_recommendation_service.recommenders.similarity import split_preferences
from watchnext_recommendation_service.recommenders.types import (
    CandidateSource,
    GeneratorResult,
    Interaction,
    ItemSummary,
    PipelineState,
    RecommendationResult,
)
from watchnext_recommendation_service.services.genre_cache import GenreCache
from watchnext_recommendation_service.utils import bounded_map, is_cancelled

logger = logging.getLogger(__name__)

# How often a wait on the generators checks for cancellation
CANCEL_POLL_SECONDS = 0.1


class RecommendationService:
    """
    Per-request recommendation pipeline.

    A user without history gets the popular fallback. Otherwise the
    collaborative, content-based and trending generators run in parallel and
    their results are aggregated; when all three fail the aggregator's
    fallback chain is used directly. Generator failures never reach the
    caller; an unknown user or an unavailable interaction store does.
    """

    def __init__(
            self,
            interaction_store,
            metadata_provider,
            genre_cache: Optional[GenreCache] = None,
            user_store=None,
            similarity_engine: Optional[SimilarityEngine] = None,
            aggregator: Optional[Aggregator] = None,
            max_concurrent_lookups: Optional[int] = None,
            lookup_timeout: Optional[float] = None,
            generator_timeout: Optional[float] = None,
            image_base_url: Optional[str] = None
    ):
        """
        Initialize the recommendation service.

        Args:
            interaction_store: Provides list_for_user() and list_all()
            metadata_provider: Provides get_by_id(), get_trending(), get_popular_by_genre()
            genre_cache: Shared genre name cache (a private one is created if omitted)
            user_store: Optional; provides user_exists() to reject unknown users
            similarity_engine: User similarity engine
            aggregator: Candidate aggregator
            max_concurrent_lookups: Cap on parallel item lookups per batch
            lookup_timeout: Deadline for one batch of item lookups in seconds
            generator_timeout: Deadline for the parallel generator stage in seconds
            image_base_url: Prefix for poster paths in serialized output
        """
        self.interaction_store = interaction_store
        self.metadata_provider = metadata_provider
        self.user_store = user_store
        self.genre_cache = genre_cache if genre_cache is not None else GenreCache(metadata_provider)

        self.max_concurrent_lookups = max_concurrent_lookups or get_max_concurrent_lookups()
        self.lookup_timeout = lookup_timeout if lookup_timeout is not None else get_metadata_timeout() * 2
        self.generator_timeout = generator_timeout if generator_timeout is not None else get_generator_timeout()
        self.image_base_url = image_base_url or get_tmdb_image_base_url()

        self.similarity_engine = similarity_engine or SimilarityEngine()
        self.aggregator = aggregator or Aggregator()
        self.collaborative = CollaborativeRecommender(
            metadata_provider,
            max_workers=self.max_concurrent_lookups,
            lookup_timeout=self.lookup_timeout
        )
        self.content_based = ContentBasedRecommender(metadata_provider, self.genre_cache)
        self.trending = TrendingRecommender(metadata_provider)

    # ===== PIPELINE =====

    def recommend(
            self,
            user_id: str,
            cancel_event: Optional[threading.Event] = None
    ) -> RecommendationResult:
        """
        Build recommendations for a user.

        Args:
            user_id: Target user
            cancel_event: Set by the caller to abandon the request

        Returns:
            RecommendationResult with at most 20 candidates

        Raises:
            UserNotFoundError: If the user store does not know the user
            StoreError: If interactions cannot be read
            RecommendationCancelledError: If cancel_event was set
        """
        if self.user_store is not None and not self.user_store.user_exists(user_id):
            raise UserNotFoundError(user_id)

        interactions = self.interaction_store.list_for_user(user_id)

        if not interactions:
            logger.info(f"User {user_id} has no interactions, returning popular content")
            candidates = self.aggregator.fallback_chain(self.trending.fallback)
            self._check_cancelled(cancel_event, user_id)
            return self._finish(user_id, candidates, [PipelineState.NO_HISTORY])

        path = [PipelineState.PERSONALIZING]
        liked_ids, disliked_ids = split_preferences(interactions)
        excluded = frozenset(liked_ids | disliked_ids)
        logger.info(f"User {user_id}: {len(liked_ids)} liked, {len(disliked_ids)} disliked")

        corpus = self.interaction_store.list_all()
        similar_users = self.similarity_engine.find_similar_users(interactions, corpus)
        self._check_cancelled(cancel_event, user_id)

        tasks: Dict[CandidateSource, Callable[[], GeneratorResult]] = {
            CandidateSource.COLLABORATIVE: lambda: self.collaborative.run(
                similar_users, corpus, liked_ids, disliked_ids, cancel_event=cancel_event
            ),
            CandidateSource.CONTENT_BASED: lambda: self.content_based.run(
                self.resolve_liked_items(interactions, cancel_event), liked_ids, disliked_ids
            ),
            CandidateSource.TRENDING: lambda: self.trending.run(liked_ids, disliked_ids),
        }
        results = self._run_generators(user_id, tasks, cancel_event)
        self._check_cancelled(cancel_event, user_id)

        def fallback() -> GeneratorResult:
            return self.trending.fallback(liked_ids, disliked_ids)

        if all(not r.ok for r in results):
            logger.warning(f"All generators failed for {user_id}, using fallback chain")
            path.append(PipelineState.DEGRADED)
            candidates = self.aggregator.fallback_chain(fallback, excluded)
        else:
            for result in results:
                logger.info(f"  {result.source.value}: {len(result.candidates)} candidates")
            candidates = self.aggregator.aggregate(results, excluded, fallback)

        self._check_cancelled(cancel_event, user_id)
        return self._finish(user_id, candidates, path)

    def resolve_liked_items(
            self,
            interactions: Sequence[Interaction],
            cancel_event: Optional[threading.Event] = None
    ) -> List[ItemSummary]:
        """Fetch metadata for every liked item; failed lookups are left out."""
        liked = [i for i in interactions if i.liked]
        summaries = bounded_map(
            lambda i: self.metadata_provider.get_by_id(i.item_id, i.media_type),
            liked,
            max_workers=self.max_concurrent_lookups,
            timeout=self.lookup_timeout,
            cancel_event=cancel_event,
            label="liked-item-lookup"
        )
        resolved = [s for s in summaries if s is not None]
        logger.info(f"Resolved {len(resolved)}/{len(liked)} liked items")
        return resolved

    def _run_generators(
            self,
            user_id: str,
            tasks: Dict[CandidateSource, Callable[[], GeneratorResult]],
            cancel_event: Optional[threading.Event] = None
    ) -> List[GeneratorResult]:
        """
        Run generator tasks in parallel; a task that overruns the deadline counts as failed.

        Raises:
            RecommendationCancelledError: As soon as cancel_event is set while waiting
        """
        executor = ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="generator")
        try:
            futures = {source: executor.submit(task) for source, task in tasks.items()}
            deadline = time.monotonic() + self.generator_timeout

            pending = set(futures.values())
            while pending:
                self._check_cancelled(cancel_event, user_id)
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                _, pending = wait(pending, timeout=min(remaining, CANCEL_POLL_SECONDS))

            results = []
            for source, future in futures.items():
                if not future.done():
                    future.cancel()
                    logger.error(f"{source.value} generator timed out after {self.generator_timeout}s")
                    results.append(GeneratorResult.failure(
                        source, ExternalServiceError(f"{source.value} generator timed out")
                    ))
                    continue
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(f"{source.value} generator crashed: {e}", exc_info=True)
                    results.append(GeneratorResult.failure(source, e))
            return results
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], user_id: str) -> None:
        if is_cancelled(cancel_event):
            logger.info(f"Recommendation request for {user_id} cancelled")
            raise RecommendationCancelledError(f"Recommendation request for {user_id} was cancelled")

    @staticmethod
    def _finish(user_id: str, candidates, path: List[PipelineState]) -> RecommendationResult:
        path = path + [PipelineState.DONE]
        logger.info(
            f"✓ {len(candidates)} recommendations for {user_id} "
            f"({' -> '.join(state.value for state in path)})"
        )
        return RecommendationResult(
            user_id=user_id,
            candidates=list(candidates),
            state=PipelineState.DONE,
            path=tuple(path),
        )

    # ===== OUTPUT =====

    def serialize(self, result: RecommendationResult) -> List[dict]:
        """Render a result in the public JSON shape with genre names resolved."""
        self.genre_cache.ensure_populated()
        return result.to_dicts(self.genre_cache, self.image_base_url)
