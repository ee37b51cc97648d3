"""Common behavior for candidate generators."""
from typing import AbstractSet, Callable, Iterable, List
import logging

from watchnext_recommendation_service.recommenders.types import (
    Candidate,
    CandidateSource,
    GeneratorResult,
)

logger = logging.getLogger(__name__)


def exclude_seen(candidates: Iterable[Candidate], seen: AbstractSet[int]) -> List[Candidate]:
    """Drop candidates for items the user already liked or disliked."""
    return [c for c in candidates if c.item_id not in seen]


def guarded(source: CandidateSource, func: Callable[..., List[Candidate]], *args, **kwargs) -> GeneratorResult:
    """
    Run a generator body and capture its outcome as a GeneratorResult.

    Any exception becomes a failed result instead of propagating, so one
    broken generator cannot take down the pipeline.
    """
    try:
        candidates = func(*args, **kwargs)
    except Exception as e:
        logger.error(f"{source.value} generator failed: {e}", exc_info=True)
        return GeneratorResult.failure(source, e)

    logger.info(f"✓ {source.value} generator produced {len(candidates)} candidates")
    return GeneratorResult.success(source, candidates)


class CandidateGenerator:
    """Base class: subclasses implement generate(), callers use run()."""

    source: CandidateSource

    def generate(self, *args, **kwargs) -> List[Candidate]:
        raise NotImplementedError

    def run(self, *args, **kwargs) -> GeneratorResult:
        return guarded(self.source, self.generate, *args, **kwargs)
