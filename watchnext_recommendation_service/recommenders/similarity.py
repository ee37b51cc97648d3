"""User-user behavioral similarity."""
from collections import defaultdict
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from watchnext_recommendation_service.config import (
    DISLIKE_SIMILARITY_WEIGHT,
    LIKE_SIMILARITY_WEIGHT,
    MAX_SIMILAR_USERS,
    get_min_user_similarity,
)
from watchnext_recommendation_service.recommenders.types import Interaction, SimilarityScore

logger = logging.getLogger(__name__)


def jaccard(a: AbstractSet, b: AbstractSet) -> float:
    """Intersection over union; 0 when both sets are empty."""
    union = len(a | b)
    if union == 0:
        return 0.0
    return len(a & b) / union


def split_preferences(interactions: Iterable[Interaction]) -> Tuple[set, set]:
    """Split interactions into (liked item ids, disliked item ids)."""
    liked, disliked = set(), set()
    for interaction in interactions:
        (liked if interaction.liked else disliked).add(interaction.item_id)
    return liked, disliked


class SimilarityEngine:
    """Rank other users by how closely their likes and dislikes match the target's."""

    def __init__(
            self,
            like_weight: float = LIKE_SIMILARITY_WEIGHT,
            dislike_weight: float = DISLIKE_SIMILARITY_WEIGHT,
            min_similarity: Optional[float] = None,
            max_users: int = MAX_SIMILAR_USERS
    ):
        self.like_weight = like_weight
        self.dislike_weight = dislike_weight
        self.min_similarity = get_min_user_similarity() if min_similarity is None else min_similarity
        self.max_users = max_users

    def score(self, liked_a: AbstractSet, disliked_a: AbstractSet,
              liked_b: AbstractSet, disliked_b: AbstractSet) -> float:
        score = (self.like_weight * jaccard(liked_a, liked_b)
                 + self.dislike_weight * jaccard(disliked_a, disliked_b))
        return max(0.0, score)

    def find_similar_users(
            self,
            target_interactions: Sequence[Interaction],
            corpus: Iterable[Interaction]
    ) -> List[SimilarityScore]:
        """
        Find the users whose behavior is closest to the target user's.

        Args:
            target_interactions: The target's interactions (must not be empty)
            corpus: Interactions of all users; the target's own rows are skipped

        Returns:
            Up to max_users scores at or above min_similarity, highest first,
            ties broken by ascending user id
        """
        if not target_interactions:
            raise ValueError("target_interactions must not be empty")

        target_user_id = target_interactions[0].user_id
        target_liked, target_disliked = split_preferences(target_interactions)

        by_user: Dict[str, List[Interaction]] = defaultdict(list)
        for interaction in corpus:
            if interaction.user_id != target_user_id:
                by_user[interaction.user_id].append(interaction)

        scores = []
        for user_id, interactions in by_user.items():
            liked, disliked = split_preferences(interactions)
            score = self.score(target_liked, target_disliked, liked, disliked)
            if score >= self.min_similarity:
                scores.append(SimilarityScore(user_id=user_id, score=score))

        scores.sort(key=lambda s: (-s.score, s.user_id))
        similar = scores[:self.max_users]

        logger.info(
            f"Found {len(similar)} similar users for {target_user_id} "
            f"(compared {len(by_user)}, threshold {self.min_similarity})"
        )
        return similar
