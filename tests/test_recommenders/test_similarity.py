"""Unit tests for user similarity."""
import pytest

from watchnext_recommendation_service.recommenders.similarity import (
    SimilarityEngine,
    jaccard,
    split_preferences,
)


class TestJaccard:
    """Tests for jaccard function."""

    def test_partial_overlap(self):
        assert jaccard({1, 2}, {2, 3}) == pytest.approx(1 / 3)

    def test_identical_sets(self):
        assert jaccard({1, 2}, {1, 2}) == 1.0

    def test_both_empty(self):
        assert jaccard(set(), set()) == 0.0

    def test_one_empty(self):
        assert jaccard({1}, set()) == 0.0


class TestSplitPreferences:
    """Tests for split_preferences function."""

    def test_splits_liked_and_disliked(self, sample_interactions):
        alice = [i for i in sample_interactions if i.user_id == 'alice']
        liked, disliked = split_preferences(alice)
        assert liked == {1, 3}
        assert disliked == {4}


class TestSimilarityEngine:
    """Tests for SimilarityEngine."""

    def test_score_formula(self, interactions_for):
        """Test the like/dislike blend for two users with one shared like."""
        # Arrange
        engine = SimilarityEngine(min_similarity=0.1)
        target = interactions_for('A', liked=[101, 102], disliked=[201])
        corpus = target + interactions_for('B', liked=[101, 301])

        # Act
        result = engine.find_similar_users(target, corpus)

        # Assert
        assert len(result) == 1
        assert result[0].user_id == 'B'
        assert result[0].score == pytest.approx(0.7 / 3)

    def test_ranks_sample_users(self, sample_interactions):
        """Test ranking and threshold on the sample corpus."""
        # Arrange
        engine = SimilarityEngine(min_similarity=0.1)
        alice = [i for i in sample_interactions if i.user_id == 'alice']

        # Act
        result = engine.find_similar_users(alice, sample_interactions)

        # Assert
        assert [s.user_id for s in result] == ['bob', 'carol']
        assert result[0].score == pytest.approx(0.65)
        assert result[1].score == pytest.approx(0.175)

    def test_excludes_target_user(self, sample_interactions):
        """Test that the target never appears in its own results."""
        engine = SimilarityEngine(min_similarity=0.0)
        alice = [i for i in sample_interactions if i.user_id == 'alice']
        result = engine.find_similar_users(alice, sample_interactions)
        assert 'alice' not in {s.user_id for s in result}

    def test_threshold_is_inclusive(self, interactions_for):
        """Test that a score equal to the threshold is kept."""
        # Arrange
        engine = SimilarityEngine(min_similarity=0.7)
        target = interactions_for('A', liked=[1, 2])
        corpus = target + interactions_for('B', liked=[1, 2])

        # Act
        result = engine.find_similar_users(target, corpus)

        # Assert
        assert [s.user_id for s in result] == ['B']

    def test_ties_broken_by_user_id(self, interactions_for):
        """Test deterministic ordering of equal scores."""
        # Arrange
        engine = SimilarityEngine(min_similarity=0.1)
        target = interactions_for('A', liked=[1])
        corpus = (
            target
            + interactions_for('zed', liked=[1])
            + interactions_for('amy', liked=[1])
            + interactions_for('max', liked=[1])
        )

        # Act
        result = engine.find_similar_users(target, corpus)

        # Assert
        assert [s.user_id for s in result] == ['amy', 'max', 'zed']

    def test_truncates_to_max_users(self, interactions_for):
        """Test the top-N cap."""
        # Arrange
        engine = SimilarityEngine(min_similarity=0.1, max_users=10)
        target = interactions_for('A', liked=[1])
        corpus = list(target)
        for n in range(15):
            corpus += interactions_for(f'user{n:02d}', liked=[1])

        # Act
        result = engine.find_similar_users(target, corpus)

        # Assert
        assert len(result) == 10

    def test_empty_corpus(self, interactions_for):
        """Test that no other users means no similar users."""
        engine = SimilarityEngine()
        target = interactions_for('A', liked=[1])
        assert engine.find_similar_users(target, []) == []

    def test_empty_target_raises(self):
        """Test that an empty target history is rejected."""
        with pytest.raises(ValueError):
            SimilarityEngine().find_similar_users([], [])

    def test_threshold_from_config(self, monkeypatch):
        """Test the configured default threshold."""
        monkeypatch.setenv('MIN_USER_SIMILARITY', '0.3')
        assert SimilarityEngine().min_similarity == 0.3
