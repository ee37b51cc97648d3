"""Shared test fixtures and configuration for pytest."""
import os

# Must be set before any module builds the engine
os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

import json
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from watchnext_recommendation_service.errors import (
    ExternalServiceError,
    ItemNotFoundError,
    StoreError,
)
from watchnext_recommendation_service.models import Base, User, UserInteraction
from watchnext_recommendation_service.recommenders.types import (
    Interaction,
    ItemSummary,
    MediaType,
)


# ===== Catalog =====

def _movie(item_id, title, genres, rating, year="2010", poster=None) -> ItemSummary:
    return ItemSummary(
        id=item_id,
        title=title,
        overview=f"{title} overview",
        media_type=MediaType.MOVIE,
        rating=rating,
        genre_ids=frozenset(genres),
        poster_path=poster or f"/poster{item_id}.jpg",
        release_year=year,
    )


def _show(item_id, title, genres, rating, year="2015") -> ItemSummary:
    return ItemSummary(
        id=item_id,
        title=title,
        overview=f"{title} overview",
        media_type=MediaType.TV,
        rating=rating,
        genre_ids=frozenset(genres),
        poster_path=f"/poster{item_id}.jpg",
        release_year=year,
    )


CATALOG: Dict[int, ItemSummary] = {
    1: _movie(1, "Inception", {28, 878}, 8.4),
    2: _movie(2, "The Matrix", {28, 878}, 8.2, year="1999"),
    3: _movie(3, "Interstellar", {18, 878}, 8.6, year="2014"),
    4: _movie(4, "The Notebook", {10749, 18}, 7.9, year="2004"),
    5: _movie(5, "Superbad", {35}, 7.6, year="2007"),
    6: _movie(6, "Mad Max: Fury Road", {28, 12}, 8.1, year="2015"),
    7: _movie(7, "Arrival", {18, 878}, 7.9, year="2016"),
    8: _movie(8, "Blade Runner 2049", {878, 18}, 8.0, year="2017"),
    101: _show(101, "Breaking Bad", {18, 80}, 8.9, year="2008"),
    102: _show(102, "Stranger Things", {18, 10765}, 8.6, year="2016"),
}

TRENDING_IDS: List[int] = [6, 101, 5, 3, 102]

POPULAR_BY_GENRE: Dict[int, List[int]] = {
    878: [1, 2, 3, 7, 8],
    28: [1, 2, 6],
    18: [3, 4, 7, 8, 101],
}

GENRES: Dict[MediaType, Dict[int, str]] = {
    MediaType.MOVIE: {
        28: "Action", 12: "Adventure", 35: "Comedy", 18: "Drama",
        10749: "Romance", 878: "Science Fiction",
    },
    MediaType.TV: {18: "Drama", 80: "Crime", 10765: "Sci-Fi & Fantasy"},
}


class StubMetadataProvider:
    """Deterministic in-memory metadata provider that records its calls."""

    def __init__(self, catalog=None, trending=None, popular=None, genres=None, fail=()):
        self.catalog = dict(CATALOG if catalog is None else catalog)
        self.trending_ids = list(TRENDING_IDS if trending is None else trending)
        self.popular = dict(POPULAR_BY_GENRE if popular is None else popular)
        self.genres = dict(GENRES if genres is None else genres)
        # Method names that raise ExternalServiceError
        self.fail = set(fail)
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def _record(self, name, *args):
        with self._lock:
            self.calls.append((name,) + args)
        if name in self.fail:
            raise ExternalServiceError(f"{name} unavailable")

    def call_count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def get_by_id(self, item_id, media_type_hint=None):
        self._record('get_by_id', item_id)
        if item_id not in self.catalog:
            raise ItemNotFoundError(item_id)
        return self.catalog[item_id]

    def get_trending(self, limit=20):
        self._record('get_trending', limit)
        return [self.catalog[i] for i in self.trending_ids if i in self.catalog][:limit]

    def get_popular_by_genre(self, genre_id, limit=10):
        self._record('get_popular_by_genre', genre_id)
        ids = self.popular.get(genre_id, [])
        return [self.catalog[i] for i in ids if i in self.catalog][:limit]

    def get_genres(self, media_type):
        self._record('get_genres', media_type)
        return dict(self.genres.get(media_type, {}))


class InMemoryInteractionStore:
    """Interaction store backed by a list."""

    def __init__(self, interactions=(), fail: bool = False):
        self.interactions = list(interactions)
        self.fail = fail

    def list_for_user(self, user_id):
        if self.fail:
            raise StoreError("store down")
        return [i for i in self.interactions if i.user_id == user_id]

    def list_all(self):
        if self.fail:
            raise StoreError("store down")
        return list(self.interactions)


def make_interactions(user_id: str, liked=(), disliked=()) -> List[Interaction]:
    return (
        [Interaction(user_id=user_id, item_id=i, liked=True) for i in liked]
        + [Interaction(user_id=user_id, item_id=i, liked=False) for i in disliked]
    )


# ===== Database Fixtures =====

@pytest.fixture(scope="function")
def test_db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db_session(test_db_engine):
    """Create a database session for testing."""
    SessionLocal = sessionmaker(bind=test_db_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def session_scope_for(test_db_session):
    """Stand-in for models.database.session_scope bound to the test session."""
    @contextmanager
    def _scope():
        yield test_db_session
    return _scope


@pytest.fixture
def mock_database_session():
    """Mock database session."""
    mock_session = Mock(spec=Session)
    mock_session.query.return_value = mock_session
    mock_session.filter.return_value = mock_session
    mock_session.order_by.return_value = mock_session
    mock_session.first.return_value = None
    mock_session.all.return_value = []
    mock_session.count.return_value = 0
    return mock_session


# ===== Sample Data Fixtures =====

@pytest.fixture
def sample_interactions() -> List[Interaction]:
    """
    Interaction corpus.

    bob shares two likes and a dislike with alice, carol shares one like,
    dave has nothing in common with her.
    """
    return (
        make_interactions('alice', liked=[1, 3], disliked=[4])
        + make_interactions('bob', liked=[1, 3, 2, 7], disliked=[4])
        + make_interactions('carol', liked=[1, 8, 2], disliked=[5])
        + make_interactions('dave', liked=[5], disliked=[1])
    )


@pytest.fixture
def sample_users(test_db_session) -> List[User]:
    """Create sample users in the test database."""
    users = [User(id=user_id) for user_id in ('alice', 'bob', 'carol', 'dave', 'eve')]
    for user in users:
        test_db_session.add(user)
    test_db_session.commit()
    return users


@pytest.fixture
def sample_interaction_records(test_db_session, sample_users, sample_interactions) -> List[UserInteraction]:
    """Store the sample interactions in the test database."""
    records = [
        UserInteraction(user_id=i.user_id, item_id=i.item_id, liked=i.liked, media_type='movie')
        for i in sample_interactions
    ]
    for record in records:
        test_db_session.add(record)
    test_db_session.commit()
    return records


# ===== Provider Fixtures =====

@pytest.fixture
def metadata_provider() -> StubMetadataProvider:
    """Deterministic metadata provider."""
    return StubMetadataProvider()


@pytest.fixture
def failing_provider() -> StubMetadataProvider:
    """Metadata provider that raises on every call."""
    return StubMetadataProvider(
        fail={'get_by_id', 'get_trending', 'get_popular_by_genre', 'get_genres'}
    )


@pytest.fixture
def provider_factory():
    """Build a StubMetadataProvider with custom catalog or failures."""
    return StubMetadataProvider


@pytest.fixture
def interaction_store(sample_interactions) -> InMemoryInteractionStore:
    return InMemoryInteractionStore(sample_interactions)


@pytest.fixture
def store_factory():
    """Build an InMemoryInteractionStore."""
    return InMemoryInteractionStore


@pytest.fixture
def interactions_for():
    """Build a user's interactions from liked and disliked item ids."""
    return make_interactions


# ===== Repository Fixtures =====

@pytest.fixture
def interaction_repository(test_db_session):
    """Create InteractionRepository with test database session."""
    from watchnext_recommendation_service.repos import InteractionRepository
    return InteractionRepository(test_db_session)


@pytest.fixture
def user_repository(test_db_session):
    """Create UserRepository with test database session."""
    from watchnext_recommendation_service.repos import UserRepository
    return UserRepository(test_db_session)


# ===== TMDB Fixtures =====

@pytest.fixture
def tmdb_base_url() -> str:
    return "https://tmdb.test/3"


@pytest.fixture
def tmdb_client(tmdb_base_url):
    """TMDB client pointed at a fake host with retries disabled."""
    from watchnext_recommendation_service.services.tmdb_client import TMDBClient
    return TMDBClient(api_key="test-key", base_url=tmdb_base_url, timeout=1, max_concurrency=2, retries=0)


# ===== Temporary Directory Fixtures =====

@pytest.fixture
def temp_data_dir():
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ===== Configuration Fixtures =====

@pytest.fixture
def mock_config(monkeypatch):
    """Mock configuration values."""
    monkeypatch.setenv('DATABASE_URL', 'sqlite:///:memory:')
    monkeypatch.setenv('TMDB_API_KEY', 'test-key')
    monkeypatch.setenv('TMDB_BASE_URL', 'https://tmdb.test/3')
    monkeypatch.setenv('METADATA_TIMEOUT_SECONDS', '5')
    monkeypatch.setenv('GENERATOR_TIMEOUT_SECONDS', '10')
    monkeypatch.setenv('MAX_CONCURRENT_LOOKUPS', '4')


@pytest.fixture
def mock_local_settings(tmp_path):
    """Write a local.settings.json file."""
    settings = {
        "Values": {
            "TMDB_API_KEY": "settings-key",
            "MIN_USER_SIMILARITY": "0.25"
        }
    }

    settings_file = tmp_path / "local.settings.json"
    with open(settings_file, 'w') as f:
        json.dump(settings, f)

    yield settings_file


# ===== Azure Functions Fixtures =====

@pytest.fixture
def mock_http_request():
    """Mock Azure Functions HttpRequest."""
    mock_req = Mock()
    mock_req.route_params = {}
    mock_req.params = {}
    mock_req.get_json.return_value = {}
    return mock_req


# ===== Script Fixtures =====

@pytest.fixture
def mock_sys_argv(monkeypatch):
    """Mock sys.argv for script testing."""
    def _mock_argv(args):
        monkeypatch.setattr('sys.argv', args)
    return _mock_argv
