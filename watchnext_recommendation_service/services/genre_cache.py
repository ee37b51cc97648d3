"""Process-wide genre id to name lookup."""
from typing import Dict, Mapping, Optional
import logging
import threading

from watchnext_recommendation_service.errors import ExternalServiceError, NotFoundError
from watchnext_recommendation_service.recommenders.types import MediaType

logger = logging.getLogger(__name__)

# TMDB genre taxonomy, used until the provider's lists have been fetched
DEFAULT_GENRES: Dict[int, str] = {
    28: "Action", 12: "Adventure", 16: "Animation", 35: "Comedy", 80: "Crime",
    99: "Documentary", 18: "Drama", 10751: "Family", 14: "Fantasy", 36: "History",
    27: "Horror", 10402: "Music", 9648: "Mystery", 10749: "Romance", 878: "Sci-Fi",
    10770: "TV Movie", 53: "Thriller", 10752: "War", 37: "Western",
    10759: "Action & Adventure", 10762: "Kids", 10763: "News", 10764: "Reality",
    10765: "Sci-Fi & Fantasy", 10766: "Soap", 10767: "Talk", 10768: "War & Politics",
}


class GenreCache(Mapping[int, str]):
    """
    Genre names keyed by id.

    Populated lazily from the metadata provider on the first call to
    ensure_populated() and never invalidated afterwards. Concurrent callers
    share a single population; a failed population leaves the built-in
    names in place and is retried on the next call.
    """

    def __init__(self, provider=None, seed: Optional[Mapping[int, str]] = None):
        self.provider = provider
        self._names: Dict[int, str] = dict(DEFAULT_GENRES if seed is None else seed)
        self._populated = False
        self._lock = threading.Lock()

    @property
    def populated(self) -> bool:
        return self._populated

    def ensure_populated(self) -> bool:
        """
        Load genre names from the provider once.

        Returns:
            True when the cache holds the provider's genre lists
        """
        if self._populated:
            return True

        with self._lock:
            if self._populated:
                return True
            if self.provider is None:
                return False

            try:
                fetched: Dict[int, str] = {}
                for media_type in (MediaType.MOVIE, MediaType.TV):
                    fetched.update(self.provider.get_genres(media_type))
            except (ExternalServiceError, NotFoundError) as e:
                logger.warning(f"Could not load genre names, using built-in list: {e}")
                return False

            # Swap in a new dict so readers never see a partial update
            merged = dict(self._names)
            merged.update(fetched)
            self._names = merged
            self._populated = True
            logger.info(f"✓ Loaded {len(fetched)} genre names")
            return True

    def name_for(self, genre_id: int, default: str = "Unknown") -> str:
        return self._names.get(genre_id, default)

    def __getitem__(self, genre_id: int) -> str:
        return self._names[genre_id]

    def __iter__(self):
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)
