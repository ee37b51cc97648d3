"""Value types shared by the recommendation pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional, Union

PLACEHOLDER_ITEM_ID = 0
UNKNOWN_YEAR = "Unknown"


class MediaType(str, Enum):
    MOVIE = "movie"
    TV = "tv"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["MediaType"]:
        """Map provider/store spellings onto a media type; None when unknown."""
        if value is None:
            return None
        value = str(value).strip().lower()
        if value in ("movie", "film"):
            return cls.MOVIE
        if value in ("tv", "show", "series"):
            return cls.TV
        return None


class CandidateSource(str, Enum):
    # Declaration order is the tie-break precedence used by the aggregator
    COLLABORATIVE = "collaborative"
    CONTENT_BASED = "content_based"
    TRENDING = "trending"
    FALLBACK = "fallback"


class PipelineState(str, Enum):
    NO_HISTORY = "no_history"
    PERSONALIZING = "personalizing"
    DEGRADED = "degraded"
    DONE = "done"


def _year(date_str: Optional[str]) -> Optional[str]:
    if not date_str:
        return None
    year = date_str.split("-")[0]
    return year or None


@dataclass(frozen=True)
class ItemSummary:
    """Provider-agnostic projection of a movie or show."""

    id: int
    title: str
    overview: str
    media_type: MediaType
    rating: float
    genre_ids: frozenset[int] = frozenset()
    poster_path: Optional[str] = None
    release_year: Optional[str] = None


@dataclass(frozen=True)
class Movie:
    id: int
    title: str
    overview: str = ""
    rating: float = 0.0
    genre_ids: frozenset[int] = frozenset()
    poster_path: Optional[str] = None
    release_date: Optional[str] = None

    def summary(self) -> ItemSummary:
        return ItemSummary(
            id=self.id,
            title=self.title,
            overview=self.overview,
            media_type=MediaType.MOVIE,
            rating=self.rating,
            genre_ids=self.genre_ids,
            poster_path=self.poster_path,
            release_year=_year(self.release_date),
        )


@dataclass(frozen=True)
class Show:
    id: int
    name: str
    overview: str = ""
    rating: float = 0.0
    genre_ids: frozenset[int] = frozenset()
    poster_path: Optional[str] = None
    first_air_date: Optional[str] = None

    def summary(self) -> ItemSummary:
        return ItemSummary(
            id=self.id,
            title=self.name,
            overview=self.overview,
            media_type=MediaType.TV,
            rating=self.rating,
            genre_ids=self.genre_ids,
            poster_path=self.poster_path,
            release_year=_year(self.first_air_date),
        )


Item = Union[Movie, Show]


@dataclass(frozen=True)
class CastMember:
    id: int
    name: str
    character: Optional[str] = None
    profile_path: Optional[str] = None


@dataclass(frozen=True)
class StreamingProvider:
    name: str
    logo_path: Optional[str] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class ItemDetails:
    """
    Detail view of a single movie or show.

    ``genres`` keeps the provider's order as (id, name) pairs; a pair
    without a name is resolved through the genre cache when serialized.
    Cast and streaming are best effort and may be empty.
    """

    summary: ItemSummary
    genres: tuple[tuple[int, Optional[str]], ...] = ()
    runtime: Optional[int] = None
    cast: tuple[CastMember, ...] = ()
    streaming: tuple[StreamingProvider, ...] = ()

    def to_dict(self, genre_names: Mapping[int, str], image_base_url: str) -> dict:
        summary = self.summary
        names = [name or genre_names.get(genre_id) for genre_id, name in self.genres]

        return {
            "id": summary.id,
            "title": summary.title,
            "image": f"{image_base_url}{summary.poster_path}" if summary.poster_path else None,
            "type": summary.media_type.value,
            "description": summary.overview,
            "year": summary.release_year or UNKNOWN_YEAR,
            "genres": [name for name in names if name],
            "rating": summary.rating,
            "runtime": self.runtime,
            "cast": [
                {
                    "id": member.id,
                    "name": member.name,
                    "character": member.character,
                    "profile": f"{image_base_url}{member.profile_path}" if member.profile_path else None,
                }
                for member in self.cast
            ],
            "streaming": [
                {
                    "service": provider.name,
                    "logo": f"{image_base_url}{provider.logo_path}" if provider.logo_path else None,
                    "url": provider.url,
                }
                for provider in self.streaming
            ],
        }


@dataclass(frozen=True)
class Interaction:
    """A single like/dislike a user recorded for an item."""

    user_id: str
    item_id: int
    liked: bool
    timestamp: Optional[datetime] = None
    media_type: Optional[MediaType] = None


@dataclass(frozen=True)
class SimilarityScore:
    user_id: str
    score: float


@dataclass
class Candidate:
    """A scored, reasoned recommendation before final ranking."""

    item_id: int
    media_type: MediaType
    title: str
    overview: str
    rating: float
    similarity_score: float
    reason: str
    source: CandidateSource
    genre_ids: frozenset[int] = frozenset()
    poster_path: Optional[str] = None
    release_year: Optional[str] = None
    source_weight: float = 0.0
    genre_labels: Optional[tuple[str, ...]] = None

    def __post_init__(self):
        self.similarity_score = max(0.0, float(self.similarity_score))

    @classmethod
    def from_summary(
            cls,
            summary: ItemSummary,
            source: CandidateSource,
            similarity_score: float,
            reason: str
    ) -> "Candidate":
        return cls(
            item_id=summary.id,
            media_type=summary.media_type,
            title=summary.title,
            overview=summary.overview,
            rating=summary.rating,
            similarity_score=similarity_score,
            reason=reason,
            source=source,
            genre_ids=summary.genre_ids,
            poster_path=summary.poster_path,
            release_year=summary.release_year,
        )

    @classmethod
    def placeholder(cls) -> "Candidate":
        """Onboarding entry returned when nothing else can be produced."""
        return cls(
            item_id=PLACEHOLDER_ITEM_ID,
            media_type=MediaType.MOVIE,
            title="Start exploring movies to get personalized recommendations!",
            overview="Like and dislike movies to help us understand your preferences.",
            rating=0.0,
            similarity_score=0.0,
            reason="Get started with recommendations",
            source=CandidateSource.FALLBACK,
            genre_labels=("All Genres",),
        )

    def with_weight(self, weight: float) -> "Candidate":
        return replace(self, source_weight=weight)

    def to_dict(self, genre_names: Mapping[int, str], image_base_url: str) -> dict:
        """Serialize into the public response shape."""
        if self.genre_labels is not None:
            genres = list(self.genre_labels)
        else:
            genres = [genre_names.get(g, "Unknown") for g in sorted(self.genre_ids)]

        return {
            "id": self.item_id,
            "title": self.title,
            "image": f"{image_base_url}{self.poster_path}" if self.poster_path else None,
            "type": self.media_type.value,
            "description": self.overview,
            "year": self.release_year or UNKNOWN_YEAR,
            "genres": genres,
            "rating": self.rating,
            "similarityScore": self.similarity_score,
            "recommendationReason": self.reason,
        }


@dataclass
class GeneratorResult:
    """Outcome of one candidate generator: its candidates, or the error that stopped it."""

    source: CandidateSource
    candidates: list[Candidate] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, source: CandidateSource, candidates: list[Candidate]) -> "GeneratorResult":
        return cls(source=source, candidates=list(candidates))

    @classmethod
    def failure(cls, source: CandidateSource, error: BaseException) -> "GeneratorResult":
        return cls(source=source, candidates=[], error=error)


@dataclass
class RecommendationResult:
    """Final ranked recommendations for one user."""

    user_id: str
    candidates: list[Candidate]
    state: PipelineState = PipelineState.DONE
    path: tuple[PipelineState, ...] = ()

    def __len__(self) -> int:
        return len(self.candidates)

    def __iter__(self):
        return iter(self.candidates)

    @property
    def item_ids(self) -> list[int]:
        return [c.item_id for c in self.candidates]

    def to_dicts(self, genre_names: Mapping[int, str], image_base_url: str) -> list[dict]:
        return [c.to_dict(genre_names, image_base_url) for c in self.candidates]
