"""Client for the TMDB catalog API (the metadata provider)."""
from typing import List, Dict, Optional
import logging
import threading

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from watchnext_recommendation_service.config import (
    MAX_CAST_MEMBERS,
    get_max_concurrent_lookups,
    get_metadata_timeout,
    get_streaming_region,
    get_tmdb_api_key,
    get_tmdb_base_url,
)
from watchnext_recommendation_service.errors import (
    ExternalServiceError,
    ItemNotFoundError,
    NotFoundError,
)
from watchnext_recommendation_service.recommenders.types import (
    CastMember,
    Item,
    ItemDetails,
    ItemSummary,
    MediaType,
    Movie,
    Show,
    StreamingProvider,
)

logger = logging.getLogger(__name__)

# TMDB lists providers without links; known services get their home page
PROVIDER_URLS = {
    "Netflix": "https://www.netflix.com",
    "Amazon Prime Video": "https://www.primevideo.com",
}


def parse_item(data: Dict, media_type: Optional[MediaType] = None) -> Item:
    """
    Build a Movie or Show from a TMDB payload.

    Detail endpoints carry ``genres`` objects while list endpoints carry
    ``genre_ids``; both are accepted.

    Args:
        data: Raw TMDB record
        media_type: Media type when the payload does not carry one

    Returns:
        Movie or Show

    Raises:
        ExternalServiceError: If the record has no usable id, media type,
            genres or rating
    """
    if not isinstance(data, dict) or data.get("id") is None:
        raise ExternalServiceError(f"Malformed TMDB record: {data!r}")

    media_type = MediaType.parse(data.get("media_type")) or media_type
    if media_type is None:
        raise ExternalServiceError(f"TMDB record {data.get('id')} has no usable media type")

    try:
        item_id = int(data["id"])
        if data.get("genre_ids") is not None:
            genre_ids = frozenset(int(g) for g in data["genre_ids"])
        else:
            genre_ids = frozenset(int(g["id"]) for g in data.get("genres") or [] if "id" in g)
        rating = float(data.get("vote_average") or 0.0)
    except (TypeError, ValueError, KeyError) as e:
        raise ExternalServiceError(f"Malformed TMDB record {data.get('id')!r}: {e}") from e

    overview = data.get("overview") or "No description available"

    if media_type is MediaType.TV:
        return Show(
            id=item_id,
            name=data.get("name") or data.get("title") or "Unknown Title",
            overview=overview,
            rating=rating,
            genre_ids=genre_ids,
            poster_path=data.get("poster_path"),
            first_air_date=data.get("first_air_date"),
        )

    return Movie(
        id=item_id,
        title=data.get("title") or data.get("name") or "Unknown Title",
        overview=overview,
        rating=rating,
        genre_ids=genre_ids,
        poster_path=data.get("poster_path"),
        release_date=data.get("release_date"),
    )


class TMDBClient:
    """Read-only access to the TMDB catalog: item details, trending, genre discovery."""

    def __init__(
            self,
            api_key: Optional[str] = None,
            base_url: Optional[str] = None,
            timeout: Optional[float] = None,
            max_concurrency: Optional[int] = None,
            retries: int = 2
    ):
        self.api_key = api_key or get_tmdb_api_key()
        self.base_url = (base_url or get_tmdb_base_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else get_metadata_timeout()
        self.max_concurrency = max_concurrency or get_max_concurrent_lookups()

        # Caps in-flight calls across every request sharing this client
        self._semaphore = threading.BoundedSemaphore(self.max_concurrency)

        # Configure session with retries
        self.session = requests.Session()
        retry_strategy = Retry(
            total=retries,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        # noinspection HttpUrlsUsage
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _get(self, path: str, params: Optional[Dict] = None) -> Dict:
        """
        GET a TMDB endpoint and return the decoded JSON object.

        Raises:
            NotFoundError: On 404 or a ``success: false`` payload
            ExternalServiceError: On any transport, status or decoding failure
        """
        if not self.api_key:
            raise ExternalServiceError("TMDB API key not configured")

        url = f"{self.base_url}{path}"
        query = {"api_key": self.api_key}
        if params:
            query.update(params)

        with self._semaphore:
            try:
                response = self.session.get(url, params=query, timeout=self.timeout)
            except requests.Timeout as e:
                raise ExternalServiceError(f"TMDB request timed out: {path}") from e
            except requests.RequestException as e:
                raise ExternalServiceError(f"TMDB request failed: {path}: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"TMDB has no resource at {path}")
        if response.status_code == 429:
            raise ExternalServiceError(f"TMDB rate limit hit: {path}", status=429)
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise ExternalServiceError(
                f"TMDB API error: {response.status_code} {response.reason}: {path}"
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalServiceError(f"TMDB returned invalid JSON: {path}") from e

        if not isinstance(data, dict):
            raise ExternalServiceError(f"Invalid TMDB API response format: {path}")
        if data.get("success") is False:
            raise NotFoundError(data.get("status_message") or f"TMDB has no resource at {path}")

        return data

    @staticmethod
    def _results(data: Dict, path: str) -> List[Dict]:
        results = data.get("results")
        if not isinstance(results, list):
            raise ExternalServiceError(f"Invalid TMDB API response format: {path}")
        return results

    @staticmethod
    def _parse_many(records: List[Dict], media_type: Optional[MediaType] = None) -> List[ItemSummary]:
        items = []
        for record in records:
            if isinstance(record, dict) and record.get("media_type") == "person":
                continue
            try:
                items.append(parse_item(record, media_type).summary())
            except ExternalServiceError as e:
                logger.warning(f"Skipping TMDB record: {e}")
        return items

    # ===== ITEM ENDPOINTS =====

    def get_by_id(self, item_id: int, media_type_hint: Optional[MediaType] = None) -> ItemSummary:
        """
        Fetch a single item, trying the hinted media type first.

        Without a hint the movie endpoint is tried before the TV endpoint.

        Raises:
            ItemNotFoundError: If neither endpoint knows the id
            ExternalServiceError: If the provider fails
        """
        first = media_type_hint or MediaType.MOVIE
        second = MediaType.TV if first is MediaType.MOVIE else MediaType.MOVIE

        for media_type in (first, second):
            try:
                data = self._get(f"/{media_type.value}/{item_id}")
            except NotFoundError:
                continue
            return parse_item(data, media_type).summary()

        raise ItemNotFoundError(item_id)

    def get_trending(self, limit: int = 20) -> List[ItemSummary]:
        """Fetch this week's trending movies and shows."""
        path = "/trending/all/week"
        data = self._get(path)
        return self._parse_many(self._results(data, path))[:limit]

    def get_popular_by_genre(self, genre_id: int, limit: int = 10) -> List[ItemSummary]:
        """Fetch the most popular movies in a genre."""
        path = "/discover/movie"
        data = self._get(path, params={
            "with_genres": genre_id,
            "sort_by": "popularity.desc",
            "page": 1,
        })
        return self._parse_many(self._results(data, path), MediaType.MOVIE)[:limit]

    def get_genres(self, media_type: MediaType) -> Dict[int, str]:
        """Fetch the genre id to name mapping for one media type."""
        path = f"/genre/{media_type.value}/list"
        data = self._get(path)
        genres = data.get("genres")
        if not isinstance(genres, list):
            raise ExternalServiceError(f"Invalid TMDB API response format: {path}")
        try:
            return {int(g["id"]): str(g["name"]) for g in genres if "id" in g and "name" in g}
        except (TypeError, ValueError) as e:
            raise ExternalServiceError(f"Invalid TMDB genre list: {path}: {e}") from e

    # ===== DETAIL ENDPOINTS =====

    def get_details(
            self,
            item_id: int,
            media_type: MediaType = MediaType.MOVIE,
            region: Optional[str] = None
    ) -> ItemDetails:
        """
        Fetch the detail view of one item: runtime, cast and streaming providers.

        Cast and streaming are best effort; when their calls fail the
        details are returned without them.

        Args:
            item_id: TMDB id
            media_type: Which catalog the id belongs to
            region: Country code for streaming providers (default from config)

        Raises:
            ItemNotFoundError: If TMDB has no such item
            ExternalServiceError: If the detail call fails
        """
        path = f"/{media_type.value}/{item_id}"
        try:
            data = self._get(path)
        except NotFoundError as e:
            raise ItemNotFoundError(item_id) from e

        summary = parse_item(data, media_type).summary()

        return ItemDetails(
            summary=summary,
            genres=self._detail_genres(data, summary),
            runtime=self._runtime(data),
            cast=self._get_cast(path),
            streaming=self._get_streaming(path, region or get_streaming_region()),
        )

    @staticmethod
    def _detail_genres(data: Dict, summary: ItemSummary) -> tuple:
        try:
            return tuple(
                (int(g["id"]), g.get("name") or None)
                for g in data.get("genres") or [] if "id" in g
            )
        except (TypeError, ValueError, AttributeError):
            return tuple((genre_id, None) for genre_id in sorted(summary.genre_ids))

    @staticmethod
    def _runtime(data: Dict) -> Optional[int]:
        runtime = data.get("runtime")
        if not runtime:
            episode_run_time = data.get("episode_run_time")
            runtime = episode_run_time[0] if isinstance(episode_run_time, list) and episode_run_time else None
        try:
            return int(runtime) if runtime else None
        except (TypeError, ValueError):
            return None

    def _get_cast(self, path: str) -> tuple:
        try:
            data = self._get(f"{path}/credits")
        except (ExternalServiceError, NotFoundError) as e:
            logger.warning(f"Cast unavailable for {path}: {e}")
            return ()

        cast = data.get("cast")
        if not isinstance(cast, list):
            return ()

        members = []
        for entry in cast[:MAX_CAST_MEMBERS]:
            try:
                members.append(CastMember(
                    id=int(entry["id"]),
                    name=str(entry["name"]),
                    character=entry.get("character") or None,
                    profile_path=entry.get("profile_path"),
                ))
            except (TypeError, ValueError, KeyError, AttributeError):
                logger.warning(f"Skipping malformed cast entry for {path}")
        return tuple(members)

    def _get_streaming(self, path: str, region: str) -> tuple:
        try:
            data = self._get(f"{path}/watch/providers")
        except (ExternalServiceError, NotFoundError) as e:
            logger.warning(f"Streaming providers unavailable for {path}: {e}")
            return ()

        try:
            flatrate = ((data.get("results") or {}).get(region) or {}).get("flatrate") or []
            return tuple(
                StreamingProvider(
                    name=p["provider_name"],
                    logo_path=p.get("logo_path"),
                    url=PROVIDER_URLS.get(p["provider_name"]),
                )
                for p in flatrate
            )
        except (TypeError, KeyError, AttributeError):
            logger.warning(f"Malformed streaming providers for {path}")
            return ()
