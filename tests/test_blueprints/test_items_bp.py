"""Integration tests for the item details blueprint."""
import json
from unittest.mock import Mock, patch

import azure.functions as func
import pytest

from watchnext_recommendation_service.blueprints.items_bp import bp, get_item_details
from watchnext_recommendation_service.errors import ExternalServiceError, ItemNotFoundError
from watchnext_recommendation_service.recommenders.types import (
    CastMember,
    ItemDetails,
    MediaType,
    Movie,
    StreamingProvider,
)
from watchnext_recommendation_service.services import GenreCache

BP_MODULE = 'watchnext_recommendation_service.blueprints.items_bp'
IMAGE_BASE = "https://img.test/w500"


def _request(item_id=None, media_type=None) -> Mock:
    mock_req = Mock(spec=func.HttpRequest)
    mock_req.route_params = {'item_id': item_id} if item_id is not None else {}
    mock_req.params = {'type': media_type} if media_type is not None else {}
    return mock_req


def _details() -> ItemDetails:
    movie = Movie(
        id=27205, title="Inception", overview="Dreams", rating=8.4,
        genre_ids=frozenset({28, 878}), poster_path="/p.jpg", release_date="2010-07-15",
    )
    return ItemDetails(
        summary=movie.summary(),
        genres=((28, "Action"), (878, None)),
        runtime=148,
        cast=(CastMember(id=1, name="Leonardo DiCaprio", character="Cobb"),),
        streaming=(StreamingProvider(name="Netflix", url="https://www.netflix.com"),),
    )


@pytest.fixture
def mock_provider():
    """Patch the shared provider, genre cache and image host."""
    provider = Mock()
    provider.get_details.return_value = _details()
    with patch(f'{BP_MODULE}.metadata_provider', provider), \
            patch(f'{BP_MODULE}.genre_cache', GenreCache()), \
            patch(f'{BP_MODULE}.get_tmdb_image_base_url', return_value=IMAGE_BASE):
        yield provider


class TestGetItemDetails:
    """Tests for get_item_details function."""

    def test_returns_details(self, mock_provider):
        """Test getting details for a movie."""
        # Act
        response = get_item_details(_request('27205'))

        # Assert
        assert response.status_code == 200
        assert response.mimetype == "application/json"

        body = json.loads(response.get_body())
        assert body['id'] == 27205
        assert body['title'] == "Inception"
        assert body['image'] == f"{IMAGE_BASE}/p.jpg"
        assert body['genres'] == ["Action", "Sci-Fi"]
        assert body['runtime'] == 148
        assert body['cast'][0]['character'] == "Cobb"
        assert body['streaming'] == [{"service": "Netflix", "logo": None, "url": "https://www.netflix.com"}]
        mock_provider.get_details.assert_called_once_with(27205, MediaType.MOVIE)

    def test_passes_tv_type(self, mock_provider):
        """Test that the type parameter selects the TV catalog."""
        response = get_item_details(_request('1396', 'tv'))

        assert response.status_code == 200
        mock_provider.get_details.assert_called_once_with(1396, MediaType.TV)

    @pytest.mark.parametrize("item_id,media_type,message", [
        (None, None, "item_id is required"),
        ("abc", None, "item_id must be an integer"),
        ("27205", "book", "type must be"),
    ])
    def test_returns_400_for_bad_input(self, mock_provider, item_id, media_type, message):
        """Test 400 responses for invalid ids and types."""
        # Act
        response = get_item_details(_request(item_id, media_type))

        # Assert
        assert response.status_code == 400
        assert message in json.loads(response.get_body())['error']
        mock_provider.get_details.assert_not_called()

    def test_returns_404_for_unknown_item(self, mock_provider):
        """Test 404 response when TMDB has no such item."""
        # Arrange
        mock_provider.get_details.side_effect = ItemNotFoundError(999)

        # Act
        response = get_item_details(_request('999'))

        # Assert
        assert response.status_code == 404
        assert 'error' in json.loads(response.get_body())

    def test_returns_502_when_tmdb_fails(self, mock_provider):
        """Test that provider failures are retryable errors."""
        # Arrange
        mock_provider.get_details.side_effect = ExternalServiceError("TMDB returned 503")

        # Act
        response = get_item_details(_request('27205'))

        # Assert
        assert response.status_code == 502
        body = json.loads(response.get_body())
        assert body['error'] == "Failed to fetch details from TMDB"
        assert body['retryable'] is True

    def test_returns_500_on_unexpected_error(self, mock_provider):
        """Test 500 response on unexpected errors."""
        # Arrange
        mock_provider.get_details.side_effect = RuntimeError('boom')

        # Act
        response = get_item_details(_request('27205'))

        # Assert
        assert response.status_code == 500
        assert json.loads(response.get_body())['error'] == 'Internal server error'


class TestEndToEnd:
    """Tests running the route against the TMDB client with mocked HTTP."""

    def test_details_through_tmdb_client(self, tmdb_client, tmdb_base_url, requests_mock):
        """Test the full route with credits and providers from TMDB."""
        # Arrange
        base = f"{tmdb_base_url}/movie/603"
        requests_mock.get(base, json={
            "id": 603, "title": "The Matrix", "overview": "Red pill.", "vote_average": 8.2,
            "genres": [{"id": 28, "name": "Action"}], "runtime": 136, "release_date": "1999-03-31",
        })
        requests_mock.get(f"{base}/credits", json={"cast": [{"id": 6384, "name": "Keanu Reeves", "character": "Neo"}]})
        requests_mock.get(f"{base}/watch/providers", json={"results": {
            "US": {"flatrate": [{"provider_name": "Amazon Prime Video", "logo_path": "/prime.png"}]},
        }})

        with patch(f'{BP_MODULE}.metadata_provider', tmdb_client), \
                patch(f'{BP_MODULE}.genre_cache', GenreCache()), \
                patch(f'{BP_MODULE}.get_tmdb_image_base_url', return_value=IMAGE_BASE), \
                patch('watchnext_recommendation_service.services.tmdb_client.get_streaming_region',
                      return_value="US"):

            # Act
            response = get_item_details(_request('603', 'movie'))

        # Assert
        assert response.status_code == 200
        body = json.loads(response.get_body())
        assert body['title'] == "The Matrix"
        assert body['year'] == "1999"
        assert body['runtime'] == 136
        assert body['cast'] == [{"id": 6384, "name": "Keanu Reeves", "character": "Neo", "profile": None}]
        assert body['streaming'] == [{
            "service": "Amazon Prime Video",
            "logo": f"{IMAGE_BASE}/prime.png",
            "url": "https://www.primevideo.com",
        }]

    def test_unknown_item_through_tmdb_client(self, tmdb_client, tmdb_base_url, requests_mock):
        """Test 404 when TMDB answers not found."""
        requests_mock.get(f"{tmdb_base_url}/tv/424242", status_code=404)

        with patch(f'{BP_MODULE}.metadata_provider', tmdb_client):
            response = get_item_details(_request('424242', 'tv'))

        assert response.status_code == 404


class TestBlueprint:
    """Tests for the blueprint object."""

    def test_blueprint_exists(self):
        assert bp is not None
        assert isinstance(bp, func.Blueprint)
