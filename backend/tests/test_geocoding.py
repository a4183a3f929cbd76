import os
import sys
from unittest.mock import Mock, patch

import pytest
import requests

# Add the backend directory to the path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from services.gold_search.errors import NetworkError  # noqa: E402
from services.tools.geocoding import (  # noqa: E402
    first_coordinates,
    geocode_using_geonames,
    geocode_using_nominatim,
    suggest_places,
)


@pytest.fixture
def mock_geonames_response():
    """Mock response for GeoNames API"""
    return {
        "geonames": [
            {
                "lng": "2.35",
                "geonameId": 3028641,
                "toponymName": "Carcassonne",
                "countryCode": "FR",
                "name": "Carcassonne",
                "adminName1": "Occitanie",
                "lat": "43.21667",
                "fcode": "PPLA2",
            }
        ]
    }


@pytest.fixture
def mock_nominatim_response():
    """Mock response for Nominatim API"""
    return [
        {
            "place_id": 1234,
            "licence": "Data © OpenStreetMap contributors, ODbL 1.0",
            "osm_type": "relation",
            "lat": "43.2130358",
            "lon": "2.3491069",
            "display_name": "Carcassonne, Aude, Occitanie, France",
            "address": {
                "city": "Carcassonne",
                "county": "Aude",
                "state": "Occitanie",
                "country": "France",
                "country_code": "fr",
            },
            "type": "administrative",
            "name": "Carcassonne",
        },
        {
            "lat": "43.0",
            "lon": "2.0",
            "address": {"country": "France"},
            "name": "",
        },
    ]


@patch("services.tools.geocoding.requests.get")
def test_geocode_using_nominatim(mock_get, mock_nominatim_response):
    mock_response = Mock(status_code=200)
    mock_response.json.return_value = mock_nominatim_response
    mock_get.return_value = mock_response

    results = geocode_using_nominatim("Carcassonne")

    assert results == mock_nominatim_response
    params = mock_get.call_args.kwargs["params"]
    assert params["q"] == "Carcassonne"
    assert params["countrycodes"] == "fr"
    assert params["format"] == "json"
    assert "User-Agent" in mock_get.call_args.kwargs["headers"]


@patch("services.tools.geocoding.requests.get")
def test_geocode_using_nominatim_error_status(mock_get):
    mock_get.return_value = Mock(status_code=503)

    with pytest.raises(NetworkError):
        geocode_using_nominatim("Carcassonne")


@patch("services.tools.geocoding.requests.get")
def test_geocode_using_nominatim_connection_error(mock_get):
    mock_get.side_effect = requests.exceptions.ConnectionError("dns")

    with pytest.raises(NetworkError):
        geocode_using_nominatim("Carcassonne")


@patch("services.tools.geocoding.get_geonames_user", return_value="demo")
@patch("services.tools.geocoding.requests.get")
def test_geocode_using_geonames(mock_get, _mock_user, mock_geonames_response):
    mock_response = Mock(status_code=200)
    mock_response.json.return_value = mock_geonames_response
    mock_get.return_value = mock_response

    results = geocode_using_geonames("Carcassonne")

    assert results[0]["name"] == "Carcassonne"
    params = mock_get.call_args.kwargs["params"]
    assert params["country"] == "FR"
    assert params["username"] == "demo"


@patch("services.tools.geocoding.get_geonames_user", return_value="")
@patch("services.tools.geocoding.requests.get")
def test_geocode_using_geonames_without_user(mock_get, _mock_user):
    assert geocode_using_geonames("Carcassonne") == []
    mock_get.assert_not_called()


def test_first_coordinates():
    results = [{"lat": "x", "lon": "2"}, {"lat": "43.2", "lng": "2.3"}]
    assert first_coordinates(results) is None
    assert first_coordinates(results, lon_key="lng") == (43.2, 2.3)
    assert first_coordinates([]) is None


@patch("services.tools.geocoding.requests.get")
def test_suggest_places(mock_get, mock_nominatim_response):
    mock_response = Mock(status_code=200)
    mock_response.json.return_value = mock_nominatim_response
    mock_get.return_value = mock_response

    suggestions = suggest_places("Carca")

    assert suggestions == [
        {
            "name": "Carcassonne",
            "region": "Aude",
            "full_name": "Carcassonne (Aude)",
            "lat": 43.2130358,
            "lon": 2.3491069,
        }
    ]


@patch("services.tools.geocoding.requests.get")
def test_suggest_places_short_query(mock_get):
    assert suggest_places("Ca") == []
    mock_get.assert_not_called()


@patch("services.tools.geocoding.requests.get")
def test_suggest_places_network_error(mock_get):
    mock_get.side_effect = requests.exceptions.Timeout()
    assert suggest_places("Carcassonne") == []
