"""Tests for place resolution and waterway enumeration."""

from unittest.mock import MagicMock, patch

import pytest

from services.gold_search.errors import GeodataUnavailable, LocationNotFound, NetworkError
from services.gold_search.geo_resolver import GeoResolver


def _resolver(data=None, error=None):
    client = MagicMock()
    client.execute_query.return_value = (data, error)
    return GeoResolver(client=client)


class TestResolve:
    @pytest.mark.asyncio
    @patch("services.gold_search.geo_resolver.geocode_using_geonames")
    @patch("services.gold_search.geo_resolver.geocode_using_nominatim")
    async def test_nominatim_first(self, mock_nominatim, mock_geonames):
        mock_nominatim.return_value = [{"lat": "43.2130", "lon": "2.3522"}]

        assert await _resolver().resolve("Carcassonne") == (43.2130, 2.3522)
        mock_geonames.assert_not_called()

    @pytest.mark.asyncio
    @patch("services.gold_search.geo_resolver.geocode_using_geonames")
    @patch("services.gold_search.geo_resolver.geocode_using_nominatim")
    async def test_geonames_fallback(self, mock_nominatim, mock_geonames):
        mock_nominatim.return_value = []
        mock_geonames.return_value = [{"lat": "42.895", "lng": "2.7209"}]

        assert await _resolver().resolve("Tuchan") == (42.895, 2.7209)

    @pytest.mark.asyncio
    @patch("services.gold_search.geo_resolver.geocode_using_geonames", return_value=[])
    @patch("services.gold_search.geo_resolver.geocode_using_nominatim", return_value=[])
    async def test_not_found(self, _mock_nominatim, _mock_geonames):
        with pytest.raises(LocationNotFound) as exc_info:
            await _resolver().resolve("Zzzznotaplace")
        assert exc_info.value.place_name == "Zzzznotaplace"

    @pytest.mark.asyncio
    @patch("services.gold_search.geo_resolver.geocode_using_nominatim")
    async def test_network_error_propagates(self, mock_nominatim):
        mock_nominatim.side_effect = NetworkError("Nominatim down")
        with pytest.raises(NetworkError):
            await _resolver().resolve("Carcassonne")


class TestEnumerate:
    @pytest.mark.asyncio
    async def test_enumerate_area(self, carcassonne_elements):
        resolver = _resolver(data={"elements": carcassonne_elements})

        area = await resolver.enumerate_area((43.213, 2.3522), 50)

        assert [w.name for w in area.waterways] == ["L'Aude", "L'Orbiel"]
        assert [p.name for p in area.places] == ["Carcassonne"]
        query = resolver.client.execute_query.call_args.args[0]
        assert "around:50000,43.213,2.3522" in query

    @pytest.mark.asyncio
    async def test_enumerate_degrades_to_empty(self):
        resolver = _resolver(error="Overpass API query timed out after 60 seconds.")

        area = await resolver.enumerate_area((43.213, 2.3522), 50)

        assert area.waterways == []
        assert area.places == []

    @pytest.mark.asyncio
    async def test_enumerate_waterways(self, carcassonne_elements):
        resolver = _resolver(data={"elements": carcassonne_elements})
        waterways = await resolver.enumerate_waterways((43.213, 2.3522), 50)
        assert len(waterways) == 2


class TestFetchGeometry:
    @pytest.mark.asyncio
    async def test_returns_elements(self, carcassonne_elements):
        resolver = _resolver(data={"elements": carcassonne_elements})

        elements = await resolver.fetch_waterway_geometry("L'Aude", (43.2, 2.35), 10)

        assert elements == carcassonne_elements
        query = resolver.client.execute_query.call_args.args[0]
        assert '["name"="L\'Aude"]' in query
        assert "around:10000,43.2,2.35" in query

    @pytest.mark.asyncio
    async def test_error_raises(self):
        resolver = _resolver(error="Error connecting to Overpass API")
        with pytest.raises(GeodataUnavailable):
            await resolver.fetch_waterway_geometry("L'Aude", (43.2, 2.35), 10)
