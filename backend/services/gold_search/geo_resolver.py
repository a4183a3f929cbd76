"""Place resolution and waterway enumeration on top of Nominatim, GeoNames and Overpass."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from models.gold_sites import AreaFeatures, Coordinates, WaterwayFeature
from services.gold_search.errors import GeodataUnavailable, LocationNotFound
from services.tools.geocoding import (
    first_coordinates,
    geocode_using_geonames,
    geocode_using_nominatim,
    suggest_places,
)
from services.tools.overpass import OverpassClient, OverpassQueryBuilder, OverpassResultConverter

logger = logging.getLogger(__name__)


class GeoResolver:
    """Resolves place names and enumerates real waterways around a point.

    The underlying HTTP calls are blocking (``requests``); every public
    coroutine runs them in the event loop's default executor.
    """

    def __init__(
        self,
        client: Optional[OverpassClient] = None,
        query_builder: Optional[OverpassQueryBuilder] = None,
    ):
        self.client = client or OverpassClient()
        self.query_builder = query_builder or OverpassQueryBuilder()

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def resolve_sync(self, place_name: str) -> Coordinates:
        results = geocode_using_nominatim(place_name)
        coordinates = first_coordinates(results)
        if coordinates is None:
            logger.info(f"Nominatim found nothing for '{place_name}', trying GeoNames")
            coordinates = first_coordinates(geocode_using_geonames(place_name), lon_key="lng")
        if coordinates is None:
            raise LocationNotFound(place_name)
        logger.info(f"Resolved '{place_name}' to {coordinates}")
        return coordinates

    async def resolve(self, place_name: str) -> Coordinates:
        """Resolve a free-text place name to (lat, lon).

        Raises:
            LocationNotFound: if no geocoder has a match
            NetworkError: if the geocoder cannot be reached
        """
        return await self._run(self.resolve_sync, place_name)

    def enumerate_area_sync(self, center: Coordinates, radius_km: float) -> AreaFeatures:
        lat, lon = center
        query = self.query_builder.build_area_query(lat, lon, int(radius_km * 1000))
        data, error = self.client.execute_query(query)
        if error:
            logger.warning(f"Waterway enumeration around {center} failed: {error}")
            return AreaFeatures()

        features = OverpassResultConverter.to_area_features(data["elements"])
        logger.info(
            f"Found {len(features.waterways)} named waterways and {len(features.places)} "
            f"places within {radius_km} km of {center}"
        )
        return features

    async def enumerate_area(self, center: Coordinates, radius_km: float) -> AreaFeatures:
        """Named waterways and places within the radius. Empty on transport errors."""
        return await self._run(self.enumerate_area_sync, center, radius_km)

    async def enumerate_waterways(
        self, center: Coordinates, radius_km: float
    ) -> List[WaterwayFeature]:
        features = await self.enumerate_area(center, radius_km)
        return features.waterways

    def fetch_waterway_geometry_sync(
        self, name: str, center: Coordinates, radius_km: float
    ) -> List[Dict[str, Any]]:
        lat, lon = center
        query = self.query_builder.build_waterway_geometry_query(
            name, lat, lon, int(radius_km * 1000)
        )
        data, error = self.client.execute_query(query)
        if error:
            raise GeodataUnavailable(error)
        return data["elements"]

    async def fetch_waterway_geometry(
        self, name: str, center: Coordinates, radius_km: float
    ) -> List[Dict[str, Any]]:
        """Raw elements for a named waterway and the waterways joining it.

        Raises:
            GeodataUnavailable: on transport or parse failure
        """
        return await self._run(self.fetch_waterway_geometry_sync, name, center, radius_km)

    async def suggest_places(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        return await self._run(suggest_places, query, limit)
