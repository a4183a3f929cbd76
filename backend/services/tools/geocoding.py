import logging
from typing import Any, Dict, List, Optional

import requests

from core.config import (
    GEOCODER_COUNTRY_CODE,
    GEONAMES_URL,
    HTTP_TIMEOUT_SECONDS,
    NOMINATIM_URL,
    USER_AGENT,
    get_geonames_user,
)
from models.gold_sites import Coordinates
from services.gold_search.errors import NetworkError

logger = logging.getLogger(__name__)

headers_orpaillage = {"User-Agent": USER_AGENT}

# Autocomplete only kicks in after this many characters
MIN_SUGGESTION_QUERY_LENGTH = 3


def geocode_using_nominatim(
    query: str,
    country_code: str = GEOCODER_COUNTRY_CODE,
    maxRows: int = 5,
    address_details: bool = True,
) -> List[Dict[str, Any]]:
    """Geocode a place name with the OpenStreetMap Nominatim API.

    Results are restricted to ``country_code``. An empty list means no match.

    Raises:
        NetworkError: if Nominatim cannot be reached or answers with an error status
    """
    params = {
        "q": query,
        "format": "json",
        "limit": maxRows,
        "addressdetails": 1 if address_details else 0,
        "countrycodes": country_code,
    }
    try:
        response = requests.get(
            NOMINATIM_URL, params=params, headers=headers_orpaillage, timeout=HTTP_TIMEOUT_SECONDS
        )
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"Error connecting to Nominatim: {e}") from e

    if response.status_code != 200:
        raise NetworkError(f"Error querying the Nominatim API. Status: {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise NetworkError(f"Invalid JSON from geocoder: {e}") from e
    return data if isinstance(data, list) else []


def geocode_using_geonames(
    location: str, country_code: str = GEOCODER_COUNTRY_CODE, maxRows: int = 3
) -> List[Dict[str, Any]]:
    """Geocode a place name with GeoNames. Returns [] when no username is configured.

    Raises:
        NetworkError: if GeoNames cannot be reached or answers with an error status
    """
    username = get_geonames_user()
    if not username:
        return []

    params = {
        "q": location,
        "maxRows": maxRows,
        "country": country_code.upper(),
        "username": username,
    }
    try:
        response = requests.get(GEONAMES_URL, params=params, timeout=HTTP_TIMEOUT_SECONDS)
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"Error connecting to GeoNames: {e}") from e

    if response.status_code != 200:
        raise NetworkError(f"Error calling the GeoNames API. Status: {response.status_code}")

    try:
        data = response.json()
    except ValueError as e:
        raise NetworkError(f"Invalid JSON from geocoder: {e}") from e
    return data.get("geonames", []) if isinstance(data, dict) else []


def first_coordinates(results: List[Dict[str, Any]], lon_key: str = "lon") -> Optional[Coordinates]:
    """Coordinates of the first result carrying a parseable lat/lon pair."""
    for result in results:
        try:
            return (float(result["lat"]), float(result[lon_key]))
        except (KeyError, TypeError, ValueError):
            continue
    return None


def suggest_places(query: str, limit: int = 5) -> List[Dict[str, Any]]:
    """City autocomplete for the search form.

    Each suggestion carries ``name``, ``region`` (county or state), ``full_name``
    formatted as "Name (Region)" and ``lat``/``lon``. Suggestions without a
    name or region are dropped; so are all results on transport errors.
    """
    if len(query.strip()) < MIN_SUGGESTION_QUERY_LENGTH:
        return []

    try:
        results = geocode_using_nominatim(query.strip(), maxRows=limit)
    except NetworkError as e:
        logger.warning(f"City suggestions unavailable for '{query}': {e}")
        return []

    suggestions = []
    for item in results:
        address = item.get("address") or {}
        region = address.get("county") or address.get("state") or ""
        name = (
            address.get("city")
            or address.get("town")
            or address.get("village")
            or item.get("name")
            or ""
        )
        if not name or not region:
            continue
        try:
            lat, lon = float(item["lat"]), float(item["lon"])
        except (KeyError, TypeError, ValueError):
            continue
        suggestions.append(
            {
                "name": name,
                "region": region,
                "full_name": f"{name} ({region})",
                "lat": lat,
                "lon": lon,
            }
        )
    return suggestions
