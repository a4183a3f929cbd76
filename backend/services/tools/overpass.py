"""
OpenStreetMap hydrography through the Overpass API.

The query builder writes Overpass QL for waterways, named waterway geometry and
nearby places. The client posts it, and the converter turns the raw elements
into WaterwayFeature and PlaceFeature models.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from core.config import OVERPASS_API_URL, OVERPASS_TIMEOUT_SECONDS, USER_AGENT
from models.gold_sites import (
    AreaFeatures,
    Coordinates,
    PlaceFeature,
    WaterwayFeature,
    WaterwayKind,
)

logger = logging.getLogger(__name__)

OVERPASS_HEADERS = {
    "User-Agent": USER_AGENT,
    "Content-Type": "application/x-www-form-urlencoded",
}

# Place nodes worth listing next to waterways (lieux-dits, hamlets, villages)
PLACE_TYPES = ("hamlet", "village", "locality", "town")


class OverpassClient:
    """Posts Overpass QL and reports failures as text instead of raising."""

    def __init__(self, api_url: str = OVERPASS_API_URL, headers: Optional[Dict[str, str]] = None):
        self.api_url = api_url
        self.headers = headers or OVERPASS_HEADERS

    def execute_query(
        self, query: str, timeout: int = OVERPASS_TIMEOUT_SECONDS
    ) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        """Run ``query`` and return ``(data, None)`` or ``(None, error)``.

        ``data`` is guaranteed to hold an ``elements`` list.
        """
        try:
            response = requests.post(
                self.api_url,
                data={"data": query},
                headers=self.headers,
                # the server enforces [timeout:N] itself; leave it room to answer
                timeout=timeout + 10,
            )
            response.raise_for_status()
        except requests.exceptions.Timeout:
            return None, f"Overpass query timed out after {timeout} seconds."
        except requests.exceptions.HTTPError as e:
            body = e.response.text[:500] if e.response is not None else str(e)
            code = e.response.status_code if e.response is not None else "N/A"
            if "runtime error: Query timed out" in body:
                return None, f"Overpass gave up on the query (HTTP {code}); try a smaller radius."
            return None, f"Overpass returned HTTP {code}: {body}"
        except requests.exceptions.RequestException as e:
            return None, f"Error connecting to Overpass: {e}"

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError):
            return None, "Overpass answered with invalid JSON."

        if not isinstance(data, dict) or not isinstance(data.get("elements"), list):
            return None, "Overpass response has no 'elements' list."
        return data, None


def escape_ql_string(value: str) -> str:
    """Escape a value for use inside a double-quoted Overpass QL string."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


class OverpassQueryBuilder:
    """Builds Overpass QL queries for waterway searches."""

    def __init__(self, timeout: int = OVERPASS_TIMEOUT_SECONDS):
        self.timeout = timeout

    def build_area_query(self, lat: float, lon: float, radius_meters: int) -> str:
        """
        Build a query for every waterway way and named place node around a point.

        The trailing recurse (`>`) pulls in the nodes referenced by the ways so
        their node-id lists can be resolved to coordinates.
        """
        location_filter = f"(around:{radius_meters},{lat},{lon})"
        place_regex = "|".join(PLACE_TYPES)

        parts = [f"[out:json][timeout:{self.timeout}];"]
        parts.append("(")
        parts.append(f'  way["waterway"]{location_filter};')
        parts.append(f'  node["place"~"^({place_regex})$"]["name"]{location_filter};')
        parts.append(");")
        parts.append("(._;>;);")
        parts.append("out body;")

        return "\n".join(parts)

    def build_waterway_geometry_query(
        self, name: str, lat: float, lon: float, radius_meters: int
    ) -> str:
        """
        Build a query for a named waterway plus the waterways joining it.

        Joining ways are those sharing a node with the named course.
        """
        location_filter = f"(around:{radius_meters},{lat},{lon})"
        safe_name = escape_ql_string(name)

        parts = [f"[out:json][timeout:{self.timeout}];"]
        parts.append(f'way["waterway"]["name"="{safe_name}"]{location_filter}->.named;')
        parts.append("node(w.named)->.course;")
        parts.append('way(bn.course)["waterway"]->.joining;')
        parts.append("(.named; .joining;);")
        parts.append("(._;>;);")
        parts.append("out body;")

        return "\n".join(parts)


def waterway_kind(tag_value: Optional[str]) -> WaterwayKind:
    if tag_value == "river":
        return WaterwayKind.RIVER
    if tag_value == "stream":
        return WaterwayKind.STREAM
    return WaterwayKind.OTHER


class OverpassResultConverter:
    """Converts OSM elements from Overpass API to waterway and place features."""

    @staticmethod
    def index_nodes(elements: List[Dict[str, Any]]) -> Dict[int, Dict[str, Any]]:
        """Index every node carrying coordinates by its OSM id."""
        nodes: Dict[int, Dict[str, Any]] = {}
        for element in elements:
            if element.get("type") == "node" and "lat" in element and "lon" in element:
                nodes[element["id"]] = element
        return nodes

    @staticmethod
    def node_coordinates(node: Dict[str, Any]) -> Coordinates:
        return (float(node["lat"]), float(node["lon"]))

    @staticmethod
    def way_coordinates(
        way: Dict[str, Any], nodes: Dict[int, Dict[str, Any]]
    ) -> List[Tuple[int, Coordinates]]:
        """Resolve a way's node-id list to (node_id, coordinates), skipping missing nodes."""
        resolved = []
        for node_id in way.get("nodes", []):
            node = nodes.get(node_id)
            if node is not None:
                resolved.append((node_id, OverpassResultConverter.node_coordinates(node)))
        return resolved

    @staticmethod
    def representative_coordinate(
        way: Dict[str, Any], nodes: Dict[int, Dict[str, Any]]
    ) -> Optional[Coordinates]:
        """Coordinates of the way's midpoint node, or None if it was not returned."""
        node_ids = way.get("nodes") or []
        if not node_ids:
            return None
        mid_node = nodes.get(node_ids[len(node_ids) // 2])
        if mid_node is None:
            return None
        return OverpassResultConverter.node_coordinates(mid_node)

    @staticmethod
    def to_area_features(elements: List[Dict[str, Any]]) -> AreaFeatures:
        """
        Build waterway and place features from a flat Overpass element list.

        Only ways tagged `waterway` and nodes tagged `place`, both with a `name`,
        are kept. Each way gets one representative coordinate (its midpoint node).
        """
        nodes = OverpassResultConverter.index_nodes(elements)
        waterways: List[WaterwayFeature] = []
        places: List[PlaceFeature] = []

        for element in elements:
            tags = element.get("tags") or {}
            name = tags.get("name")
            if not name:
                continue

            if element.get("type") == "way" and tags.get("waterway"):
                coordinates = OverpassResultConverter.representative_coordinate(element, nodes)
                if coordinates is None:
                    logger.debug(f"Skipping way {element.get('id')} ({name}): midpoint missing")
                    continue
                waterways.append(
                    WaterwayFeature(
                        name=name,
                        coordinates=coordinates,
                        kind=waterway_kind(tags["waterway"]),
                        waterway=tags["waterway"],
                        osm_id=element.get("id"),
                    )
                )
            elif element.get("type") == "node" and tags.get("place"):
                if "lat" not in element or "lon" not in element:
                    continue
                places.append(
                    PlaceFeature(
                        name=name,
                        coordinates=OverpassResultConverter.node_coordinates(element),
                        place_type=tags["place"],
                    )
                )

        return AreaFeatures(waterways=waterways, places=places)
