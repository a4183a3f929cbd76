"""Forces candidate coordinates onto real waterway geometry."""

import logging
import math
import random
from typing import Any, Dict, List, Optional, Sequence, Set

from core.config import GOLD_SEARCH_SNAP_RADIUS_KM
from models.gold_sites import Coordinates, GoldCandidateSite, WaterwayFeature, normalize_name
from services.gold_search.errors import NetworkError, RiverNotFound
from services.tools.overpass import OverpassResultConverter

logger = logging.getLogger(__name__)

MEANDER_THRESHOLD = math.pi / 4


def bearing(a: Coordinates, b: Coordinates) -> float:
    """Planar bearing from a to b in radians, longitude scaled by cos(latitude)."""
    mean_lat = math.radians((a[0] + b[0]) / 2)
    dx = (b[1] - a[1]) * math.cos(mean_lat)
    dy = b[0] - a[0]
    return math.atan2(dy, dx)


def turn_angle(prev: Coordinates, current: Coordinates, nxt: Coordinates) -> float:
    """Absolute change of direction at ``current``, normalized to [0, pi]."""
    delta = abs(bearing(current, nxt) - bearing(prev, current)) % (2 * math.pi)
    return 2 * math.pi - delta if delta > math.pi else delta


def _squared_distance(a: Coordinates, b: Coordinates) -> float:
    return (a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2


def interesting_points(elements: List[Dict[str, Any]], name: str) -> Dict[str, List[Coordinates]]:
    """Split the named waterway's nodes into confluences, meanders and the rest.

    A confluence is a node shared with a waterway way of another name; a meander
    is an interior node where the course turns by more than 45 degrees.
    """
    key = normalize_name(name)
    nodes = OverpassResultConverter.index_nodes(elements)
    named_ways = []
    other_node_ids: Set[int] = set()

    for element in elements:
        if element.get("type") != "way":
            continue
        tags = element.get("tags") or {}
        if not tags.get("waterway"):
            continue
        if normalize_name(tags.get("name", "")) == key:
            named_ways.append(element)
        else:
            other_node_ids.update(element.get("nodes", []))

    confluences: List[Coordinates] = []
    meanders: List[Coordinates] = []
    all_nodes: List[Coordinates] = []

    for way in named_ways:
        resolved = OverpassResultConverter.way_coordinates(way, nodes)
        for i, (node_id, coordinates) in enumerate(resolved):
            all_nodes.append(coordinates)
            if node_id in other_node_ids:
                confluences.append(coordinates)
            elif 0 < i < len(resolved) - 1:
                angle = turn_angle(resolved[i - 1][1], coordinates, resolved[i + 1][1])
                if angle > MEANDER_THRESHOLD:
                    meanders.append(coordinates)

    return {"confluences": confluences, "meanders": meanders, "nodes": all_nodes}


class CoordinateSnapper:
    """Replaces a site's coordinates with a point on its named waterway.

    Never invents a coordinate: a site whose name cannot be found on real
    geometry raises ``RiverNotFound`` and is dropped by the caller.
    """

    def __init__(
        self, rng: Optional[random.Random] = None, radius_km: float = GOLD_SEARCH_SNAP_RADIUS_KM
    ):
        self.rng = rng or random.Random()
        self.radius_km = radius_km

    def match_feature(
        self, site: GoldCandidateSite, features: Sequence[WaterwayFeature]
    ) -> Optional[WaterwayFeature]:
        matches = [f for f in features if normalize_name(f.name) == site.name_key]
        if not matches:
            return None
        if site.has_location:
            return min(matches, key=lambda f: _squared_distance(f.coordinates, site.coordinates))
        return matches[0]

    def pick_point(self, elements: List[Dict[str, Any]], name: str) -> Coordinates:
        points = interesting_points(elements, name)
        candidates = points["confluences"] + points["meanders"]
        if candidates:
            return self.rng.choice(candidates)
        if points["nodes"]:
            return self.rng.choice(points["nodes"])
        raise RiverNotFound(name)

    async def snap(
        self,
        site: GoldCandidateSite,
        features: Sequence[WaterwayFeature],
        geo_resolver,
        center: Optional[Coordinates] = None,
    ) -> GoldCandidateSite:
        """Set ``site.coordinates`` from real geometry; nothing else is touched.

        Raises:
            RiverNotFound: if neither the enumerated features nor the secondary
                geometry lookup know the waterway
        """
        feature = self.match_feature(site, features)
        if feature is not None:
            site.coordinates = feature.coordinates
            return site

        anchor = site.coordinates if site.has_location else center
        if anchor is None:
            raise RiverNotFound(site.name, f"Aucun point de recherche pour {site.name}")

        logger.info(f"'{site.name}' not in enumerated features, querying its geometry")
        try:
            elements = await geo_resolver.fetch_waterway_geometry(site.name, anchor, self.radius_km)
        except NetworkError as e:
            raise RiverNotFound(site.name, f"Géométrie indisponible pour {site.name}: {e}") from e

        site.coordinates = self.pick_point(elements, site.name)
        return site
