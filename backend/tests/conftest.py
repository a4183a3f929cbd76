import sys
from pathlib import Path

# Add the backend root directory to Python path first
backend_root = Path(__file__).parent.parent
sys.path.insert(0, str(backend_root))

"""
Pytest configuration and shared fixtures for the gold-search tests.
"""

import json

import pytest

from models.gold_sites import (
    AreaFeatures,
    GoldCandidateSite,
    PlaceFeature,
    Tier,
    WaterwayFeature,
    WaterwayKind,
)

AUDE = (43.2130, 2.3491)
ORBIEL = (43.3119, 2.2275)
CARCASSONNE = (43.2130, 2.3522)


@pytest.fixture
def carcassonne_elements():
    """Overpass elements: L'Aude and L'Orbiel ways, their nodes and one town."""
    return [
        {"type": "node", "id": 1, "lat": 43.2000, "lon": 2.3400},
        {"type": "node", "id": 2, "lat": AUDE[0], "lon": AUDE[1]},
        {"type": "node", "id": 3, "lat": 43.2250, "lon": 2.3600},
        {"type": "node", "id": 4, "lat": 43.3000, "lon": 2.2200},
        {"type": "node", "id": 5, "lat": ORBIEL[0], "lon": ORBIEL[1]},
        {"type": "node", "id": 6, "lat": 43.3200, "lon": 2.2300},
        {
            "type": "node",
            "id": 50,
            "lat": CARCASSONNE[0],
            "lon": CARCASSONNE[1],
            "tags": {"place": "town", "name": "Carcassonne"},
        },
        {
            "type": "way",
            "id": 100,
            "nodes": [1, 2, 3],
            "tags": {"waterway": "river", "name": "L'Aude"},
        },
        {
            "type": "way",
            "id": 101,
            "nodes": [4, 5, 6],
            "tags": {"waterway": "stream", "name": "L'Orbiel"},
        },
        {"type": "way", "id": 102, "nodes": [3, 4], "tags": {"waterway": "ditch"}},
    ]


@pytest.fixture
def carcassonne_area():
    return AreaFeatures(
        waterways=[
            WaterwayFeature(
                name="L'Aude",
                coordinates=AUDE,
                kind=WaterwayKind.RIVER,
                waterway="river",
                osm_id=100,
            ),
            WaterwayFeature(
                name="L'Orbiel",
                coordinates=ORBIEL,
                kind=WaterwayKind.STREAM,
                waterway="stream",
                osm_id=101,
            ),
        ],
        places=[PlaceFeature(name="Carcassonne", coordinates=CARCASSONNE, place_type="town")],
    )


@pytest.fixture
def make_site():
    """Factory for validated sites with sensible defaults."""

    def _make(name="L'Aude", tier=Tier.MAIN, **overrides):
        fields = {
            "name": name,
            "coordinates": (0.0, 0.0),
            "description": "Description",
            "geology": "Géologie",
            "history": "Historique",
            "rating": 3,
            "sources": ["BRGM"],
            "tier": tier,
        }
        fields.update(overrides)
        return GoldCandidateSite(**fields)

    return _make


@pytest.fixture
def standard_completion():
    """A well-formed standard-mode completion naming L'Aude with an out-of-range rating."""
    return json.dumps(
        {
            "mainSpots": [
                {
                    "name": "L'Aude",
                    "type": "rivière",
                    "coordinates": [43.25, 2.4],
                    "distance": "2 km",
                    "description": "Rivière principale",
                    "geology": "Alluvions quaternaires",
                    "history": "Orpaillage historique",
                    "rating": 6,
                    "sources": ["GuppyOr - Orpaillage dans l'Aude"],
                    "hotspots": [
                        {
                            "location": "Méandre de Carcassonne",
                            "description": "Bancs de graviers",
                            "source": "GuppyOr",
                        }
                    ],
                }
            ],
            "secondarySpots": [
                {
                    "name": "L'Orbiel",
                    "type": "ruisseau",
                    "coordinates": [43.31, 2.22],
                    "distance": "15 km",
                    "description": "Affluent de l'Aude",
                    "geology": "Zone minéralisée de Salsigne",
                    "history": "Mines d'or de Salsigne",
                    "rating": 4,
                    "sources": ["BRGM - Salsigne"],
                    "hotspots": [],
                }
            ],
            "hasMoreResults": True,
        },
        ensure_ascii=False,
    )
