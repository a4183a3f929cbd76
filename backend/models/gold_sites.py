"""Data models for the gold-location search pipeline.

Field names are snake_case in Python and camelCase on the wire, so a
serialized ``SearchResultSet`` matches the JSON shape the LLM is asked to emit.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Coordinates = Tuple[float, float]

# (0, 0) means "unresolved"; consumers must not plot it.
NO_LOCATION: Coordinates = (0.0, 0.0)


def is_unresolved(coordinates: Coordinates) -> bool:
    return tuple(coordinates) == NO_LOCATION


class WaterwayKind(str, Enum):
    RIVER = "river"
    STREAM = "stream"
    OTHER = "other"


class SiteKind(str, Enum):
    RIVER = "river"
    STREAM = "stream"
    TORRENT = "torrent"


class Tier(str, Enum):
    MAIN = "main"
    SECONDARY = "secondary"
    UNKNOWN = "unknown"


class TierMode(str, Enum):
    STANDARD = "standard"  # mainSpots + secondarySpots
    UNKNOWN = "unknown"  # unknownSpots


class SortBy(str, Enum):
    DISTANCE = "distance"
    RATING = "rating"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlaceQuery(BaseModel):
    raw_name: str = Field(..., min_length=1, description="Free-text place name")
    radius_km: float = Field(50.0, gt=0, description="Search radius in kilometres")

    @property
    def place_name(self) -> str:
        """Place name without an autocomplete suffix, e.g. 'Carcassonne (Aude)'."""
        return self.raw_name.split("(")[0].strip()


class WaterwayFeature(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    coordinates: Coordinates
    kind: WaterwayKind = WaterwayKind.OTHER
    waterway: Optional[str] = None  # raw OSM tag value
    osm_id: Optional[int] = None


class PlaceFeature(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    coordinates: Coordinates
    place_type: str


class AreaFeatures(BaseModel):
    waterways: List[WaterwayFeature] = Field(default_factory=list)
    places: List[PlaceFeature] = Field(default_factory=list)


class Hotspot(_CamelModel):
    location: str
    description: str
    source: str


class GoldOrigin(_CamelModel):
    description: str
    evidence_summary: str
    entry_points: List[str] = Field(default_factory=list)
    tributaries: List[str] = Field(default_factory=list)


class ReferencedSpots(_CamelModel):
    description: str
    locations: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)


class ProspectionSpot(_CamelModel):
    coordinates: Coordinates
    description: str
    geological_features: List[str] = Field(default_factory=list)
    access_info: str
    priority: int = Field(3, ge=1, le=3)


class GoldCandidateSite(_CamelModel):
    name: str
    kind: SiteKind = Field(SiteKind.RIVER, alias="type")
    coordinates: Coordinates = NO_LOCATION
    description: str
    geology: str
    history: str
    rating: int = Field(3, ge=1, le=5)
    sources: List[str] = Field(default_factory=list)
    hotspots: List[Hotspot] = Field(default_factory=list)
    tier: Tier
    distance: Optional[str] = None
    gold_origin: Optional[GoldOrigin] = None
    referenced_spots: Optional[ReferencedSpots] = None
    prospection_spots: Optional[List[ProspectionSpot]] = None

    @property
    def name_key(self) -> str:
        return normalize_name(self.name)

    @property
    def has_location(self) -> bool:
        return not is_unresolved(self.coordinates)


class SearchResultSet(_CamelModel):
    tier_mode: TierMode = TierMode.STANDARD
    main_spots: List[GoldCandidateSite] = Field(default_factory=list)
    secondary_spots: List[GoldCandidateSite] = Field(default_factory=list)
    unknown_spots: List[GoldCandidateSite] = Field(default_factory=list)
    # Set when the model output could not be parsed; the sites then hold a sentinel
    error: Optional[str] = None
    has_more_results: Optional[bool] = None

    def spots_for(self, tier: Tier) -> List[GoldCandidateSite]:
        if tier == Tier.MAIN:
            return self.main_spots
        if tier == Tier.SECONDARY:
            return self.secondary_spots
        return self.unknown_spots

    def all_sites(self) -> List[GoldCandidateSite]:
        return [*self.main_spots, *self.secondary_spots, *self.unknown_spots]

    def names(self) -> List[str]:
        return [site.name for site in self.all_sites()]

    def is_empty(self) -> bool:
        return not self.all_sites()

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the tier-mode specific wire shape."""
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        payload.pop("tierMode", None)
        if self.tier_mode == TierMode.UNKNOWN:
            payload.pop("mainSpots", None)
            payload.pop("secondarySpots", None)
        else:
            payload.pop("unknownSpots", None)
        return payload


def normalize_name(name: str) -> str:
    """Dedup/match key for hydronyms: case-insensitive, whitespace-collapsed."""
    return " ".join(name.split()).casefold()
