"""
Parsing and repair of the model's JSON answer into a ``SearchResultSet``.

Three parse strategies are tried in order, each returning the decoded JSON
value or ``None``. A value only counts when it has the shape of an answer (a
bare array, or an object holding one of the mode's tier arrays):

1. ``parse_stripped``: code fences and any prose around the outermost braces removed
2. ``parse_strict``: the raw text as-is
3. ``parse_balanced``: every balanced ``{...}`` substring, largest acceptable one wins

Whatever parses is then normalized site by site: every narrative field gets a
French placeholder instead of null, numbers are clamped into their bounds and
the tier is taken from the array the site came from. When nothing parses, a
single sentinel site is returned so callers always have something to render.
"""

import json
import logging
import math
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from models.gold_sites import (
    NO_LOCATION,
    Coordinates,
    GoldCandidateSite,
    GoldOrigin,
    Hotspot,
    ProspectionSpot,
    ReferencedSpots,
    SearchResultSet,
    SiteKind,
    Tier,
    TierMode,
    normalize_name,
)
from services.gold_search.errors import MalformedResponse

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "Aucune description disponible"
NO_GEOLOGY = "Aucune information géologique disponible"
NO_HISTORY = "Aucun historique disponible"
NO_HISTORY_UNKNOWN = "Aucun historique - Spot identifié par analyse géologique"
NO_SOURCE = "Source non spécifiée"
NO_LOCATION_NAME = "Lieu non précisé"
NO_GOLD_ORIGIN = "Analyse géologique non disponible"
NO_BRGM_DATA = "Données BRGM non disponibles"
DEFAULT_PROSPECTION_DESCRIPTION = "Portion intéressante à prospecter"
DEFAULT_GEOLOGICAL_FEATURES = ["Caractéristiques géologiques favorables"]
NO_ACCESS_INFO = "Information d'accès non disponible"

DEFAULT_RATING = 3
DEFAULT_PRIORITY = 3

PLACEHOLDER_NAMES = {
    Tier.MAIN: "Spot principal",
    Tier.SECONDARY: "Spot secondaire",
    Tier.UNKNOWN: "Spot potentiel",
}

# Array keys accepted per tier, in priority order
TIER_KEYS = {
    Tier.MAIN: ("mainSpots", "additionalMainSpots"),
    Tier.SECONDARY: ("secondarySpots", "additionalSecondarySpots"),
    Tier.UNKNOWN: ("unknownSpots", "additionalUnknownSpots"),
}

SITE_KINDS = {
    "rivière": SiteKind.RIVER,
    "riviere": SiteKind.RIVER,
    "fleuve": SiteKind.RIVER,
    "river": SiteKind.RIVER,
    "ruisseau": SiteKind.STREAM,
    "stream": SiteKind.STREAM,
    "torrent": SiteKind.TORRENT,
}

CODE_FENCE_RE = re.compile(r"```(?:json|JSON)?")


# ----------------------------------------------------------------------------
# Parse strategies
# ----------------------------------------------------------------------------


Acceptor = Callable[[Any], bool]


def _loads(text: str, accept: Optional[Acceptor] = None) -> Optional[Any]:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    if not isinstance(value, (dict, list)):
        return None
    if accept is not None and not accept(value):
        return None
    return value


def has_result_shape(value: Any, tier_mode: TierMode = TierMode.STANDARD) -> bool:
    """True for a bare array or an object carrying one of the mode's tier arrays.

    A lone site object (what the balanced scan finds in a truncated answer) or
    an error object such as ``{"error": "rate limited"}`` has no tier array.
    """
    if isinstance(value, list):
        return True
    if not isinstance(value, dict):
        return False
    keys = [key for tier in _tiers_for(tier_mode) for key in TIER_KEYS[tier]]
    return any(isinstance(value.get(key), list) for key in keys)


def strip_code_fences(text: str) -> str:
    return CODE_FENCE_RE.sub("", text)


def strip_wrapper_text(text: str) -> Optional[str]:
    """Drop everything before the first ``{`` and after the last ``}``."""
    text = strip_code_fences(text)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def parse_stripped(text: str, accept: Optional[Acceptor] = None) -> Optional[Any]:
    stripped = strip_wrapper_text(text)
    if stripped is None:
        return None
    return _loads(stripped, accept)


def parse_strict(text: str, accept: Optional[Acceptor] = None) -> Optional[Any]:
    return _loads(text.strip(), accept)


def balanced_brace_candidates(text: str) -> List[str]:
    """Every balanced ``{...}`` substring, ignoring braces inside string literals."""
    candidates = []
    stack: List[int] = []
    in_string = False
    escaped = False

    for i, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            # Quotes only open a string literal inside an object
            if stack:
                in_string = True
        elif char == "{":
            stack.append(i)
        elif char == "}" and stack:
            start = stack.pop()
            candidates.append(text[start : i + 1])

    return candidates


def parse_balanced(text: str, accept: Optional[Acceptor] = None) -> Optional[Any]:
    for candidate in sorted(balanced_brace_candidates(text), key=len, reverse=True):
        value = _loads(candidate, accept)
        if value is not None:
            return value
    return None


PARSE_STRATEGIES = (parse_stripped, parse_strict, parse_balanced)


def parse_model_output(text: str, tier_mode: TierMode = TierMode.STANDARD) -> Any:
    """Decode the model output with the first strategy that yields an answer.

    Raises:
        MalformedResponse: if no strategy yields a bare array or an object with
            one of the mode's tier arrays
    """
    if not text or not text.strip():
        raise MalformedResponse("Réponse vide")

    def accept(value: Any) -> bool:
        return has_result_shape(value, tier_mode)

    for strategy in PARSE_STRATEGIES:
        value = strategy(text, accept)
        if value is not None:
            logger.debug(f"Model output parsed with {strategy.__name__}")
            return value

    raise MalformedResponse("Aucune structure JSON exploitable dans la réponse du modèle")


# ----------------------------------------------------------------------------
# Field coercion
# ----------------------------------------------------------------------------


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _text_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def clamp_int(value: Any, low: int, high: int, default: int) -> int:
    number = _number(value)
    if number is None:
        return default
    return max(low, min(high, int(round(number))))


def coerce_coordinates(value: Any, default: Coordinates = NO_LOCATION) -> Coordinates:
    """[lat, lon] pair within WGS84 bounds, else ``default``."""
    if isinstance(value, dict):
        value = [value.get("lat"), value.get("lon", value.get("lng"))]
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return default
    lat, lon = _number(value[0]), _number(value[1])
    if lat is None or lon is None:
        return default
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return default
    return (lat, lon)


def coerce_kind(value: Any) -> SiteKind:
    if isinstance(value, str):
        return SITE_KINDS.get(value.strip().lower(), SiteKind.RIVER)
    return SiteKind.RIVER


def coerce_distance(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    number = _number(value)
    if number is not None:
        return f"{number:g} km"
    return None


def _hotspot(raw: Dict[str, Any]) -> Hotspot:
    return Hotspot(
        location=_text(raw.get("location"), NO_LOCATION_NAME),
        description=_text(raw.get("description"), NO_DESCRIPTION),
        source=_text(raw.get("source"), NO_SOURCE),
    )


def _gold_origin(raw: Any, fill_default: bool) -> Optional[GoldOrigin]:
    if not isinstance(raw, dict):
        if not fill_default:
            return None
        raw = {}
    return GoldOrigin(
        description=_text(raw.get("description"), NO_GOLD_ORIGIN),
        evidence_summary=_text(raw.get("brgmData", raw.get("evidenceSummary")), NO_BRGM_DATA),
        entry_points=_text_list(raw.get("entryPoints")),
        tributaries=_text_list(raw.get("affluents", raw.get("tributaries"))),
    )


def _referenced_spots(raw: Any) -> Optional[ReferencedSpots]:
    if not isinstance(raw, dict):
        return None
    return ReferencedSpots(
        description=_text(raw.get("description"), NO_DESCRIPTION),
        locations=_text_list(raw.get("locations")),
        sources=_text_list(raw.get("sources")),
    )


def _prospection_spot(raw: Dict[str, Any], parent: Coordinates) -> ProspectionSpot:
    features = _text_list(raw.get("geologicalFeatures"))
    return ProspectionSpot(
        coordinates=coerce_coordinates(raw.get("coordinates"), default=parent),
        description=_text(raw.get("description"), DEFAULT_PROSPECTION_DESCRIPTION),
        geological_features=features or list(DEFAULT_GEOLOGICAL_FEATURES),
        access_info=_text(raw.get("accessInfo"), NO_ACCESS_INFO),
        priority=clamp_int(raw.get("priority"), 1, 3, DEFAULT_PRIORITY),
    )


def normalize_site(
    raw: Dict[str, Any], tier: Tier, index: int, tier_mode: TierMode
) -> GoldCandidateSite:
    """Fill defaults and clamp bounds for one site object."""
    unknown_mode = tier_mode == TierMode.UNKNOWN
    coordinates = coerce_coordinates(raw.get("coordinates"))
    hotspots = raw.get("hotspots")
    if not isinstance(hotspots, list):
        hotspots = []
    prospection = raw.get("prospectionSpots")
    if not isinstance(prospection, list):
        prospection = []

    return GoldCandidateSite(
        name=_text(raw.get("name"), f"{PLACEHOLDER_NAMES[tier]} {index + 1}"),
        kind=coerce_kind(raw.get("type")),
        coordinates=coordinates,
        description=_text(raw.get("description"), NO_DESCRIPTION),
        geology=_text(raw.get("geology"), NO_GEOLOGY),
        history=_text(raw.get("history"), NO_HISTORY_UNKNOWN if unknown_mode else NO_HISTORY),
        rating=clamp_int(raw.get("rating"), 1, 5, DEFAULT_RATING),
        sources=_text_list(raw.get("sources")) or [NO_SOURCE],
        hotspots=[_hotspot(h) for h in hotspots if isinstance(h, dict)],
        tier=tier,
        distance=coerce_distance(raw.get("distance")),
        gold_origin=_gold_origin(raw.get("goldOrigin"), fill_default=unknown_mode),
        referenced_spots=_referenced_spots(raw.get("referencedSpots")),
        prospection_spots=[
            _prospection_spot(p, coordinates) for p in prospection if isinstance(p, dict)
        ],
    )


# ----------------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------------


def _tiers_for(tier_mode: TierMode) -> Tuple[Tier, ...]:
    if tier_mode == TierMode.UNKNOWN:
        return (Tier.UNKNOWN,)
    return (Tier.MAIN, Tier.SECONDARY)


def _raw_arrays(value: Any, tier_mode: TierMode) -> Dict[Tier, List[Any]]:
    tiers = _tiers_for(tier_mode)
    if isinstance(value, list):
        # A bare array is read as the first tier of the mode
        return {tiers[0]: value}

    arrays: Dict[Tier, List[Any]] = {}
    for tier in tiers:
        items: List[Any] = []
        for key in TIER_KEYS[tier]:
            if isinstance(value.get(key), list):
                items.extend(value[key])
        arrays[tier] = items
    return arrays


def sentinel_result(
    tier_mode: TierMode, message: str, place_name: Optional[str] = None
) -> SearchResultSet:
    """One renderable, unplottable site explaining that the answer was unusable."""
    tier = Tier.UNKNOWN if tier_mode == TierMode.UNKNOWN else Tier.MAIN
    where = f" pour {place_name}" if place_name else ""
    site = GoldCandidateSite(
        name="Résultat indisponible",
        coordinates=NO_LOCATION,
        description=(
            f"La réponse du modèle n'a pas pu être interprétée{where}. "
            "Relancez la recherche ou élargissez le rayon."
        ),
        geology=NO_GEOLOGY,
        history=NO_HISTORY_UNKNOWN if tier == Tier.UNKNOWN else NO_HISTORY,
        rating=1,
        sources=[NO_SOURCE],
        tier=tier,
        prospection_spots=[],
    )
    result = SearchResultSet(tier_mode=tier_mode, error=message)
    result.spots_for(tier).append(site)
    return result


def validate(
    raw_text: str,
    tier_mode: TierMode = TierMode.STANDARD,
    place_name: Optional[str] = None,
) -> SearchResultSet:
    """Turn raw model output into a well-formed result set. Never raises."""
    try:
        value = parse_model_output(raw_text, tier_mode)
    except MalformedResponse as e:
        logger.warning(f"Unparseable model output ({len(raw_text or '')} chars): {e.message}")
        return sentinel_result(tier_mode, e.message, place_name)

    result = SearchResultSet(tier_mode=tier_mode)
    if isinstance(value, dict) and isinstance(value.get("hasMoreResults"), bool):
        result.has_more_results = value["hasMoreResults"]

    seen = set()
    for tier, items in _raw_arrays(value, tier_mode).items():
        target = result.spots_for(tier)
        for index, raw in enumerate(items):
            if not isinstance(raw, dict):
                logger.debug(f"Skipping non-object {tier.value} entry at index {index}")
                continue
            site = normalize_site(raw, tier, index, tier_mode)
            key = normalize_name(site.name)
            if key in seen:
                logger.debug(f"Dropping duplicate site '{site.name}'")
                continue
            seen.add(key)
            target.append(site)

    logger.info(
        f"Validated {len(result.main_spots)} main, {len(result.secondary_spots)} secondary, "
        f"{len(result.unknown_spots)} unknown sites"
    )
    return result
