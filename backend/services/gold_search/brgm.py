"""BRGM (French geological survey) geology layers and InfoTerre links."""

import re
from dataclasses import dataclass
from typing import Any, Dict, List

from core.config import BRGM_WMS_URL

INFOTERRE_VIEWER_URL = "https://infoterre.brgm.fr/viewer/MainTileForward.do"
INFOTERRE_SEARCH_URL = "https://infoterre.brgm.fr/rechercher/search.htm"


@dataclass
class GeologyLayer:
    id: str
    name: str
    wms_url: str
    layers: str
    color: str
    description: str
    visible: bool = False
    opacity: float = 0.7


GEOLOGY_LAYERS: List[GeologyLayer] = [
    GeologyLayer(
        id="geology",
        name="Carte géologique",
        wms_url=BRGM_WMS_URL,
        layers="GEOLOGIE",
        color="#ff7700",
        description="Carte géologique de la France au 1/50 000",
    ),
    GeologyLayer(
        id="quartz",
        name="Filons de quartz",
        wms_url=BRGM_WMS_URL,
        layers="GITES_SUBSTANCES",
        color="#ffffff",
        description="Filons de quartz potentiellement aurifères",
    ),
    GeologyLayer(
        id="minerals",
        name="Gîtes minéraux",
        wms_url=BRGM_WMS_URL,
        layers="GITES",
        color="#ffcc00",
        description="Gîtes et indices minéraux (dont or)",
    ),
    GeologyLayer(
        id="faults",
        name="Failles géologiques",
        wms_url=BRGM_WMS_URL,
        layers="FAILLES_50",
        color="#ff0000",
        description="Failles et structures géologiques",
    ),
]


def get_geology_layer(layer_id: str) -> GeologyLayer:
    for layer in GEOLOGY_LAYERS:
        if layer.id == layer_id:
            return layer
    raise KeyError(layer_id)


def generate_wms_url(layer: GeologyLayer, width: int, height: int, bbox: str) -> str:
    """GetMap URL for a layer; ``bbox`` is "minLat,minLon,maxLat,maxLon" (EPSG:4326, WMS 1.3.0)."""
    return (
        f"{layer.wms_url}?SERVICE=WMS&VERSION=1.3.0&REQUEST=GetMap&FORMAT=image/png"
        f"&TRANSPARENT=true&LAYERS={layer.layers}&WIDTH={width}&HEIGHT={height}"
        f"&CRS=EPSG:4326&STYLES=&BBOX={bbox}"
    )


def get_layer_legend_url(layer: GeologyLayer) -> str:
    return (
        f"{layer.wms_url}?SERVICE=WMS&VERSION=1.3.0&REQUEST=GetLegendGraphic"
        f"&FORMAT=image/png&LAYER={layer.layers}&STYLE=default"
    )


def feature_info_params(
    layer: GeologyLayer, lat: float, lon: float, delta: float = 0.005
) -> Dict[str, Any]:
    """GetFeatureInfo query parameters for the pixel at the centre of a small bbox."""
    bbox = f"{lat - delta},{lon - delta},{lat + delta},{lon + delta}"
    return {
        "SERVICE": "WMS",
        "VERSION": "1.3.0",
        "REQUEST": "GetFeatureInfo",
        "LAYERS": layer.layers,
        "QUERY_LAYERS": layer.layers,
        "CRS": "EPSG:4326",
        "BBOX": bbox,
        "WIDTH": 101,
        "HEIGHT": 101,
        "I": 50,
        "J": 50,
        "INFO_FORMAT": "text/plain",
        "STYLES": "",
    }


def generate_infoterre_link(lat: float, lon: float, zoom: int = 14) -> str:
    """InfoTerre viewer centred on the coordinates."""
    return f"{INFOTERRE_VIEWER_URL}?x={lon}&y={lat}&zoom={zoom}"


def generate_geological_map_link(card_number: str) -> str:
    """Link to a 1/50 000 geological map sheet; non-digits are stripped from the number."""
    clean_number = re.sub(r"[^\d]", "", card_number)
    return f"{INFOTERRE_SEARCH_URL}?typesearch=cartegeol50&cartegeol50={clean_number}"


def generate_mineral_index_link(index_number: str) -> str:
    """Link to a mineral occurrence (gîte) record."""
    clean_number = re.sub(r"[^\d]", "", index_number)
    return f"{INFOTERRE_SEARCH_URL}?typesearch=gite&id={clean_number}"


# Attribute names used by the BRGM plain-text GetFeatureInfo output
MAP_SHEET_PATTERN = re.compile(
    r"\b(?:NUM_CARTE|NUMERO_CARTE|FEUILLE)\s*=\s*'?([\w°-]+)", re.IGNORECASE
)
MINERAL_INDEX_PATTERN = re.compile(
    r"\b(?:ID_GITE|CODE_GITE|INDICE)\s*=\s*'?([\w-]+)", re.IGNORECASE
)


def feature_info_links(info: str) -> List[str]:
    """InfoTerre links for the map sheets and mineral occurrences named in ``info``."""
    links = []
    for match in MAP_SHEET_PATTERN.finditer(info):
        if re.search(r"\d", match.group(1)):
            links.append(generate_geological_map_link(match.group(1)))
    for match in MINERAL_INDEX_PATTERN.finditer(info):
        if re.search(r"\d", match.group(1)):
            links.append(generate_mineral_index_link(match.group(1)))
    return list(dict.fromkeys(links))


def layer_to_dict(layer: GeologyLayer, width: int, height: int, bbox: str) -> Dict[str, Any]:
    return {
        "id": layer.id,
        "name": layer.name,
        "color": layer.color,
        "description": layer.description,
        "visible": layer.visible,
        "opacity": layer.opacity,
        "wms_url": generate_wms_url(layer, width, height, bbox),
        "legend_url": get_layer_legend_url(layer),
    }
