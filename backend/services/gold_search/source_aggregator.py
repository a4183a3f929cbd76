"""
Best-effort evidence gathering per waterway, used only as prompt context.

Each configured source belongs to one category (geological survey,
specialized-community references, cross-referencing forums). Sources are
queried concurrently for every waterway; a failing source contributes an
empty string and never fails the pipeline.
"""

import asyncio
import logging
from typing import Dict, List, Mapping, Optional, Sequence

import requests

from core.config import BRGM_EVIDENCE_ENABLED, HTTP_TIMEOUT_SECONDS, USER_AGENT
from models.gold_sites import Coordinates, is_unresolved
from services.gold_search.brgm import (
    feature_info_links,
    feature_info_params,
    generate_infoterre_link,
    get_geology_layer,
)

logger = logging.getLogger(__name__)

GEOLOGICAL_SURVEY = "geological_survey"
COMMUNITY_REFERENCE = "community_reference"
FORUM = "forum"

# GetFeatureInfo answers can be long; the prompt only needs the gist
MAX_FEATURE_INFO_CHARS = 400


class EvidenceSource:
    """A single provider of descriptive evidence for a waterway."""

    category: str = ""
    label: str = ""

    def fetch(self, waterway_name: str, coordinates: Optional[Coordinates]) -> str:
        raise NotImplementedError


class ReferenceSource(EvidenceSource):
    """Points the model at a known reference site for the waterway."""

    def __init__(self, category: str, label: str, url: str, template: str):
        self.category = category
        self.label = label
        self.url = url
        self.template = template

    def fetch(self, waterway_name: str, coordinates: Optional[Coordinates]) -> str:
        return self.template.format(name=waterway_name, label=self.label, url=self.url)


class BrgmGeologySource(EvidenceSource):
    """Geology under the waterway from the BRGM WMS (GetFeatureInfo)."""

    category = GEOLOGICAL_SURVEY
    label = "BRGM / InfoTerre"

    def __init__(self, layer_id: str = "geology", timeout: int = HTTP_TIMEOUT_SECONDS):
        self.layer = get_geology_layer(layer_id)
        self.timeout = timeout

    def fetch(self, waterway_name: str, coordinates: Optional[Coordinates]) -> str:
        if coordinates is None or is_unresolved(coordinates):
            return ""
        lat, lon = coordinates
        response = requests.get(
            self.layer.wms_url,
            params=feature_info_params(self.layer, lat, lon),
            headers={"User-Agent": USER_AGENT},
            timeout=self.timeout,
        )
        response.raise_for_status()
        info = " ".join(response.text.split())
        link = " ".join([generate_infoterre_link(lat, lon)] + feature_info_links(info))
        info = info[:MAX_FEATURE_INFO_CHARS]
        if not info:
            return f"Carte géologique de {waterway_name} : {link}"
        return f"Géologie au droit de {waterway_name} : {info} ({link})"


def default_sources() -> List[EvidenceSource]:
    sources: List[EvidenceSource] = []
    if BRGM_EVIDENCE_ENABLED:
        sources.append(BrgmGeologySource())
    sources.extend(
        [
            ReferenceSource(
                GEOLOGICAL_SURVEY,
                "MineralInfo",
                "https://www.mineralinfo.fr/",
                "Gisements et indices minéralisés proches de {name} ({url})",
            ),
            ReferenceSource(
                COMMUNITY_REFERENCE,
                "GuppyOr",
                "http://pujol.chez-alice.fr/guppyor/",
                "Témoignages et spots d'orpaillage sur {name} ({url})",
            ),
            ReferenceSource(
                COMMUNITY_REFERENCE,
                "Detecteurs.fr",
                "https://www.detecteurs.fr/page/cours-eau-aurifere.html",
                "Carte des rivières aurifères, entrée {name} ({url})",
            ),
            ReferenceSource(
                FORUM,
                "Géoforum",
                "https://www.geoforum.fr/forum/39-orpaillage/",
                "Discussions sur l'orpaillage dans {name} ({url})",
            ),
        ]
    )
    return sources


class SourceAggregator:
    def __init__(self, sources: Optional[Sequence[EvidenceSource]] = None):
        self.sources = list(sources) if sources is not None else default_sources()

    def _safe_fetch(
        self, source: EvidenceSource, waterway_name: str, coordinates: Optional[Coordinates]
    ) -> str:
        try:
            return source.fetch(waterway_name, coordinates) or ""
        except Exception as e:
            logger.debug(f"Evidence source {source.label} failed for '{waterway_name}': {e}")
            return ""

    async def _gather_one(
        self, waterway_name: str, coordinates: Optional[Coordinates]
    ) -> str:
        loop = asyncio.get_running_loop()
        texts = await asyncio.gather(
            *[
                loop.run_in_executor(None, self._safe_fetch, source, waterway_name, coordinates)
                for source in self.sources
            ]
        )
        return "\n".join(
            f"[{source.label}] {text}" for source, text in zip(self.sources, texts) if text
        )

    async def gather(
        self,
        waterway_names: Sequence[str],
        locations: Optional[Mapping[str, Coordinates]] = None,
    ) -> Dict[str, str]:
        """Evidence blob per waterway name; a name with no evidence maps to ""."""
        locations = locations or {}
        unique_names = list(dict.fromkeys(waterway_names))
        blobs = await asyncio.gather(
            *[self._gather_one(name, locations.get(name)) for name in unique_names]
        )
        evidence = dict(zip(unique_names, blobs))
        found = sum(1 for blob in blobs if blob)
        logger.info(f"Gathered evidence for {found}/{len(unique_names)} waterways")
        return evidence
