"""LLM call that proposes candidate gold-bearing waterways for a place."""

import logging
from typing import Dict, List, Optional, Sequence

from langchain_core.messages import HumanMessage, SystemMessage

from core.config import (
    GOLD_SEARCH_MAX_PROMPT_WATERWAYS,
    GOLD_SEARCH_MAX_TOKENS,
    GOLD_SEARCH_TEMPERATURE,
    GOLD_SEARCH_UNKNOWN_TEMPERATURE,
)
from models.gold_sites import (
    Coordinates,
    PlaceFeature,
    PlaceQuery,
    TierMode,
    WaterwayFeature,
    WaterwayKind,
)
from models.model_info import ModelInfo
from services.ai.llm_config import get_llm_for_provider, get_model_info
from services.gold_search.errors import CompletionFailure
from services.gold_search.prompts import build_system_prompt, build_user_prompt

logger = logging.getLogger(__name__)


def unique_waterway_names(
    waterways: Sequence[WaterwayFeature], limit: int = GOLD_SEARCH_MAX_PROMPT_WATERWAYS
) -> List[str]:
    """Distinct names in enumeration order, rivers first, capped at ``limit``."""
    ordered = sorted(waterways, key=lambda w: 0 if w.kind == WaterwayKind.RIVER else 1)
    names = list(dict.fromkeys(w.name for w in ordered))
    if len(names) > limit:
        logger.info(f"Truncating waterway list from {len(names)} to {limit} names")
    return names[:limit]


def waterway_locations(waterways: Sequence[WaterwayFeature]) -> Dict[str, Coordinates]:
    """First known coordinate per waterway name."""
    locations: Dict[str, Coordinates] = {}
    for waterway in waterways:
        locations.setdefault(waterway.name, waterway.coordinates)
    return locations


class CandidateGenerator:
    """Builds the grounded prompt and returns the raw completion text.

    ``llm`` may be injected (tests pass an ``AsyncMock``); otherwise one is
    created per tier mode through the configured provider. ``model_info``
    describes that model; it is looked up from the provider catalogue when
    no llm is injected.
    """

    def __init__(self, llm=None, model_info: Optional[ModelInfo] = None):
        self._llm = llm
        self._model_info = model_info

    def accepts_images(self) -> bool:
        """False only when the model is known not to take image parts."""
        info = self._model_info
        if info is None and self._llm is None:
            info = get_model_info()
        return info is None or info.supports_vision

    def _get_llm(self, tier_mode: TierMode):
        if self._llm is not None:
            return self._llm
        temperature = (
            GOLD_SEARCH_UNKNOWN_TEMPERATURE
            if tier_mode == TierMode.UNKNOWN
            else GOLD_SEARCH_TEMPERATURE
        )
        return get_llm_for_provider(
            max_tokens=GOLD_SEARCH_MAX_TOKENS, temperature=temperature, json_mode=True
        )

    def build_messages(
        self,
        place_query: PlaceQuery,
        center: Coordinates,
        waterways: Sequence[WaterwayFeature],
        evidence: Dict[str, str],
        exclude_names: Sequence[str],
        tier_mode: TierMode,
        places: Optional[List[PlaceFeature]] = None,
        image: Optional[str] = None,
    ) -> list:
        names = unique_waterway_names(waterways)
        user_prompt = build_user_prompt(
            place_name=place_query.place_name,
            center=center,
            radius_km=place_query.radius_km,
            tier_mode=tier_mode,
            waterway_names=names,
            waterway_locations=waterway_locations(waterways),
            evidence=evidence,
            exclude_names=exclude_names,
            places=places,
        )

        if image:
            # Map screenshot as a data URL or https URL
            human = HumanMessage(
                content=[
                    {"type": "text", "text": user_prompt},
                    {"type": "image_url", "image_url": {"url": image}},
                ]
            )
        else:
            human = HumanMessage(content=user_prompt)

        return [SystemMessage(content=build_system_prompt(tier_mode)), human]

    async def generate(
        self,
        place_query: PlaceQuery,
        center: Coordinates,
        waterways: Sequence[WaterwayFeature],
        evidence: Dict[str, str],
        exclude_names: Sequence[str] = (),
        tier_mode: TierMode = TierMode.STANDARD,
        places: Optional[List[PlaceFeature]] = None,
        image: Optional[str] = None,
    ) -> str:
        """Run one completion and return its raw text.

        Raises:
            CompletionFailure: if the provider call fails or returns nothing
        """
        try:
            llm = self._get_llm(tier_mode)
            if image and not self.accepts_images():
                logger.warning("Configured model does not accept images, sending text only")
                image = None
            messages = self.build_messages(
                place_query, center, waterways, evidence, exclude_names, tier_mode, places, image
            )
            response = await llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"Completion call failed for '{place_query.place_name}': {e}")
            raise CompletionFailure(f"Échec de l'appel au modèle : {e}") from e

        content = getattr(response, "content", response)
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        if not content or not str(content).strip():
            raise CompletionFailure("Réponse vide du modèle")

        logger.debug(f"Completion returned {len(content)} characters")
        return str(content)
