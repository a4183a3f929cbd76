import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from api.deps import get_pipeline, get_session_from_query, get_session_store, lookup_session
from core.config import DEFAULT_SEARCH_RADIUS_KM
from models.gold_sites import PlaceQuery, SearchResultSet, SortBy, Tier, TierMode
from services.gold_search.brgm import GEOLOGY_LAYERS, layer_to_dict
from services.gold_search.errors import GoldSearchError
from services.gold_search.pipeline import GoldSearchPipeline
from services.gold_search.ranking import page_count
from services.gold_search.session import SearchSession, SessionStore
from services.tools.geocoding import MIN_SUGGESTION_QUERY_LENGTH

router = APIRouter(prefix="/gold", tags=["gold"])

logger = logging.getLogger(__name__)

# Metropolitan France, used when the client does not send a map extent
FRANCE_BBOX = "41.0,-5.5,51.5,10.0"


class SearchRequest(BaseModel):
    place: str = Field(..., min_length=1, description="Place name, e.g. 'Carcassonne (Aude)'")
    radius_km: float = Field(DEFAULT_SEARCH_RADIUS_KM, gt=0, le=200)
    tier_mode: TierMode = TierMode.STANDARD
    sort_by: SortBy = SortBy.RATING
    image: Optional[str] = Field(None, description="Optional map screenshot (data URL)")


class LoadMoreRequest(BaseModel):
    session_id: str
    tier: Optional[Tier] = None


class SearchResponse(BaseModel):
    session_id: str
    results: Dict[str, Any]
    more_available: Dict[str, bool]


class PageResponse(BaseModel):
    session_id: str
    tier: Tier
    page: int
    total_pages: int
    sites: List[Dict[str, Any]]


def _response(session: SearchSession, results: SearchResultSet) -> SearchResponse:
    return SearchResponse(
        session_id=session.session_id,
        results=results.to_payload(),
        more_available=session.more_available_payload(),
    )


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    pipeline: GoldSearchPipeline = Depends(get_pipeline),
    store: SessionStore = Depends(get_session_store),
):
    """Primary search: candidate gold-bearing waterways around a place."""
    place_query = PlaceQuery(raw_name=request.place, radius_km=request.radius_km)
    session = store.create()
    logger.info(
        f"Search '{place_query.place_name}' r={place_query.radius_km} km "
        f"mode={request.tier_mode.value} session={session.session_id}"
    )
    try:
        results = await pipeline.search(
            place_query,
            tier_mode=request.tier_mode,
            sort_by=request.sort_by,
            session=session,
            image=request.image,
        )
    except GoldSearchError:
        store.drop(session.session_id)
        raise
    return _response(session, results)


@router.post("/load-more", response_model=SearchResponse)
async def load_more(
    request: LoadMoreRequest,
    pipeline: GoldSearchPipeline = Depends(get_pipeline),
    store: SessionStore = Depends(get_session_store),
):
    """Additional sites for a session, never repeating a returned name."""
    session = lookup_session(request.session_id, store)
    results = await pipeline.load_more(session, tier=request.tier)
    return _response(session, results)


@router.get("/page", response_model=PageResponse)
async def get_page(
    tier: Tier,
    page: int = Query(0, ge=0),
    per_page: int = Query(1, ge=1, le=50),
    session: SearchSession = Depends(get_session_from_query),
    pipeline: GoldSearchPipeline = Depends(get_pipeline),
):
    """One page of the session's current result set."""
    sites = pipeline.page(session.results, tier, page, per_page)
    return PageResponse(
        session_id=session.session_id,
        tier=tier,
        page=page,
        total_pages=page_count(session.results.spots_for(tier), per_page),
        sites=[site.model_dump(mode="json", by_alias=True, exclude_none=True) for site in sites],
    )


@router.get("/places")
async def get_places(
    query: str = Query(..., description="Beginning of a place name"),
    pipeline: GoldSearchPipeline = Depends(get_pipeline),
):
    """Place-name suggestions for the search box."""
    if len(query.strip()) < MIN_SUGGESTION_QUERY_LENGTH:
        return []
    return await pipeline.geo_resolver.suggest_places(query.strip())


@router.get("/geology-layers")
async def get_geology_layers(
    bbox: str = Query(FRANCE_BBOX, description="minLat,minLon,maxLat,maxLon in EPSG:4326"),
    width: int = Query(512, ge=1, le=4096),
    height: int = Query(512, ge=1, le=4096),
):
    """BRGM geology overlays with ready-to-use WMS and legend URLs."""
    return [layer_to_dict(layer, width, height, bbox) for layer in GEOLOGY_LAYERS]
