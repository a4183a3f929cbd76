"""
Gold-location search pipeline.

One parameterized flow serves every tier mode:

    resolve place -> enumerate waterways -> gather evidence -> generate
    -> validate -> drop excluded names -> snap coordinates -> rank

``load_more`` reruns the generate..rank stages for the session's area with
everything already returned as the exclusion list.
"""

import logging
from typing import List, Optional, Sequence

from core.config import get_use_known_rivers
from models.gold_sites import (
    AreaFeatures,
    GoldCandidateSite,
    PlaceQuery,
    SearchResultSet,
    SortBy,
    Tier,
    TierMode,
    normalize_name,
)
from services.gold_search.candidate_generator import (
    CandidateGenerator,
    unique_waterway_names,
    waterway_locations,
)
from services.gold_search.coordinate_snapper import CoordinateSnapper
from services.gold_search.errors import LocationNotFound, RiverNotFound
from services.gold_search.geo_resolver import GeoResolver
from services.gold_search.known_rivers import KnownRiversSource
from services.gold_search.ranking import paginate, rank
from services.gold_search.response_validator import validate
from services.gold_search.session import LOAD_MORE_TIERS, SearchSession
from services.gold_search.source_aggregator import SourceAggregator

logger = logging.getLogger(__name__)


class GoldSearchPipeline:
    def __init__(
        self,
        geo_resolver: Optional[GeoResolver] = None,
        aggregator: Optional[SourceAggregator] = None,
        generator: Optional[CandidateGenerator] = None,
        snapper: Optional[CoordinateSnapper] = None,
        known_rivers: Optional[KnownRiversSource] = None,
        use_known_rivers: Optional[bool] = None,
    ):
        self.geo_resolver = geo_resolver or GeoResolver()
        self.aggregator = aggregator or SourceAggregator()
        self.generator = generator or CandidateGenerator()
        self.snapper = snapper or CoordinateSnapper()
        self.known_rivers = known_rivers or KnownRiversSource()
        self.use_known_rivers = (
            get_use_known_rivers() if use_known_rivers is None else use_known_rivers
        )

    async def search(
        self,
        place_query: PlaceQuery,
        tier_mode: TierMode = TierMode.STANDARD,
        sort_by: SortBy = SortBy.RATING,
        session: Optional[SearchSession] = None,
        image: Optional[str] = None,
    ) -> SearchResultSet:
        """Primary search for a place. Resets the session's exclusions and flags.

        Raises:
            LocationNotFound: if the place cannot be resolved or has no waterways
            CompletionFailure: if the model call fails
            NetworkError: if the geocoder cannot be reached
        """
        session = session if session is not None else SearchSession()
        place_name = place_query.place_name

        if self.use_known_rivers:
            fixture = self.known_rivers.lookup(place_name, tier_mode)
            if fixture is not None:
                logger.info(f"Answering '{place_name}' from the known-rivers fixture")
                return self._finish_fixture(fixture, place_query, tier_mode, sort_by, session)

        center = await self.geo_resolver.resolve(place_name)
        area = await self.geo_resolver.enumerate_area(center, place_query.radius_km)
        if not area.waterways:
            raise LocationNotFound(
                place_name,
                f"Aucun cours d'eau trouvé dans un rayon de {place_query.radius_km:g} km "
                f"autour de {place_name}",
            )

        session.reset(place_query, center, area, tier_mode, sort_by)
        result = await self._generate(session, exclude_names=(), image=image)
        await self._snap_all(result, session)
        self._rank_all(result, sort_by)

        session.results = result
        if not result.error:
            session.record(result.all_sites())
        logger.info(f"Search for '{place_name}' returned {len(result.all_sites())} sites")
        return result

    async def load_more(
        self, session: SearchSession, tier: Optional[Tier] = None
    ) -> SearchResultSet:
        """New sites only, excluding every name the session has already returned.

        A tier whose flag went false is not requested again until the next
        primary search; if no requested tier is available, no call is made.
        """
        tiers = [tier] if tier is not None else list(LOAD_MORE_TIERS)
        result = SearchResultSet(tier_mode=session.tier_mode)
        if not any(session.can_load_more(t) for t in tiers):
            logger.info(f"Session {session.session_id}: nothing more to load for {tiers}")
            return result

        exclude_names = session.exclusion_snapshot()
        result = await self._generate(session, exclude_names=exclude_names)
        if result.error:
            return result

        for other in LOAD_MORE_TIERS:
            if other not in tiers or not session.can_load_more(other):
                result.spots_for(other).clear()

        await self._snap_all(result, session)
        self._rank_all(result, session.sort_by)

        for t in tiers:
            new_sites = result.spots_for(t)
            session.more_available[t] = bool(new_sites) and result.has_more_results is not False
            session.record(new_sites)
            existing = session.results.spots_for(t)
            existing.extend(new_sites)
            existing[:] = rank(existing, session.sort_by)

        logger.info(
            f"Session {session.session_id}: loaded {len(result.all_sites())} more sites, "
            f"flags now {session.more_available_payload()}"
        )
        return result

    def page(
        self, result_set: SearchResultSet, tier: Tier, page: int, per_page: int = 1
    ) -> List[GoldCandidateSite]:
        return paginate(result_set.spots_for(tier), page, per_page)

    async def _generate(
        self,
        session: SearchSession,
        exclude_names: Sequence[str],
        image: Optional[str] = None,
    ) -> SearchResultSet:
        names = unique_waterway_names(session.waterways)
        if session.evidence is None:
            session.evidence = await self.aggregator.gather(
                names, waterway_locations(session.waterways)
            )
        evidence = session.evidence
        raw_text = await self.generator.generate(
            session.query,
            session.center,
            session.waterways,
            evidence,
            exclude_names=exclude_names,
            tier_mode=session.tier_mode,
            places=session.places,
            image=image,
        )
        result = validate(raw_text, session.tier_mode, session.query.place_name)
        if exclude_names and not result.error:
            self._drop_excluded(result, exclude_names)
        return result

    def _drop_excluded(self, result: SearchResultSet, exclude_names: Sequence[str]) -> None:
        excluded = {normalize_name(name) for name in exclude_names}
        for tier in Tier:
            sites = result.spots_for(tier)
            kept = [site for site in sites if site.name_key not in excluded]
            if len(kept) != len(sites):
                logger.info(f"Dropped {len(sites) - len(kept)} already-returned {tier.value} sites")
            sites[:] = kept

    async def _snap_all(self, result: SearchResultSet, session: SearchSession) -> None:
        if result.error:
            # The sentinel site has no waterway to snap to
            return
        for tier in Tier:
            sites = result.spots_for(tier)
            kept = []
            for site in sites:
                try:
                    kept.append(
                        await self.snapper.snap(
                            site, session.waterways, self.geo_resolver, session.center
                        )
                    )
                except RiverNotFound as e:
                    logger.warning(f"Dropping '{site.name}': {e.message}")
            sites[:] = kept

    def _rank_all(self, result: SearchResultSet, sort_by: SortBy) -> None:
        for tier in Tier:
            sites = result.spots_for(tier)
            sites[:] = rank(sites, sort_by)

    def _finish_fixture(
        self,
        fixture: SearchResultSet,
        place_query: PlaceQuery,
        tier_mode: TierMode,
        sort_by: SortBy,
        session: SearchSession,
    ) -> SearchResultSet:
        sites = fixture.all_sites()
        center = sites[0].coordinates if sites else None
        session.reset(place_query, center, AreaFeatures(), tier_mode, sort_by)
        self._rank_all(fixture, sort_by)
        session.results = fixture
        session.record(sites)
        for tier in LOAD_MORE_TIERS:
            session.more_available[tier] = False
        return fixture
