"""In-memory search sessions backing "load more" and paging."""

import logging
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from core.config import GOLD_SEARCH_MAX_SESSIONS, GOLD_SEARCH_SESSION_TTL_SECONDS
from models.gold_sites import (
    AreaFeatures,
    Coordinates,
    GoldCandidateSite,
    PlaceQuery,
    SearchResultSet,
    SortBy,
    Tier,
    TierMode,
    normalize_name,
)

logger = logging.getLogger(__name__)

LOAD_MORE_TIERS = (Tier.MAIN, Tier.SECONDARY)


@dataclass
class SearchSession:
    """State of one primary search and the incremental requests that followed it."""

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    query: Optional[PlaceQuery] = None
    center: Optional[Coordinates] = None
    area: AreaFeatures = field(default_factory=AreaFeatures)
    tier_mode: TierMode = TierMode.STANDARD
    sort_by: SortBy = SortBy.RATING
    seen_names: List[str] = field(default_factory=list)
    more_available: Dict[Tier, bool] = field(
        default_factory=lambda: {tier: True for tier in LOAD_MORE_TIERS}
    )
    results: SearchResultSet = field(default_factory=SearchResultSet)
    # Evidence gathered for the primary search, reused by load-more
    evidence: Optional[Dict[str, str]] = None

    @property
    def waterways(self):
        return self.area.waterways

    @property
    def places(self):
        return self.area.places

    def exclusion_snapshot(self) -> Tuple[str, ...]:
        """Immutable copy of every name returned so far."""
        return tuple(self.seen_names)

    def has_seen(self, name: str) -> bool:
        key = normalize_name(name)
        return any(normalize_name(seen) == key for seen in self.seen_names)

    def record(self, sites: List[GoldCandidateSite]) -> None:
        for site in sites:
            if not self.has_seen(site.name):
                self.seen_names.append(site.name)

    def reset(
        self,
        query: PlaceQuery,
        center: Coordinates,
        area: AreaFeatures,
        tier_mode: TierMode,
        sort_by: SortBy,
    ) -> None:
        """Start over for a new primary search."""
        self.query = query
        self.center = center
        self.area = area
        self.tier_mode = tier_mode
        self.sort_by = sort_by
        self.seen_names = []
        self.more_available = {tier: True for tier in LOAD_MORE_TIERS}
        self.results = SearchResultSet(tier_mode=tier_mode)
        self.evidence = None

    def can_load_more(self, tier: Optional[Tier] = None) -> bool:
        if self.query is None or self.tier_mode == TierMode.UNKNOWN:
            return False
        if tier is None:
            return any(self.more_available.values())
        return self.more_available.get(tier, False)

    def more_available_payload(self) -> Dict[str, bool]:
        return {tier.value: self.can_load_more(tier) for tier in LOAD_MORE_TIERS}


class SessionStore:
    """Process-local session registry keyed by uuid4 strings.

    Sessions idle for longer than ``ttl_seconds`` are evicted, and once
    ``max_sessions`` is reached the least recently used one makes room.
    """

    def __init__(
        self,
        max_sessions: int = GOLD_SEARCH_MAX_SESSIONS,
        ttl_seconds: float = GOLD_SEARCH_SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_sessions = max(1, max_sessions)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # Least recently used first
        self._sessions: "OrderedDict[str, SearchSession]" = OrderedDict()
        self._last_access: Dict[str, float] = {}

    def create(self) -> SearchSession:
        self._evict_expired()
        while len(self._sessions) >= self.max_sessions:
            oldest = next(iter(self._sessions))
            logger.info(f"Session store full, evicting {oldest}")
            self.drop(oldest)

        session = SearchSession()
        self._sessions[session.session_id] = session
        self._last_access[session.session_id] = self._clock()
        logger.debug(f"Created search session {session.session_id}")
        return session

    def get(self, session_id: str) -> Optional[SearchSession]:
        self._evict_expired()
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
            self._last_access[session_id] = self._clock()
        return session

    def drop(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._last_access.pop(session_id, None)

    def _evict_expired(self) -> None:
        now = self._clock()
        while self._sessions:
            oldest = next(iter(self._sessions))
            if now - self._last_access[oldest] <= self.ttl_seconds:
                break
            logger.debug(f"Search session {oldest} expired")
            self.drop(oldest)

    def __len__(self) -> int:
        self._evict_expired()
        return len(self._sessions)
