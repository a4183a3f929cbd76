"""Ordering and one-page-at-a-time windows over validated sites."""

import math
import re
from typing import List, Optional, Sequence

from models.gold_sites import GoldCandidateSite, SortBy

LEADING_NUMBER_RE = re.compile(r"\d+(?:[.,]\d+)?")


def parse_distance_km(distance: Optional[str]) -> float:
    """Leading number of a distance label ("12,5 km" -> 12.5); +inf if absent."""
    if not distance:
        return math.inf
    match = LEADING_NUMBER_RE.search(distance)
    if match is None:
        return math.inf
    return float(match.group(0).replace(",", "."))


def rank(
    sites: Sequence[GoldCandidateSite], sort_by: SortBy = SortBy.RATING
) -> List[GoldCandidateSite]:
    """Stable sort; ties keep their incoming order."""
    if sort_by == SortBy.DISTANCE:
        return sorted(sites, key=lambda site: parse_distance_km(site.distance))
    return sorted(sites, key=lambda site: -site.rating)


def paginate(
    sites: Sequence[GoldCandidateSite], page: int, per_page: int = 1
) -> List[GoldCandidateSite]:
    if page < 0 or per_page < 1:
        return []
    return list(sites[page * per_page : (page + 1) * per_page])


def page_count(sites: Sequence[GoldCandidateSite], per_page: int = 1) -> int:
    if per_page < 1:
        return 0
    return math.ceil(len(sites) / per_page)
