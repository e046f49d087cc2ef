"""
candidates.py — Candidate Selector for the location grid geocoder.

Responsible for:
    - Finding the regions whose bounding box contains a coordinate, either at
      one requested level or at the deepest level available.
    - Finding regions whose center point falls inside a search window.
    - Returning single regions with their ancestor names joined.
    - Caching the country → deepest level map used by country-hinted lookups.

RegionStore is the in-memory implementation; any object satisfying the
CandidateSelector protocol can be handed to the geocoder instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Protocol

from location_grid.cache import TTLCache
from location_grid.models import AGGREGATE_LEVEL_CEILING, Region

logger = logging.getLogger(__name__)

LEVEL_QUERY_LIMIT = 10
LOWEST_LEVEL_QUERY_LIMIT = 10
POSSIBLE_MATCHES_LIMIT = 15

_COUNTRY_LEVELS_KEY = "country_levels"


@dataclass(frozen=True)
class SearchWindow:
    """Open rectangle used by the center point search (edges excluded)."""

    north: float
    south: float
    east: float
    west: float

    def strictly_contains(self, longitude: float, latitude: float) -> bool:
        return (
            self.west < longitude < self.east
            and self.south < latitude < self.north
        )


class CandidateSelector(Protocol):
    def query_by_level(self, longitude: float, latitude: float, level: int) -> list[Region]: ...

    def query_lowest_level(
        self, longitude: float, latitude: float, country_code: Optional[str] = None
    ) -> list[Region]: ...

    def query_possible_matches(self, longitude: float, latitude: float) -> list[Region]: ...

    def query_centerpoints(self, window: SearchWindow, min_level: int = 1) -> list[Region]: ...

    def get_region(self, region_id: int) -> Optional[Region]: ...


class RegionStore:
    """
    In-memory location grid.

    Query results are ordered deterministically: by descending level where a
    query asks for it, otherwise (and within a level) in load order.

    Args:
        regions:     Location grid rows, in load order.
        level_cache: Cache holding the country → level map. Defaults to a
                     non-expiring TTLCache owned by the store.
    """

    def __init__(self, regions: Iterable[Region], level_cache: Optional[TTLCache] = None):
        self._regions: list[Region] = []
        self._by_id: dict[int, Region] = {}
        for region in regions:
            if region.region_id in self._by_id:
                logger.warning("Duplicate grid id %d ignored.", region.region_id)
                continue
            self._regions.append(region)
            self._by_id[region.region_id] = region
        self._level_cache = level_cache if level_cache is not None else TTLCache(ttl=None)

    def __len__(self) -> int:
        return len(self._regions)

    # ── Bounding box queries ──────────────────────────────────────────────────

    def _containing(self, longitude: float, latitude: float) -> list[Region]:
        return [r for r in self._regions if r.bounding_box.contains(longitude, latitude)]

    def _by_level_desc(self, regions: list[Region]) -> list[Region]:
        return sorted(regions, key=lambda r: -r.level)

    def query_by_level(self, longitude: float, latitude: float, level: int) -> list[Region]:
        """Regions at exactly ``level`` whose bounding box contains the point."""
        matches = [r for r in self._containing(longitude, latitude) if r.level == level]
        return [self._with_ancestor_names(r) for r in matches[:LEVEL_QUERY_LIMIT]]

    def query_lowest_level(
        self, longitude: float, latitude: float, country_code: Optional[str] = None
    ) -> list[Region]:
        """
        Regions at the deepest level whose bounding box contains the point.

        With a country code, the country's deepest level is read from the
        country levels map (0 when the country is unknown) and only that
        level is searched. Without one, the first ten matches by descending
        level are taken and only those at the highest level among them kept.
        """
        if country_code is None:
            logger.debug("No country code; scanning all levels.")
            top = self._by_level_desc(self._containing(longitude, latitude))[:LOWEST_LEVEL_QUERY_LIMIT]
            if not top:
                return []
            highest = max(r.level for r in top)
            return [self._with_ancestor_names(r) for r in top if r.level == highest]

        levels = self.country_levels()
        level = levels.get(country_code.upper(), {}).get("level", 0)
        return self.query_by_level(longitude, latitude, level)

    def query_possible_matches(self, longitude: float, latitude: float) -> list[Region]:
        """Up to fifteen containing regions across all levels, deepest first."""
        top = self._by_level_desc(self._containing(longitude, latitude))[:POSSIBLE_MATCHES_LIMIT]
        return [self._with_ancestor_names(r) for r in top]

    # ── Center point & single region queries ──────────────────────────────────

    def query_centerpoints(self, window: SearchWindow, min_level: int = 1) -> list[Region]:
        """Regions above ``min_level`` whose center point is strictly inside the window."""
        return [
            r for r in self._regions
            if r.level > min_level and window.strictly_contains(r.longitude, r.latitude)
        ]

    def get_region(self, region_id: int) -> Optional[Region]:
        """Return the region with its ancestor names joined, or None."""
        region = self._by_id.get(region_id)
        if region is None:
            return None
        return self._with_ancestor_names(region)

    def _with_ancestor_names(self, region: Region) -> Region:
        names = []
        for ancestor_id, stored in zip(region.ancestors, region.ancestor_names):
            ancestor = self._by_id.get(ancestor_id) if ancestor_id is not None else None
            names.append(ancestor.name if ancestor is not None else stored)
        names = tuple(names)
        if names == region.ancestor_names:
            return region
        return replace(region, ancestor_names=names)

    # ── Country levels ────────────────────────────────────────────────────────

    def country_levels(self, reset: bool = False) -> dict[str, dict]:
        """
        Map of upper-case country code → deepest administrative level.

        Each value is {"country_code", "admin0_code", "level"}. Levels at or
        above 10 are ignored. The map is computed once and then served from
        the level cache until ``reset`` is passed.
        """
        if reset:
            self._level_cache.delete(_COUNTRY_LEVELS_KEY)
        return self._level_cache.get_or_load(_COUNTRY_LEVELS_KEY, self._compute_country_levels)

    def _compute_country_levels(self) -> dict[str, dict]:
        if not self._regions:
            logger.error("No location records found. The location grid must be loaded first.")
            return {}

        deepest: dict[tuple, int] = {}
        for region in self._regions:
            if region.level >= AGGREGATE_LEVEL_CEILING:
                continue
            key = (region.admin0_code, region.country_code)
            deepest[key] = max(deepest.get(key, region.level), region.level)

        levels: dict[str, dict] = {}
        for (admin0_code, country_code), level in deepest.items():
            if country_code:
                levels[country_code.upper()] = {
                    "country_code": country_code,
                    "admin0_code": admin0_code,
                    "level": level,
                }
        return levels
