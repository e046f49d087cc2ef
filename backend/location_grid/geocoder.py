"""
geocoder.py — Resolve a longitude/latitude to one location grid region.

The resolver runs four tests in order and returns on the first that yields a
region:

    1. Exact match      — the bounding-box query found exactly one region.
    2. Point in polygon — fetch each candidate's boundary and ray-cast.
    3. Nearest boundary — the point sits just outside every fetched polygon
                          (typically on a coast); take the region whose
                          boundary vertex is nearest.
    4. Nearest center   — nothing usable so far; take the admin2+ region whose
                          center point is nearest, within a small window.

When all four fail the result is None: oceans and unmapped areas are expected
and are not errors.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Protocol, Sequence

from location_grid.boundaries import Boundary
from location_grid.candidates import CandidateSelector, SearchWindow
from location_grid.distance import distance
from location_grid.models import (
    InvalidCoordinatesError,
    MalformedGeometryError,
    Region,
    parse_level,
)
from location_grid.raycast import iter_vertices, point_in_boundary

logger = logging.getLogger(__name__)

# Regions above this level are eligible for the center point fallback.
CENTERPOINT_MIN_LEVEL = 1

# Errors raised by malformed boundary data; the candidate is skipped.
_GEOMETRY_ERRORS = (MalformedGeometryError, TypeError, IndexError, KeyError, AttributeError)


class BoundarySource(Protocol):
    def fetch(self, region_id: int) -> Optional[Boundary]: ...


def _coordinate(value, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidCoordinatesError(f"{name} is not a number: {value!r}") from None
    if not math.isfinite(number):
        raise InvalidCoordinatesError(f"{name} is not finite: {value!r}")
    return number


class LocationGridGeocoder:
    """
    Point-to-region resolver over a location grid.

    Args:
        selector: Candidate Selector (bounding box and center point queries).
        fetcher:  Boundary source; ``fetch`` returns None when a polygon is
                  unavailable.
    """

    def __init__(self, selector: CandidateSelector, fetcher: BoundarySource) -> None:
        self.selector = selector
        self.fetcher = fetcher

    # ── Public API ────────────────────────────────────────────────────────────

    def resolve(
        self,
        longitude: float,
        latitude: float,
        country_code: Optional[str] = None,
        level: Optional[str] = None,
    ) -> Optional[Region]:
        """
        Find the most specific region containing a point.

        Args:
            longitude:    Longitude in degrees.
            latitude:     Latitude in degrees.
            country_code: Optional ISO country hint; narrows the candidate
                          query to that country's deepest level.
            level:        Optional "admin0" .. "admin5"; only regions of that
                          level are considered.

        Returns:
            The matched Region, or None when no test finds one.

        Raises:
            InvalidCoordinatesError: If a coordinate is not a finite number.
            ValueError:              If ``level`` is not admin0 .. admin5.
        """
        longitude = _coordinate(longitude, "longitude")
        latitude = _coordinate(latitude, "latitude")
        level_number = parse_level(level)

        if level_number is not None:
            candidates = self.selector.query_by_level(longitude, latitude, level_number)
        else:
            candidates = self.selector.query_lowest_level(longitude, latitude, country_code)

        # Boundaries fetched during test 2, reused by test 3.
        boundaries: dict[int, Boundary] = {}

        region = self._exact_match(candidates)
        if region is None:
            region = self._polygon_match(candidates, boundaries, longitude, latitude)
        if region is None:
            region = self._nearest_boundary_match(candidates, boundaries, longitude, latitude)
        if region is None:
            region = self._nearest_centerpoint_match(longitude, latitude)

        if region is None:
            logger.debug("No region found for (%.6f, %.6f).", longitude, latitude)
        return region

    def possible_matches(self, longitude: float, latitude: float) -> list[Region]:
        """All regions, up to fifteen, whose bounding box contains the point."""
        longitude = _coordinate(longitude, "longitude")
        latitude = _coordinate(latitude, "latitude")
        results = self.selector.query_possible_matches(longitude, latitude)
        logger.debug(
            "Possible matches for (%.6f, %.6f): %s",
            longitude, latitude, [r.region_id for r in results],
        )
        return results

    # ── The four tests ────────────────────────────────────────────────────────

    def _exact_match(self, candidates: Sequence[Region]) -> Optional[Region]:
        if len(candidates) != 1:
            return None
        logger.debug("Test 1: single bounding box match %d.", candidates[0].region_id)
        return candidates[0]

    def _polygon_match(
        self,
        candidates: Sequence[Region],
        boundaries: dict[int, Boundary],
        longitude: float,
        latitude: float,
    ) -> Optional[Region]:
        if len(candidates) < 2:
            return None
        logger.debug("Test 2: point in polygon over %d candidates.", len(candidates))

        for candidate in candidates:
            boundary = self.fetcher.fetch(candidate.region_id)
            if boundary is None:
                logger.warning("No polygon for grid id %d; skipping.", candidate.region_id)
                continue
            boundaries[candidate.region_id] = boundary

            try:
                if point_in_boundary(longitude, latitude, boundary):
                    return candidate
            except _GEOMETRY_ERRORS as exc:
                logger.warning("Skipping malformed polygon %d: %s", candidate.region_id, exc)

        return None

    def _nearest_boundary_match(
        self,
        candidates: Sequence[Region],
        boundaries: dict[int, Boundary],
        longitude: float,
        latitude: float,
    ) -> Optional[Region]:
        if not boundaries or not candidates:
            return None
        logger.debug("Test 3: nearest boundary over %d polygons.", len(boundaries))

        ordered = {c.region_id: boundaries[c.region_id] for c in candidates if c.region_id in boundaries}
        region_id = self.nearest_by_boundary(ordered, longitude, latitude)
        if region_id is None:
            return None
        return next((c for c in candidates if c.region_id == region_id), None)

    def _nearest_centerpoint_match(self, longitude: float, latitude: float) -> Optional[Region]:
        logger.debug("Test 4: nearest center point.")
        region_id = self.nearest_by_centerpoint(longitude, latitude)
        if region_id is None:
            return None
        return self.selector.get_region(region_id)

    # ── Fallback searches ─────────────────────────────────────────────────────

    def nearest_by_boundary(
        self,
        boundaries: dict[int, Boundary],
        longitude: float,
        latitude: float,
    ) -> Optional[int]:
        """
        Grid id of the region whose representative vertex is nearest.

        Each region is represented by the last vertex of its flattened
        boundary (last ring of the last polygon). Malformed geometries are
        skipped and the region's remaining geometries still count. Ties go
        to the region seen first.
        """
        representative: dict[int, Sequence[float]] = {}
        for region_id, boundary in boundaries.items():
            for geometry in boundary:
                try:
                    for vertex in iter_vertices([geometry]):
                        representative[region_id] = vertex
                except _GEOMETRY_ERRORS as exc:
                    logger.warning("Skipping malformed geometry in polygon %d: %s", region_id, exc)

        best_id, best_distance = None, math.inf
        for region_id, vertex in representative.items():
            try:
                miles = distance(float(vertex[0]), float(vertex[1]), longitude, latitude)
            except _GEOMETRY_ERRORS + (ValueError,) as exc:
                logger.warning("Skipping bad vertex in polygon %d: %s", region_id, exc)
                continue
            if miles < best_distance:
                best_id, best_distance = region_id, miles
        return best_id

    def nearest_by_centerpoint(self, longitude: float, latitude: float) -> Optional[int]:
        """
        Grid id of the admin2+ region whose center point is nearest.

        Only centers strictly inside a window one degree wider than the
        point's whole-degree cell on every side are considered. Returns None
        if the window holds no such center.
        """
        window = SearchWindow(
            north=math.ceil(latitude) + 1,
            south=math.floor(latitude) - 1,
            east=math.ceil(longitude) + 1,
            west=math.floor(longitude) - 1,
        )
        nearby = self.selector.query_centerpoints(window, min_level=CENTERPOINT_MIN_LEVEL)
        if not nearby:
            return None

        best = min(nearby, key=lambda r: distance(r.longitude, r.latitude, longitude, latitude))
        return best.region_id
