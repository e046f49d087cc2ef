"""
conftest.py — Shared pytest fixtures for the location grid geocoder test suite.

Provides:
    - A small synthetic location grid (two overlapping countries, a state,
      a few admin2 regions away from every bounding box).
    - Boundary polygons for the overlapping countries.
    - A counting fake fetcher so tests can assert how often polygons load.
    - A FastAPI TestClient whose lifespan loads the synthetic grid.

Layout of the synthetic grid (degrees):

    Alpha (1)  bbox 0..10 x 0..10, polygon covers lon 0..4
    Bravo (2)  bbox 0..10 x 0..10, polygon covers lon 6..10
    Alpha North (11), level 1 of Alpha, bbox lon 0..4, lat 5..10
    Charlie (3) bbox 30..40 x 30..40
    Delta (30) / Echo (31) — level 2 of Charlie, centers near (20.5, 20.5)
    Foxtrot (32) — level 1, center near (20.5, 20.5)
"""

from __future__ import annotations

from typing import Optional

import pytest

from location_grid.candidates import RegionStore
from location_grid.geocoder import LocationGridGeocoder
from location_grid.models import Region


# ── Region fixtures ───────────────────────────────────────────────────────────

def _row(grid_id, level, name, bbox, center, country_code, admin0=None, admin1=None) -> dict:
    west, south, east, north = bbox
    return {
        "grid_id": grid_id,
        "level": level,
        "name": name,
        "north_latitude": north,
        "south_latitude": south,
        "east_longitude": east,
        "west_longitude": west,
        "longitude": center[0],
        "latitude": center[1],
        "country_code": country_code,
        "admin0_code": country_code + "A" if country_code else None,
        "admin0_grid_id": admin0,
        "admin1_grid_id": admin1,
    }


@pytest.fixture
def grid_rows() -> list[dict]:
    """Raw location grid rows, in load order."""
    return [
        _row(1, 0, "Alpha", (0, 0, 10, 10), (5, 5), "AA", admin0=1),
        _row(2, 0, "Bravo", (0, 0, 10, 10), (5, 5), "BB", admin0=2),
        _row(11, 1, "Alpha North", (0, 5, 4, 10), (2, 7.5), "AA", admin0=1, admin1=11),
        _row(3, 0, "Charlie", (30, 30, 40, 40), (35, 35), "CC", admin0=3),
        _row(30, 2, "Delta", (21.0, 21.0, 21.2, 21.2), (21.0, 21.0), "CC", admin0=3),
        _row(31, 2, "Echo", (19.4, 19.4, 19.6, 19.6), (19.5, 19.5), "CC", admin0=3),
        _row(32, 1, "Foxtrot", (20.55, 20.55, 20.65, 20.65), (20.6, 20.6), "CC", admin0=3),
        _row(99, 10, "Custom Grid", (50, 50, 51, 51), (50.5, 50.5), "AA", admin0=1),
    ]


@pytest.fixture
def regions(grid_rows) -> list[Region]:
    return [Region.from_record(row) for row in grid_rows]


@pytest.fixture
def store(regions) -> RegionStore:
    return RegionStore(regions)


@pytest.fixture
def region_factory():
    """Build standalone Region objects for single-purpose tests."""
    def make(grid_id=100, level=1, bbox=(0, 0, 1, 1), center=None, name="Region", country_code="ZZ"):
        west, south, east, north = bbox
        center = center or ((west + east) / 2, (south + north) / 2)
        return Region.from_record(_row(grid_id, level, name, bbox, center, country_code))
    return make


# ── Boundary fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def alpha_polygon() -> dict:
    """Western strip of the shared bbox. Last flattened vertex: (0, 0)."""
    return {
        "type": "Polygon",
        "coordinates": [[[0, 0], [4, 0], [4, 10], [0, 10], [0, 0]]],
    }


@pytest.fixture
def bravo_polygon() -> dict:
    """Eastern strip of the shared bbox, as a MultiPolygon. Last flattened vertex: (6, 0)."""
    return {
        "type": "MultiPolygon",
        "coordinates": [[[[6, 0], [10, 0], [10, 10], [6, 10], [6, 0]]]],
    }


@pytest.fixture
def boundaries(alpha_polygon, bravo_polygon) -> dict[int, list[dict]]:
    return {1: [alpha_polygon], 2: [bravo_polygon]}


class CountingFetcher:
    """Fake BoundaryFetcher serving boundaries from a dict and counting calls."""

    def __init__(self, boundaries: dict[int, list[dict]]):
        self.boundaries = boundaries
        self.calls: list[int] = []

    def fetch(self, region_id: int) -> Optional[list[dict]]:
        self.calls.append(region_id)
        return self.boundaries.get(region_id)

    def close(self) -> None:
        pass


@pytest.fixture
def fetcher(boundaries) -> CountingFetcher:
    return CountingFetcher(boundaries)


@pytest.fixture
def make_fetcher():
    return CountingFetcher


@pytest.fixture
def geocoder(store, fetcher) -> LocationGridGeocoder:
    return LocationGridGeocoder(store, fetcher)


# ── GeoJSON geometry fixtures (ray casting) ───────────────────────────────────

@pytest.fixture
def square_polygon_geometry() -> dict:
    """
    A square GeoJSON Polygon around San Francisco.
    Interior point: (-122.4194, 37.7749).
    Exterior point: (0.0, 0.0).
    """
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [-122.60, 37.60],
                [-122.30, 37.60],
                [-122.30, 37.90],
                [-122.60, 37.90],
                [-122.60, 37.60],   # closed ring
            ]
        ],
    }


@pytest.fixture
def polygon_with_hole_geometry() -> dict:
    """Charlie's bounding box as a Polygon with a 2x2 degree hole at its center."""
    outer = [
        [30.0, 30.0], [40.0, 30.0],
        [40.0, 40.0], [30.0, 40.0],
        [30.0, 30.0],
    ]
    hole = [
        [34.0, 34.0], [36.0, 34.0],
        [36.0, 36.0], [34.0, 36.0],
        [34.0, 34.0],
    ]
    return {"type": "Polygon", "coordinates": [outer, hole]}


@pytest.fixture
def multi_polygon_geometry() -> dict:
    """
    MultiPolygon of the southern halves of the Alpha and Bravo strips,
    leaving a gap between lon 4 and lon 6.
    """
    square_a = [[[0.0, 0.0], [4.0, 0.0], [4.0, 4.0], [0.0, 4.0], [0.0, 0.0]]]
    square_b = [[[6.0, 0.0], [10.0, 0.0], [10.0, 4.0], [6.0, 4.0], [6.0, 0.0]]]
    return {"type": "MultiPolygon", "coordinates": [square_a, square_b]}
