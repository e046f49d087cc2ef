"""
raycast.py — Point-in-polygon algorithm for location grid boundaries.

Uses the ray-casting method: cast a horizontal ray from the test point
eastward to infinity, counting boundary crossings. An odd count means the
point is inside the ring.

Every linear ring of a geometry is tested on its own, interior rings
included: a point inside a hole reports as inside.

Reference:
    W. Randolph Franklin, "PNPOLY – Point Inclusion in Polygon Test"
    https://wrfranklin.org/Research/Short_Notes/pnpoly.html
"""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from location_grid.models import MalformedGeometryError

Ring = Sequence[Sequence[float]]


def point_in_ring(lon: float, lat: float, ring: Ring) -> bool:
    """
    Run the ray-casting test for a single linear ring.

    The ring is treated as closed whether or not its last vertex repeats
    the first.

    Args:
        lon:  Longitude (x-axis) of the test point.
        lat:  Latitude  (y-axis) of the test point.
        ring: List of [lon, lat] coordinate pairs.

    Returns:
        True if the point is inside the ring, False otherwise.
    """
    inside = False
    n = len(ring)

    # Iterate over each edge (ring[i], ring[j])
    j = n - 1
    for i in range(n):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]

        # Check whether the ray crosses this edge
        if ((yi > lat) != (yj > lat)) and (lon < (xj - xi) * (lat - yi) / (yj - yi) + xi):
            inside = not inside

        j = i

    return inside


def iter_rings(geometry: dict) -> Iterator[Ring]:
    """
    Yield every linear ring of a Polygon or MultiPolygon, in document order.

    Unknown geometry types yield nothing.

    Raises:
        MalformedGeometryError: If a Polygon/MultiPolygon has no coordinates.
    """
    geo_type = geometry.get("type")
    if geo_type not in ("Polygon", "MultiPolygon"):
        return

    coordinates = geometry.get("coordinates")
    if coordinates is None:
        raise MalformedGeometryError(f"{geo_type} geometry has no coordinates")

    if geo_type == "Polygon":
        yield from coordinates
    else:
        for polygon in coordinates:
            yield from polygon


def point_in_polygon(lon: float, lat: float, geometry: dict) -> bool:
    """
    Test whether a geographic point falls inside a GeoJSON geometry.

    Args:
        lon:      Longitude of the test point.
        lat:      Latitude  of the test point.
        geometry: GeoJSON geometry dict with keys "type" and "coordinates".

    Returns:
        True as soon as one ring contains the point. False otherwise,
        including for geometry types other than Polygon and MultiPolygon.

    Raises:
        MalformedGeometryError: If the geometry is missing its coordinates.
    """
    return any(point_in_ring(lon, lat, ring) for ring in iter_rings(geometry))


def point_in_boundary(lon: float, lat: float, boundary: Iterable[dict]) -> bool:
    """Test a point against every geometry of a fetched boundary document."""
    return any(point_in_polygon(lon, lat, geometry) for geometry in boundary)


def iter_vertices(boundary: Iterable[dict]) -> Iterator[Sequence[float]]:
    """Yield every vertex of every ring of a boundary, in document order."""
    for geometry in boundary:
        for ring in iter_rings(geometry):
            yield from ring
