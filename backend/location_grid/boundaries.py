"""
boundaries.py — Boundary Geometry Fetcher.

Polygons for a grid id are read from the local geometry folder
(``<folder>/<grid_id>.geojson``) and, when missing there, downloaded from the
location grid mirror (``<mirror>/low/<grid_id>.geojson``). A failed fetch is
reported as None, never raised: the geocoder then treats that candidate as
having no testable polygon.

Usage::

    with BoundaryFetcher(settings.mirror_url, settings.geometry_folder) as fetcher:
        boundary = fetcher.fetch(100364199)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import httpx

from location_grid.cache import TTLCache

logger = logging.getLogger(__name__)

Boundary = list[dict]

_MIRROR_PATHS = {
    "polygon": "low/",
    "polygon_collection": "collection/",
}


def parse_boundary(document: dict) -> Boundary:
    """
    Extract the geometries of a GeoJSON document.

    Accepts a FeatureCollection, a single Feature or a bare geometry.
    Features without a geometry are dropped.
    """
    doc_type = document.get("type")
    if doc_type == "FeatureCollection":
        features = document.get("features") or []
    elif doc_type == "Feature":
        features = [document]
    else:
        return [document]
    return [f["geometry"] for f in features if isinstance(f, dict) and f.get("geometry")]


class BoundaryFetcher:
    """
    Fetch location grid polygons from disk, falling back to the mirror.

    Args:
        mirror_url:      Base URL of the location grid mirror.
        geometry_folder: Local folder of <grid_id>.geojson files, or None.
        timeout:         Per-request timeout in seconds.
        cache:           Optional process-wide cache of parsed boundaries,
                         keyed by grid id.
        client:          httpx.Client to use; one is created (and owned) if
                         not supplied.
    """

    def __init__(
        self,
        mirror_url: str,
        geometry_folder: Optional[Path] = None,
        timeout: float = 10.0,
        cache: Optional[TTLCache] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.mirror_url = mirror_url if mirror_url.endswith("/") else mirror_url + "/"
        self.geometry_folder = Path(geometry_folder) if geometry_folder else None
        self._cache = cache
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def __enter__(self) -> "BoundaryFetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # ── Fetching ─────────────────────────────────────────────────────────────

    def fetch(self, region_id: int) -> Optional[Boundary]:
        """
        Return the geometries of a region's boundary, or None if unavailable.
        """
        if self._cache is not None:
            return self._cache.get_or_load(region_id, lambda: self._fetch(region_id))
        return self._fetch(region_id)

    def _fetch(self, region_id: int) -> Optional[Boundary]:
        raw = self._read_local(region_id)
        if raw is None:
            raw = self._download(region_id)
            if raw is None:
                return None

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Invalid GeoJSON for grid id %d: %s", region_id, exc)
            return None
        if not isinstance(document, dict):
            logger.warning("GeoJSON for grid id %d is not an object.", region_id)
            return None

        return parse_boundary(document)

    def _read_local(self, region_id: int) -> Optional[str]:
        if self.geometry_folder is None:
            return None
        path = self.geometry_folder / f"{region_id}.geojson"
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Could not read %s: %s", path, exc)
            return None

    def _download(self, region_id: int) -> Optional[str]:
        url = f"{self.mirror_url}{_MIRROR_PATHS['polygon']}{region_id}.geojson"
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Polygon fetch failed for grid id %d: %s", region_id, exc)
            return None
        return response.text

    # ── Mirror probing ────────────────────────────────────────────────────────

    def polygon_exists(self, region_id: int, kind: str = "polygon") -> bool:
        """
        Check whether the mirror holds a polygon file for a grid id.

        Args:
            region_id: Grid id to probe.
            kind:      "polygon" (the region itself) or "polygon_collection"
                       (the region's children).

        Returns:
            True only when the mirror answers 200.
        """
        path = _MIRROR_PATHS.get(kind)
        if path is None:
            logger.error("polygon_exists: unknown polygon kind %r", kind)
            return False

        try:
            response = self._client.head(f"{self.mirror_url}{path}{region_id}.geojson")
        except httpx.HTTPError as exc:
            logger.warning("Polygon probe failed for grid id %d: %s", region_id, exc)
            return False
        return response.status_code == 200
