"""
loader.py — Data loading utilities for the location grid geocoder.

Responsible for:
    - Reading the location grid rows from a JSON export.
    - Building the in-memory RegionStore and BoundaryFetcher the geocoder uses.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from location_grid.boundaries import BoundaryFetcher
from location_grid.cache import TTLCache
from location_grid.candidates import RegionStore
from location_grid.config import Settings
from location_grid.models import Region

logger = logging.getLogger(__name__)


# ── Loaders ──────────────────────────────────────────────────────────────────

def load_regions(path: Path) -> list[Region]:
    """
    Load location grid rows from disk.

    The file holds either a list of rows or an object with a "regions" list.
    Rows that cannot be converted are skipped.

    Args:
        path: Path to the .json export.

    Returns:
        List of Region objects in file order, or an empty list on failure.
    """
    try:
        with Path(path).open(encoding="utf-8") as fh:
            document = json.load(fh)
    except FileNotFoundError:
        logger.error("Location grid file not found: %s", path)
        return []
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON in %s: %s", Path(path).name, exc)
        return []

    rows = document.get("regions", []) if isinstance(document, dict) else document
    if not isinstance(rows, list):
        logger.error("Expected a list of regions in %s", Path(path).name)
        return []

    regions = []
    for index, row in enumerate(rows):
        try:
            regions.append(Region.from_record(row))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Skipping malformed row %d in %s: %s", index, Path(path).name, exc)

    logger.info("Loaded %d regions from %s", len(regions), Path(path).name)
    return regions


def load_store(settings: Settings) -> RegionStore:
    """Load the grid named by the settings into a RegionStore."""
    return RegionStore(load_regions(settings.data_path), level_cache=TTLCache(ttl=settings.cache_ttl, maxsize=settings.cache_maxsize))


def build_fetcher(settings: Settings) -> BoundaryFetcher:
    """Create the BoundaryFetcher described by the settings."""
    cache = TTLCache(ttl=settings.cache_ttl, maxsize=settings.cache_maxsize) if settings.share_geometry_cache else None
    return BoundaryFetcher(
        settings.mirror_url,
        geometry_folder=settings.geometry_folder,
        timeout=settings.fetch_timeout,
        cache=cache,
    )
