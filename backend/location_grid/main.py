"""
main.py — FastAPI application entry point for the location grid geocoder.

Exposes:
    GET /                              — health check (root)
    GET /health                        — detailed health info
    GET /api/v1/geocode                — resolve lng/lat to one grid region
    GET /api/v1/possible-matches       — every region whose bounding box matches
    GET /api/v1/regions/{region_id}    — one region with ancestor names
    GET /api/v1/country-levels         — deepest level per country
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from location_grid.candidates import RegionStore
from location_grid.config import Settings
from location_grid.geocoder import LocationGridGeocoder
from location_grid.loader import build_fetcher, load_store
from location_grid.models import LEVEL_NAMES

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

settings = Settings()

# ── Application-level state (loaded once at startup) ──────────────────────────
region_store: RegionStore | None = None
geocoder: LocationGridGeocoder | None = None

_LEVEL_PATTERN = "^(" + "|".join(LEVEL_NAMES) + ")$"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the location grid and open the polygon fetcher before accepting requests."""
    global region_store, geocoder
    region_store = load_store(settings)
    fetcher = build_fetcher(settings)
    geocoder = LocationGridGeocoder(region_store, fetcher)
    logger.info("Loaded %d location grid regions", len(region_store))
    yield
    logger.info("Shutting down — closing polygon fetcher.")
    fetcher.close()


# ── FastAPI app ───────────────────────────────────────────────────────────────
app = FastAPI(
    title="Location Grid Geocoder API",
    description=(
        "Resolve a longitude/latitude to the most specific administrative "
        "region of the location grid."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _require_geocoder() -> LocationGridGeocoder:
    if geocoder is None or region_store is None:
        raise HTTPException(status_code=503, detail="Location grid not initialised.")
    return geocoder


# ── Routes ────────────────────────────────────────────────────────────────────

@app.get("/", tags=["health"])
def root():
    """Root health-check endpoint."""
    return {"status": "ok", "message": "Location Grid Geocoder API is running."}


@app.get("/health", tags=["health"])
def health():
    """Detailed health check: returns the loaded region count."""
    if region_store is None:
        raise HTTPException(status_code=503, detail="Location grid not yet loaded.")
    return {"status": "ok", "regions_loaded": len(region_store)}


@app.get("/api/v1/geocode", tags=["geocode"])
def geocode(
    lng: float = Query(..., ge=-180, le=180, description="Longitude (-180 – 180)"),
    lat: float = Query(..., ge=-90, le=90, description="Latitude (-90 – 90)"),
    country_code: Optional[str] = Query(None, min_length=2, max_length=2),
    level: Optional[str] = Query(None, pattern=_LEVEL_PATTERN),
):
    """
    Return the grid region containing the supplied coordinate.

    Raises:
        HTTPException 404: If no region matches (open ocean, unmapped area).
        HTTPException 503: If the location grid has not been loaded.
    """
    resolver = _require_geocoder()
    region = resolver.resolve(lng, lat, country_code=country_code, level=level)

    if region is None:
        logger.warning("No region found for (%.6f, %.6f)", lng, lat)
        raise HTTPException(
            status_code=404,
            detail=f"No location grid region found for coordinates ({lng}, {lat}).",
        )

    logger.info("Geocode (%.4f, %.4f) → %d %s", lng, lat, region.region_id, region.name)
    return {"longitude": lng, "latitude": lat, "region": region.to_dict()}


@app.get("/api/v1/possible-matches", tags=["geocode"])
def possible_matches(
    lng: float = Query(..., ge=-180, le=180),
    lat: float = Query(..., ge=-90, le=90),
):
    """List every region (deepest first, at most 15) whose bounding box holds the point."""
    resolver = _require_geocoder()
    return {"regions": [r.to_dict() for r in resolver.possible_matches(lng, lat)]}


@app.get("/api/v1/regions/{region_id}", tags=["metadata"])
def get_region(region_id: int):
    """
    Return a single region with its ancestor names.

    Raises:
        HTTPException 404: If the grid id is unknown.
    """
    _require_geocoder()
    region = region_store.get_region(region_id)
    if region is None:
        raise HTTPException(status_code=404, detail=f"Grid id {region_id} not found.")
    return region.to_dict()


@app.get("/api/v1/country-levels", tags=["metadata"])
def country_levels(reset: bool = False):
    """Deepest administrative level available for each country."""
    _require_geocoder()
    return region_store.country_levels(reset=reset)
