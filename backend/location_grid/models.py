"""
models.py — Data model for the location grid geocoder.

Defines:
    - BoundingBox: the north/south/east/west envelope stored for each region.
    - Region: one administrative unit of the location grid (country, state,
      county, ...), with its ancestor ids and joined ancestor names.
    - The error types raised by the library.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

# ── Levels ────────────────────────────────────────────────────────────────────
MAX_ADMIN_LEVEL = 5

# Levels at or above this value are not administrative units (e.g. custom
# grid additions) and never count towards a country's deepest level.
AGGREGATE_LEVEL_CEILING = 10

LEVEL_NAMES: dict[str, int] = {f"admin{n}": n for n in range(MAX_ADMIN_LEVEL + 1)}

_ANCESTOR_LEVELS = range(MAX_ADMIN_LEVEL + 1)


# ── Errors ────────────────────────────────────────────────────────────────────
class LocationGridError(Exception):
    """Base class for every error raised by the location grid package."""


class InvalidCoordinatesError(LocationGridError, ValueError):
    """Raised when a longitude/latitude is not a finite number."""


class MalformedGeometryError(LocationGridError, ValueError):
    """Raised when a boundary geometry has no usable coordinates."""


def parse_level(level: Optional[str]) -> Optional[int]:
    """
    Convert a level name ("admin0" .. "admin5") to its ordinal.

    Args:
        level: Level name, or None for "deepest available".

    Returns:
        The ordinal level, or None when no level was requested.

    Raises:
        ValueError: If the name is not one of admin0 .. admin5.
    """
    if level is None:
        return None
    try:
        return LEVEL_NAMES[level.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown administrative level: {level!r}") from None


@dataclass(frozen=True)
class BoundingBox:
    """Rectangular envelope of a region, in degrees."""

    north: float
    south: float
    east: float
    west: float

    def contains(self, longitude: float, latitude: float) -> bool:
        return (
            self.south <= latitude <= self.north
            and self.west <= longitude <= self.east
        )


@dataclass(frozen=True)
class Region:
    """
    An administrative unit of the location grid.

    Attributes:
        region_id:    Stable grid id, unique across the whole grid.
        level:        0 = country, higher = more specific.
        name:         Display name.
        bounding_box: Envelope containing the region's polygon.
        longitude:    Center point longitude.
        latitude:     Center point latitude.
        country_code: ISO 3166-1 alpha-2 code.
        admin0_code:  Geonames admin0 code.
        ancestors:    Ancestor grid ids for levels 0-5 (None where absent).
        ancestor_names: Names joined from the ancestor rows (None where absent).
    """

    region_id: int
    level: int
    name: str
    bounding_box: BoundingBox
    longitude: float
    latitude: float
    country_code: Optional[str] = None
    admin0_code: Optional[str] = None
    ancestors: tuple[Optional[int], ...] = (None,) * (MAX_ADMIN_LEVEL + 1)
    ancestor_names: tuple[Optional[str], ...] = (None,) * (MAX_ADMIN_LEVEL + 1)

    @classmethod
    def from_record(cls, record: dict) -> "Region":
        """
        Build a Region from a location grid row.

        The row uses the flat column names of the grid table
        (grid_id, north_latitude, admin1_grid_id, admin1_name, ...).

        Raises:
            KeyError:   If a required column is missing.
            ValueError: If a numeric column cannot be converted.
        """
        return cls(
            region_id=int(record["grid_id"]),
            level=int(record["level"]),
            name=str(record.get("name") or ""),
            bounding_box=BoundingBox(
                north=float(record["north_latitude"]),
                south=float(record["south_latitude"]),
                east=float(record["east_longitude"]),
                west=float(record["west_longitude"]),
            ),
            longitude=float(record["longitude"]),
            latitude=float(record["latitude"]),
            country_code=record.get("country_code") or None,
            admin0_code=record.get("admin0_code") or None,
            ancestors=tuple(
                _optional_int(record.get(f"admin{n}_grid_id")) for n in _ANCESTOR_LEVELS
            ),
            ancestor_names=tuple(record.get(f"admin{n}_name") for n in _ANCESTOR_LEVELS),
        )

    def to_dict(self) -> dict:
        """Flatten back into grid-row form (the shape the HTTP API returns)."""
        row = {
            "grid_id": self.region_id,
            "level": self.level,
            "name": self.name,
            "longitude": self.longitude,
            "latitude": self.latitude,
            "country_code": self.country_code,
            "admin0_code": self.admin0_code,
        }
        box = asdict(self.bounding_box)
        row.update({
            "north_latitude": box["north"],
            "south_latitude": box["south"],
            "east_longitude": box["east"],
            "west_longitude": box["west"],
        })
        for n in _ANCESTOR_LEVELS:
            row[f"admin{n}_grid_id"] = self.ancestors[n]
            row[f"admin{n}_name"] = self.ancestor_names[n]
        return row


def _optional_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)
