"""Application settings loaded from environment."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    data_path: Path = _DATA_DIR / "location_grid.json"
    geometry_folder: Optional[Path] = _DATA_DIR / "location_grid"
    mirror_url: str = "https://storage.googleapis.com/location-grid-mirror-v2/"
    fetch_timeout: float = 10.0
    cache_ttl: Optional[float] = 3600.0
    cache_maxsize: Optional[int] = 1024
    share_geometry_cache: bool = True

    model_config = {
        "env_prefix": "LOCATION_GRID_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }
