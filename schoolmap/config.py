from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Boundary source settings
    BOUNDARY_GEOJSON_URL: str = (
        "https://geoportal.statistics.gov.uk/datasets/"
        "ons::local-authority-districts-december-2016-gb-bgc.geojson"
    )
    BOUNDARY_CACHE_DIR: str = "./data/cache/boundaries"
    BOUNDARY_CACHE_TTL_HOURS: int = 720  # 30 days (boundaries change yearly)
    BOUNDARY_ID_FIELD: str = "lad16cd"
    BOUNDARY_NAME_FIELD: str = "lad16nm"
    BOUNDARY_AREA_FIELD: str = "st_areasha"
    REGION_PREFIX: str | None = "E"  # England-only LADs; empty/None = keep all

    # Schools data settings
    SCHOOLS_CSV_PATH: str = "./data/schools.csv"
    SOURCE_CRS: str = "EPSG:27700"  # British National Grid
    TARGET_CRS: str = "EPSG:4326"  # WGS84

    # Map styling settings
    AREA_THRESHOLD: float = 1_000_000_000.0  # square metres (1,000 km2)
    MAP_TILES: str = "OpenStreetMap"
    MAP_OUTPUT_PATH: str = "./data/school_map.html"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "SCHOOLMAP_"}


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
