"""Shared pytest fixtures for the schoolmap test suite."""

from __future__ import annotations

import json
from pathlib import Path

import polars as pl
import pytest

from schoolmap.config import get_settings
from schoolmap.schemas.region import RegionPolygon
from schoolmap.schemas.school import OfstedRating, SchoolRecord
from schoolmap.services.gov_data.boundaries import parse_regions

# ---------------------------------------------------------------------------
# Test data helpers
# ---------------------------------------------------------------------------

# Code ranges of the December 2016 GB Local Authority Districts:
# 326 English (E06 unitary, E07 non-metropolitan, E08 metropolitan, E09 London),
# 32 Scottish (S12) and 22 Welsh (W06) districts -- 380 in total.
_LAD_2016_CODE_RANGES = [
    ("E06", 1, 56),
    ("E07", 4, 204),
    ("E08", 1, 36),
    ("E09", 1, 33),
    ("S12", 5, 36),
    ("W06", 1, 22),
]


def lad_codes() -> list[str]:
    """Return the 380 synthetic LAD codes in the 2016 GB layout."""
    return [f"{series}{n:06d}" for series, start, end in _LAD_2016_CODE_RANGES for n in range(start, end + 1)]


def _square(lng: float, lat: float, size: float = 0.05) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [lng, lat],
                [lng + size, lat],
                [lng + size, lat + size],
                [lng, lat + size],
                [lng, lat],
            ]
        ],
    }


def make_lad_collection(codes: list[str] | None = None) -> dict:
    """Build a GeoJSON FeatureCollection with one small square per LAD code.

    Odd-numbered districts get an area above the default styling threshold.
    """
    codes = codes if codes is not None else lad_codes()
    features = []
    for i, code in enumerate(codes):
        features.append(
            {
                "type": "Feature",
                "geometry": _square(-5.0 + (i % 20) * 0.1, 50.0 + (i // 20) * 0.1),
                "properties": {
                    "objectid": i + 1,
                    "lad16cd": code,
                    "lad16nm": f"District {code}",
                    "st_areasha": 2_500_000_000.0 if i % 2 else 40_000_000.0,
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


def make_school(
    urn: str = "100000",
    name: str = "Test School",
    phase: str = "Primary",
    rating: OfstedRating | None = OfstedRating.GOOD,
    pupil_count: int | None = 250,
    establishment_number: str | None = "2012000",
) -> SchoolRecord:
    return SchoolRecord(
        urn=urn,
        establishment_number=establishment_number,
        name=name,
        phase=phase,
        ofsted_rating=rating,
        pupil_count=pupil_count,
        easting=530000.0,
        northing=180000.0,
        lat=51.5077,
        lng=-0.1279,
    )


# Rows in GIAS export layout. Two rows lack usable coordinates.
SCHOOL_CSV_ROWS = [
    ["URN", "LAESTAB", "EstablishmentName", "PhaseOfEducation (name)", "OfstedRating (name)", "NumberOfPupils", "Easting", "Northing"],
    ["100001", "2012001", "Riverside Primary School", "Primary", "Outstanding", "420", "530000", "180000"],
    ["100002", "2014002", "Hillview Academy", "Secondary", "Good", "1150", "485000", "238000"],
    ["100003", "2012003", "St Mary's CofE Primary", "Primary", "Requires improvement", "198", "", "180500"],
    ["100004", "2014004", "Northgate High School", "Secondary", "Inadequate", "870", "651409.903", "313177.270"],
    ["100005", "2012005", "Oak Lane Infants", "Primary", "", "", "451000", "206000"],
    ["100006", "2014006", "Meadow Park School", "Secondary", "Special measures", "640", "unknown", "210000"],
    ["100007", "2012007", "Brook Street Primary", "Primary", "Serious Weaknesses", "305", "398000", "290000"],
]


def write_csv(path: Path, rows: list[list[str]], encoding: str = "utf-8") -> Path:
    lines = []
    for row in rows:
        lines.append(",".join(f'"{v}"' if "," in v else v for v in row))
    path.write_bytes(("\n".join(lines) + "\n").encode(encoding))
    return path


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch, tmp_path):
    """Point the cache and output directories at tmp_path and reset the settings cache."""
    monkeypatch.setenv("SCHOOLMAP_BOUNDARY_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("SCHOOLMAP_MAP_OUTPUT_PATH", str(tmp_path / "map.html"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def lad_collection() -> dict:
    return make_lad_collection()


@pytest.fixture()
def lad_regions(lad_collection) -> tuple[RegionPolygon, ...]:
    return parse_regions(lad_collection)


@pytest.fixture()
def lad_geojson_path(tmp_path, lad_collection) -> Path:
    path = tmp_path / "lad.geojson"
    path.write_text(json.dumps(lad_collection), encoding="utf-8")
    return path


@pytest.fixture()
def schools_csv(tmp_path) -> Path:
    return write_csv(tmp_path / "schools.csv", SCHOOL_CSV_ROWS)


@pytest.fixture()
def schools_frame() -> pl.DataFrame:
    """Canonical-column frame as produced by the GIAS reader."""
    return pl.DataFrame(
        {
            "urn": ["1", "2", "3", "4", "5"],
            "establishment_number": ["2011", "2012", None, "2014", "2015"],
            "name": ["Alpha", "Bravo", "Charlie", "Delta", "Echo"],
            "phase": ["Primary", "Secondary", "Primary", "Secondary", "Primary"],
            "ofsted_rating": ["Outstanding", "Good", None, "Inadequate", "2"],
            "pupil_count": ["100", None, "300", "400", "500"],
            "easting": ["530000", None, "485000", "not-a-number", "398000"],
            "northing": ["180000", "238000", None, "210000", "290000"],
        }
    )


@pytest.fixture()
def mixed_schools() -> list[SchoolRecord]:
    """One school for every rating plus an unrated one."""
    schools = [
        make_school(urn=str(200000 + i), name=f"School {i}", phase="Primary" if i % 2 else "Secondary", rating=rating)
        for i, rating in enumerate(OfstedRating)
    ]
    schools.append(make_school(urn="299999", name="Unrated School", rating=None, pupil_count=None))
    return schools


@pytest.fixture()
def school_factory():
    """Return the :func:`make_school` helper for tests that build their own records."""
    return make_school


@pytest.fixture()
def lad_collection_factory():
    """Return the :func:`make_lad_collection` helper."""
    return make_lad_collection
