"""School point normalization: drop incomplete rows, reproject, build records.

Turns the canonical-column frame produced by
:func:`schoolmap.services.gov_data.gias.read_schools_csv` into a tuple of
:class:`~schoolmap.schemas.school.SchoolRecord`, one per row that has usable
coordinates, in input order.
"""

from __future__ import annotations

import logging
from typing import Any

import polars as pl

from schoolmap.config import get_settings
from schoolmap.schemas.school import SchoolRecord
from schoolmap.services.gov_data.gias import (
    COL_EASTING,
    COL_LAESTAB,
    COL_NAME,
    COL_NORTHING,
    COL_OFSTED_RATING,
    COL_PHASE,
    COL_PUPILS,
    COL_URN,
    normalize_rating,
    safe_int,
)
from schoolmap.services.reprojection import reproject

logger = logging.getLogger(__name__)

COL_LAT = "lat"
COL_LNG = "lng"


def drop_incomplete(frame: pl.DataFrame) -> tuple[pl.DataFrame, int]:
    """Remove rows whose easting or northing is missing or non-numeric.

    Returns
    -------
    tuple[pl.DataFrame, int]
        The kept rows (coordinates cast to ``Float64``) and the number of rows
        dropped.
    """
    coords = frame.with_columns(
        pl.col(COL_EASTING).cast(pl.Float64, strict=False),
        pl.col(COL_NORTHING).cast(pl.Float64, strict=False),
    )
    kept = coords.filter(
        pl.col(COL_EASTING).is_not_null()
        & pl.col(COL_NORTHING).is_not_null()
        & pl.col(COL_EASTING).is_finite()
        & pl.col(COL_NORTHING).is_finite()
    )
    dropped = frame.height - kept.height
    logger.info("Dropped %d/%d rows with missing coordinates", dropped, frame.height)
    return kept, dropped


def _row_to_record(row: dict[str, Any]) -> SchoolRecord:
    laestab = row.get(COL_LAESTAB)
    return SchoolRecord(
        urn=str(row.get(COL_URN) or ""),
        establishment_number=str(laestab) if laestab is not None else None,
        name=str(row.get(COL_NAME) or ""),
        phase=str(row.get(COL_PHASE) or ""),
        ofsted_rating=normalize_rating(row.get(COL_OFSTED_RATING)),
        pupil_count=safe_int(row.get(COL_PUPILS)),
        easting=row[COL_EASTING],
        northing=row[COL_NORTHING],
        lat=row[COL_LAT],
        lng=row[COL_LNG],
    )


def normalize_schools(
    frame: pl.DataFrame,
    source_crs: str | None = None,
    target_crs: str | None = None,
) -> tuple[SchoolRecord, ...]:
    """Drop incomplete rows, reproject coordinates and build school records.

    The output has exactly one record per row kept by :func:`drop_incomplete`,
    in the same order.
    """
    settings = get_settings()
    source_crs = source_crs or settings.SOURCE_CRS
    target_crs = target_crs or settings.TARGET_CRS

    kept, _dropped = drop_incomplete(frame)

    lngs, lats = reproject(
        kept[COL_EASTING].to_list(),
        kept[COL_NORTHING].to_list(),
        source_crs=source_crs,
        target_crs=target_crs,
    )
    located = kept.with_columns(
        pl.Series(COL_LNG, lngs, dtype=pl.Float64),
        pl.Series(COL_LAT, lats, dtype=pl.Float64),
    )
    return tuple(_row_to_record(row) for row in located.iter_rows(named=True))

