"""GIAS (Get Information About Schools) establishment CSV reader.

Reads a GIAS-style schools extract with Polars and maps its columns onto the
canonical names used by the rest of the pipeline.  Both the full GIAS export
headers (``EstablishmentName``, ``PhaseOfEducation (name)`` ...) and the short
headers used in older DfE extracts (``SCHNAME``, ``PHASE`` ...) are accepted.

Data source: https://get-information-schools.service.gov.uk/Downloads
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import polars as pl

from schoolmap.schemas.school import OfstedRating

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Canonical column names
# ---------------------------------------------------------------------------
COL_URN = "urn"
COL_LAESTAB = "establishment_number"
COL_NAME = "name"
COL_PHASE = "phase"
COL_OFSTED_RATING = "ofsted_rating"
COL_PUPILS = "pupil_count"
COL_EASTING = "easting"
COL_NORTHING = "northing"

# Candidate source headers per canonical column, in preference order
COLUMN_ALIASES: dict[str, list[str]] = {
    COL_URN: ["URN", "urn", "Urn"],
    COL_LAESTAB: ["LAESTAB", "EstablishmentNumber", "Laestab"],
    COL_NAME: ["EstablishmentName", "SCHNAME", "SchoolName", "Name"],
    COL_PHASE: ["PhaseOfEducation (name)", "PHASE", "Phase", "PhaseOfEducation"],
    COL_OFSTED_RATING: ["OfstedRating (name)", "OFSTEDRATING", "OfstedRating", "Overall effectiveness"],
    COL_PUPILS: ["NumberOfPupils", "NOR", "NUMPUPILS", "TOTPUPS"],
    COL_EASTING: ["Easting", "EASTING", "easting"],
    COL_NORTHING: ["Northing", "NORTHING", "northing"],
}
REQUIRED_COLUMNS = (COL_URN, COL_NAME, COL_EASTING, COL_NORTHING)

# Ofsted numeric codes and spelling variants to the canonical judgement
OFSTED_RATINGS: dict[str, OfstedRating] = {
    "1": OfstedRating.OUTSTANDING,
    "2": OfstedRating.GOOD,
    "3": OfstedRating.REQUIRES_IMPROVEMENT,
    "4": OfstedRating.INADEQUATE,
    "outstanding": OfstedRating.OUTSTANDING,
    "good": OfstedRating.GOOD,
    "requiresimprovement": OfstedRating.REQUIRES_IMPROVEMENT,
    "inadequate": OfstedRating.INADEQUATE,
    "seriousweaknesses": OfstedRating.SERIOUS_WEAKNESSES,
    "specialmeasures": OfstedRating.SPECIAL_MEASURES,
}


class SchoolDataError(ValueError):
    """Raised when a schools CSV cannot be read or lacks a required column."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_rating(raw: str | None) -> OfstedRating | None:
    """Normalize an Ofsted rating string or code to :class:`OfstedRating`.

    Case, spaces and punctuation are ignored, so ``"Requires improvement"``,
    ``"RequiresImprovement"`` and ``"3"`` all map to the same judgement.
    Blank or unrecognised values return ``None``.
    """
    if raw is None:
        return None
    key = re.sub(r"[^a-z0-9]", "", str(raw).lower())
    if not key:
        return None
    rating = OFSTED_RATINGS.get(key)
    if rating is None:
        logger.debug("Unrecognised Ofsted rating %r", raw)
    return rating


def safe_int(value: str | int | float | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        pass
    try:
        return int(float(value))
    except (ValueError, TypeError, OverflowError):
        return None


def find_column(columns: list[str], candidates: list[str]) -> str | None:
    """Find the first matching column name from candidates."""
    for candidate in candidates:
        if candidate in columns:
            return candidate
    return None


def canonicalize_columns(df: pl.DataFrame) -> pl.DataFrame:
    """Rename source headers to canonical names and drop everything else.

    Optional columns that are absent are added as all-null string columns.

    Raises
    ------
    SchoolDataError
        If a required column (URN, name, easting, northing) is missing.
    """
    exprs: list[pl.Expr] = []
    missing: list[str] = []
    for canonical, candidates in COLUMN_ALIASES.items():
        source = find_column(df.columns, candidates)
        if source is None:
            if canonical in REQUIRED_COLUMNS:
                missing.append(canonical)
            exprs.append(pl.lit(None, dtype=pl.Utf8).alias(canonical))
        else:
            exprs.append(pl.col(source).alias(canonical))

    if missing:
        raise SchoolDataError(f"Schools data is missing required column(s): {missing}. Available columns: {df.columns}")

    out = df.select(exprs)
    text_cols = [c for c, dtype in out.schema.items() if dtype == pl.Utf8]
    return out.with_columns(
        [
            pl.when(pl.col(c).str.strip_chars() == "").then(None).otherwise(pl.col(c).str.strip_chars()).alias(c)
            for c in text_cols
        ]
    )


# ---------------------------------------------------------------------------
# CSV reading
# ---------------------------------------------------------------------------


def read_schools_csv(path: Path | str) -> pl.DataFrame:
    """Read a GIAS-style CSV with Polars, handling encoding variants.

    Every column is read as a string; numeric conversion happens during
    normalization so that malformed coordinates can be counted and dropped.
    """
    path = Path(path)
    if not path.exists():
        raise SchoolDataError(f"Schools CSV not found: {path}")

    for encoding in ("utf-8-sig", "cp1252", "latin-1"):
        try:
            df = pl.read_csv(
                path,
                encoding=encoding,
                infer_schema_length=0,
                null_values=[""],
                truncate_ragged_lines=True,
            )
        except pl.exceptions.NoDataError as exc:
            raise SchoolDataError(f"Schools CSV is empty: {path}") from exc
        except (pl.exceptions.ComputeError, UnicodeDecodeError, LookupError) as exc:
            logger.debug("Could not read %s as %s: %s", path, encoding, exc)
            continue
        logger.info("Read %d rows from %s (%s)", df.height, path, encoding)
        return canonicalize_columns(df)

    raise SchoolDataError(f"Could not decode {path} with any known encoding")
