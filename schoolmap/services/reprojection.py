"""Coordinate reprojection between planar grids and geographic coordinates.

Thin wrapper over :mod:`pyproj`.  Axis order is always x/y (easting/northing,
longitude/latitude) regardless of the CRS definition's own axis order.
"""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache

from pyproj import Transformer
from pyproj.enums import TransformDirection

BRITISH_NATIONAL_GRID = "EPSG:27700"
WGS84 = "EPSG:4326"


@lru_cache(maxsize=16)
def get_transformer(source_crs: str, target_crs: str) -> Transformer:
    """Return a cached x/y-ordered transformer for a CRS pair."""
    return Transformer.from_crs(source_crs, target_crs, always_xy=True)


def _transform(
    xs: Sequence[float],
    ys: Sequence[float],
    source_crs: str,
    target_crs: str,
    direction: TransformDirection,
) -> tuple[list[float], list[float]]:
    if len(xs) != len(ys):
        raise ValueError(f"Coordinate arrays differ in length: {len(xs)} != {len(ys)}")
    if not xs:
        return [], []
    transformer = get_transformer(source_crs, target_crs)
    out_x, out_y = transformer.transform(list(xs), list(ys), direction=direction, errcheck=True)
    return [float(v) for v in out_x], [float(v) for v in out_y]


def reproject(
    xs: Sequence[float],
    ys: Sequence[float],
    source_crs: str = BRITISH_NATIONAL_GRID,
    target_crs: str = WGS84,
) -> tuple[list[float], list[float]]:
    """Transform coordinates from *source_crs* to *target_crs*.

    For the default CRS pair the input is (eastings, northings) and the output
    is (longitudes, latitudes).  Output order matches input order.

    Raises
    ------
    ValueError
        If the two coordinate sequences differ in length.
    pyproj.exceptions.ProjError
        If a coordinate cannot be transformed.
    """
    return _transform(xs, ys, source_crs, target_crs, TransformDirection.FORWARD)


def inverse_reproject(
    xs: Sequence[float],
    ys: Sequence[float],
    source_crs: str = BRITISH_NATIONAL_GRID,
    target_crs: str = WGS84,
) -> tuple[list[float], list[float]]:
    """Undo :func:`reproject` using the same transformation pipeline in reverse."""
    return _transform(xs, ys, source_crs, target_crs, TransformDirection.INVERSE)
