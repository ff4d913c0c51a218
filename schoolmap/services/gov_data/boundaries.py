"""Local Authority District boundary service.

Downloads the ONS LAD boundary GeoJSON, parses each feature into a
``RegionPolygon`` with a shapely geometry, and filters the collection by an
identifier prefix (e.g. ``"E"`` for English districts).

Data source: https://geoportal.statistics.gov.uk (Open Geography Portal)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pyproj import Geod
from shapely.errors import GeometryTypeError, ShapelyError
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from schoolmap.config import get_settings
from schoolmap.schemas.region import RegionPolygon
from schoolmap.services.gov_data.base import BaseGovDataService

logger = logging.getLogger(__name__)


class EmptyResultError(ValueError):
    """Raised when a prefix filter leaves no regions."""

    def __init__(self, field: str, prefix: str, available: Iterable[str] = ()) -> None:
        self.field = field
        self.prefix = prefix
        self.available = sorted(set(available))
        msg = f"No regions have {field!r} starting with {prefix!r}."
        if self.available:
            msg += f" Leading characters present: {', '.join(self.available)}"
        super().__init__(msg)


class BoundaryFormatError(ValueError):
    """Raised when a boundary file is not a usable GeoJSON FeatureCollection."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_GEOD = Geod(ellps="WGS84")


def geodesic_area(geometry: BaseGeometry) -> float:
    """Area of a WGS84 lon/lat geometry on the ellipsoid, in square metres."""
    area, _perimeter = _GEOD.geometry_area_perimeter(geometry)
    return abs(area)



def _feature_to_region(
    feature: dict[str, Any],
    id_field: str,
    name_field: str,
    area_field: str,
) -> RegionPolygon:
    if not isinstance(feature, dict):
        raise BoundaryFormatError(f"Expected a GeoJSON Feature object, got {type(feature).__name__}")
    properties = feature.get("properties") or {}
    identifier = properties.get(id_field)
    if identifier is None or str(identifier).strip() == "":
        raise BoundaryFormatError(f"Feature is missing identifier field {id_field!r}")

    try:
        geometry = shape(feature["geometry"])
    except (KeyError, TypeError, ValueError, AttributeError, GeometryTypeError, ShapelyError) as exc:
        raise BoundaryFormatError(f"Feature {identifier!r} has an unreadable geometry") from exc

    raw_area = properties.get(area_field)
    try:
        area = float(raw_area) if raw_area is not None else geodesic_area(geometry)
    except (TypeError, ValueError) as exc:
        raise BoundaryFormatError(f"Feature {identifier!r} has a non-numeric area: {raw_area!r}") from exc

    return RegionPolygon(
        identifier=str(identifier).strip(),
        name=str(properties.get(name_field) or "").strip(),
        area=area,
        geometry=geometry,
        properties=dict(properties),
    )


def parse_regions(
    collection: dict[str, Any],
    id_field: str = "lad16cd",
    name_field: str = "lad16nm",
    area_field: str = "st_areasha",
) -> tuple[RegionPolygon, ...]:
    """Convert a GeoJSON FeatureCollection mapping into region polygons.

    When the area property is absent the geodesic area of the geometry (m²)
    is used instead, so it stays comparable with ``st_areasha``.
    """
    if not isinstance(collection, dict) or collection.get("type") != "FeatureCollection":
        raise BoundaryFormatError("Boundary data is not a GeoJSON FeatureCollection")

    features = collection.get("features")
    if not isinstance(features, list):
        raise BoundaryFormatError("FeatureCollection has no 'features' list")

    return tuple(_feature_to_region(f, id_field, name_field, area_field) for f in features)


def load_regions(
    path: Path | str,
    id_field: str = "lad16cd",
    name_field: str = "lad16nm",
    area_field: str = "st_areasha",
) -> tuple[RegionPolygon, ...]:
    """Read a GeoJSON file from disk and parse it into region polygons."""
    path = Path(path)
    try:
        collection = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise BoundaryFormatError(f"{path} is not valid JSON: {exc}") from exc
    return parse_regions(collection, id_field=id_field, name_field=name_field, area_field=area_field)


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def filter_by_prefix(
    regions: Iterable[RegionPolygon],
    field: str,
    prefix: str,
) -> tuple[RegionPolygon, ...]:
    """Return the regions whose *field* value starts with *prefix*.

    *field* may be ``"identifier"``, ``"name"`` or any key of the raw
    property table.

    Raises
    ------
    EmptyResultError
        If no region matches.
    """
    regions = tuple(regions)
    matched = tuple(r for r in regions if str(r.attribute(field) or "").startswith(prefix))
    if not matched:
        leading = (str(r.attribute(field) or "")[:1] for r in regions)
        raise EmptyResultError(field, prefix, (c for c in leading if c))
    return matched


# ---------------------------------------------------------------------------
# BoundaryService
# ---------------------------------------------------------------------------


class BoundaryService(BaseGovDataService):
    """Fetch and parse Local Authority District boundaries.

    Usage::

        service = BoundaryService()
        regions = service.load(prefix="E")
    """

    def __init__(
        self,
        url: str | None = None,
        cache_dir: Path | str | None = None,
        cache_ttl_hours: int | None = None,
    ) -> None:
        settings = get_settings()
        if cache_ttl_hours is None:
            cache_ttl_hours = settings.BOUNDARY_CACHE_TTL_HOURS
        super().__init__(
            cache_dir=cache_dir or Path(settings.BOUNDARY_CACHE_DIR),
            cache_ttl_hours=cache_ttl_hours,
        )
        self._url = url or settings.BOUNDARY_GEOJSON_URL
        self._id_field = settings.BOUNDARY_ID_FIELD
        self._name_field = settings.BOUNDARY_NAME_FIELD
        self._area_field = settings.BOUNDARY_AREA_FIELD

    def download_geojson(self, force: bool = False) -> Path:
        """Download the boundary GeoJSON (or reuse the cached copy)."""
        return self.download(self._url, filename="boundaries.geojson", force=force)

    def load(self, prefix: str | None = None, force: bool = False) -> tuple[RegionPolygon, ...]:
        """Download, parse and optionally prefix-filter the boundaries.

        Parameters
        ----------
        prefix:
            Identifier prefix to keep (e.g. ``"E"``). ``None`` or ``""`` keeps
            every region.
        force:
            If True, bypass the cache and re-download.
        """
        path = self.download_geojson(force=force)
        regions = load_regions(
            path,
            id_field=self._id_field,
            name_field=self._name_field,
            area_field=self._area_field,
        )
        self._logger.info("Loaded %d regions from %s", len(regions), path)

        if not prefix:
            return regions

        filtered = filter_by_prefix(regions, "identifier", prefix)
        self._logger.info("Regions with identifier prefix '%s': %d/%d", prefix, len(filtered), len(regions))
        return filtered
