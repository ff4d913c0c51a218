"""End-to-end pipeline: boundaries + schools -> composed map."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import folium

from schoolmap.config import get_settings
from schoolmap.schemas.region import RegionPolygon
from schoolmap.schemas.school import SchoolRecord
from schoolmap.services.gov_data.boundaries import BoundaryService
from schoolmap.services.gov_data.gias import read_schools_csv
from schoolmap.services.map_composer import compose_map
from schoolmap.services.normalizer import normalize_schools
from schoolmap.services.styling import StylingPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchoolMap:
    """The composed map together with the data that went into it."""

    map: folium.Map
    regions: tuple[RegionPolygon, ...]
    schools: tuple[SchoolRecord, ...]
    rows_read: int
    rows_dropped: int


def build_school_map(
    schools_csv: Path | str | None = None,
    prefix: str | None = None,
    cluster: bool = True,
    force_download: bool = False,
    boundary_service: BoundaryService | None = None,
    policy: StylingPolicy | None = None,
) -> SchoolMap:
    """Run the boundary, normalization and composition stages in order.

    Parameters
    ----------
    schools_csv:
        Path to the schools CSV. Uses config default if None.
    prefix:
        Region identifier prefix. Uses config default if None; pass ``""`` to
        keep every region.
    cluster:
        Cluster markers within each rating group.
    force_download:
        If True, bypass the boundary cache and re-download.
    """
    settings = get_settings()
    csv_path = Path(schools_csv or settings.SCHOOLS_CSV_PATH)
    prefix = settings.REGION_PREFIX if prefix is None else prefix
    policy = policy or StylingPolicy(area_threshold=settings.AREA_THRESHOLD)

    service = boundary_service or BoundaryService()
    regions = service.load(prefix=prefix, force=force_download)

    frame = read_schools_csv(csv_path)
    schools = normalize_schools(frame, source_crs=settings.SOURCE_CRS, target_crs=settings.TARGET_CRS)

    logger.info(
        "Read %d school rows, kept %d with coordinates, %d regions",
        frame.height,
        len(schools),
        len(regions),
    )

    fmap = compose_map(regions, schools, policy, tiles=settings.MAP_TILES, cluster=cluster)
    return SchoolMap(
        map=fmap,
        regions=regions,
        schools=schools,
        rows_read=frame.height,
        rows_dropped=frame.height - len(schools),
    )
