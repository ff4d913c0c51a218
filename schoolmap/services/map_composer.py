"""Compose the interactive school map with folium.

Builds a ``folium.Map`` with a base tile layer, one GeoJSON layer of region
polygons styled by area, and one toggleable marker layer per rating group.
Rendering, clustering and layer toggling are left to folium / Leaflet.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import folium
from folium.plugins import MarkerCluster
from shapely.geometry import mapping

from schoolmap.schemas.region import RegionPolygon
from schoolmap.schemas.school import SchoolRecord
from schoolmap.services.styling import MarkerGroup, StylingPolicy, group_schools, popup_content

logger = logging.getLogger(__name__)

# Centre of Great Britain, used when there is nothing to fit the view to
_DEFAULT_CENTER = (54.0, -2.5)
_DEFAULT_ZOOM = 6
_POPUP_MAX_WIDTH = 300


def regions_to_geojson(regions: Sequence[RegionPolygon]) -> dict[str, Any]:
    """Build a FeatureCollection carrying only the properties the map needs."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": mapping(region.geometry),
                "properties": {
                    "identifier": region.identifier,
                    "name": region.name,
                    "area": region.area,
                },
            }
            for region in regions
        ],
    }


def _bounds(regions: Sequence[RegionPolygon], schools: Sequence[SchoolRecord]) -> list[list[float]] | None:
    """Return ``[[south, west], [north, east]]`` for the regions, else the schools."""
    if regions:
        minx = min(r.geometry.bounds[0] for r in regions)
        miny = min(r.geometry.bounds[1] for r in regions)
        maxx = max(r.geometry.bounds[2] for r in regions)
        maxy = max(r.geometry.bounds[3] for r in regions)
        return [[miny, minx], [maxy, maxx]]
    if schools:
        return [
            [min(s.lat for s in schools), min(s.lng for s in schools)],
            [max(s.lat for s in schools), max(s.lng for s in schools)],
        ]
    return None


def add_region_layer(fmap: folium.Map, regions: Sequence[RegionPolygon], policy: StylingPolicy) -> folium.GeoJson:
    layer = folium.GeoJson(
        regions_to_geojson(regions),
        name="Local authority districts",
        style_function=lambda feature: policy.polygon_style(feature["properties"]["area"]),
        highlight_function=lambda _feature: {"weight": 3, "color": "#000000"},
        tooltip=folium.GeoJsonTooltip(fields=["name", "identifier"], aliases=["District", "Code"]),
    )
    layer.add_to(fmap)
    return layer


def school_marker(school: SchoolRecord, policy: StylingPolicy) -> folium.Marker:
    """Return a styled marker with popup and hover label for one school."""
    return folium.Marker(
        location=[school.lat, school.lng],
        popup=folium.Popup(popup_content(school), max_width=_POPUP_MAX_WIDTH),
        tooltip=school.name,
        icon=folium.Icon(
            color=policy.marker_color(school.ofsted_rating),
            icon=policy.marker_icon(school.phase),
            prefix=policy.icon_prefix,
        ),
    )


def add_marker_group(
    fmap: folium.Map,
    group: MarkerGroup,
    policy: StylingPolicy,
    cluster: bool = True,
) -> folium.map.Layer:
    """Add one rating group as its own toggleable layer.

    With *cluster* the layer is a ``MarkerCluster`` so nearby schools collapse
    into a count bubble at low zoom.
    """
    name = f"{group.label} ({len(group.schools)})"
    if cluster:
        layer = MarkerCluster(name=name, show=group.visible)
    else:
        layer = folium.FeatureGroup(name=name, show=group.visible)

    for school in group.schools:
        school_marker(school, policy).add_to(layer)

    layer.add_to(fmap)
    return layer


def compose_map(
    regions: Sequence[RegionPolygon],
    schools: Sequence[SchoolRecord],
    policy: StylingPolicy | None = None,
    *,
    tiles: str = "OpenStreetMap",
    cluster: bool = True,
) -> folium.Map:
    """Compose base tiles, region polygons and grouped school markers.

    Parameters
    ----------
    regions:
        Boundary polygons in WGS84.
    schools:
        Normalized school records.
    policy:
        Styling policy; the default policy is used when omitted.
    tiles:
        Any tile name folium accepts.
    cluster:
        Render each marker group with marker clustering.
    """
    policy = policy or StylingPolicy()
    fmap = folium.Map(location=list(_DEFAULT_CENTER), zoom_start=_DEFAULT_ZOOM, tiles=tiles)

    if regions:
        add_region_layer(fmap, regions, policy)

    groups = group_schools(schools, policy)
    for group in groups:
        add_marker_group(fmap, group, policy, cluster=cluster)

    folium.LayerControl(collapsed=False).add_to(fmap)

    bounds = _bounds(regions, schools)
    if bounds is not None:
        fmap.fit_bounds(bounds)

    logger.info(
        "Composed map: %d regions, %s",
        len(regions),
        ", ".join(f"{g.group.value}={len(g.schools)}" for g in groups),
    )
    return fmap


def save_map(fmap: folium.Map, path: Path | str) -> Path:
    """Write the map to a standalone HTML file via folium."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fmap.save(str(path))
    logger.info("Saved map to %s", path)
    return path
