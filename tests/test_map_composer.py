"""Tests for composing the folium map."""

from __future__ import annotations

import warnings

import folium
from folium.plugins import MarkerCluster

from schoolmap.services.gov_data.boundaries import filter_by_prefix
from schoolmap.services.map_composer import (
    compose_map,
    regions_to_geojson,
    save_map,
    school_marker,
)
from schoolmap.services.styling import StylingPolicy


def _children(element, kind):
    return [child for child in element._children.values() if isinstance(child, kind)]


def _marker_layers(fmap):
    return [
        child
        for child in fmap._children.values()
        if isinstance(child, (MarkerCluster, folium.FeatureGroup))
    ]


# ---------------------------------------------------------------------------
# GeoJSON conversion
# ---------------------------------------------------------------------------


class TestRegionsToGeojson:
    def test_feature_per_region(self, lad_regions):
        english = filter_by_prefix(lad_regions, "identifier", "E")
        collection = regions_to_geojson(english)
        assert collection["type"] == "FeatureCollection"
        assert len(collection["features"]) == 326

    def test_properties(self, lad_regions):
        feature = regions_to_geojson(lad_regions[:1])["features"][0]
        assert feature["properties"] == {
            "identifier": "E06000001",
            "name": "District E06000001",
            "area": 40_000_000.0,
        }
        assert feature["geometry"]["type"] == "Polygon"


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------


class TestSchoolMarker:
    def test_location_and_icon(self, school_factory):
        marker = school_marker(school_factory(), StylingPolicy())
        assert marker.location == [51.5077, -0.1279]
        (icon,) = _children(marker, folium.Icon)
        assert "blue" in icon.options.values()
        assert icon.options["icon"] == "child"
        assert icon.options["prefix"] == "fa"

    def test_has_popup_and_tooltip(self, school_factory):
        marker = school_marker(school_factory(name="Hillview Academy"), StylingPolicy())
        assert len(_children(marker, folium.Popup)) == 1
        (tooltip,) = _children(marker, folium.Tooltip)
        assert tooltip.text == "Hillview Academy"


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


class TestComposeMap:
    """compose_map layers polygons, grouped markers and a layer control."""

    def test_layers_present(self, lad_regions, mixed_schools):
        fmap = compose_map(lad_regions, mixed_schools)
        assert isinstance(fmap, folium.Map)
        assert len(_children(fmap, folium.GeoJson)) == 1
        assert len(_children(fmap, folium.LayerControl)) == 1
        assert len(_marker_layers(fmap)) == 3

    def test_clustered_groups(self, lad_regions, mixed_schools):
        fmap = compose_map(lad_regions, mixed_schools, cluster=True)
        layers = _marker_layers(fmap)
        assert all(isinstance(layer, MarkerCluster) for layer in layers)
        assert [layer.show for layer in layers] == [True, True, False]

    def test_unclustered_groups(self, lad_regions, mixed_schools):
        fmap = compose_map(lad_regions, mixed_schools, cluster=False)
        layers = _marker_layers(fmap)
        assert all(type(layer) is folium.FeatureGroup for layer in layers)

    def test_marker_counts_cover_every_school(self, lad_regions, mixed_schools):
        fmap = compose_map(lad_regions, mixed_schools)
        counts = [len(_children(layer, folium.Marker)) for layer in _marker_layers(fmap)]
        assert counts == [1, 1, 5]
        assert sum(counts) == len(mixed_schools)

    def test_layer_names_include_counts(self, lad_regions, mixed_schools):
        fmap = compose_map(lad_regions, mixed_schools)
        names = [layer.layer_name for layer in _marker_layers(fmap)]
        assert names == ["Outstanding (1)", "Good (1)", "Requires improvement or below (5)"]

    def test_polygon_style_follows_policy(self, lad_regions, mixed_schools):
        policy = StylingPolicy(area_threshold=1_000_000_000.0)
        fmap = compose_map(lad_regions, mixed_schools, policy)
        (layer,) = _children(fmap, folium.GeoJson)
        large, small = layer.data["features"][1], layer.data["features"][0]
        assert layer.style_function(large)["fillOpacity"] == 0.5
        assert layer.style_function(small)["fillOpacity"] == 0.0

    def test_without_regions(self, mixed_schools):
        fmap = compose_map((), mixed_schools)
        assert _children(fmap, folium.GeoJson) == []
        assert len(_marker_layers(fmap)) == 3

    def test_empty_inputs(self):
        fmap = compose_map((), ())
        assert [len(_children(layer, folium.Marker)) for layer in _marker_layers(fmap)] == [0, 0, 0]

    def test_default_tiles_need_no_api_key(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            fmap = compose_map((), ())
        assert not [w for w in caught if "API key" in str(w.message)]
        (tiles,) = _children(fmap, folium.TileLayer)
        assert tiles.tile_name.startswith("openstreetmap")

    def test_default_tiles_setting(self):
        from schoolmap.config import get_settings

        assert get_settings().MAP_TILES == "OpenStreetMap"

    def test_renders_html(self, lad_regions, mixed_schools):
        html = compose_map(lad_regions[:5], mixed_schools).get_root().render()
        assert "Unrated School" in html
        assert "markerClusterGroup" in html

    def test_save_map(self, tmp_path, lad_regions, mixed_schools):
        path = save_map(compose_map(lad_regions[:5], mixed_schools), tmp_path / "out" / "map.html")
        assert path.exists()
        assert path.read_text(encoding="utf-8").lstrip().startswith("<!DOCTYPE html>")
