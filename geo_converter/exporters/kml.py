"""GeoJSON FeatureCollection to KML 2.2.

Each feature becomes one Placemark carrying a name, a description and
one of six cycling colour styles. Multi-part geometries become a
``MultiGeometry``; polygons keep their outer ring only.
"""

from __future__ import annotations

import logging
from typing import Any

from lxml import etree

from geo_converter.core.constants import GX_NAMESPACE, KML_NAMESPACE
from geo_converter.exporters._common import (
    Position,
    feature_properties,
    format_coordinate,
    is_position,
    resolve_description,
    resolve_elevation,
    resolve_name,
)

logger = logging.getLogger("geo_converter.exporters.kml")

#: aabbggrr colours: red, green, blue, yellow, cyan, magenta
KML_COLORS = ("ff0000ff", "ff00ff00", "ffff0000", "ff00ffff", "ffffff00", "ffff00ff")

LINE_WIDTH = "2"
POLY_ALPHA = "80"
ICON_SCALE = "1.1"
ICON_HREF = "http://maps.google.com/mapfiles/kml/pushpin/ylw-pushpin.png"

_NSMAP = {None: KML_NAMESPACE, "gx": GX_NAMESPACE}


def _k(tag: str) -> str:
    return f"{{{KML_NAMESPACE}}}{tag}"


def _sub(parent: etree._Element, tag: str, text: str | None = None) -> etree._Element:
    child = etree.SubElement(parent, _k(tag))
    if text is not None:
        child.text = text
    return child


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------


def _add_styles(document: etree._Element) -> None:
    for i, color in enumerate(KML_COLORS):
        style = _sub(document, "Style")
        style.set("id", f"style{i}")

        line = _sub(style, "LineStyle")
        _sub(line, "color", color)
        _sub(line, "width", LINE_WIDTH)

        poly = _sub(style, "PolyStyle")
        _sub(poly, "color", POLY_ALPHA + color[2:])

        icon_style = _sub(style, "IconStyle")
        _sub(icon_style, "color", color)
        _sub(icon_style, "scale", ICON_SCALE)
        icon = _sub(icon_style, "Icon")
        _sub(icon, "href", ICON_HREF)
        hot_spot = _sub(icon_style, "hotSpot")
        hot_spot.set("x", "20")
        hot_spot.set("y", "2")
        hot_spot.set("xunits", "pixels")
        hot_spot.set("yunits", "pixels")


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------


def kml_coordinates(coords: Any, elevation: float | None = None) -> str:
    """Render a position (``lon,lat[,ele]``) or nested positions (space-separated).

    *elevation* is appended only to two-value positions.
    """
    if is_position(coords):
        values = list(coords)
        if elevation is not None and len(values) == 2:
            values.append(elevation)
        return ",".join(format_coordinate(v) for v in values)
    if isinstance(coords, list | tuple):
        return " ".join(kml_coordinates(c, elevation) for c in coords)
    return format_coordinate(coords)


def _coordinates(parent: etree._Element, coords: Any, elevation: float | None) -> None:
    _sub(parent, "coordinates", kml_coordinates(coords, elevation))


def _point(parent: etree._Element, coords: Position, elevation: float | None) -> None:
    _coordinates(_sub(parent, "Point"), coords, elevation)


def _line(parent: etree._Element, coords: list[Position], elevation: float | None) -> None:
    _coordinates(_sub(parent, "LineString"), coords, elevation)


def _polygon(parent: etree._Element, rings: list[list[Position]], elevation: float | None) -> None:
    ring = _sub(_sub(_sub(parent, "Polygon"), "outerBoundaryIs"), "LinearRing")
    _coordinates(ring, rings[0] if isinstance(rings, list) and rings else [], elevation)


_SINGLE = {"Point": _point, "LineString": _line, "Polygon": _polygon}
_MULTI = {"MultiPoint": _point, "MultiLineString": _line, "MultiPolygon": _polygon}


def _geometry(placemark: etree._Element, geometry: dict[str, Any], elevation: float | None) -> bool:
    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, list):
        return False
    if geometry_type in _SINGLE:
        _SINGLE[geometry_type](placemark, coordinates, elevation)
        return True
    if geometry_type in _MULTI:
        multi = _sub(placemark, "MultiGeometry")
        for part in coordinates:
            _MULTI[geometry_type](multi, part, elevation)
        return True
    return False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_kml_tree(
    document: dict[str, Any],
    name_field: str | None = None,
    description_field: str | None = None,
    elevation_field: str | None = None,
) -> etree._Element:
    """Build the ``<kml>`` element tree for a FeatureCollection mapping."""
    root = etree.Element(_k("kml"), nsmap=_NSMAP)
    kml_document = _sub(root, "Document")
    _add_styles(kml_document)

    skipped = 0
    for i, feature in enumerate(document.get("features") or []):
        if not isinstance(feature, dict) or not isinstance(feature.get("geometry"), dict):
            skipped += 1
            continue

        properties = feature_properties(feature)
        placemark = _sub(kml_document, "Placemark")
        _sub(placemark, "name", resolve_name(properties, name_field, i))
        _sub(placemark, "description", resolve_description(properties, description_field))
        _sub(placemark, "styleUrl", f"#style{i % len(KML_COLORS)}")

        elevation = resolve_elevation(properties, elevation_field)
        if not _geometry(placemark, feature["geometry"], elevation):
            kml_document.remove(placemark)
            skipped += 1

    if skipped:
        logger.info("KML export skipped features | skipped=%d", skipped)
    return root


def geojson_to_kml(
    document: dict[str, Any],
    name_field: str | None = None,
    description_field: str | None = None,
    elevation_field: str | None = None,
) -> str:
    """Serialise a FeatureCollection mapping as a KML document string.

    Args:
        document: Decoded FeatureCollection.
        name_field: Property used as Placemark name.
        description_field: Property used as Placemark description.
        elevation_field: Numeric property appended as third coordinate
            to two-value positions.

    Returns:
        UTF-8 KML text with an XML declaration.
    """
    root = build_kml_tree(document, name_field, description_field, elevation_field)
    return etree.tostring(
        root, xml_declaration=True, encoding="UTF-8", pretty_print=True
    ).decode("utf-8")
