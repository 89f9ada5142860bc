"""GeoJSON FeatureCollection to GPX 1.1.

Points become waypoints; lines and polygon outer rings become
single-segment tracks. Multi-part geometries emit one waypoint or track
per part, named ``"<name> - Part <k>"``.
"""

from __future__ import annotations

import logging
from typing import Any

from lxml import etree

from geo_converter.core.constants import GPX_NAMESPACE, XSI_NAMESPACE
from geo_converter.exporters._common import (
    Position,
    feature_properties,
    format_coordinate,
    is_position,
    resolve_description,
    resolve_elevation,
    resolve_name,
)

logger = logging.getLogger("geo_converter.exporters.gpx")

GPX_VERSION = "1.1"
GPX_CREATOR = "Geo-Converter"
GPX_SCHEMA_LOCATION = f"{GPX_NAMESPACE} {GPX_NAMESPACE}/gpx.xsd"

_NSMAP = {None: GPX_NAMESPACE, "xsi": XSI_NAMESPACE}


def _g(tag: str) -> str:
    return f"{{{GPX_NAMESPACE}}}{tag}"


def _sub(parent: etree._Element, tag: str, text: str | None = None) -> etree._Element:
    child = etree.SubElement(parent, _g(tag))
    if text is not None:
        child.text = text
    return child


def _elevation(position: Position, override: float | None) -> Any:
    if override is not None:
        return override
    return position[2] if len(position) > 2 else None


def _set_lat_lon(elem: etree._Element, position: Position) -> None:
    elem.set("lat", format_coordinate(position[1]))
    elem.set("lon", format_coordinate(position[0]))


def _waypoint(
    root: etree._Element, position: Any, name: str, desc: str, elevation: float | None
) -> None:
    if not is_position(position):
        return
    wpt = _sub(root, "wpt")
    _set_lat_lon(wpt, position)
    ele = _elevation(position, elevation)
    if ele is not None:
        _sub(wpt, "ele", format_coordinate(ele))
    _sub(wpt, "name", name)
    _sub(wpt, "desc", desc)


def _track(
    root: etree._Element, positions: Any, name: str, desc: str, elevation: float | None
) -> None:
    trk = _sub(root, "trk")
    _sub(trk, "name", name)
    _sub(trk, "desc", desc)
    segment = _sub(trk, "trkseg")
    for position in positions if isinstance(positions, list) else []:
        if not is_position(position):
            continue
        trkpt = _sub(segment, "trkpt")
        _set_lat_lon(trkpt, position)
        ele = _elevation(position, elevation)
        if ele is not None:
            _sub(trkpt, "ele", format_coordinate(ele))


def _outer_ring(rings: Any) -> Any:
    return rings[0] if isinstance(rings, list) and rings else []


def _feature(
    root: etree._Element,
    geometry: dict[str, Any],
    name: str,
    desc: str,
    elevation: float | None,
) -> bool:
    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, list):
        return False

    if geometry_type == "Point":
        _waypoint(root, coordinates, name, desc, elevation)
    elif geometry_type == "LineString":
        _track(root, coordinates, name, desc, elevation)
    elif geometry_type == "Polygon":
        _track(root, _outer_ring(coordinates), name, desc, elevation)
    elif geometry_type == "MultiPoint":
        for k, point in enumerate(coordinates, start=1):
            _waypoint(root, point, f"{name} - Part {k}", desc, elevation)
    elif geometry_type == "MultiLineString":
        for k, line in enumerate(coordinates, start=1):
            _track(root, line, f"{name} - Part {k}", desc, elevation)
    elif geometry_type == "MultiPolygon":
        for k, polygon in enumerate(coordinates, start=1):
            _track(root, _outer_ring(polygon), f"{name} - Part {k}", desc, elevation)
    else:
        return False
    return True


def build_gpx_tree(
    document: dict[str, Any],
    name_field: str | None = None,
    description_field: str | None = None,
    elevation_field: str | None = None,
) -> etree._Element:
    """Build the ``<gpx>`` element tree for a FeatureCollection mapping."""
    root = etree.Element(_g("gpx"), nsmap=_NSMAP)
    root.set("version", GPX_VERSION)
    root.set("creator", GPX_CREATOR)
    root.set(f"{{{XSI_NAMESPACE}}}schemaLocation", GPX_SCHEMA_LOCATION)

    skipped = 0
    for i, feature in enumerate(document.get("features") or []):
        if not isinstance(feature, dict) or not isinstance(feature.get("geometry"), dict):
            skipped += 1
            continue
        properties = feature_properties(feature)
        emitted = _feature(
            root,
            feature["geometry"],
            resolve_name(properties, name_field, i),
            resolve_description(properties, description_field),
            resolve_elevation(properties, elevation_field),
        )
        if not emitted:
            skipped += 1

    if skipped:
        logger.info("GPX export skipped features | skipped=%d", skipped)
    return root


def geojson_to_gpx(
    document: dict[str, Any],
    name_field: str | None = None,
    description_field: str | None = None,
    elevation_field: str | None = None,
) -> str:
    """Serialise a FeatureCollection mapping as a GPX 1.1 document string.

    Elevation comes from *elevation_field* when that property is
    numeric, otherwise from the position's third value.
    """
    root = build_gpx_tree(document, name_field, description_field, elevation_field)
    return etree.tostring(
        root, xml_declaration=True, encoding="UTF-8", pretty_print=True
    ).decode("utf-8")
