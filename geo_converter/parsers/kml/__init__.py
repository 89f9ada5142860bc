"""KML parsing: Placemarks and bare coordinate blocks to GeoPoints.

The parsing pipeline is split into focused stages:
- **_strategies**: ordered Placemark search strategies plus the bare
  ``coordinates`` fallback
- **_normalization**: coordinate lookup and text parsing, description
  tables, names
- **_diagnostics**: error types and zero-result explanations

Supported KML structures:
- Point, LineString and Polygon Placemarks (first vertex is used)
- MultiGeometry (first coordinate block found)
- Unprefixed, ``kml:``-prefixed, lower-cased and Google Earth 2.0/2.1
  namespaced documents
- Coordinates outside Placemarks (named after the nearest named
  ancestor)
- HTML description tables (``<td>key</td><td>value</td>``) flattened
  into point attributes

The XML parser never resolves entities or touches the network.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lxml import etree

from geo_converter.models.geo_point import GeoPoint, PointType
from geo_converter.parsers.kml._constants import (
    EMPTY_FILE_MESSAGE,
    INVALID_XML_MESSAGE,
    PLACEMARK_NAME_FALLBACK,
    POINT_NAME_FALLBACK,
)
from geo_converter.parsers.kml._diagnostics import (
    KmlNoDataError,
    KmlParseError,
    diagnose_empty,
)
from geo_converter.parsers.kml._normalization import (
    element_text,
    find_descendant,
    find_placemark_coordinates,
    first_coordinate,
    in_wgs84_bounds,
    nearest_ancestor_name,
    parse_description_table,
)
from geo_converter.parsers.kml._strategies import (
    PLACEMARK_STRATEGIES,
    ExtractionStrategy,
    find_coordinate_blocks,
    find_placemarks,
)

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger("geo_converter.parsers.kml")

__all__ = [
    "PLACEMARK_STRATEGIES",
    "ExtractionStrategy",
    "KmlNoDataError",
    "KmlParseError",
    "parse_description_table",
    "parse_kml",
]


def parse_kml(content: str | bytes, *, source_filename: str = "") -> list[GeoPoint]:
    """Parse a KML document into Placemark-typed GeoPoints.

    Args:
        content: The KML document (text or raw bytes).
        source_filename: Name used in log messages only.

    Returns:
        One GeoPoint per Placemark (or bare coordinate block) with valid
        coordinates, in document order.

    Raises:
        KmlParseError: If the document is empty or not well-formed XML.
        KmlNoDataError: If the document yields no points; the message
            explains the most likely cause.
    """
    raw = content.encode("utf-8") if isinstance(content, str) else content
    if not raw.strip():
        raise KmlParseError(EMPTY_FILE_MESSAGE)

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root: _Element = etree.fromstring(raw, parser=parser)
    except etree.XMLSyntaxError as exc:
        logger.warning("KML XML parse failed | file=%s | error=%s", source_filename, exc)
        raise KmlParseError(INVALID_XML_MESSAGE) from exc

    strategy, placemarks = find_placemarks(root)
    if placemarks:
        points = _points_from_placemarks(placemarks, source_filename)
    else:
        strategy = ExtractionStrategy.BARE_COORDINATES
        points = _points_from_coordinate_blocks(root, source_filename)

    if not points:
        raise diagnose_empty(root)

    logger.info(
        "KML parsed | file=%s | strategy=%s | points=%d",
        source_filename,
        strategy.name if strategy else "",
        len(points),
    )
    return points


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _accept(lon: float, lat: float, label: str, source_filename: str) -> bool:
    if in_wgs84_bounds(lon, lat):
        return True
    logger.warning(
        "Skipping out-of-range point | file=%s | name=%s | lon=%s | lat=%s",
        source_filename,
        label,
        lon,
        lat,
    )
    return False


def _points_from_placemarks(placemarks: list[_Element], source_filename: str) -> list[GeoPoint]:
    points: list[GeoPoint] = []
    for placemark in placemarks:
        coords_elem = find_placemark_coordinates(placemark)
        coords_text = element_text(coords_elem)
        if not coords_text:
            continue

        parsed = first_coordinate(coords_text)
        if parsed is None:
            continue
        lon, lat, elevation = parsed

        name = element_text(find_descendant(placemark, "name")) or PLACEMARK_NAME_FALLBACK.format(
            index=len(points) + 1
        )
        if not _accept(lon, lat, name, source_filename):
            continue

        description: str | None = None
        extra: dict[str, str] = {}
        raw_description = element_text(find_descendant(placemark, "description"))
        if raw_description:
            extra = parse_description_table(raw_description)
            if not extra:
                description = raw_description

        points.append(
            GeoPoint(
                longitude=lon,
                latitude=lat,
                type=PointType.PLACEMARK,
                name=name,
                description=description,
                elevation=elevation,
                extra=extra,
            )
        )
    return points


def _points_from_coordinate_blocks(root: _Element, source_filename: str) -> list[GeoPoint]:
    blocks = find_coordinate_blocks(root)
    logger.info(
        "No Placemarks found, scanning coordinate blocks | file=%s | blocks=%d",
        source_filename,
        len(blocks),
    )

    points: list[GeoPoint] = []
    for block in blocks:
        text = element_text(block)
        if not text:
            continue
        first_line = next(line for line in text.splitlines() if line.strip())
        parsed = first_coordinate(first_line)
        if parsed is None:
            continue
        lon, lat, elevation = parsed

        name = nearest_ancestor_name(block, root) or POINT_NAME_FALLBACK.format(
            index=len(points) + 1
        )
        if not _accept(lon, lat, name, source_filename):
            continue

        points.append(
            GeoPoint(
                longitude=lon,
                latitude=lat,
                type=PointType.PLACEMARK,
                name=name,
                elevation=elevation,
            )
        )
    return points
