"""GPX parsing: waypoints, trackpoints and routepoints to GeoPoints.

Tag matching is namespace-agnostic, so GPX 1.0, GPX 1.1 and
unnamespaced files all parse. Points are emitted grouped by kind
(all ``wpt``, then all ``trkpt``, then all ``rtept``), each group in
document order.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from lxml import etree

from geo_converter.core.exceptions import ParseError
from geo_converter.models.geo_point import GeoPoint, PointType
from geo_converter.utils.helpers import parse_float

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger("geo_converter.parsers.gpx")

_POINT_TAGS: tuple[tuple[str, PointType], ...] = (
    ("wpt", PointType.WAYPOINT),
    ("trkpt", PointType.TRACKPOINT),
    ("rtept", PointType.ROUTEPOINT),
)


class GpxParseError(ParseError):
    """Raised when a GPX document is not well-formed XML."""

    default_stage = "parse_gpx"
    default_code = "GPX_PARSE_FAILED"


def _child_text(node: _Element, local_name: str) -> str | None:
    child = next(node.iterdescendants(f"{{*}}{local_name}"), None)
    if child is None:
        return None
    return child.text or None


def _to_point(node: _Element, point_type: PointType) -> GeoPoint | None:
    lat_attr = node.get("lat")
    lon_attr = node.get("lon")
    if not lat_attr or not lon_attr:
        return None

    lat = parse_float(lat_attr)
    lon = parse_float(lon_attr)
    if math.isnan(lat) or math.isnan(lon):
        return None

    ele_text = _child_text(node, "ele")
    elevation = parse_float(ele_text) if ele_text else math.nan

    return GeoPoint(
        longitude=lon,
        latitude=lat,
        type=point_type,
        name=_child_text(node, "name"),
        description=_child_text(node, "desc"),
        elevation=None if math.isnan(elevation) else elevation,
        timestamp=_child_text(node, "time"),
    )


def parse_gpx(content: str | bytes, *, source_filename: str = "") -> list[GeoPoint]:
    """Parse a GPX document.

    Args:
        content: The GPX document (text or raw bytes).
        source_filename: Name used in log messages only.

    Returns:
        All points with numeric ``lat``/``lon`` attributes. May be empty;
        the caller decides whether an empty result is an error.

    Raises:
        GpxParseError: If the document is not well-formed XML.
    """
    raw = content.encode("utf-8") if isinstance(content, str) else content
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root: _Element = etree.fromstring(raw, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise GpxParseError(f"Invalid GPX format: {exc}") from exc

    points: list[GeoPoint] = []
    skipped = 0
    for tag, point_type in _POINT_TAGS:
        for node in root.iter(f"{{*}}{tag}"):
            point = _to_point(node, point_type)
            if point is None:
                skipped += 1
                continue
            points.append(point)

    if skipped:
        logger.warning(
            "GPX points skipped | file=%s | skipped=%d | reason=missing or non-numeric lat/lon",
            source_filename,
            skipped,
        )
    logger.info("GPX parsed | file=%s | points=%d", source_filename, len(points))
    return points
