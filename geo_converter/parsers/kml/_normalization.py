"""Coordinate and metadata normalization helpers for KML parsing.

Responsibilities:
- Locate the coordinate block of a Placemark across geometry types
- Reduce KML coordinate text to its first (lon, lat[, ele]) tuple
- Extract key/value rows from an HTML description table
- Resolve display names for Placemarks and bare coordinate blocks
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

import lxml.html
from lxml import etree

from geo_converter.core.constants import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
)
from geo_converter.parsers.kml._constants import COLUMN_NAME_FALLBACK
from geo_converter.utils.helpers import parse_float

if TYPE_CHECKING:
    from lxml.etree import _Element

_COMMA_SPACING = re.compile(r"\s*,\s*")

# ---------------------------------------------------------------------------
# Element lookup
# ---------------------------------------------------------------------------


def find_descendant(elem: _Element, local_name: str) -> _Element | None:
    """First descendant named *local_name* in any namespace, or ``None``."""
    return next(elem.iterdescendants(f"{{*}}{local_name}"), None)


def element_text(elem: _Element | None) -> str:
    """Full text content of *elem* (CDATA included), stripped."""
    if elem is None:
        return ""
    return "".join(elem.itertext()).strip()


def find_placemark_coordinates(placemark: _Element) -> _Element | None:
    """Locate the coordinate block of a Placemark.

    Lookup order: a direct ``coordinates`` child, then the first
    ``Point``, ``LineString`` or ``Polygon`` outer ring, then any
    descendant ``coordinates`` (e.g. inside a MultiGeometry).
    """
    direct = next(placemark.iterchildren("{*}coordinates"), None)
    if direct is not None:
        return direct

    for geometry in ("Point", "LineString"):
        node = find_descendant(placemark, geometry)
        if node is not None:
            coords = find_descendant(node, "coordinates")
            if coords is not None:
                return coords

    polygon = find_descendant(placemark, "Polygon")
    if polygon is not None:
        outer = find_descendant(polygon, "outerBoundaryIs")
        ring = find_descendant(outer, "LinearRing") if outer is not None else None
        if ring is not None:
            coords = find_descendant(ring, "coordinates")
            if coords is not None:
                return coords

    return find_descendant(placemark, "coordinates")


# ---------------------------------------------------------------------------
# Coordinate text parsing
# ---------------------------------------------------------------------------


def first_coordinate(text: str) -> tuple[float, float, float | None] | None:
    """Parse the first ``lon,lat[,ele]`` tuple of KML coordinate text.

    Tuples are whitespace-separated; stray spaces around commas are
    tolerated. Returns ``None`` when fewer than two components exist or
    longitude/latitude are not numeric. A non-numeric elevation becomes
    ``None``; an elevation of 0 is kept.
    """
    stripped = _COMMA_SPACING.sub(",", text.strip())
    if not stripped:
        return None
    parts = stripped.split()[0].split(",")
    if len(parts) < 2:
        return None

    lon = parse_float(parts[0])
    lat = parse_float(parts[1])
    if math.isnan(lon) or math.isnan(lat):
        return None

    elevation: float | None = None
    if len(parts) > 2:
        ele = parse_float(parts[2])
        elevation = None if math.isnan(ele) else ele
    return lon, lat, elevation


def in_wgs84_bounds(lon: float, lat: float) -> bool:
    return MIN_LONGITUDE <= lon <= MAX_LONGITUDE and MIN_LATITUDE <= lat <= MAX_LATITUDE


# ---------------------------------------------------------------------------
# Description tables
# ---------------------------------------------------------------------------


def parse_description_table(description: str) -> dict[str, str]:
    """Extract key/value pairs from ``<td>key</td><td>value</td>`` cells.

    Cells are paired in document order; an unpaired trailing cell is
    ignored. A key keeps only the text after its last ``:`` (so
    ``"ns:field"`` becomes ``"field"``) and falls back to ``column_N``
    when blank. Returns an empty mapping when the description holds no
    table cells.
    """
    if "<" not in description:
        return {}
    try:
        fragment = lxml.html.fragment_fromstring(description, create_parent="div")
    except (etree.ParserError, etree.ParseError, ValueError):
        return {}

    cells = list(fragment.iter("td"))
    rows: dict[str, str] = {}
    for j in range(0, len(cells) - 1, 2):
        key = cells[j].text_content().strip().split(":")[-1].strip()
        if not key:
            key = COLUMN_NAME_FALLBACK.format(index=j // 2 + 1)
        rows[key] = cells[j + 1].text_content().strip()
    return rows


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


def nearest_ancestor_name(elem: _Element, root: _Element) -> str | None:
    """Name of the nearest ancestor (below *root*) that has a ``name`` descendant."""
    parent = elem.getparent()
    while parent is not None and parent is not root:
        name = element_text(find_descendant(parent, "name"))
        if name:
            return name
        parent = parent.getparent()
    return None
