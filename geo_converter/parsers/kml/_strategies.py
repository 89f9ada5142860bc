"""Placemark search strategies.

KML in the wild is unprefixed, prefixed (``kml:Placemark``), lower-cased
by hand-written exporters, or bound to one of the older Google Earth
namespaces. Each ``ExtractionStrategy`` is one way of locating
Placemarks; ``PLACEMARK_STRATEGIES`` is evaluated in order until one
yields elements. ``BARE_COORDINATES`` is the last resort for documents
whose coordinates are not wrapped in Placemarks at all.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from geo_converter.core.constants import (
    GOOGLE_EARTH_20_NAMESPACE,
    GOOGLE_EARTH_21_NAMESPACE,
    KML_NAMESPACE,
)
from geo_converter.parsers.kml._constants import COORDINATE_NAMESPACES

if TYPE_CHECKING:
    from lxml.etree import _Element


class ExtractionStrategy(enum.Enum):
    """How Placemarks (or bare coordinate blocks) are located in a document."""

    PLAIN = "Placemark"
    PLAIN_LOWERCASE = "placemark"
    OGC_22 = f"{{{KML_NAMESPACE}}}Placemark"
    GOOGLE_EARTH_20 = f"{{{GOOGLE_EARTH_20_NAMESPACE}}}Placemark"
    GOOGLE_EARTH_21 = f"{{{GOOGLE_EARTH_21_NAMESPACE}}}Placemark"
    BARE_COORDINATES = "coordinates"


PLACEMARK_STRATEGIES = (
    ExtractionStrategy.PLAIN,
    ExtractionStrategy.PLAIN_LOWERCASE,
    ExtractionStrategy.OGC_22,
    ExtractionStrategy.GOOGLE_EARTH_20,
    ExtractionStrategy.GOOGLE_EARTH_21,
)


def _unprefixed(root: _Element, local_name: str) -> list[_Element]:
    """Elements written as ``<local_name>`` without a prefix, in any namespace."""
    return [el for el in root.iter(f"{{*}}{local_name}") if el.prefix is None]


def find_elements(root: _Element, strategy: ExtractionStrategy) -> list[_Element]:
    """Return the elements *strategy* matches, in document order."""
    if strategy in (ExtractionStrategy.PLAIN, ExtractionStrategy.PLAIN_LOWERCASE):
        return _unprefixed(root, strategy.value)
    if strategy is ExtractionStrategy.BARE_COORDINATES:
        return find_coordinate_blocks(root)
    return list(root.iter(strategy.value))


def find_placemarks(root: _Element) -> tuple[ExtractionStrategy | None, list[_Element]]:
    """Apply the Placemark strategies in order; return the first that matches."""
    for strategy in PLACEMARK_STRATEGIES:
        placemarks = find_elements(root, strategy)
        if placemarks:
            return strategy, placemarks
    return None, []


def find_coordinate_blocks(root: _Element) -> list[_Element]:
    """Locate ``coordinates`` elements: unprefixed first, then by namespace."""
    blocks = _unprefixed(root, "coordinates")
    if blocks:
        return blocks
    for namespace in COORDINATE_NAMESPACES:
        blocks = list(root.iter(f"{{{namespace}}}coordinates"))
        if blocks:
            return blocks
    return []
