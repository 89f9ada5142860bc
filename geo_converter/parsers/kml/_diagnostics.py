"""Errors and zero-result diagnostics for KML parsing.

When a well-formed document yields no points, the most specific
explanation wins: GPX content handed to the KML tool, NetworkLinks
(remote content is never fetched), a KML skeleton without usable
geometry, and finally a generic message.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geo_converter.core.exceptions import ParseError
from geo_converter.parsers.kml._constants import (
    GPX_DETECTED_MESSAGE,
    NETWORK_LINK_MESSAGE,
    NO_DATA_MESSAGE,
    STRUCTURE_ONLY_MESSAGE,
)

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger("geo_converter.parsers.kml")


class KmlParseError(ParseError):
    """Raised when a KML document cannot be parsed or holds no points."""

    default_stage = "parse_kml"
    default_code = "KML_PARSE_FAILED"


class KmlNoDataError(KmlParseError):
    """Raised when a well-formed KML document yields no points."""

    default_code = "KML_NO_DATA"


def _has_any(root: _Element, *local_names: str) -> bool:
    return any(next(root.iter(f"{{*}}{name}"), None) is not None for name in local_names)


def diagnose_empty(root: _Element) -> KmlNoDataError:
    """Build the most specific error for a document that yielded no points."""
    tags = sorted({el.tag.rpartition("}")[2] for el in root.iter() if isinstance(el.tag, str)})
    logger.info(
        "KML yielded no points | root=%s | element_types=%s",
        root.tag,
        ",".join(tags),
    )

    if _has_any(root, "gpx", "wpt", "trk"):
        return KmlNoDataError(GPX_DETECTED_MESSAGE, code="KML_LOOKS_LIKE_GPX")
    if _has_any(root, "NetworkLink"):
        return KmlNoDataError(NETWORK_LINK_MESSAGE, code="KML_NETWORK_LINK")
    if _has_any(root, "Document", "Folder"):
        return KmlNoDataError(STRUCTURE_ONLY_MESSAGE)
    return KmlNoDataError(NO_DATA_MESSAGE)
