"""GeoJSON parsing: validate a FeatureCollection and inventory its properties."""

from __future__ import annotations

import json
import logging

from geo_converter.core.exceptions import ParseError
from geo_converter.models.geojson import ParsedGeoJson

logger = logging.getLogger("geo_converter.parsers.geojson")

_NOT_A_COLLECTION = "Invalid GeoJSON: Must be a FeatureCollection."


class GeoJsonParseError(ParseError):
    """Raised when input is not JSON or not a FeatureCollection."""

    default_stage = "parse_geojson"
    default_code = "GEOJSON_PARSE_FAILED"


def parse_geojson(text: str | bytes, *, source_filename: str = "") -> ParsedGeoJson:
    """Parse *text* as a GeoJSON FeatureCollection.

    Only the top-level shape is validated (``type`` and a ``features``
    list); individual features are checked by the exporters.

    Raises:
        GeoJsonParseError: ``"Invalid GeoJSON format: ..."`` on bad JSON
            or a non-FeatureCollection document.
    """
    try:
        document = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise GeoJsonParseError(f"Invalid GeoJSON format: {exc}") from exc

    if (
        not isinstance(document, dict)
        or document.get("type") != "FeatureCollection"
        or not isinstance(document.get("features"), list)
    ):
        raise GeoJsonParseError(f"Invalid GeoJSON format: {_NOT_A_COLLECTION}")

    properties: dict[str, None] = {}
    for feature in document["features"]:
        if isinstance(feature, dict) and isinstance(feature.get("properties"), dict):
            properties.update(dict.fromkeys(feature["properties"]))

    logger.info(
        "GeoJSON parsed | file=%s | features=%d | properties=%d",
        source_filename,
        len(document["features"]),
        len(properties),
    )
    return ParsedGeoJson(document=document, properties=list(properties))
