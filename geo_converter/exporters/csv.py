"""GeoJSON FeatureCollection to CSV.

Each feature becomes one row of its properties. Point features also get
``longitude``, ``latitude`` and (for 3-D positions) ``elevation``
columns; other geometries contribute properties only.
"""

from __future__ import annotations

from typing import Any

from geo_converter.exporters._common import feature_properties, is_position
from geo_converter.utils.tabular import to_csv


def flatten_feature(feature: dict[str, Any]) -> dict[str, Any]:
    """Properties of *feature* plus Point coordinates."""
    row = dict(feature_properties(feature))
    geometry = feature.get("geometry")
    if isinstance(geometry, dict) and geometry.get("type") == "Point":
        coordinates = geometry.get("coordinates")
        if is_position(coordinates):
            row["longitude"] = coordinates[0]
            row["latitude"] = coordinates[1]
            if len(coordinates) > 2:
                row["elevation"] = coordinates[2]
    return row


def geojson_to_csv(document: dict[str, Any]) -> str:
    """Flatten every non-null feature and serialise with ``to_csv``."""
    rows = [
        flatten_feature(feature)
        for feature in document.get("features") or []
        if isinstance(feature, dict)
    ]
    return to_csv(rows)
