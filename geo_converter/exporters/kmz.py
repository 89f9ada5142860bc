"""GeoJSON FeatureCollection to KMZ (zipped KML)."""

from __future__ import annotations

from typing import Any

from geo_converter.exporters.kml import geojson_to_kml
from geo_converter.utils.archives import build_kmz


def export_kmz(
    document: dict[str, Any],
    name_field: str | None = None,
    description_field: str | None = None,
    elevation_field: str | None = None,
) -> bytes:
    """Render *document* as KML and zip it as ``doc.kml``."""
    return build_kmz(geojson_to_kml(document, name_field, description_field, elevation_field))
