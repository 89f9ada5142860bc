"""Data models and schemas.

Defines the data structures used throughout the converter:
- GeoPoint: Normalised point record from KML or GPX
- ParsedGeoJson: Validated FeatureCollection plus property inventory
- Collaborator payloads: request/response schemas for the AI flows
- Sessions and results: per-mode options and conversion outcomes
"""

from geo_converter.models.geo_point import GeoPoint, PointType
from geo_converter.models.geojson import ParsedGeoJson
from geo_converter.models.session import (
    ConversionResult,
    ConversionSession,
    ConversionState,
    new_session,
)

__all__ = [
    "ConversionResult",
    "ConversionSession",
    "ConversionState",
    "GeoPoint",
    "ParsedGeoJson",
    "PointType",
    "new_session",
]
