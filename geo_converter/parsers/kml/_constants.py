"""Shared constants for KML parsing."""

from __future__ import annotations

from geo_converter.core.constants import (
    GOOGLE_EARTH_20_NAMESPACE,
    GOOGLE_EARTH_21_NAMESPACE,
    KML_NAMESPACE,
)

# Namespaces searched for bare <coordinates> blocks, after the unprefixed tag
COORDINATE_NAMESPACES = (
    KML_NAMESPACE,
    GOOGLE_EARTH_20_NAMESPACE,
    GOOGLE_EARTH_21_NAMESPACE,
)

# Fallback name patterns (1-based)
PLACEMARK_NAME_FALLBACK = "Placemark {index}"
POINT_NAME_FALLBACK = "Point {index}"
COLUMN_NAME_FALLBACK = "column_{index}"

# Error messages
EMPTY_FILE_MESSAGE = "KML file is empty"
INVALID_XML_MESSAGE = "Invalid KML format: XML parsing failed"
GPX_DETECTED_MESSAGE = (
    "This appears to be a GPX file, not a KML file. "
    "Please use the GPX conversion tool instead."
)
NETWORK_LINK_MESSAGE = (
    "This KML file contains NetworkLinks which are not supported. "
    "Please use a KML file with direct geographic data."
)
STRUCTURE_ONLY_MESSAGE = (
    "KML file structure detected but no valid placemarks or coordinates found. "
    "The file might be empty or contain unsupported geometry types."
)
NO_DATA_MESSAGE = (
    "No valid geographic data found in the KML file. "
    "Please ensure the file contains Placemarks with coordinate information."
)
