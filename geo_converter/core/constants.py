"""Shared converter constants.

Centralises conversion mode names, the per-mode file-type gates, output
file naming and the XML namespaces used by parsers and exporters.
"""

from __future__ import annotations

import enum

# ---------------------------------------------------------------------------
# Conversion modes
# ---------------------------------------------------------------------------


class ConversionMode(enum.StrEnum):
    """Active conversion mode (one per input family)."""

    KML = "kml"
    GPX = "gpx"
    GEOJSON = "geojson"
    JSON = "json"
    PDF = "pdf"
    CLEANUP = "cleanup"
    XLSX = "xlsx"
    COORDINATES = "coordinates"


class CoordinateSystem(enum.StrEnum):
    """Coordinate representations handled by the coordinate pipeline."""

    DD = "dd"
    DMS = "dms"
    UTM = "utm"


class GeoJsonOutputFormat(enum.StrEnum):
    """Download formats offered for a parsed GeoJSON document."""

    CSV = "csv"
    GPX = "gpx"
    KML = "kml"
    KMZ = "kmz"


# ---------------------------------------------------------------------------
# File-type gates
# ---------------------------------------------------------------------------

#: Accepted filename suffixes per mode (lower-case).
ACCEPTED_EXTENSIONS: dict[ConversionMode, tuple[str, ...]] = {
    ConversionMode.KML: (".kml", ".kmz"),
    ConversionMode.GPX: (".gpx",),
    ConversionMode.GEOJSON: (".geojson", ".json"),
    ConversionMode.JSON: (".json",),
    ConversionMode.PDF: (),
    ConversionMode.CLEANUP: (".csv", ".txt"),
    ConversionMode.XLSX: (".xlsx", ".xls"),
    ConversionMode.COORDINATES: (".csv", ".txt"),
}

#: Exact MIME types accepted per mode.
ACCEPTED_MIME_TYPES: dict[ConversionMode, tuple[str, ...]] = {
    ConversionMode.PDF: ("application/pdf",),
}

#: MIME type prefixes accepted per mode.
ACCEPTED_MIME_PREFIXES: dict[ConversionMode, tuple[str, ...]] = {
    ConversionMode.CLEANUP: ("text/",),
    ConversionMode.COORDINATES: ("text/",),
}

#: Expected-type wording used in file-gate rejection messages.
EXPECTED_TYPE_LABELS: dict[ConversionMode, str] = {
    ConversionMode.KML: ".kml, .kmz",
    ConversionMode.GPX: ".gpx",
    ConversionMode.GEOJSON: ".geojson, .json",
    ConversionMode.JSON: ".json",
    ConversionMode.PDF: ".pdf",
    ConversionMode.CLEANUP: ".csv or .txt",
    ConversionMode.XLSX: ".xlsx, .xls",
    ConversionMode.COORDINATES: ".csv or .txt",
}

#: Modes that only accept files (no pasted text).
FILE_ONLY_MODES = frozenset(
    {ConversionMode.KML, ConversionMode.GPX, ConversionMode.PDF, ConversionMode.XLSX}
)

# ---------------------------------------------------------------------------
# Output naming
# ---------------------------------------------------------------------------

BATCH_BASENAME = "converted_files"
"""Download base name when more than one input file was converted."""

TEXT_INPUT_BASENAME = "converted_data"
"""Download base name when the input was pasted text."""

BATCH_ENTRY_SUFFIX = "_converted.csv"
"""Suffix of each CSV entry inside a batch zip archive."""

UTF8_BOM = "\ufeff"

KMZ_DOCUMENT_NAME = "doc.kml"

CSV_MEDIA_TYPE = "text/csv;charset=utf-8"
ZIP_MEDIA_TYPE = "application/zip"
KML_MEDIA_TYPE = "application/vnd.google-earth.kml+xml"
KMZ_MEDIA_TYPE = "application/vnd.google-earth.kmz"
GPX_MEDIA_TYPE = "application/gpx+xml"

# ---------------------------------------------------------------------------
# XML namespaces
# ---------------------------------------------------------------------------

KML_NAMESPACE = "http://www.opengis.net/kml/2.2"
GX_NAMESPACE = "http://www.google.com/kml/ext/2.2"
GOOGLE_EARTH_20_NAMESPACE = "http://earth.google.com/kml/2.0"
GOOGLE_EARTH_21_NAMESPACE = "http://earth.google.com/kml/2.1"
GPX_NAMESPACE = "http://www.topografix.com/GPX/1/1"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

# WGS 84 coordinate bounds
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0
