"""Coordinate pipeline: apply geodetic conversions across tabular rows.

Rows come from ``parse_csv_simple``; each output row is the input row
with the converted fields merged in. Rows are never dropped: a value
that cannot be converted leaves an ``error`` field (or ``None`` DMS
text) on its row instead.

DD and UTM input columns are detected from the header by
case-insensitive substring match. DMS input requires the caller to map
the latitude and longitude columns explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from geo_converter.coordinates.geodesy import (
    dd_to_dms,
    dd_to_utm,
    dms_to_dd,
    utm_to_dd,
)
from geo_converter.core.constants import CoordinateSystem
from geo_converter.core.exceptions import (
    ColumnDetectionError,
    ColumnMappingError,
    ValidationError,
)
from geo_converter.utils.helpers import parse_float, parse_int

if TYPE_CHECKING:
    from geo_converter.utils.tabular import CsvTable

logger = logging.getLogger("geo_converter.coordinates.pipeline")

INVALID_DMS_FORMAT = "Invalid DMS format"

_DD_HEADERS_MESSAGE = "CSV must contain 'lat' and 'lon' headers."
_UTM_HEADERS_MESSAGE = (
    "CSV must contain 'easting', 'northing', 'zone', and 'hemisphere' headers."
)
_MAPPING_MESSAGE = "Please select both Latitude and Longitude columns."

Row = dict[str, Any]


# ---------------------------------------------------------------------------
# Column detection
# ---------------------------------------------------------------------------


def find_header(headers: list[str], fragment: str) -> str | None:
    """Return the first header containing *fragment* (case-insensitive)."""
    needle = fragment.lower()
    for header in headers:
        if needle in header.lower():
            return header
    return None


def _detect(headers: list[str], fragments: tuple[str, ...], message: str) -> list[str]:
    found = [find_header(headers, fragment) for fragment in fragments]
    if any(header is None for header in found):
        raise ColumnDetectionError(message)
    return found  # type: ignore[return-value]


def _require_mapping(lat_column: str | None, lon_column: str | None) -> tuple[str, str]:
    if not lat_column or not lon_column:
        raise ColumnMappingError(_MAPPING_MESSAGE)
    return lat_column, lon_column


# ---------------------------------------------------------------------------
# Row converters
# ---------------------------------------------------------------------------


def _dms_to_dd_rows(table: CsvTable, lat_column: str, lon_column: str) -> list[Row]:
    rows = []
    for row in table.rows:
        latitude = dms_to_dd(row.get(lat_column))
        longitude = dms_to_dd(row.get(lon_column))
        converted = {**row, "decimal_latitude": latitude, "decimal_longitude": longitude}
        if latitude is None or longitude is None:
            converted["error"] = INVALID_DMS_FORMAT
        rows.append(converted)
    return rows


def _dms_to_utm_rows(table: CsvTable, lat_column: str, lon_column: str) -> list[Row]:
    rows = []
    for row in table.rows:
        latitude = dms_to_dd(row.get(lat_column))
        longitude = dms_to_dd(row.get(lon_column))
        if latitude is None or longitude is None:
            rows.append({**row, "error": INVALID_DMS_FORMAT})
            continue
        rows.append({**row, **dd_to_utm(latitude, longitude)})
    return rows


def _dd_to_utm_rows(table: CsvTable) -> list[Row]:
    lat_header, lon_header = _detect(table.headers, ("lat", "lon"), _DD_HEADERS_MESSAGE)
    return [
        {**row, **dd_to_utm(parse_float(row.get(lat_header)), parse_float(row.get(lon_header)))}
        for row in table.rows
    ]


def _dd_to_dms_rows(table: CsvTable) -> list[Row]:
    lat_header, lon_header = _detect(table.headers, ("lat", "lon"), _DD_HEADERS_MESSAGE)
    rows = []
    for row in table.rows:
        lat = parse_float(row.get(lat_header))
        lon = parse_float(row.get(lon_header))
        rows.append(
            {
                **row,
                "dms_latitude": dd_to_dms(lat, is_longitude=False),
                "dms_longitude": dd_to_dms(lon, is_longitude=True),
            }
        )
    return rows


def _utm_row_to_dd(row: Row, headers: list[str]) -> dict[str, Any]:
    easting, northing, zone, hemisphere = headers
    return dict(
        utm_to_dd(
            parse_float(row.get(easting)),
            parse_float(row.get(northing)),
            parse_int(row.get(zone)),
            row.get(hemisphere),
        )
    )


def _utm_to_dd_rows(table: CsvTable) -> list[Row]:
    headers = _detect(
        table.headers, ("easting", "northing", "zone", "hemisphere"), _UTM_HEADERS_MESSAGE
    )
    return [{**row, **_utm_row_to_dd(row, headers)} for row in table.rows]


def _utm_to_dms_rows(table: CsvTable) -> list[Row]:
    headers = _detect(
        table.headers, ("easting", "northing", "zone", "hemisphere"), _UTM_HEADERS_MESSAGE
    )
    rows = []
    for row in table.rows:
        dd = _utm_row_to_dd(row, headers)
        if "error" in dd:
            rows.append({**row, **dd})
            continue
        rows.append(
            {
                **row,
                "dms_latitude": dd_to_dms(float(dd["latitude"]), is_longitude=False),
                "dms_longitude": dd_to_dms(float(dd["longitude"]), is_longitude=True),
            }
        )
    return rows


_AUTO_DETECTED: dict[tuple[CoordinateSystem, CoordinateSystem], Callable[[CsvTable], list[Row]]] = {
    (CoordinateSystem.DD, CoordinateSystem.UTM): _dd_to_utm_rows,
    (CoordinateSystem.DD, CoordinateSystem.DMS): _dd_to_dms_rows,
    (CoordinateSystem.UTM, CoordinateSystem.DD): _utm_to_dd_rows,
    (CoordinateSystem.UTM, CoordinateSystem.DMS): _utm_to_dms_rows,
}

_MAPPED: dict[
    tuple[CoordinateSystem, CoordinateSystem], Callable[[CsvTable, str, str], list[Row]]
] = {
    (CoordinateSystem.DMS, CoordinateSystem.DD): _dms_to_dd_rows,
    (CoordinateSystem.DMS, CoordinateSystem.UTM): _dms_to_utm_rows,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def convert_rows(
    table: CsvTable,
    source: CoordinateSystem | str,
    target: CoordinateSystem | str,
    *,
    lat_column: str | None = None,
    lon_column: str | None = None,
) -> list[Row]:
    """Convert every row of *table* from *source* to *target*.

    Args:
        table: Parsed CSV table.
        source: Coordinate system of the input columns.
        target: Coordinate system to add.
        lat_column: DMS latitude column (DMS input only).
        lon_column: DMS longitude column (DMS input only).

    Returns:
        One output row per input row, each a superset of its input.

    Raises:
        ValidationError: If *source* equals *target* or either is unknown.
        ColumnMappingError: DMS input without both mapped columns.
        ColumnDetectionError: DD or UTM input without the expected headers.
    """
    try:
        pair = (CoordinateSystem(source), CoordinateSystem(target))
    except ValueError as exc:
        raise ValidationError(f"Unsupported coordinate system: {exc}") from exc

    if pair[0] is pair[1]:
        raise ValidationError(
            f"Input and output coordinate systems must differ (both are {pair[0].value})"
        )

    if pair in _MAPPED:
        lat, lon = _require_mapping(lat_column, lon_column)
        rows = _MAPPED[pair](table, lat, lon)
    else:
        rows = _AUTO_DETECTED[pair](table)

    failed = sum(1 for row in rows if row.get("error"))
    logger.info(
        "Coordinates converted | source=%s | target=%s | rows=%d | row_errors=%d",
        pair[0].value,
        pair[1].value,
        len(rows),
        failed,
    )
    return rows
