"""Geodetic conversions between DD, DMS and UTM on the WGS 84 ellipsoid.

Pure numeric functions: no I/O, no logging. Invalid input never raises;
the UTM conversions return an ``{"error": ...}`` mapping and the DMS
conversions return ``None`` so that callers can keep the offending row
and annotate it.

The UTM forward transform uses the meridional arc to e^6 and the
forward series to A^6; the inverse uses the footprint latitude closed
form (Snyder, *Map Projections: A Working Manual*, pp. 60-64).
"""

from __future__ import annotations

import math
import re
from typing import Literal, TypedDict

from geo_converter.core.constants import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
)
from geo_converter.utils.helpers import parse_float

# ---------------------------------------------------------------------------
# Ellipsoid constants
# ---------------------------------------------------------------------------

WGS84_A = 6378137.0
WGS84_F = 1 / 298.257223563
UTM_K0 = 0.9996
UTM_FALSE_EASTING = 500_000.0
UTM_FALSE_NORTHING_SOUTH = 10_000_000.0
UTM_MAX_ZONE = 60

_E2 = 2 * WGS84_F - WGS84_F * WGS84_F
_EP2 = _E2 / (1 - _E2)

# Meridional arc coefficients
_M1 = 1 - _E2 / 4 - 3 * _E2**2 / 64 - 5 * _E2**3 / 256
_M2 = 3 * _E2 / 8 + 3 * _E2**2 / 32 + 45 * _E2**3 / 1024
_M3 = 15 * _E2**2 / 256 + 45 * _E2**3 / 1024
_M4 = 35 * _E2**3 / 3072

_E1 = (1 - math.sqrt(1 - _E2)) / (1 + math.sqrt(1 - _E2))

INVALID_COORDINATES = "Invalid coordinates"
INVALID_UTM_PARAMETERS = "Invalid UTM parameters"

_DMS_TOKEN = re.compile(r"[NSEW]|[\d.]+")
_DMS_DIRECTION = re.compile(r"[NSEW]")

Hemisphere = Literal["N", "S"]


class UtmCoordinate(TypedDict):
    """UTM position; easting and northing are 3-decimal strings."""

    easting: str
    northing: str
    zone: int
    hemisphere: Hemisphere


class DecimalCoordinate(TypedDict):
    """Decimal-degree position as 6-decimal strings."""

    latitude: str
    longitude: str


class ConversionFailure(TypedDict):
    error: str


# ---------------------------------------------------------------------------
# UTM
# ---------------------------------------------------------------------------


def utm_zone(lon: float) -> int:
    """Return the UTM zone number for *lon*; 180 degrees falls in zone 60."""
    return min(math.floor((lon + 180) / 6) + 1, UTM_MAX_ZONE)


def _central_meridian(zone: float) -> float:
    return math.radians(zone * 6 - 183)


def dd_to_utm(lat: float, lon: float) -> UtmCoordinate | ConversionFailure:
    """Project a WGS 84 position to UTM.

    Args:
        lat: Latitude in decimal degrees.
        lon: Longitude in decimal degrees.

    Returns:
        The UTM coordinate, or ``{"error": "Invalid coordinates"}`` when
        either value is NaN or out of range.
    """
    if (
        math.isnan(lat)
        or math.isnan(lon)
        or not MIN_LATITUDE <= lat <= MAX_LATITUDE
        or not MIN_LONGITUDE <= lon <= MAX_LONGITUDE
    ):
        return {"error": INVALID_COORDINATES}

    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)
    zone = utm_zone(lon)
    lon0 = _central_meridian(zone)

    sin_lat = math.sin(lat_rad)
    cos_lat = math.cos(lat_rad)
    tan_lat = math.tan(lat_rad)

    n = WGS84_A / math.sqrt(1 - _E2 * sin_lat * sin_lat)
    t = tan_lat * tan_lat
    c = _EP2 * cos_lat * cos_lat
    a = (lon_rad - lon0) * cos_lat

    m = WGS84_A * (
        _M1 * lat_rad
        - _M2 * math.sin(2 * lat_rad)
        + _M3 * math.sin(4 * lat_rad)
        - _M4 * math.sin(6 * lat_rad)
    )

    easting = (
        UTM_K0
        * n
        * (
            a
            + (1 - t + c) * a**3 / 6
            + (5 - 18 * t + t * t + 72 * c - 58 * _EP2) * a**5 / 120
        )
        + UTM_FALSE_EASTING
    )
    northing = UTM_K0 * (
        m
        + n
        * tan_lat
        * (
            a**2 / 2
            + (5 - t + 9 * c + 4 * c * c) * a**4 / 24
            + (61 - 58 * t + t * t + 600 * c - 330 * _EP2) * a**6 / 720
        )
    )
    if lat < 0:
        northing += UTM_FALSE_NORTHING_SOUTH

    return {
        "easting": f"{easting:.3f}",
        "northing": f"{northing:.3f}",
        "zone": zone,
        "hemisphere": "N" if lat >= 0 else "S",
    }


def utm_to_dd(
    easting: float,
    northing: float,
    zone: float,
    hemisphere: str | None,
) -> DecimalCoordinate | ConversionFailure:
    """Invert a UTM coordinate to WGS 84 decimal degrees.

    Args:
        easting: Easting in metres.
        northing: Northing in metres (southern values carry the
            10,000,000 m false northing).
        zone: UTM zone number.
        hemisphere: ``"N"`` or ``"S"`` (case-insensitive).

    Returns:
        The position, or ``{"error": "Invalid UTM parameters"}`` when a
        numeric input is NaN or the hemisphere is missing or unknown.
    """
    hemi = (hemisphere or "").strip().upper()
    if math.isnan(easting) or math.isnan(northing) or math.isnan(zone) or hemi not in ("N", "S"):
        return {"error": INVALID_UTM_PARAMETERS}

    x = easting - UTM_FALSE_EASTING
    y = northing - UTM_FALSE_NORTHING_SOUTH if hemi == "S" else northing
    lon0 = _central_meridian(zone)

    mu = (y / UTM_K0) / (WGS84_A * _M1)
    lat1 = (
        mu
        + (3 * _E1 / 2 - 27 * _E1**3 / 32) * math.sin(2 * mu)
        + (21 * _E1**2 / 16 - 55 * _E1**4 / 32) * math.sin(4 * mu)
        + (151 * _E1**3 / 96) * math.sin(6 * mu)
        + (1097 * _E1**4 / 512) * math.sin(8 * mu)
    )

    sin1 = math.sin(lat1)
    cos1 = math.cos(lat1)
    tan1 = math.tan(lat1)
    c1 = _EP2 * cos1 * cos1
    t1 = tan1 * tan1
    n1 = WGS84_A / math.sqrt(1 - _E2 * sin1 * sin1)
    r1 = WGS84_A * (1 - _E2) / (1 - _E2 * sin1 * sin1) ** 1.5
    d = x / (n1 * UTM_K0)

    lat = lat1 - (n1 * tan1 / r1) * (
        d**2 / 2
        - (5 + 3 * t1 + 10 * c1 - 4 * c1 * c1 - 9 * _EP2) * d**4 / 24
        + (61 + 90 * t1 + 298 * c1 + 45 * t1 * t1 - 252 * _EP2 - 3 * c1 * c1) * d**6 / 720
    )
    lon = lon0 + (
        d
        - (1 + 2 * t1 + c1) * d**3 / 6
        + (5 - 2 * c1 + 28 * t1 - 3 * c1 * c1 + 8 * _EP2 + 24 * t1 * t1) * d**5 / 120
    ) / cos1

    return {
        "latitude": f"{math.degrees(lat):.6f}",
        "longitude": f"{math.degrees(lon):.6f}",
    }


# ---------------------------------------------------------------------------
# DMS
# ---------------------------------------------------------------------------


def dms_to_dd(dms: object) -> float | None:
    """Parse a ``D° M' S" [NSEW]`` string to signed decimal degrees.

    The direction letter may appear anywhere; it is mandatory. Minutes
    and seconds default to 0 when absent. Returns ``None`` when the text
    has no direction letter, no magnitude, or an unparseable component.
    """
    if not isinstance(dms, str) or not dms:
        return None

    cleaned = dms.strip().upper()
    tokens = _DMS_TOKEN.findall(cleaned)
    if len(tokens) < 2:
        return None

    direction = _DMS_DIRECTION.search(cleaned)
    if direction is None:
        return None

    numbers = [parse_float(token) for token in tokens if not _DMS_DIRECTION.fullmatch(token)]
    if any(math.isnan(n) for n in numbers):
        return None

    degrees, minutes, seconds = (numbers + [0.0, 0.0, 0.0])[:3]
    dd = degrees + minutes / 60 + seconds / 3600
    if direction.group(0) in ("S", "W"):
        dd = -dd
    return dd


def dd_to_dms(dd: float, is_longitude: bool) -> str | None:
    """Format decimal degrees as ``D° M' S.sss" X``; ``None`` for NaN."""
    if math.isnan(dd):
        return None

    abs_dd = abs(dd)
    degrees = math.floor(abs_dd)
    minutes_float = (abs_dd - degrees) * 60
    minutes = math.floor(minutes_float)
    seconds = (minutes_float - minutes) * 60

    if is_longitude:
        direction = "E" if dd >= 0 else "W"
    else:
        direction = "N" if dd >= 0 else "S"

    return f"{degrees}° {minutes}' {seconds:.3f}\" {direction}"
