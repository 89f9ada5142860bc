"""Data model for a normalised geographic point.

A GeoPoint is one record extracted from a KML Placemark or a GPX
waypoint/trackpoint/routepoint. Fixed, typed fields sit alongside an
ordered ``extra`` mapping for attributes that only some sources carry
(e.g. the key/value rows of a KML description table).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class PointType(enum.StrEnum):
    """Origin of a GeoPoint within its source document."""

    WAYPOINT = "Waypoint"
    TRACKPOINT = "Trackpoint"
    ROUTEPOINT = "Routepoint"
    PLACEMARK = "Placemark"


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A single geographic record.

    Attributes:
        longitude: Decimal degrees, within ``[-180, 180]``.
        latitude: Decimal degrees, within ``[-90, 90]``.
        type: Which source element produced the point.
        name: Display name, if any.
        description: Free-text description, if any.
        elevation: Elevation in metres, if any.
        timestamp: Source timestamp text (ISO 8601 in GPX), if any.
        extra: Additional string attributes in source order.
    """

    longitude: float
    latitude: float
    type: PointType
    name: str | None = None
    description: str | None = None
    elevation: float | None = None
    timestamp: str | None = None
    extra: dict[str, str] = field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Flatten to a plain record for CSV output.

        GPX points carry every fixed field. Placemarks have no timestamp,
        and their description (when present) follows ``type``. ``extra``
        entries come last in order and replace a fixed field of the same
        name.
        """
        if self.type is PointType.PLACEMARK:
            record: dict[str, Any] = {
                "name": self.name,
                "longitude": self.longitude,
                "latitude": self.latitude,
                "elevation": self.elevation,
                "type": self.type.value,
            }
            if self.description is not None:
                record["description"] = self.description
        else:
            record = {
                "name": self.name,
                "description": self.description,
                "longitude": self.longitude,
                "latitude": self.latitude,
                "elevation": self.elevation,
                "timestamp": self.timestamp,
                "type": self.type.value,
            }
        record.update(self.extra)
        return record
