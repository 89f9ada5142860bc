"""Parsed GeoJSON document model.

The document itself stays a decoded JSON mapping so that exporters see
exactly what the user supplied (including null features or unknown
geometry types, which they skip). Only the top-level shape is checked
at parse time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ParsedGeoJson:
    """A validated FeatureCollection plus its property inventory.

    Attributes:
        document: The decoded FeatureCollection mapping.
        properties: Every property key seen across all features, in order
            of first appearance, without duplicates.
    """

    document: dict[str, Any]
    properties: list[str] = field(default_factory=list)

    @property
    def features(self) -> list[Any]:
        """The collection's ``features`` list."""
        return self.document["features"]  # type: ignore[no-any-return]

    @property
    def feature_count(self) -> int:
        return len(self.features)
