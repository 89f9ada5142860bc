"""Field resolution shared by the GeoJSON exporters.

Property lookups follow truthiness: a mapped field holding ``""``,
``0``, ``False`` or ``null`` falls through to the next candidate, so a
blank user-mapped name still yields ``properties.name`` or
``Feature N``.
"""

from __future__ import annotations

import json
import math
from typing import Any

from geo_converter.utils.helpers import format_number, parse_float, stringify

FEATURE_NAME_FALLBACK = "Feature {index}"

Position = list[Any]


def _truthy(value: Any) -> bool:
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def feature_properties(feature: dict[str, Any]) -> dict[str, Any]:
    properties = feature.get("properties")
    return properties if isinstance(properties, dict) else {}


def resolve_name(properties: dict[str, Any], name_field: str | None, index: int) -> str:
    """User field, then ``name``, then ``Feature N`` (1-based *index*)."""
    if name_field and _truthy(properties.get(name_field)):
        return stringify(properties[name_field])
    if _truthy(properties.get("name")):
        return stringify(properties["name"])
    return FEATURE_NAME_FALLBACK.format(index=index + 1)


def resolve_description(properties: dict[str, Any], description_field: str | None) -> str:
    """User field, then ``description``, then ``""``; non-strings become indented JSON."""
    value: Any = ""
    if description_field and _truthy(properties.get(description_field)):
        value = properties[description_field]
    elif _truthy(properties.get("description")):
        value = properties["description"]
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def resolve_elevation(properties: dict[str, Any], elevation_field: str | None) -> float | None:
    """Numeric value of the elevation field, or ``None`` when absent or non-numeric."""
    if not elevation_field or properties.get(elevation_field) is None:
        return None
    elevation = parse_float(properties[elevation_field])
    return None if math.isnan(elevation) else elevation


def is_position(value: Any) -> bool:
    """Whether *value* looks like a ``[lon, lat(, ele)]`` position."""
    return (
        isinstance(value, list | tuple)
        and len(value) >= 2
        and all(isinstance(v, int | float) and not isinstance(v, bool) for v in value[:2])
    )


def format_coordinate(value: Any) -> str:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return format_number(value)
    return stringify(value)
