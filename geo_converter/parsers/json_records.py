"""Generic JSON parsing: an object or an array becomes a record sequence."""

from __future__ import annotations

import json
from typing import Any

from geo_converter.core.exceptions import ParseError


class JsonParseError(ParseError):
    """Raised when input is not JSON or is a bare scalar."""

    default_stage = "parse_json"
    default_code = "JSON_PARSE_FAILED"


def parse_json_records(text: str | bytes) -> list[Any]:
    """Decode *text* into a list of records.

    A top-level object becomes a one-element list. A top-level array is
    returned unchanged, whatever its items are (scalar items end up in
    the CSV ``value`` column).

    Raises:
        JsonParseError: ``"Invalid JSON format: ..."`` on malformed JSON
            or a top-level scalar or ``null``.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise JsonParseError(f"Invalid JSON format: {exc}") from exc

    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return [data]
    raise JsonParseError(
        "Invalid JSON format: JSON data must be an array of objects or a single object."
    )
