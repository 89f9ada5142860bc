"""Shared helper functions used across parsers, exporters and the pipeline.

Spreadsheet cells, CSV fields and GeoJSON properties arrive as loosely
typed text. These helpers give them one consistent numeric and textual
interpretation: numbers parse from their leading numeric prefix (so
``"12.5m"`` is ``12.5`` and ``"abc"`` is NaN) and values stringify the
way a browser would render them in a CSV cell.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

_FLOAT_PREFIX = re.compile(r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"^[+-]?\d+")


def parse_float(value: object) -> float:
    """Parse the leading decimal number of *value*, or return NaN.

    Numbers pass through unchanged; ``None`` and booleans are NaN.
    """
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, int | float):
        return float(value)
    match = _FLOAT_PREFIX.match(str(value).strip())
    if not match:
        return math.nan
    return float(match.group(0))


def parse_int(value: object) -> float:
    """Parse the leading integer of *value*, or return NaN.

    Returned as ``float`` so that NaN can signal failure; callers
    convert with ``int()`` after an ``isnan`` check.
    """
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, int):
        return float(value)
    if isinstance(value, float):
        return math.nan if math.isnan(value) else float(math.trunc(value))
    match = _INT_PREFIX.match(str(value).strip())
    if not match:
        return math.nan
    return float(int(match.group(0)))


def is_number(value: float | None) -> bool:
    """Whether *value* is a finite-or-infinite float that is not NaN."""
    return value is not None and not math.isnan(value)


def format_number(value: float) -> str:
    """Render a number without a trailing ``.0`` for integral values."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def stringify(value: Any) -> str:
    """Coerce a cell value to text.

    ``None`` becomes the empty string, booleans ``true``/``false``,
    numbers drop a redundant ``.0``, and dicts/lists become compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool | int | float):
        return format_number(value)
    if isinstance(value, dict | list | tuple):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    return str(value)
