"""Tabular codec: record sequences to CSV text, and a minimal CSV reader.

``to_csv`` escapes on write (every data field is double-quoted with
inner quotes doubled). ``parse_csv_simple`` does *not* unescape on read:
it splits on bare commas and newlines, so quoted commas and embedded
newlines are not supported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from geo_converter.utils.helpers import stringify

if TYPE_CHECKING:
    from collections.abc import Sequence

VALUE_COLUMN = "value"


@dataclass(frozen=True, slots=True)
class CsvTable:
    """Result of ``parse_csv_simple``.

    Attributes:
        headers: Trimmed header names from the first line.
        rows: One dict per subsequent line, keyed by header. Missing
            trailing fields map to ``None``.
    """

    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)


def _quote(value: Any) -> str:
    return '"' + stringify(value).replace('"', '""') + '"'


def to_csv(records: Sequence[Any]) -> str:
    """Serialise *records* to CSV text.

    The header is the union of keys across all records in first-seen
    order; records missing a key get an empty quoted cell. A sequence
    made only of scalars is emitted as a single ``value`` column.
    Returns ``""`` for empty input.
    """
    if not records:
        return ""

    if all(not isinstance(item, dict) for item in records):
        return "\n".join([VALUE_COLUMN, *(_quote(item) for item in records)])

    headers: list[str] = []
    seen: set[str] = set()
    for record in records:
        if not isinstance(record, dict):
            continue
        for key in record:
            if key not in seen:
                seen.add(key)
                headers.append(key)

    lines = [",".join(headers)]
    for record in records:
        if not isinstance(record, dict):
            lines.append(",".join('""' for _ in headers))
            continue
        lines.append(",".join(_quote(record.get(key)) for key in headers))
    return "\n".join(lines)


def parse_csv_simple(text: str) -> CsvTable:
    """Split *text* into headers and positional rows on commas and newlines.

    Quoted fields are not unescaped; a comma inside quotes splits the
    field like any other comma.
    """
    stripped = text.strip()
    if not stripped:
        return CsvTable()

    lines = [line.rstrip("\r") for line in stripped.split("\n")]
    headers = [h.strip() for h in lines[0].split(",")]
    rows: list[dict[str, Any]] = []
    for line in lines[1:]:
        values = line.split(",")
        rows.append(
            {
                header: values[i].strip() if i < len(values) else None
                for i, header in enumerate(headers)
            }
        )
    return CsvTable(headers=headers, rows=rows)
