"""XLSX parsing: one list of records per worksheet.

The first non-blank row of each sheet is the header. Blank header cells
are named ``__EMPTY``, ``__EMPTY_1``, ...; repeated headers get ``_1``,
``_2`` suffixes. Every later row with at least one value becomes a
record holding only its non-empty cells. Cached formula results are
read, never the formulas. Legacy BIFF ``.xls`` workbooks are read with
xlrd through the same record rules.
"""

from __future__ import annotations

import datetime
import io
import logging
import struct
import zipfile
import zlib
from typing import TYPE_CHECKING, Any

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from geo_converter.core.exceptions import ParseError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger("geo_converter.parsers.xlsx")

EMPTY_HEADER = "__EMPTY"

# OLE2 compound document signature (legacy BIFF .xls)
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_XLS_ERRORS = (xlrd.XLRDError, CompDocError, struct.error, IndexError, ValueError)


class SpreadsheetParseError(ParseError):
    """Raised when a workbook cannot be read."""

    default_stage = "parse_xlsx"
    default_code = "XLSX_PARSE_FAILED"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _cell_value(value: Any) -> Any:
    if isinstance(value, datetime.datetime | datetime.date | datetime.time):
        return value.isoformat()
    return value


def build_headers(cells: Sequence[Any]) -> list[str]:
    """Name header cells, filling blanks and de-duplicating repeats."""
    headers: list[str] = []
    seen: dict[str, int] = {}
    for cell in cells:
        base = EMPTY_HEADER if _is_blank(cell) else str(_cell_value(cell))
        if base in seen:
            seen[base] += 1
            headers.append(f"{base}_{seen[base]}")
        else:
            seen[base] = 0
            headers.append(base)
    return headers


def rows_to_records(rows: Iterable[Sequence[Any]]) -> list[dict[str, Any]]:
    """Turn raw sheet rows (header first) into records."""
    headers: list[str] | None = None
    records: list[dict[str, Any]] = []
    for row in rows:
        if all(_is_blank(value) for value in row):
            continue
        if headers is None:
            headers = build_headers(row)
            continue
        record: dict[str, Any] = {}
        for index, value in enumerate(row):
            if _is_blank(value):
                continue
            key = headers[index] if index < len(headers) else f"{EMPTY_HEADER}_col{index}"
            record[key] = _cell_value(value)
        records.append(record)
    return records


def _xls_cell_value(cell: xlrd.sheet.Cell, datemode: int) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    return cell.value


def _read_xls(content: bytes, source_filename: str) -> dict[str, list[dict[str, Any]]]:
    """Read a legacy BIFF workbook with xlrd."""
    try:
        book = xlrd.open_workbook(file_contents=content, on_demand=True)
    except _XLS_ERRORS as exc:
        raise SpreadsheetParseError(
            f"Could not read workbook {source_filename or 'input'}: {exc}"
        ) from exc

    try:
        return {
            sheet.name: rows_to_records(
                [_xls_cell_value(cell, book.datemode) for cell in sheet.row(index)]
                for index in range(sheet.nrows)
            )
            for sheet in book.sheets()
        }
    except _XLS_ERRORS as exc:
        raise SpreadsheetParseError(
            f"Could not read workbook {source_filename or 'input'}: {exc}"
        ) from exc
    finally:
        book.release_resources()


def _read_xlsx(content: bytes, source_filename: str) -> dict[str, list[dict[str, Any]]]:
    """Read an OOXML workbook with openpyxl (read-only, cached values)."""
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, SyntaxError) as exc:
        raise SpreadsheetParseError(
            f"Could not read workbook {source_filename or 'input'}: {exc}"
        ) from exc

    # Read-only worksheets parse their XML while rows are iterated; ElementTree
    # and lxml parse errors both derive from SyntaxError
    try:
        return {
            sheet.title: rows_to_records(sheet.iter_rows(values_only=True))
            for sheet in workbook.worksheets
        }
    except (
        SyntaxError,
        zipfile.BadZipFile,
        zlib.error,
        KeyError,
        ValueError,
        EOFError,
    ) as exc:
        raise SpreadsheetParseError(
            f"Could not read worksheet data of {source_filename or 'input'}: {exc}"
        ) from exc
    finally:
        workbook.close()


def read_workbook(content: bytes, *, source_filename: str = "") -> dict[str, list[dict[str, Any]]]:
    """Read every worksheet of an XLSX or legacy XLS workbook.

    Args:
        content: Raw workbook bytes.
        source_filename: Name used in log and error messages.

    Returns:
        Sheet name to records, in workbook order. Sheets without data
        rows map to an empty list.

    Raises:
        SpreadsheetParseError: If the workbook or one of its sheets
            cannot be read.
    """
    if content.startswith(_OLE2_MAGIC):
        sheets = _read_xls(content, source_filename)
    else:
        sheets = _read_xlsx(content, source_filename)

    logger.info(
        "Workbook read | file=%s | sheets=%d | rows=%d",
        source_filename,
        len(sheets),
        sum(len(records) for records in sheets.values()),
    )
    return sheets
