"""Deterministic output file naming.

- Single input file: ``<stem>.<ext>``
- Several input files: ``converted_files.<ext>`` (a zip bundle)
- Pasted text (no file): ``converted_data.<ext>``

Batch archive entries are named ``<original-stem>_converted.csv`` and
workbook sheets ``<workbook-stem>_<sheet>.csv``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from geo_converter.core.constants import BATCH_BASENAME, BATCH_ENTRY_SUFFIX, TEXT_INPUT_BASENAME

if TYPE_CHECKING:
    from collections.abc import Sequence

_LAST_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_SPREADSHEET_EXTENSION_RE = re.compile(r"\.xlsx?$", re.IGNORECASE)


def strip_extension(filename: str) -> str:
    """Remove the final ``.ext`` from *filename* (if any)."""
    return _LAST_EXTENSION_RE.sub("", filename)


def build_download_basename(filenames: Sequence[str]) -> str:
    """Return the download base name for the given input filenames."""
    if not filenames:
        return TEXT_INPUT_BASENAME
    if len(filenames) == 1:
        return strip_extension(filenames[0])
    return BATCH_BASENAME


def build_batch_entry_name(filename: str) -> str:
    """Return the zip entry name for one converted file."""
    return f"{strip_extension(filename)}{BATCH_ENTRY_SUFFIX}"


def build_sheet_output_name(workbook_filename: str, sheet_name: str) -> str:
    """Return the CSV name for one sheet of a workbook."""
    return f"{_SPREADSHEET_EXTENSION_RE.sub('', workbook_filename)}_{sheet_name}.csv"
