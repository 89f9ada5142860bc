"""Zip archive helpers: KMZ read/write and batch CSV bundles."""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from typing import TYPE_CHECKING

from geo_converter.core.constants import KMZ_DOCUMENT_NAME, UTF8_BOM
from geo_converter.core.exceptions import ArchiveError
from geo_converter.utils.output_names import build_batch_entry_name

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger("geo_converter.utils.archives")


def read_kml_from_kmz(content: bytes) -> bytes:
    """Return the bytes of the first ``.kml`` member of a KMZ archive.

    Raises:
        ArchiveError: If the archive is unreadable or has no ``.kml`` member.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            member = next((n for n in archive.namelist() if n.endswith(".kml")), None)
            if member is None:
                msg = "No .kml file found in the KMZ archive."
                raise ArchiveError(msg)
            logger.debug("Reading KMZ member %s", member)
            return archive.read(member)
    # RuntimeError covers encrypted members and unsupported compression methods
    except (zipfile.BadZipFile, zlib.error, RuntimeError, EOFError) as exc:
        msg = f"Invalid KMZ archive: {exc}"
        raise ArchiveError(msg) from exc


def build_kmz(kml: str) -> bytes:
    """Wrap a KML document as ``doc.kml`` inside a zip archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(KMZ_DOCUMENT_NAME, kml.encode("utf-8"))
    return buffer.getvalue()


def bundle_csv_archive(csv_by_filename: Mapping[str, str], *, bom: bool = True) -> bytes:
    """Bundle CSV strings into one zip, entry names ``<stem>_converted.csv``.

    Entries keep the mapping's iteration order, which is the input order.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for filename, csv_text in csv_by_filename.items():
            payload = (UTF8_BOM + csv_text) if bom else csv_text
            archive.writestr(build_batch_entry_name(filename), payload.encode("utf-8"))
    return buffer.getvalue()
