"""Per-mode processing for one input (a file or pasted text).

Each processor turns a single input into a ``ModeOutput``: CSV text,
per-sheet CSVs (XLSX), or a retained GeoJSON document. The converter in
``converter.py`` coordinates processors across a batch and owns the
success/error policy.

Processors
----------
1. **kml**: KML or KMZ to Placemark rows, or raw KML to the cleanup
   collaborator when the AI parser is enabled.
2. **gpx**: waypoints, trackpoints and routepoints to rows.
3. **geojson**: FeatureCollection retained for download-time export.
4. **json**: object or array to rows.
5. **pdf**: table rows and text via the extraction collaborator.
6. **cleanup**: free text to CSV via the cleanup collaborator.
7. **xlsx**: one CSV per non-empty worksheet.
8. **coordinates**: DD/DMS/UTM conversion of CSV rows.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from geo_converter.coordinates.pipeline import convert_rows
from geo_converter.core.constants import ConversionMode
from geo_converter.core.exceptions import MissingInputError, ParseError
from geo_converter.models.payloads import CleanDataRequest, ExtractPdfRequest
from geo_converter.models.session import (
    CleanupSession,
    ConversionSession,
    CoordinateSession,
    KmlSession,
)
from geo_converter.parsers.geojson import parse_geojson
from geo_converter.parsers.gpx import GpxParseError, parse_gpx
from geo_converter.parsers.json_records import parse_json_records
from geo_converter.parsers.kml import parse_kml
from geo_converter.parsers.xlsx import read_workbook
from geo_converter.providers.base import ProviderNotConfiguredError
from geo_converter.utils.archives import read_kml_from_kmz
from geo_converter.utils.output_names import build_sheet_output_name
from geo_converter.utils.tabular import CsvTable, parse_csv_simple, to_csv

if TYPE_CHECKING:
    from geo_converter.core.ingress import InputFile
    from geo_converter.models.geojson import ParsedGeoJson
    from geo_converter.providers.base import AiProvider

logger = logging.getLogger("geo_converter.orchestrators.modes")

_NO_PROVIDER_MESSAGE = "AI features are unavailable: GEO_CONVERTER_AI_URL is not set"


@dataclass(slots=True)
class ModeOutput:
    """Result of processing one input.

    Attributes:
        rows: Records (or features) produced.
        csv_data: CSV text for single-output modes.
        sheets: Output filename to CSV text (XLSX only).
        geojson: Retained document (GeoJSON only).
        extracted_text: Non-table text (PDF only).
    """

    rows: int = 0
    csv_data: str | None = None
    sheets: dict[str, str] = field(default_factory=dict)
    geojson: ParsedGeoJson | None = None
    extracted_text: str | None = None

    @property
    def has_output(self) -> bool:
        return self.csv_data is not None or bool(self.sheets) or self.geojson is not None


@dataclass(frozen=True, slots=True)
class ModeInput:
    """One unit of work: a file, or pasted text when ``file`` is ``None``.

    ``preview`` is the mapped DMS table to convert in place of ``text``.
    """

    file: InputFile | None = None
    text: str | None = None
    preview: CsvTable | None = None

    @property
    def label(self) -> str:
        return self.file.name if self.file is not None else "<text>"

    def read_text(self) -> str:
        if self.file is not None:
            return self.file.text()
        return self.text or ""


Processor = Callable[[Any, "ModeInput", "AiProvider | None"], Awaitable["ModeOutput"]]


def needs_ai(session: ConversionSession) -> bool:
    """Whether processing *session* calls an AI collaborator."""
    if isinstance(session, KmlSession):
        return session.use_ai_parser
    return session.mode in (ConversionMode.CLEANUP, ConversionMode.PDF)


def _require_provider(provider: AiProvider | None) -> AiProvider:
    if provider is None:
        raise ProviderNotConfiguredError("none", _NO_PROVIDER_MESSAGE)
    return provider


def _require_file(item: ModeInput, message: str) -> InputFile:
    if item.file is None:
        raise MissingInputError(message)
    return item.file


def _count_csv_rows(csv_text: str) -> int:
    """Data lines of a CSV string (non-empty lines after the header)."""
    return max(len([line for line in csv_text.split("\n") if line]) - 1, 0)


async def _clean(
    provider: AiProvider | None, raw: str, instructions: str | None = None
) -> ModeOutput:
    result = await _require_provider(provider).clean_data(
        CleanDataRequest(raw_data=raw, instructions=instructions or None)
    )
    return ModeOutput(rows=_count_csv_rows(result.csv_data), csv_data=result.csv_data)


# ---------------------------------------------------------------------------
# Processors
# ---------------------------------------------------------------------------


async def process_kml(
    session: KmlSession, item: ModeInput, provider: AiProvider | None
) -> ModeOutput:
    file = _require_file(item, "No KML/KMZ file selected.")
    raw = read_kml_from_kmz(file.content) if file.suffix == ".kmz" else file.content

    if session.use_ai_parser:
        text = raw.decode("utf-8-sig", errors="replace")
        if not text.strip():
            raise MissingInputError("No data provided for AI parser.")
        return await _clean(provider, text)

    points = parse_kml(raw, source_filename=file.name)
    return ModeOutput(rows=len(points), csv_data=to_csv([p.to_record() for p in points]))


async def process_gpx(
    session: ConversionSession, item: ModeInput, provider: AiProvider | None
) -> ModeOutput:
    file = _require_file(item, "No GPX file selected.")
    points = parse_gpx(file.content, source_filename=file.name)
    if not points:
        raise GpxParseError("No points found in the GPX file.", code="GPX_NO_POINTS")
    return ModeOutput(rows=len(points), csv_data=to_csv([p.to_record() for p in points]))


async def process_geojson(
    session: ConversionSession, item: ModeInput, provider: AiProvider | None
) -> ModeOutput:
    text = item.read_text()
    if not text.strip():
        raise MissingInputError("GeoJSON data is empty.")
    parsed = parse_geojson(text, source_filename=item.label)
    return ModeOutput(rows=parsed.feature_count, geojson=parsed)


async def process_json(
    session: ConversionSession, item: ModeInput, provider: AiProvider | None
) -> ModeOutput:
    text = item.read_text()
    if not text.strip():
        raise MissingInputError("JSON data is empty.")
    records = parse_json_records(text)
    return ModeOutput(rows=len(records), csv_data=to_csv(records))


async def process_pdf(
    session: ConversionSession, item: ModeInput, provider: AiProvider | None
) -> ModeOutput:
    file = _require_file(item, "No PDF file selected.")
    extraction = await _require_provider(provider).extract_pdf(
        ExtractPdfRequest(pdf_data_uri=file.to_data_uri())
    )
    text = extraction.text or None
    if not extraction.table_rows and not text:
        logger.warning("PDF yielded no content | file=%s", file.name)
        return ModeOutput()
    return ModeOutput(
        rows=len(extraction.table_rows),
        csv_data=to_csv(extraction.table_rows),
        extracted_text=text,
    )


async def process_cleanup(
    session: CleanupSession, item: ModeInput, provider: AiProvider | None
) -> ModeOutput:
    text = item.read_text()
    if not text.strip():
        raise MissingInputError("No data provided for cleanup.")
    return await _clean(provider, text, session.instructions)


async def process_xlsx(
    session: ConversionSession, item: ModeInput, provider: AiProvider | None
) -> ModeOutput:
    file = _require_file(item, "No XLSX file selected.")
    workbook = read_workbook(file.content, source_filename=file.name)
    output = ModeOutput()
    for sheet_name, records in workbook.items():
        if not records:
            continue
        output.sheets[build_sheet_output_name(file.name, sheet_name)] = to_csv(records)
        output.rows += len(records)
    return output


def coordinate_table(session: CoordinateSession, item: ModeInput) -> CsvTable:
    """Table a coordinate conversion runs on.

    A mapped DMS preview handed in with pasted text is used as is;
    files and any other text are parsed.
    """
    if item.file is None and session.needs_mapping and item.preview is not None:
        return item.preview
    return parse_csv_simple(item.read_text())


async def process_coordinates(
    session: CoordinateSession, item: ModeInput, provider: AiProvider | None
) -> ModeOutput:
    table = coordinate_table(session, item)
    if not table.headers:
        raise ParseError("No coordinate data provided.", stage="coordinates")
    rows = convert_rows(
        table,
        session.source,
        session.target,
        lat_column=session.lat_column,
        lon_column=session.lon_column,
    )
    return ModeOutput(rows=len(rows), csv_data=to_csv(rows))


PROCESSORS: dict[ConversionMode, Processor] = {
    ConversionMode.KML: process_kml,
    ConversionMode.GPX: process_gpx,
    ConversionMode.GEOJSON: process_geojson,
    ConversionMode.JSON: process_json,
    ConversionMode.PDF: process_pdf,
    ConversionMode.CLEANUP: process_cleanup,
    ConversionMode.XLSX: process_xlsx,
    ConversionMode.COORDINATES: process_coordinates,
}


async def process_input(
    session: ConversionSession, item: ModeInput, provider: AiProvider | None = None
) -> ModeOutput:
    """Run the processor for ``session.mode`` on one input."""
    output = await PROCESSORS[session.mode](session, item, provider)
    logger.info(
        "Input processed | mode=%s | input=%s | rows=%d",
        session.mode,
        item.label,
        output.rows,
    )
    return output


__all__ = [
    "PROCESSORS",
    "ModeInput",
    "ModeOutput",
    "coordinate_table",
    "needs_ai",
    "process_input",
]
