"""Conversion session and result models.

A ``ConversionSession`` is a tagged union: one dataclass per conversion
mode, each holding only the options that mode understands. The
orchestrator builds a fresh session on every mode switch, so options of
a previous mode can never leak into the next conversion.

A ``ConversionResult`` is the outcome of one conversion attempt and the
state the orchestrator reports (idle, processing, success, error or
preview).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from geo_converter.core.constants import (
    ConversionMode,
    CoordinateSystem,
    GeoJsonOutputFormat,
)

if TYPE_CHECKING:
    from geo_converter.models.geojson import ParsedGeoJson
    from geo_converter.utils.tabular import CsvTable


class ConversionState(enum.StrEnum):
    """Lifecycle state of a conversion attempt."""

    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"
    PREVIEW = "preview"


# ---------------------------------------------------------------------------
# Per-mode sessions
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class KmlSession:
    """KML/KMZ input. ``use_ai_parser`` routes the raw KML to the cleanup collaborator."""

    mode: ClassVar[ConversionMode] = ConversionMode.KML
    use_ai_parser: bool = False


@dataclass(slots=True)
class GpxSession:
    mode: ClassVar[ConversionMode] = ConversionMode.GPX


@dataclass(slots=True)
class GeoJsonSession:
    """GeoJSON input with the download format and optional field mapping.

    Attributes:
        output_format: Format materialised at download time.
        name_field: Property used as feature name.
        description_field: Property used as feature description.
        elevation_field: Numeric property injected as elevation.
    """

    mode: ClassVar[ConversionMode] = ConversionMode.GEOJSON
    output_format: GeoJsonOutputFormat = GeoJsonOutputFormat.CSV
    name_field: str | None = None
    description_field: str | None = None
    elevation_field: str | None = None

    def __post_init__(self) -> None:
        self.output_format = GeoJsonOutputFormat(self.output_format)


@dataclass(slots=True)
class JsonSession:
    mode: ClassVar[ConversionMode] = ConversionMode.JSON


@dataclass(slots=True)
class PdfSession:
    mode: ClassVar[ConversionMode] = ConversionMode.PDF


@dataclass(slots=True)
class CleanupSession:
    """Free-text cleanup with optional instructions for the collaborator."""

    mode: ClassVar[ConversionMode] = ConversionMode.CLEANUP
    instructions: str | None = None


@dataclass(slots=True)
class XlsxSession:
    mode: ClassVar[ConversionMode] = ConversionMode.XLSX


@dataclass(slots=True)
class CoordinateSession:
    """Coordinate conversion between two systems.

    For DMS input the first parsed table is kept in ``preview`` until the
    latitude and longitude columns are mapped; the same mapping then
    applies to every file of a batch.
    """

    mode: ClassVar[ConversionMode] = ConversionMode.COORDINATES
    source: CoordinateSystem = CoordinateSystem.DD
    target: CoordinateSystem = CoordinateSystem.DMS
    preview: CsvTable | None = None
    lat_column: str | None = None
    lon_column: str | None = None

    def __post_init__(self) -> None:
        self.source = CoordinateSystem(self.source)
        self.target = CoordinateSystem(self.target)

    @property
    def needs_mapping(self) -> bool:
        """Whether this conversion requires an explicit DMS column mapping."""
        return self.source == CoordinateSystem.DMS


ConversionSession = (
    KmlSession
    | GpxSession
    | GeoJsonSession
    | JsonSession
    | PdfSession
    | CleanupSession
    | XlsxSession
    | CoordinateSession
)

_SESSION_TYPES: dict[ConversionMode, type[Any]] = {
    ConversionMode.KML: KmlSession,
    ConversionMode.GPX: GpxSession,
    ConversionMode.GEOJSON: GeoJsonSession,
    ConversionMode.JSON: JsonSession,
    ConversionMode.PDF: PdfSession,
    ConversionMode.CLEANUP: CleanupSession,
    ConversionMode.XLSX: XlsxSession,
    ConversionMode.COORDINATES: CoordinateSession,
}


def new_session(mode: ConversionMode | str, **options: Any) -> ConversionSession:
    """Build a fresh session for *mode*.

    Raises:
        ValueError: If *mode* is unknown or an option value is not one of its enum members.
        TypeError: If an option is not valid for *mode*.
    """
    session_cls = _SESSION_TYPES[ConversionMode(mode)]
    return session_cls(**options)  # type: ignore[no-any-return]


# ---------------------------------------------------------------------------
# Conversion result
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ConversionResult:
    """Outcome of one conversion attempt.

    Exactly one of ``csv_data``, ``csv_data_map`` or ``geojson`` carries
    the output on success.

    Attributes:
        state: Current lifecycle state.
        mode: Mode the attempt ran in.
        csv_data: Single CSV output.
        csv_data_map: Per-filename CSV outputs (batch / multi-sheet), in
            input order.
        geojson: Parsed document kept for download-time materialisation.
        row_count: Total rows (or features) converted.
        file_count: Number of input files submitted.
        extracted_text: Non-table PDF text.
        ai_assisted: Whether an AI collaborator produced the output.
        error: Error message when ``state`` is ``ERROR``.
        error_detail: Structured ``to_error_dict()`` payload of the error.
    """

    state: ConversionState = ConversionState.IDLE
    mode: ConversionMode = ConversionMode.KML
    csv_data: str | None = None
    csv_data_map: dict[str, str] = field(default_factory=dict)
    geojson: ParsedGeoJson | None = None
    row_count: int = 0
    file_count: int = 0
    extracted_text: str | None = None
    ai_assisted: bool = False
    error: str | None = None
    error_detail: dict[str, object] | None = None

    @property
    def is_batch(self) -> bool:
        return bool(self.csv_data_map)

    @property
    def status_message(self) -> str:
        """Human-readable status line for the current state."""
        if self.state is ConversionState.PREVIEW:
            return "Data loaded. Please map the Latitude and Longitude columns below."
        if self.state is ConversionState.PROCESSING:
            if self.ai_assisted:
                return "Cleaning up..."
            if self.mode is ConversionMode.PDF:
                return "Extracting..."
            return "Converting..."
        if self.state is ConversionState.ERROR:
            return self.error or "An unexpected error occurred."
        if self.state is ConversionState.SUCCESS:
            return self._success_message()
        return "Select input and click Convert."

    def _success_message(self) -> str:
        if self.ai_assisted:
            return f"Cleanup successful! Found {self.row_count} rows."
        if self.mode is ConversionMode.PDF:
            parts = []
            if self.row_count > 0:
                parts.append(f"{self.row_count} table rows")
            if self.extracted_text:
                parts.append("text content")
            return f"Extraction successful! Found {' and '.join(parts)}."
        if self.mode is ConversionMode.GEOJSON:
            return f"Conversion successful! Found {self.row_count} features. Ready to download."
        if self.mode is ConversionMode.XLSX:
            return f"Conversion successful! Found {self.row_count} total rows across all sheets."
        if self.file_count > 1:
            return (
                f"Batch conversion successful! Processed {self.file_count} files "
                f"with a total of {self.row_count} rows."
            )
        return f"Conversion successful! Found {self.row_count} rows."
