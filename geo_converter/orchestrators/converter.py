"""Conversion orchestrator: session state machine, batch loop and download.

``Converter`` owns one ``ConversionSession`` (the active mode and its
options) and the latest ``ConversionResult``. Each user action is one
method call:

- ``select_mode``  - switch mode; builds a fresh session, result idle
- ``configure``    - change options of the current session
- ``load_preview`` - DMS coordinate input: parse the table, state preview
- ``map_columns``  - DMS coordinate input: choose lat/lon columns
- ``convert``      - idle/preview/success/error -> processing -> outcome
- ``download``     - materialise the successful result as one artifact

Batch policy
------------
More than one input file is a batch: each file is processed in input
order, a file that fails is logged and left out, and the batch fails
only when no file produced output. A single file or pasted text fails
on its first error. Every failure ends in the ``error`` state; nothing
propagates out of ``convert``.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from geo_converter.core.config import ConverterConfig
from geo_converter.core.constants import (
    CSV_MEDIA_TYPE,
    FILE_ONLY_MODES,
    GPX_MEDIA_TYPE,
    KML_MEDIA_TYPE,
    KMZ_MEDIA_TYPE,
    UTF8_BOM,
    ZIP_MEDIA_TYPE,
    ConversionMode,
    GeoJsonOutputFormat,
)
from geo_converter.core.exceptions import (
    ConverterError,
    MissingInputError,
    PermanentError,
    ValidationError,
)
from geo_converter.core.ingress import validate_files
from geo_converter.exporters import (
    export_kmz,
    geojson_to_csv,
    geojson_to_gpx,
    geojson_to_kml,
)
from geo_converter.models.session import (
    ConversionResult,
    ConversionSession,
    ConversionState,
    CoordinateSession,
    GeoJsonSession,
    new_session,
)
from geo_converter.orchestrators.modes import ModeInput, ModeOutput, needs_ai, process_input
from geo_converter.providers.factory import get_provider
from geo_converter.utils.archives import bundle_csv_archive
from geo_converter.utils.output_names import build_download_basename
from geo_converter.utils.tabular import CsvTable, parse_csv_simple

if TYPE_CHECKING:
    from collections.abc import Sequence

    from geo_converter.core.ingress import InputFile
    from geo_converter.providers.base import AiProvider

logger = logging.getLogger("geo_converter.orchestrators.converter")

NOTHING_CONVERTED = "No data could be converted from the selected file(s)."
NOTHING_TO_CONVERT = "No data to convert."
UNEXPECTED_ERROR = "An unexpected error occurred."


@dataclass(frozen=True, slots=True)
class DownloadArtifact:
    """A materialised download.

    Attributes:
        filename: Suggested filename including extension.
        content: File bytes.
        media_type: MIME type of ``content``.
    """

    filename: str
    content: bytes
    media_type: str


class Converter:
    """Stateful conversion orchestrator for one user.

    Args:
        config: Converter configuration; defaults to ``ConverterConfig()``.
        provider: AI provider to use instead of one built from *config*.
    """

    def __init__(
        self,
        config: ConverterConfig | None = None,
        *,
        provider: AiProvider | None = None,
    ) -> None:
        self._config = config or ConverterConfig()
        self._provider = provider
        self._session: ConversionSession = new_session(ConversionMode.KML)
        self._result = ConversionResult(mode=self._session.mode)
        self._input_names: list[str] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> ConverterConfig:
        return self._config

    @property
    def session(self) -> ConversionSession:
        return self._session

    @property
    def result(self) -> ConversionResult:
        return self._result

    @property
    def state(self) -> ConversionState:
        return self._result.state

    def _reject_while_processing(self, action: str) -> None:
        if self._result.state is ConversionState.PROCESSING:
            msg = f"Cannot {action} while a conversion is in progress"
            raise ValidationError(msg, stage="orchestrator", code="CONVERSION_IN_PROGRESS")

    def _reset_result(self, state: ConversionState = ConversionState.IDLE) -> None:
        self._result = ConversionResult(
            state=state,
            mode=self._session.mode,
            ai_assisted=needs_ai(self._session),
        )

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def select_mode(self, mode: ConversionMode | str, **options: Any) -> ConversionSession:
        """Switch to *mode* with a fresh session; previous options are discarded.

        Raises:
            ValidationError: If *mode* is unknown, an option is not valid
                for it, or a conversion is in progress.
        """
        self._reject_while_processing("switch mode")
        try:
            session = new_session(mode, **options)
        except (KeyError, ValueError, TypeError) as exc:
            raise ValidationError(f"Invalid mode or option: {exc}", stage="orchestrator") from exc
        self._session = session
        self._input_names = []
        self._reset_result()
        logger.info("Mode selected | mode=%s | options=%s", session.mode, options or "")
        return session

    def configure(self, **options: Any) -> ConversionSession:
        """Replace options of the current session.

        Output-only options (GeoJSON format and field mapping) keep a
        successful result; anything else resets it to idle.

        Raises:
            ValidationError: If an option does not exist for the current mode
                or its value is not accepted.
        """
        self._reject_while_processing("change options")
        valid = {f.name for f in dataclasses.fields(self._session)}
        unknown = sorted(set(options) - valid)
        if unknown:
            msg = f"Options not valid for mode {self._session.mode}: {', '.join(unknown)}"
            raise ValidationError(msg, stage="orchestrator")
        try:
            self._session = dataclasses.replace(self._session, **options)
        except ValueError as exc:
            msg = f"Invalid option value: {exc}"
            raise ValidationError(msg, stage="orchestrator") from exc
        if not isinstance(self._session, GeoJsonSession):
            self._reset_result()
        return self._session

    def load_preview(
        self, files: Sequence[InputFile] | None = None, text: str | None = None
    ) -> CsvTable:
        """Parse DMS input for column mapping and enter the ``preview`` state.

        The first file (or the pasted text) is parsed; the resulting
        headers are offered for latitude/longitude mapping.

        Raises:
            ValidationError: Outside DMS coordinate mode, or with no input.
            FileTypeError: If a file fails the coordinates file gate.
        """
        self._reject_while_processing("load a preview")
        session = self._session
        if not isinstance(session, CoordinateSession) or not session.needs_mapping:
            msg = "Column preview is only available for DMS coordinate input"
            raise ValidationError(msg, stage="orchestrator")

        files = list(files or [])
        validate_files(session.mode, files)
        if files:
            table = parse_csv_simple(files[0].text())
        elif text and text.strip():
            table = parse_csv_simple(text)
        else:
            raise MissingInputError("No DMS data provided.")

        session.preview = table
        session.lat_column = None
        session.lon_column = None
        self._input_names = [f.name for f in files]
        self._reset_result(ConversionState.PREVIEW)
        logger.info(
            "DMS preview loaded | headers=%s | rows=%d", ",".join(table.headers), len(table.rows)
        )
        return table

    def map_columns(self, lat_column: str, lon_column: str) -> None:
        """Choose the DMS latitude and longitude columns.

        Raises:
            ValidationError: Outside the ``preview`` state or when a
                column is not in the previewed headers.
        """
        session = self._session
        if (
            not isinstance(session, CoordinateSession)
            or session.preview is None
            or self._result.state is not ConversionState.PREVIEW
        ):
            raise ValidationError("Load a DMS preview before mapping columns", stage="orchestrator")
        missing = [c for c in (lat_column, lon_column) if c not in session.preview.headers]
        if missing:
            msg = f"Unknown column(s): {', '.join(missing)}"
            raise ValidationError(msg, stage="coordinates")
        session.lat_column = lat_column
        session.lon_column = lon_column

    async def convert(
        self,
        files: Sequence[InputFile] | None = None,
        text: str | None = None,
    ) -> ConversionResult:
        """Run one conversion attempt and return its result.

        Args:
            files: Input files; more than one makes a batch.
            text: Pasted text, used only when no files are given.

        Raises:
            ValidationError: If a conversion is already in progress.
        """
        self._reject_while_processing("start a conversion")
        files = list(files or [])
        preview = self._pending_preview()
        correlation_id = uuid.uuid4().hex[:12]
        self._input_names = [f.name for f in files]
        self._reset_result(ConversionState.PROCESSING)
        self._result.file_count = len(files)
        logger.info(
            "Conversion started | id=%s | mode=%s | files=%d | text=%s",
            correlation_id,
            self._session.mode,
            len(files),
            bool(text),
        )

        try:
            validate_files(self._session.mode, files)
            provider = self._ai_provider() if needs_ai(self._session) else None
            if files:
                await self._convert_files(files, provider, correlation_id)
            else:
                await self._convert_text(ModeInput(text=text, preview=preview), provider)
        except ConverterError as exc:
            exc.correlation_id = exc.correlation_id or correlation_id
            self._fail(exc.message, exc.to_error_dict())
            logger.warning(
                "Conversion failed | id=%s | code=%s | error=%s",
                correlation_id,
                exc.code,
                exc.message,
            )
        except Exception as exc:
            logger.exception("Unexpected conversion failure | id=%s", correlation_id)
            self._fail(str(exc) or UNEXPECTED_ERROR, None)
        else:
            self._result.state = ConversionState.SUCCESS
            logger.info(
                "Conversion succeeded | id=%s | rows=%d | outputs=%d",
                correlation_id,
                self._result.row_count,
                len(self._result.csv_data_map) or 1,
            )
        return self._result

    def download(self) -> DownloadArtifact:
        """Materialise the current successful result.

        - GeoJSON: ``<base>.{csv,gpx,kml,kmz}`` in the session's format
        - Several CSVs: ``<base>.zip`` of ``<stem>_converted.csv`` entries
        - One CSV: ``<base>.csv``

        CSV payloads carry a UTF-8 byte order mark unless disabled in config.

        Raises:
            ValidationError: If there is no successful result to download.
        """
        result = self._result
        if result.state is not ConversionState.SUCCESS:
            raise ValidationError("Nothing to download yet", stage="download")

        base = build_download_basename(self._input_names)
        if result.geojson is not None and isinstance(self._session, GeoJsonSession):
            return self._download_geojson(base, self._session)
        if result.csv_data_map:
            content = bundle_csv_archive(result.csv_data_map, bom=self._config.csv_bom)
            return DownloadArtifact(f"{base}.zip", content, ZIP_MEDIA_TYPE)
        if result.csv_data is not None:
            return DownloadArtifact(f"{base}.csv", self._csv_bytes(result.csv_data), CSV_MEDIA_TYPE)
        raise ValidationError("Nothing to download yet", stage="download")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pending_preview(self) -> CsvTable | None:
        """The DMS table awaiting conversion, only while in the ``preview`` state."""
        session = self._session
        if self._result.state is ConversionState.PREVIEW and isinstance(
            session, CoordinateSession
        ):
            return session.preview
        return None

    def _ai_provider(self) -> AiProvider:
        if self._provider is None:
            self._provider = get_provider(self._config.ai_provider, self._config)
        return self._provider

    async def aclose(self) -> None:
        """Release the AI provider's transport, if one was created."""
        if self._provider is not None:
            await self._provider.aclose()

    def _fail(self, message: str, detail: dict[str, object] | None) -> None:
        self._result = ConversionResult(
            state=ConversionState.ERROR,
            mode=self._session.mode,
            file_count=self._result.file_count,
            ai_assisted=self._result.ai_assisted,
            error=message,
            error_detail=detail,
        )

    async def _convert_text(self, item: ModeInput, provider: AiProvider | None) -> None:
        if self._session.mode in FILE_ONLY_MODES:
            raise MissingInputError(f"No {self._session.mode.upper()} file selected.")
        output = await process_input(self._session, item, provider)
        if not output.has_output:
            raise PermanentError(NOTHING_TO_CONVERT, stage="orchestrator", code="NO_OUTPUT")
        self._apply_single(output)

    async def _convert_files(
        self, files: list[InputFile], provider: AiProvider | None, correlation_id: str
    ) -> None:
        if len(files) == 1:
            output = await process_input(self._session, ModeInput(file=files[0]), provider)
            if not output.has_output:
                raise PermanentError(NOTHING_CONVERTED, stage="orchestrator", code="NO_OUTPUT")
            self._apply_single(output)
            return

        outputs: dict[str, str] = {}
        total_rows = 0
        for file in files:
            try:
                output = await process_input(self._session, ModeInput(file=file), provider)
            except ConverterError as exc:
                logger.warning(
                    "Batch file failed | id=%s | file=%s | code=%s | error=%s",
                    correlation_id,
                    file.name,
                    exc.code,
                    exc.message,
                )
                continue
            except Exception:
                logger.exception(
                    "Batch file failed unexpectedly | id=%s | file=%s", correlation_id, file.name
                )
                continue
            if not output.has_output:
                logger.warning(
                    "Batch file produced no output | id=%s | file=%s", correlation_id, file.name
                )
                continue
            total_rows += output.rows
            outputs.update(self._batch_entries(file, output))

        if not outputs:
            raise PermanentError(NOTHING_CONVERTED, stage="orchestrator", code="NO_OUTPUT")
        self._result.csv_data_map = outputs
        self._result.row_count = total_rows

    @staticmethod
    def _batch_entries(file: InputFile, output: ModeOutput) -> dict[str, str]:
        if output.sheets:
            return dict(output.sheets)
        if output.geojson is not None:
            return {file.name: geojson_to_csv(output.geojson.document)}
        return {file.name: output.csv_data or ""}

    def _apply_single(self, output: ModeOutput) -> None:
        result = self._result
        result.row_count = output.rows
        result.extracted_text = output.extracted_text
        if output.sheets:
            result.csv_data_map = dict(output.sheets)
        elif output.geojson is not None:
            result.geojson = output.geojson
        else:
            result.csv_data = output.csv_data

    def _csv_bytes(self, csv_text: str) -> bytes:
        prefix = UTF8_BOM if self._config.csv_bom else ""
        return (prefix + csv_text).encode("utf-8")

    def _download_geojson(self, base: str, session: GeoJsonSession) -> DownloadArtifact:
        document = self._result.geojson.document  # type: ignore[union-attr]
        fields = (session.name_field, session.description_field, session.elevation_field)
        fmt = session.output_format
        if fmt is GeoJsonOutputFormat.CSV:
            content = self._csv_bytes(geojson_to_csv(document))
            return DownloadArtifact(f"{base}.csv", content, CSV_MEDIA_TYPE)
        if fmt is GeoJsonOutputFormat.GPX:
            content = geojson_to_gpx(document, *fields).encode("utf-8")
            return DownloadArtifact(f"{base}.gpx", content, GPX_MEDIA_TYPE)
        if fmt is GeoJsonOutputFormat.KML:
            content = geojson_to_kml(document, *fields).encode("utf-8")
            return DownloadArtifact(f"{base}.kml", content, KML_MEDIA_TYPE)
        return DownloadArtifact(f"{base}.kmz", export_kmz(document, *fields), KMZ_MEDIA_TYPE)
