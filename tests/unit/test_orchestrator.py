"""Tests for the conversion orchestrator.

Drives ``Converter`` through the user actions (select mode, configure,
preview, map columns, convert, download) with real parsers and a fake
AI provider, so no network is involved.

Covers:
- Single-file and pasted-text conversions per mode
- Batch policy: failed files are skipped, all-failed batch errors
- Error state carries the structured error payload and correlation id
- DMS preview and column mapping state machine
- Download naming, BOM handling and GeoJSON output formats
- AI flows (cleanup, AI KML parser, PDF extraction) and missing provider
"""

from __future__ import annotations

import io
import zipfile
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, patch

import pytest
from lxml import etree

from geo_converter.core.config import ConverterConfig
from geo_converter.core.constants import (
    CSV_MEDIA_TYPE,
    KML_MEDIA_TYPE,
    KMZ_MEDIA_TYPE,
    ZIP_MEDIA_TYPE,
    ConversionMode,
    CoordinateSystem,
)
from geo_converter.core.exceptions import ValidationError
from geo_converter.core.ingress import InputFile
from geo_converter.models.payloads import CleanDataResult, PdfExtraction
from geo_converter.models.session import ConversionState, KmlSession
from geo_converter.orchestrators import Converter
from geo_converter.orchestrators.converter import NOTHING_CONVERTED
from geo_converter.orchestrators.modes import ModeOutput
from geo_converter.providers.base import AiProvider, ProviderTransientError

if TYPE_CHECKING:
    from pathlib import Path

    from geo_converter.models.payloads import CleanDataRequest, ExtractPdfRequest

BOM = b"\xef\xbb\xbf"


class _FakeProvider(AiProvider):
    """In-memory AI collaborator recording every request."""

    def __init__(
        self,
        *,
        csv_data: str = "name,lat\nA,1\nB,2",
        extraction: PdfExtraction | None = None,
        error: Exception | None = None,
    ) -> None:
        super().__init__(ConverterConfig(), name="fake")
        self.csv_data = csv_data
        self.extraction = extraction or PdfExtraction()
        self.error = error
        self.clean_requests: list[CleanDataRequest] = []
        self.pdf_requests: list[ExtractPdfRequest] = []
        self.closed = False

    async def clean_data(self, request: CleanDataRequest) -> CleanDataResult:
        self.clean_requests.append(request)
        if self.error is not None:
            raise self.error
        return CleanDataResult(csv_data=self.csv_data)

    async def extract_pdf(self, request: ExtractPdfRequest) -> PdfExtraction:
        self.pdf_requests.append(request)
        return self.extraction

    async def aclose(self) -> None:
        self.closed = True


def _zip_entries(content: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


# ---------------------------------------------------------------------------
# Mode selection and options
# ---------------------------------------------------------------------------


class TestModeSelection:
    def test_starts_idle_in_kml_mode(self) -> None:
        converter = Converter()
        assert converter.state is ConversionState.IDLE
        assert converter.session.mode is ConversionMode.KML

    def test_switch_discards_previous_options(self) -> None:
        converter = Converter()
        converter.select_mode("kml", use_ai_parser=True)
        converter.select_mode("gpx")
        converter.select_mode("kml")
        assert converter.session == KmlSession(use_ai_parser=False)

    @pytest.mark.parametrize(
        ("mode", "options"),
        [
            ("shapefile", {}),
            ("gpx", {"use_ai_parser": True}),
            ("geojson", {"output_format": "bogus"}),
            ("coordinates", {"source": "ddm"}),
        ],
    )
    def test_invalid_mode_or_option(self, mode: str, options: dict[str, Any]) -> None:
        with pytest.raises(ValidationError):
            Converter().select_mode(mode, **options)

    def test_option_values_become_enums(self) -> None:
        converter = Converter()
        session = converter.select_mode("coordinates", source="dms", target="utm")

        assert session.source is CoordinateSystem.DMS
        assert session.needs_mapping

        converter.configure(target="dd")
        assert converter.session.target is CoordinateSystem.DD
        with pytest.raises(ValidationError, match="Invalid option value"):
            converter.configure(source="ddm")

    def test_configure_unknown_option(self) -> None:
        converter = Converter()
        converter.select_mode("gpx")
        with pytest.raises(ValidationError, match="instructions"):
            converter.configure(instructions="x")

    @pytest.mark.asyncio()
    async def test_configure_resets_success(self) -> None:
        converter = Converter()
        converter.select_mode("json")
        await converter.convert(text='{"a": 1}')
        assert converter.state is ConversionState.SUCCESS

        converter.configure()
        assert converter.state is ConversionState.IDLE

    @pytest.mark.asyncio()
    async def test_rejected_while_processing(self) -> None:
        converter = Converter()
        converter.result.state = ConversionState.PROCESSING

        with pytest.raises(ValidationError) as exc_info:
            await converter.convert(text="x")
        assert exc_info.value.code == "CONVERSION_IN_PROGRESS"
        with pytest.raises(ValidationError):
            converter.select_mode("gpx")


# ---------------------------------------------------------------------------
# Single input
# ---------------------------------------------------------------------------


class TestSingleInput:
    @pytest.mark.asyncio()
    async def test_kml_file(self, sample_kml: Path) -> None:
        converter = Converter()
        result = await converter.convert([InputFile.from_path(sample_kml)])

        assert result.state is ConversionState.SUCCESS
        assert result.row_count == 3
        assert result.csv_data.split("\n")[0] == (
            "name,longitude,latitude,elevation,type,city,population,description"
        )
        assert result.status_message == "Conversion successful! Found 3 rows."

        artifact = converter.download()
        assert artifact.filename == "sample.csv"
        assert artifact.media_type == CSV_MEDIA_TYPE
        assert artifact.content == BOM + result.csv_data.encode("utf-8")

    @pytest.mark.asyncio()
    async def test_bom_disabled(self, sample_gpx: Path) -> None:
        converter = Converter(ConverterConfig(csv_bom=False))
        converter.select_mode("gpx")
        await converter.convert([InputFile.from_path(sample_gpx)])

        assert converter.download().content.startswith(b"name,")

    @pytest.mark.asyncio()
    async def test_json_text(self) -> None:
        converter = Converter()
        converter.select_mode("json")
        result = await converter.convert(text='[{"a": 1}, {"a": 2}]')

        assert result.csv_data == 'a\n"1"\n"2"'
        assert result.row_count == 2
        assert converter.download().filename == "converted_data.csv"

    @pytest.mark.asyncio()
    async def test_empty_text(self) -> None:
        converter = Converter()
        converter.select_mode("json")
        result = await converter.convert(text="   ")

        assert result.state is ConversionState.ERROR
        assert result.error == "JSON data is empty."
        assert result.error_detail["category"] == "validation"

    @pytest.mark.asyncio()
    async def test_text_in_file_only_mode(self) -> None:
        converter = Converter()
        converter.select_mode("gpx")
        result = await converter.convert(text="<gpx/>")

        assert result.state is ConversionState.ERROR
        assert result.error == "No GPX file selected."

    @pytest.mark.asyncio()
    async def test_parse_error_payload(self) -> None:
        converter = Converter()
        converter.select_mode("gpx")
        result = await converter.convert([InputFile("broken.gpx", b"<gpx><oops")])

        assert result.state is ConversionState.ERROR
        assert result.error.startswith("Invalid GPX format")
        assert result.error_detail["stage"] == "parse_gpx"
        assert result.error_detail["category"] == "permanent"
        assert len(result.error_detail["correlation_id"]) == 12
        assert result.status_message == result.error

    @pytest.mark.asyncio()
    async def test_file_gate_rejection(self) -> None:
        converter = Converter()
        result = await converter.convert([InputFile("route.gpx", b"<gpx/>")])

        assert result.state is ConversionState.ERROR
        assert result.error == "Please upload only .kml, .kmz files."
        assert result.error_detail["code"] == "FILE_TYPE_REJECTED"

    @pytest.mark.asyncio()
    async def test_gpx_without_points(self) -> None:
        converter = Converter()
        converter.select_mode("gpx")
        result = await converter.convert([InputFile("empty.gpx", b"<gpx></gpx>")])

        assert result.error_detail["code"] == "GPX_NO_POINTS"

    @pytest.mark.asyncio()
    async def test_unexpected_exception_is_contained(self) -> None:
        converter = Converter()
        converter.select_mode("json")
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        with patch("geo_converter.orchestrators.converter.process_input", failing):
            result = await converter.convert(text="{}")

        assert result.state is ConversionState.ERROR
        assert result.error == "boom"
        assert result.error_detail is None

    def test_download_before_success(self) -> None:
        with pytest.raises(ValidationError, match="Nothing to download"):
            Converter().download()


# ---------------------------------------------------------------------------
# Batch policy
# ---------------------------------------------------------------------------


class TestBatch:
    @pytest.mark.asyncio()
    async def test_failed_file_skipped(
        self, sample_gpx: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        content = sample_gpx.read_bytes()
        files = [
            InputFile("first.gpx", content),
            InputFile("broken.gpx", b"<gpx><oops"),
            InputFile("second.gpx", content),
        ]
        converter = Converter()
        converter.select_mode("gpx")
        result = await converter.convert(files)

        assert result.state is ConversionState.SUCCESS
        assert list(result.csv_data_map) == ["first.gpx", "second.gpx"]
        assert result.row_count == 8
        assert result.file_count == 3
        assert result.status_message == (
            "Batch conversion successful! Processed 3 files with a total of 8 rows."
        )
        assert "Batch file failed" in caplog.text
        assert "broken.gpx" in caplog.text

        artifact = converter.download()
        assert artifact.filename == "converted_files.zip"
        assert artifact.media_type == ZIP_MEDIA_TYPE
        entries = _zip_entries(artifact.content)
        assert list(entries) == ["first_converted.csv", "second_converted.csv"]
        assert entries["first_converted.csv"].startswith(BOM)

    @pytest.mark.asyncio()
    async def test_unexpected_exception_skips_file(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        outputs = [
            ModeOutput(rows=1, csv_data='a\n"1"'),
            RuntimeError("boom"),
            ModeOutput(rows=2, csv_data='a\n"2"\n"3"'),
        ]
        files = [InputFile(f"{name}.json", b"{}") for name in ("one", "two", "three")]
        converter = Converter()
        converter.select_mode("json")

        with patch(
            "geo_converter.orchestrators.converter.process_input",
            new=AsyncMock(side_effect=outputs),
        ):
            result = await converter.convert(files)

        assert result.state is ConversionState.SUCCESS
        assert list(result.csv_data_map) == ["one.json", "three.json"]
        assert result.row_count == 3
        assert "Batch file failed unexpectedly" in caplog.text
        assert "two.json" in caplog.text

    @pytest.mark.asyncio()
    async def test_all_files_failed(self) -> None:
        converter = Converter()
        converter.select_mode("gpx")
        result = await converter.convert(
            [InputFile("a.gpx", b"<gpx><oops"), InputFile("b.gpx", b"<gpx></gpx>")]
        )

        assert result.state is ConversionState.ERROR
        assert result.error == NOTHING_CONVERTED
        assert result.error_detail["code"] == "NO_OUTPUT"

    @pytest.mark.asyncio()
    async def test_geojson_batch_becomes_csv_map(self, sample_geojson: Path) -> None:
        content = sample_geojson.read_bytes()
        converter = Converter()
        converter.select_mode("geojson")
        result = await converter.convert(
            [InputFile("a.geojson", content), InputFile("b.json", content)]
        )

        assert result.geojson is None
        assert list(result.csv_data_map) == ["a.geojson", "b.json"]
        assert result.row_count == 8
        assert converter.download().filename == "converted_files.zip"


# ---------------------------------------------------------------------------
# GeoJSON and XLSX outputs
# ---------------------------------------------------------------------------


class TestGeoJsonDownload:
    @pytest.mark.asyncio()
    async def test_format_switch_keeps_result(self, sample_geojson: Path) -> None:
        converter = Converter()
        converter.select_mode("geojson")
        result = await converter.convert([InputFile.from_path(sample_geojson)])

        assert result.row_count == 4
        assert result.status_message == (
            "Conversion successful! Found 4 features. Ready to download."
        )

        csv_artifact = converter.download()
        assert csv_artifact.filename == "sample.csv"
        assert csv_artifact.content.startswith(BOM + b"name,title")

        converter.configure(output_format="kml", name_field="title")
        assert converter.state is ConversionState.SUCCESS
        kml_artifact = converter.download()
        assert kml_artifact.filename == "sample.kml"
        assert kml_artifact.media_type == KML_MEDIA_TYPE
        root = etree.fromstring(kml_artifact.content)
        assert root.findtext(".//{*}Placemark/{*}name") == "Capital"

        converter.configure(output_format="kmz")
        kmz_artifact = converter.download()
        assert kmz_artifact.filename == "sample.kmz"
        assert kmz_artifact.media_type == KMZ_MEDIA_TYPE
        assert list(_zip_entries(kmz_artifact.content)) == ["doc.kml"]

    @pytest.mark.asyncio()
    async def test_gpx_format(self, sample_geojson: Path) -> None:
        converter = Converter()
        converter.select_mode("geojson", output_format="gpx")
        await converter.convert(text=sample_geojson.read_text(encoding="utf-8"))

        artifact = converter.download()
        assert artifact.filename == "converted_data.gpx"
        assert b"<wpt" in artifact.content

    @pytest.mark.asyncio()
    async def test_invalid_output_format(self) -> None:
        converter = Converter()
        converter.select_mode("geojson")
        with pytest.raises(ValidationError, match="Invalid option value"):
            converter.configure(output_format="shp")


class TestXlsx:
    @pytest.mark.asyncio()
    async def test_one_csv_per_sheet(self, workbook_file: InputFile) -> None:
        converter = Converter()
        converter.select_mode("xlsx")
        result = await converter.convert([workbook_file])

        assert list(result.csv_data_map) == ["survey_Sites.csv", "survey_Notes.csv"]
        assert result.row_count == 3
        assert result.status_message == (
            "Conversion successful! Found 3 total rows across all sheets."
        )

        artifact = converter.download()
        assert artifact.filename == "survey.zip"
        assert list(_zip_entries(artifact.content)) == [
            "survey_Sites_converted.csv",
            "survey_Notes_converted.csv",
        ]

    @pytest.mark.asyncio()
    async def test_corrupt_legacy_workbook(self) -> None:
        converter = Converter()
        converter.select_mode("xlsx")
        content = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 32
        result = await converter.convert([InputFile("old.xls", content)])

        assert result.error_detail["code"] == "XLSX_PARSE_FAILED"

    @pytest.mark.asyncio()
    async def test_batch_skips_unreadable_workbook(
        self, workbook_builder, broken_workbook_file: InputFile
    ) -> None:
        one = InputFile("one.xlsx", workbook_builder({"A": [["x"], [1]]}))
        three = InputFile("three.xlsx", workbook_builder({"C": [["y"], [2], [3]]}))
        converter = Converter()
        converter.select_mode("xlsx")

        result = await converter.convert([one, broken_workbook_file, three])

        assert result.state is ConversionState.SUCCESS
        assert list(result.csv_data_map) == ["one_A.csv", "three_C.csv"]
        assert result.row_count == 3


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------


class TestCoordinates:
    @pytest.mark.asyncio()
    async def test_dd_to_dms_file(self, dd_csv: Path) -> None:
        converter = Converter()
        converter.select_mode("coordinates", source="dd", target="dms")
        result = await converter.convert([InputFile.from_path(dd_csv)])

        assert result.row_count == 3
        assert result.csv_data.split("\n")[0] == "name,lat,lon,dms_latitude,dms_longitude"

    @pytest.mark.asyncio()
    async def test_missing_headers(self) -> None:
        converter = Converter()
        converter.select_mode("coordinates", source="utm", target="dd")
        result = await converter.convert(text="x,y\n1,2")

        assert result.state is ConversionState.ERROR
        assert "easting" in result.error

    @pytest.mark.asyncio()
    async def test_dms_preview_map_and_convert(self, dms_csv: Path) -> None:
        file = InputFile.from_path(dms_csv)
        converter = Converter()
        converter.select_mode("coordinates", source="dms", target="dd")

        table = converter.load_preview([file])
        assert converter.state is ConversionState.PREVIEW
        assert table.headers == ["site", "Lat DMS", "Lon DMS"]

        converter.map_columns("Lat DMS", "Lon DMS")
        result = await converter.convert([file])

        assert result.state is ConversionState.SUCCESS
        assert result.row_count == 2
        assert "Invalid DMS format" in result.csv_data
        assert converter.download().filename == "dms.csv"

    @pytest.mark.asyncio()
    async def test_dms_pasted_text_uses_preview(self, dms_csv: Path) -> None:
        converter = Converter()
        converter.select_mode("coordinates", source="dms", target="utm")
        converter.load_preview(text=dms_csv.read_text(encoding="utf-8"))
        converter.map_columns("Lat DMS", "Lon DMS")

        result = await converter.convert()

        assert result.state is ConversionState.SUCCESS
        assert "zone" in result.csv_data.split("\n")[0]

    @pytest.mark.asyncio()
    async def test_dms_new_text_after_success(self) -> None:
        first = "name,lat,lon\nA,N1° 0' 0\",E2° 0' 0\""
        second = "name,lat,lon\nB,S3° 30' 0\",W4° 15' 0\""
        converter = Converter()
        converter.select_mode("coordinates", source="dms", target="dd")
        converter.load_preview(text=first)
        converter.map_columns("lat", "lon")

        result = await converter.convert(text=first)
        assert '"A"' in result.csv_data

        result = await converter.convert(text=second)

        assert result.state is ConversionState.SUCCESS
        rows = result.csv_data.split("\n")
        assert len(rows) == 2
        assert rows[1].startswith('"B"')
        assert '"-3.5"' in rows[1]
        assert '"-4.25"' in rows[1]

    @pytest.mark.asyncio()
    async def test_dms_without_mapping(self, dms_csv: Path) -> None:
        converter = Converter()
        converter.select_mode("coordinates", source="dms", target="dd")
        converter.load_preview(text=dms_csv.read_text(encoding="utf-8"))

        result = await converter.convert()

        assert result.error == "Please select both Latitude and Longitude columns."

    def test_preview_requires_dms_input(self) -> None:
        converter = Converter()
        converter.select_mode("coordinates", source="dd", target="utm")
        with pytest.raises(ValidationError):
            converter.load_preview(text="lat,lon\n1,2")

    def test_preview_requires_input(self) -> None:
        converter = Converter()
        converter.select_mode("coordinates", source="dms", target="dd")
        with pytest.raises(ValidationError, match="No DMS data provided."):
            converter.load_preview(text="  ")

    def test_map_columns_validation(self) -> None:
        converter = Converter()
        converter.select_mode("coordinates", source="dms", target="dd")
        with pytest.raises(ValidationError, match="Load a DMS preview"):
            converter.map_columns("a", "b")

        converter.load_preview(text="lat,lon\nN1,E2")
        with pytest.raises(ValidationError, match="Unknown column"):
            converter.map_columns("lat", "longitude")


# ---------------------------------------------------------------------------
# AI flows
# ---------------------------------------------------------------------------


class TestAiFlows:
    @pytest.mark.asyncio()
    async def test_cleanup_text(self) -> None:
        provider = _FakeProvider()
        converter = Converter(provider=provider)
        converter.select_mode("cleanup", instructions="keep names")
        result = await converter.convert(text="A 1\nB 2")

        assert result.csv_data == "name,lat\nA,1\nB,2"
        assert result.row_count == 2
        assert result.ai_assisted is True
        assert result.status_message == "Cleanup successful! Found 2 rows."
        assert provider.clean_requests[0].raw_data == "A 1\nB 2"
        assert provider.clean_requests[0].instructions == "keep names"

    @pytest.mark.asyncio()
    async def test_kml_ai_parser_sends_raw_kml(self, sample_kml: Path) -> None:
        provider = _FakeProvider()
        converter = Converter(provider=provider)
        converter.select_mode("kml", use_ai_parser=True)
        result = await converter.convert([InputFile.from_path(sample_kml)])

        assert result.state is ConversionState.SUCCESS
        assert "<kml" in provider.clean_requests[0].raw_data
        assert provider.clean_requests[0].instructions is None

    @pytest.mark.asyncio()
    async def test_pdf_extraction(self) -> None:
        extraction = PdfExtraction(text="Notes", table_rows=[{"id": 1}, {"id": 2}])
        provider = _FakeProvider(extraction=extraction)
        converter = Converter(provider=provider)
        converter.select_mode("pdf")
        result = await converter.convert([InputFile("report.pdf", b"%PDF-1.4")])

        assert result.csv_data == 'id\n"1"\n"2"'
        assert result.extracted_text == "Notes"
        assert result.status_message == (
            "Extraction successful! Found 2 table rows and text content."
        )
        assert provider.pdf_requests[0].pdf_data_uri.startswith("data:application/pdf;base64,")
        assert converter.download().filename == "report.csv"

    @pytest.mark.asyncio()
    async def test_pdf_without_content(self) -> None:
        converter = Converter(provider=_FakeProvider())
        converter.select_mode("pdf")
        result = await converter.convert([InputFile("blank.pdf", b"%PDF-1.4")])

        assert result.error == NOTHING_CONVERTED

    @pytest.mark.asyncio()
    async def test_transient_provider_failure(self) -> None:
        error = ProviderTransientError("fake", "/clean-data returned HTTP 503")
        converter = Converter(provider=_FakeProvider(error=error))
        converter.select_mode("cleanup")
        result = await converter.convert(text="A 1")

        assert result.state is ConversionState.ERROR
        assert result.error_detail["category"] == "transient"
        assert result.error_detail["retryable"] is True
        assert result.ai_assisted is True

    @pytest.mark.asyncio()
    async def test_no_provider_configured(self, offline_config: ConverterConfig) -> None:
        converter = Converter(offline_config)
        converter.select_mode("cleanup")
        result = await converter.convert(text="A 1")

        assert result.state is ConversionState.ERROR
        assert result.error_detail["code"] == "PROVIDER_NOT_CONFIGURED"

    @pytest.mark.asyncio()
    async def test_local_modes_never_build_provider(self, offline_config: ConverterConfig) -> None:
        converter = Converter(offline_config)
        converter.select_mode("json")
        with patch("geo_converter.orchestrators.converter.get_provider") as factory:
            await converter.convert(text="[1]")
        factory.assert_not_called()

    @pytest.mark.asyncio()
    async def test_aclose_releases_provider(self) -> None:
        provider = _FakeProvider()
        converter = Converter(provider=provider)
        await converter.aclose()
        assert provider.closed is True
