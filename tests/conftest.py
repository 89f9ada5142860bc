"""Shared pytest fixtures for the geo-converter test suite."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path

import openpyxl
import pytest

from geo_converter.core.config import ConverterConfig
from geo_converter.core.ingress import InputFile

# ---------------------------------------------------------------------------
# Path fixtures
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).parent
DATA_DIR = TESTS_DIR / "data"


@pytest.fixture()
def data_dir() -> Path:
    """Return the path to the test data directory."""
    return DATA_DIR


# ---------------------------------------------------------------------------
# Sample document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_kml(data_dir: Path) -> Path:
    """KML with a Point (description table), a LineString and an unnamed Polygon."""
    return data_dir / "sample.kml"


@pytest.fixture()
def network_link_kml(data_dir: Path) -> Path:
    """KML whose only content is a NetworkLink."""
    return data_dir / "networklink.kml"


@pytest.fixture()
def gpx_content_kml(data_dir: Path) -> Path:
    """A ``.kml`` file that actually holds a GPX document."""
    return data_dir / "gpx_content.kml"


@pytest.fixture()
def sample_gpx(data_dir: Path) -> Path:
    """GPX with one waypoint, three trackpoints (one invalid) and a routepoint."""
    return data_dir / "sample.gpx"


@pytest.fixture()
def sample_geojson(data_dir: Path) -> Path:
    """FeatureCollection with Point, LineString, MultiPoint and null-geometry features."""
    return data_dir / "sample.geojson"


@pytest.fixture()
def dd_csv(data_dir: Path) -> Path:
    return data_dir / "dd.csv"


@pytest.fixture()
def utm_csv(data_dir: Path) -> Path:
    return data_dir / "utm.csv"


@pytest.fixture()
def dms_csv(data_dir: Path) -> Path:
    return data_dir / "dms.csv"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_workbook(sheets: dict[str, list[list[object]]]) -> bytes:
    """Build an XLSX workbook in memory, one sheet per mapping entry."""
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        sheet = workbook.create_sheet(title)
        for row in rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def truncate_first_sheet(content: bytes) -> bytes:
    """Cut the first worksheet's XML in half, leaving the rest of the package intact."""
    source = zipfile.ZipFile(io.BytesIO(content))
    buffer = io.BytesIO()
    with source, zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as target:
        for name in source.namelist():
            data = source.read(name)
            if name == "xl/worksheets/sheet1.xml":
                data = data[: len(data) // 2]
            target.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture()
def workbook_builder():
    """Return the in-memory workbook builder."""
    return build_workbook


@pytest.fixture()
def workbook_file() -> InputFile:
    """A two-sheet workbook plus an empty third sheet."""
    content = build_workbook(
        {
            "Sites": [
                ["name", "lat", "lon"],
                ["Phnom Penh", 11.56, 104.92],
                ["Kampot", 10.61, 104.18],
            ],
            "Notes": [["note", None, "note"], ["first", "x", "dup"]],
            "Empty": [],
        }
    )
    return InputFile(name="survey.xlsx", content=content)


@pytest.fixture()
def config() -> ConverterConfig:
    """Configuration with an AI collaborator endpoint."""
    return ConverterConfig(ai_base_url="http://collaborator.test", ai_api_key="secret")


@pytest.fixture()
def offline_config() -> ConverterConfig:
    """Configuration without an AI collaborator."""
    return ConverterConfig()


@pytest.fixture()
def broken_workbook_file() -> InputFile:
    """A workbook that opens but whose first sheet's XML is cut short."""
    content = build_workbook({"Sites": [["name", "lat"], ["Kep", 10.48], ["Takeo", 10.99]]})
    return InputFile(name="two.xlsx", content=truncate_first_sheet(content))
