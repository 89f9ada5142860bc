"""Command-line entry point: ``geo-converter convert`` and ``geo-converter columns``."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer

from geo_converter import __version__
from geo_converter.core.config import ConverterConfig
from geo_converter.core.constants import (
    ConversionMode,
    CoordinateSystem,
    GeoJsonOutputFormat,
)
from geo_converter.core.exceptions import ConverterError
from geo_converter.core.ingress import InputFile
from geo_converter.models.session import (
    ConversionResult,
    ConversionState,
    CoordinateSession,
)
from geo_converter.orchestrators.converter import Converter

app = typer.Typer(help="Convert KML/KMZ, GPX, GeoJSON, JSON, XLSX, PDF and coordinate data.")

logger = logging.getLogger("geo_converter.cli")


class Mode(str, Enum):
    kml = "kml"
    gpx = "gpx"
    geojson = "geojson"
    json = "json"
    pdf = "pdf"
    cleanup = "cleanup"
    xlsx = "xlsx"
    coordinates = "coordinates"


class System(str, Enum):
    dd = "dd"
    dms = "dms"
    utm = "utm"


class OutputFormat(str, Enum):
    csv = "csv"
    gpx = "gpx"
    kml = "kml"
    kmz = "kmz"


def _configure_logging(config: ConverterConfig, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.logging_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config() -> ConverterConfig:
    try:
        return ConverterConfig.from_env()
    except (ConverterError, ValueError) as exc:
        typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc


def _read_inputs(
    files: list[Path] | None, text_file: Path | None
) -> tuple[list[InputFile], str | None]:
    inputs = [InputFile.from_path(path) for path in files or []]
    text = text_file.read_text(encoding="utf-8-sig") if text_file is not None else None
    return inputs, text


def _mode_options(
    mode: Mode,
    *,
    source: System,
    target: System,
    output_format: OutputFormat,
    name_field: str | None,
    description_field: str | None,
    elevation_field: str | None,
    ai_parser: bool,
    instructions: str | None,
) -> dict[str, object]:
    if mode is Mode.coordinates:
        return {"source": CoordinateSystem(source.value), "target": CoordinateSystem(target.value)}
    if mode is Mode.geojson:
        return {
            "output_format": GeoJsonOutputFormat(output_format.value),
            "name_field": name_field,
            "description_field": description_field,
            "elevation_field": elevation_field,
        }
    if mode is Mode.kml:
        return {"use_ai_parser": ai_parser}
    if mode is Mode.cleanup:
        return {"instructions": instructions}
    return {}


@app.command()
def convert(
    mode: Mode = typer.Argument(..., help="Conversion mode."),
    files: Optional[list[Path]] = typer.Argument(
        None, exists=True, dir_okay=False, help="Input files; more than one runs a batch."
    ),
    text_file: Optional[Path] = typer.Option(
        None, "--text", exists=True, dir_okay=False, help="Read pasted-text input from a file."
    ),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", file_okay=False),
    source: System = typer.Option(System.dd, help="Source coordinate system."),
    target: System = typer.Option(System.dms, help="Target coordinate system."),
    lat_column: Optional[str] = typer.Option(None, help="DMS latitude column."),
    lon_column: Optional[str] = typer.Option(None, help="DMS longitude column."),
    output_format: OutputFormat = typer.Option(
        OutputFormat.csv, "--format", help="GeoJSON download format."
    ),
    name_field: Optional[str] = typer.Option(None, help="GeoJSON property for names."),
    description_field: Optional[str] = typer.Option(None),
    elevation_field: Optional[str] = typer.Option(None),
    ai_parser: bool = typer.Option(
        False, "--ai-parser", help="Parse KML with the AI collaborator."
    ),
    instructions: Optional[str] = typer.Option(None, help="Cleanup instructions."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Convert the given input and write the download artifact."""
    config = _load_config()
    _configure_logging(config, verbose)
    inputs, text = _read_inputs(files, text_file)

    converter = Converter(config)
    options = _mode_options(
        mode,
        source=source,
        target=target,
        output_format=output_format,
        name_field=name_field,
        description_field=description_field,
        elevation_field=elevation_field,
        ai_parser=ai_parser,
        instructions=instructions,
    )
    try:
        session = converter.select_mode(ConversionMode(mode.value), **options)
        if isinstance(session, CoordinateSession) and session.needs_mapping:
            converter.load_preview(inputs, text)
            if not lat_column or not lon_column:
                typer.secho(
                    "Please select both Latitude and Longitude columns.",
                    fg=typer.colors.RED,
                    err=True,
                )
                raise typer.Exit(code=1)
            converter.map_columns(lat_column, lon_column)
    except ConverterError as exc:
        typer.secho(exc.message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    result = asyncio.run(_run(converter, inputs, text))
    if result.state is not ConversionState.SUCCESS:
        typer.secho(result.status_message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    artifact = converter.download()
    output_dir.mkdir(parents=True, exist_ok=True)
    destination = output_dir / artifact.filename
    destination.write_bytes(artifact.content)
    logger.info("Artifact written | path=%s | bytes=%d", destination, len(artifact.content))
    typer.echo(result.status_message)
    if result.extracted_text:
        typer.echo(result.extracted_text)
    typer.echo(f"Wrote {destination}")


async def _run(
    converter: Converter, inputs: list[InputFile], text: str | None
) -> ConversionResult:
    try:
        return await converter.convert(inputs, text)
    finally:
        await converter.aclose()


@app.command()
def columns(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="CSV with DMS columns."),
) -> None:
    """List the columns of a DMS coordinate file for ``--lat-column``/``--lon-column``."""
    converter = Converter(_load_config())
    converter.select_mode(ConversionMode.COORDINATES, source=CoordinateSystem.DMS)
    try:
        table = converter.load_preview([InputFile.from_path(file)])
    except ConverterError as exc:
        typer.secho(exc.message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(converter.result.status_message)
    for header in table.headers:
        typer.echo(header)


@app.command()
def version() -> None:
    """Print the package version."""
    typer.echo(__version__)


if __name__ == "__main__":
    app()
