"""Typed payload schemas for the AI collaborator contracts.

The collaborators speak camelCase JSON; these pydantic models expose
snake_case attributes and serialise back with the camelCase aliases.

Usage::

    from geo_converter.models.payloads import CleanDataRequest

    request = CleanDataRequest(raw_data=text, instructions="drop the id column")
    body = request.model_dump(by_alias=True, exclude_none=True)
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_CAMEL = ConfigDict(populate_by_name=True, extra="ignore")

# ---------------------------------------------------------------------------
# Cleanup collaborator
# ---------------------------------------------------------------------------


class CleanDataRequest(BaseModel):
    """Raw text (CSV, free text or KML) to be restructured as CSV."""

    model_config = _CAMEL

    raw_data: str = Field(alias="rawData")
    instructions: str | None = None


class CleanDataResult(BaseModel):
    """Cleaned data as a CSV string including a header row."""

    model_config = _CAMEL

    csv_data: str = Field(alias="csvData")


# ---------------------------------------------------------------------------
# PDF extraction collaborator
# ---------------------------------------------------------------------------


class ExtractPdfRequest(BaseModel):
    """A PDF encoded as ``data:application/pdf;base64,...``."""

    model_config = _CAMEL

    pdf_data_uri: str = Field(alias="pdfDataUri")


class ExtractPdfEnvelope(BaseModel):
    """Wire response of the extraction collaborator: a JSON document as text."""

    model_config = _CAMEL

    json_string: str = Field(alias="jsonString")


class PdfExtraction(BaseModel):
    """Decoded extraction result.

    Attributes:
        text: All non-table text of the document.
        table_rows: One object per table row across all tables.
    """

    model_config = _CAMEL

    text: str = ""
    table_rows: list[Any] = Field(default_factory=list, alias="tableRows")

    @field_validator("text", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> Any:
        return value or ""

    @field_validator("table_rows", mode="before")
    @classmethod
    def _rows_or_empty(cls, value: Any) -> Any:
        return value or []
