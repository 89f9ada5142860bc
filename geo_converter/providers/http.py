"""HTTP adapter for the AI collaborator service.

Endpoints (relative to ``ConverterConfig.ai_base_url``):

- ``POST /clean-data``  ``{"rawData", "instructions"}`` -> ``{"csvData"}``
- ``POST /extract-pdf`` ``{"pdfDataUri"}`` -> ``{"jsonString"}``

An API key, when configured, is sent as a bearer token. Connection
errors and 5xx responses raise ``ProviderTransientError``; 4xx responses
raise ``ProviderResponseError``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
import pydantic

from geo_converter.models.payloads import (
    CleanDataResult,
    ExtractPdfEnvelope,
)
from geo_converter.providers.base import (
    CLEAN_DATA_FAILED,
    INVALID_JSON_RESPONSE,
    AiProvider,
    ProviderContractError,
    ProviderNotConfiguredError,
    ProviderResponseError,
    ProviderTransientError,
)

if TYPE_CHECKING:
    from geo_converter.core.config import ConverterConfig
    from geo_converter.models.payloads import (
        CleanDataRequest,
        ExtractPdfRequest,
        PdfExtraction,
    )

logger = logging.getLogger("geo_converter.providers.http")

CLEAN_DATA_PATH = "/clean-data"
EXTRACT_PDF_PATH = "/extract-pdf"

_SERVER_ERROR_MIN = 500


class HttpAiProvider(AiProvider):
    """AI collaborator reached over HTTP with an ``httpx.AsyncClient``.

    The client is created lazily and reused across calls; close it with
    ``aclose()``. A pre-built client (e.g. one using
    ``httpx.MockTransport``) may be injected for testing.
    """

    def __init__(
        self,
        config: ConverterConfig,
        *,
        name: str = "http",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config, name=name)
        if not config.ai_base_url:
            msg = "AI features are unavailable: GEO_CONVERTER_AI_URL is not set"
            raise ProviderNotConfiguredError(name, msg)
        self._base_url = config.ai_base_url.rstrip("/")
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.config.ai_api_key:
                headers["Authorization"] = f"Bearer {self.config.ai_api_key}"
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.ai_timeout_s),
                headers=headers,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def clean_data(self, request: CleanDataRequest) -> CleanDataResult:
        body = await self._post(
            CLEAN_DATA_PATH, request.model_dump(by_alias=True, exclude_none=True)
        )
        if isinstance(body, dict) and not body.get("csvData"):
            raise ProviderResponseError(self.name, CLEAN_DATA_FAILED)
        result = self._validate(CleanDataResult, body)
        logger.info(
            "Cleanup completed | provider=%s | input_chars=%d | csv_chars=%d",
            self.name,
            len(request.raw_data),
            len(result.csv_data),
        )
        return self._require_csv(result)

    async def extract_pdf(self, request: ExtractPdfRequest) -> PdfExtraction:
        body = await self._post(EXTRACT_PDF_PATH, request.model_dump(by_alias=True))
        extraction = self._decode_extraction(self._validate(ExtractPdfEnvelope, body))
        logger.info(
            "PDF extraction completed | provider=%s | table_rows=%d | text_chars=%d",
            self.name,
            len(extraction.table_rows),
            len(extraction.text),
        )
        return extraction

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._get_client().post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("Collaborator request failed | url=%s | error=%s", url, exc)
            raise ProviderTransientError(self.name, f"Request to {path} failed: {exc}") from exc

        if response.status_code >= _SERVER_ERROR_MIN:
            raise ProviderTransientError(
                self.name, f"{path} returned HTTP {response.status_code}"
            )
        if response.is_error:
            raise ProviderResponseError(
                self.name, f"{path} returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderResponseError(self.name, INVALID_JSON_RESPONSE) from exc

    def _validate(self, model: type[pydantic.BaseModel], body: Any) -> Any:
        try:
            return model.model_validate(body)
        except pydantic.ValidationError as exc:
            raise ProviderContractError(
                self.name, f"Unexpected {model.__name__} payload: {exc.error_count()} error(s)"
            ) from exc
