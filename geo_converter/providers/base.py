"""AiProvider abstract base class.

Defines the contract for the two AI collaborators. The orchestrator
talks only to this interface and never knows which transport is behind
it.

Capabilities:
    1. ``clean_data(request)``  - restructure free text, CSV or raw KML
       into CSV text with a header row.
    2. ``extract_pdf(request)`` - pull the text and every table row out
       of a PDF supplied as a data URI.

Both are single async request/response calls. Failures are surfaced as
``ProviderError`` subclasses; nothing is retried automatically.
"""

from __future__ import annotations

import abc
import json
from typing import TYPE_CHECKING

import pydantic

from geo_converter.core.exceptions import (
    ContractError,
    ConverterError,
    PermanentError,
    TransientError,
)
from geo_converter.models.payloads import PdfExtraction

if TYPE_CHECKING:
    from geo_converter.core.config import ConverterConfig
    from geo_converter.models.payloads import (
        CleanDataRequest,
        CleanDataResult,
        ExtractPdfEnvelope,
        ExtractPdfRequest,
    )

CLEAN_DATA_FAILED = "Failed to clean data."
INVALID_JSON_RESPONSE = "Invalid JSON response from the server."


class AiProvider(abc.ABC):
    """Abstract base class for AI collaborator adapters.

    Example usage::

        provider = get_provider("http", config)
        result = await provider.clean_data(CleanDataRequest(raw_data=text))
        await provider.aclose()
    """

    def __init__(self, config: ConverterConfig, *, name: str = "") -> None:
        self._config = config
        self._name = name or config.ai_provider

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> ConverterConfig:
        """Return the converter configuration (read-only)."""
        return self._config

    # ------------------------------------------------------------------
    # Abstract methods
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def clean_data(self, request: CleanDataRequest) -> CleanDataResult:
        """Restructure ``request.raw_data`` into CSV.

        Returns:
            A ``CleanDataResult`` whose ``csv_data`` is non-empty.

        Raises:
            ProviderResponseError: If the collaborator returns no CSV.
            ProviderTransientError: On network failure.
        """

    @abc.abstractmethod
    async def extract_pdf(self, request: ExtractPdfRequest) -> PdfExtraction:
        """Extract text and table rows from the PDF in ``request``.

        Raises:
            ProviderResponseError: If the collaborator's JSON string
                cannot be decoded.
            ProviderTransientError: On network failure.
        """

    async def aclose(self) -> None:  # noqa: B027
        """Release transport resources. No-op unless overridden."""

    # ------------------------------------------------------------------
    # Shared response handling
    # ------------------------------------------------------------------

    def _require_csv(self, result: CleanDataResult) -> CleanDataResult:
        if not result.csv_data.strip():
            raise ProviderResponseError(self.name, CLEAN_DATA_FAILED)
        return result

    def _decode_extraction(self, envelope: ExtractPdfEnvelope) -> PdfExtraction:
        """Decode the JSON document carried in ``envelope.json_string``."""
        try:
            payload = json.loads(envelope.json_string)
        except json.JSONDecodeError as exc:
            raise ProviderResponseError(self.name, INVALID_JSON_RESPONSE) from exc
        if not isinstance(payload, dict):
            raise ProviderResponseError(self.name, INVALID_JSON_RESPONSE)
        try:
            return PdfExtraction.model_validate(payload)
        except pydantic.ValidationError as exc:
            raise ProviderContractError(
                self.name, f"Unexpected extraction payload shape: {exc.error_count()} error(s)"
            ) from exc


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class ProviderError(ConverterError):
    """Base exception for AI provider adapter errors.

    Attributes:
        provider: Name of the provider that raised the error.
        message: Human-readable error description.
        retryable: Whether a later attempt could succeed.
    """

    default_stage = "provider"
    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


class ProviderResponseError(ProviderError, PermanentError):
    """The collaborator answered, but with an error status or unusable output."""

    default_code = "PROVIDER_RESPONSE_INVALID"


class ProviderTransientError(ProviderError, TransientError):
    """Network failure or server-side error talking to the collaborator."""

    default_code = "PROVIDER_UNAVAILABLE"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(provider, message, retryable=True)


class ProviderContractError(ProviderError, ContractError):
    """The collaborator's payload did not match the expected schema."""

    default_code = "PROVIDER_CONTRACT_VIOLATION"


class ProviderNotConfiguredError(ProviderError, PermanentError):
    """No collaborator is configured, or the provider name is unknown."""

    default_code = "PROVIDER_NOT_CONFIGURED"
