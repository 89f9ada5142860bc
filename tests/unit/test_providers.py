"""Tests for the AI collaborator adapters and the provider factory.

Covers:
- AiProvider ABC enforcement
- HttpAiProvider request bodies, auth header and response decoding
- Error mapping: network / 5xx -> transient, 4xx / bad JSON -> response,
  schema mismatch -> contract
- Factory registry: list, register, unknown name, missing endpoint
"""

from __future__ import annotations

import json
import unittest
from typing import TYPE_CHECKING, Any

import httpx
import pytest

from geo_converter.core.config import ConverterConfig
from geo_converter.models.payloads import (
    CleanDataRequest,
    CleanDataResult,
    ExtractPdfRequest,
    PdfExtraction,
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
from geo_converter.providers.factory import (
    _ADAPTER_REGISTRY,
    HTTP,
    get_provider,
    list_providers,
    register_provider,
)
from geo_converter.providers.http import HttpAiProvider

if TYPE_CHECKING:
    from collections.abc import Callable


def _provider(
    config: ConverterConfig,
    handler: Callable[[httpx.Request], httpx.Response],
) -> HttpAiProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpAiProvider(config, client=client)


def _json(status: int, body: Any) -> Callable[[httpx.Request], httpx.Response]:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body)

    return handler


# ---------------------------------------------------------------------------
# ABC enforcement
# ---------------------------------------------------------------------------


class TestABCEnforcement(unittest.TestCase):
    """AiProvider cannot be instantiated without both capabilities."""

    def test_cannot_instantiate_abc(self) -> None:
        with self.assertRaises(TypeError):
            AiProvider(ConverterConfig())  # type: ignore[abstract]

    def test_complete_subclass_works(self) -> None:
        class _Complete(AiProvider):
            async def clean_data(self, request):  # type: ignore[override]
                return CleanDataResult(csv_data="a\n1")

            async def extract_pdf(self, request):  # type: ignore[override]
                return PdfExtraction()

        provider = _Complete(ConverterConfig(), name="stub")
        assert provider.name == "stub"

    def test_name_defaults_to_config(self) -> None:
        class _Complete(AiProvider):
            async def clean_data(self, request):  # type: ignore[override]
                raise NotImplementedError

            async def extract_pdf(self, request):  # type: ignore[override]
                raise NotImplementedError

        assert _Complete(ConverterConfig(ai_provider="custom")).name == "custom"


# ---------------------------------------------------------------------------
# HTTP adapter: cleanup
# ---------------------------------------------------------------------------


class TestHttpCleanData:
    @pytest.mark.asyncio()
    async def test_posts_camel_case_body(self, config: ConverterConfig) -> None:
        seen: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"csvData": "name,lat\nA,1"})

        provider = _provider(config, handler)
        result = await provider.clean_data(
            CleanDataRequest(raw_data="A 1", instructions="keep names")
        )
        await provider.aclose()

        assert result.csv_data == "name,lat\nA,1"
        assert seen["url"] == "http://collaborator.test/clean-data"
        assert seen["body"] == {"rawData": "A 1", "instructions": "keep names"}

    @pytest.mark.asyncio()
    async def test_instructions_omitted_when_absent(self, config: ConverterConfig) -> None:
        seen: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"csvData": "a\n1"})

        await _provider(config, handler).clean_data(CleanDataRequest(raw_data="x"))
        assert seen["body"] == {"rawData": "x"}

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("body", [{"csvData": ""}, {"csvData": "   "}, {}])
    async def test_missing_csv(self, config: ConverterConfig, body: dict[str, Any]) -> None:
        provider = _provider(config, _json(200, body))
        with pytest.raises(ProviderResponseError) as exc_info:
            await provider.clean_data(CleanDataRequest(raw_data="x"))
        assert exc_info.value.message == CLEAN_DATA_FAILED

    @pytest.mark.asyncio()
    async def test_non_object_body_is_contract_error(self, config: ConverterConfig) -> None:
        provider = _provider(config, _json(200, ["a", "b"]))
        with pytest.raises(ProviderContractError):
            await provider.clean_data(CleanDataRequest(raw_data="x"))


# ---------------------------------------------------------------------------
# HTTP adapter: PDF extraction
# ---------------------------------------------------------------------------


class TestHttpExtractPdf:
    @pytest.mark.asyncio()
    async def test_decodes_json_string(self, config: ConverterConfig) -> None:
        seen: dict[str, Any] = {}
        payload = {"text": "Survey notes", "tableRows": [{"id": 1, "lat": 11.5}]}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"jsonString": json.dumps(payload)})

        provider = _provider(config, handler)
        extraction = await provider.extract_pdf(
            ExtractPdfRequest(pdf_data_uri="data:application/pdf;base64,AAAA")
        )

        assert extraction.text == "Survey notes"
        assert extraction.table_rows == [{"id": 1, "lat": 11.5}]
        assert seen["url"] == "http://collaborator.test/extract-pdf"
        assert seen["body"] == {"pdfDataUri": "data:application/pdf;base64,AAAA"}

    @pytest.mark.asyncio()
    async def test_null_fields_default_empty(self, config: ConverterConfig) -> None:
        body = {"jsonString": json.dumps({"text": None, "tableRows": None})}
        extraction = await _provider(config, _json(200, body)).extract_pdf(
            ExtractPdfRequest(pdf_data_uri="data:,")
        )
        assert extraction.text == ""
        assert extraction.table_rows == []

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("json_string", ["{not json", "[1, 2]"])
    async def test_undecodable_json_string(
        self, config: ConverterConfig, json_string: str
    ) -> None:
        provider = _provider(config, _json(200, {"jsonString": json_string}))
        with pytest.raises(ProviderResponseError) as exc_info:
            await provider.extract_pdf(ExtractPdfRequest(pdf_data_uri="data:,"))
        assert exc_info.value.message == INVALID_JSON_RESPONSE

    @pytest.mark.asyncio()
    async def test_wrong_payload_shape(self, config: ConverterConfig) -> None:
        body = {"jsonString": json.dumps({"tableRows": "not a list"})}
        with pytest.raises(ProviderContractError):
            await _provider(config, _json(200, body)).extract_pdf(
                ExtractPdfRequest(pdf_data_uri="data:,")
            )

    @pytest.mark.asyncio()
    async def test_missing_envelope(self, config: ConverterConfig) -> None:
        with pytest.raises(ProviderContractError):
            await _provider(config, _json(200, {"text": "x"})).extract_pdf(
                ExtractPdfRequest(pdf_data_uri="data:,")
            )


# ---------------------------------------------------------------------------
# HTTP adapter: transport errors
# ---------------------------------------------------------------------------


class TestHttpTransport:
    @pytest.mark.asyncio()
    async def test_server_error_is_transient(self, config: ConverterConfig) -> None:
        provider = _provider(config, _json(503, {"error": "busy"}))
        with pytest.raises(ProviderTransientError) as exc_info:
            await provider.clean_data(CleanDataRequest(raw_data="x"))
        assert exc_info.value.retryable is True
        assert "HTTP 503" in exc_info.value.message

    @pytest.mark.asyncio()
    async def test_client_error_is_permanent(self, config: ConverterConfig) -> None:
        provider = _provider(config, _json(400, {"error": "bad input"}))
        with pytest.raises(ProviderResponseError) as exc_info:
            await provider.clean_data(CleanDataRequest(raw_data="x"))
        assert exc_info.value.retryable is False
        assert "HTTP 400" in exc_info.value.message
        assert "bad input" in exc_info.value.message

    @pytest.mark.asyncio()
    async def test_connection_error_is_transient(self, config: ConverterConfig) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderTransientError):
            await _provider(config, handler).clean_data(CleanDataRequest(raw_data="x"))

    @pytest.mark.asyncio()
    async def test_non_json_body(self, config: ConverterConfig) -> None:
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(ProviderResponseError) as exc_info:
            await _provider(config, handler).clean_data(CleanDataRequest(raw_data="x"))
        assert exc_info.value.message == INVALID_JSON_RESPONSE

    @pytest.mark.asyncio()
    async def test_default_client_sends_bearer_token(self, config: ConverterConfig) -> None:
        provider = HttpAiProvider(config)
        client = provider._get_client()
        try:
            assert client.headers["Authorization"] == "Bearer secret"
            assert client.timeout.read == config.ai_timeout_s
        finally:
            await provider.aclose()

    @pytest.mark.asyncio()
    async def test_no_token_without_api_key(self) -> None:
        provider = HttpAiProvider(ConverterConfig(ai_base_url="https://ai.example"))
        try:
            assert "Authorization" not in provider._get_client().headers
        finally:
            await provider.aclose()

    def test_requires_base_url(self, offline_config: ConverterConfig) -> None:
        with pytest.raises(ProviderNotConfiguredError, match="GEO_CONVERTER_AI_URL"):
            HttpAiProvider(offline_config)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestListProviders(unittest.TestCase):
    """list_providers returns known adapters."""

    def test_includes_builtin_provider(self) -> None:
        assert HTTP in list_providers()

    def test_returns_sorted(self) -> None:
        providers = list_providers()
        assert providers == sorted(providers)


class TestGetProvider(unittest.TestCase):
    """get_provider creates the configured adapter instance."""

    def test_http(self) -> None:
        cfg = ConverterConfig(ai_base_url="http://collaborator.test")
        provider = get_provider(HTTP, cfg)
        assert isinstance(provider, HttpAiProvider)
        assert provider.name == HTTP
        assert provider.config is cfg

    def test_name_from_config(self) -> None:
        cfg = ConverterConfig(ai_provider=HTTP, ai_base_url="http://collaborator.test")
        assert get_provider(config=cfg).name == HTTP

    def test_unknown_provider_raises(self) -> None:
        with self.assertRaises(ProviderNotConfiguredError) as ctx:
            get_provider("nonexistent_provider", ConverterConfig())
        assert "nonexistent_provider" in str(ctx.exception)
        assert "Available:" in str(ctx.exception)

    def test_http_without_endpoint(self) -> None:
        with self.assertRaises(ProviderNotConfiguredError) as ctx:
            get_provider(HTTP)
        assert ctx.exception.category == "permanent"


class TestRegisterProvider(unittest.TestCase):
    """register_provider adds custom adapters."""

    def tearDown(self) -> None:
        _ADAPTER_REGISTRY.pop("stub", None)

    def test_register_and_get(self) -> None:
        class _Stub(AiProvider):
            async def clean_data(self, request):  # type: ignore[override]
                return CleanDataResult(csv_data="a\n1")

            async def extract_pdf(self, request):  # type: ignore[override]
                return PdfExtraction()

        register_provider("stub", lambda: _Stub)
        assert "stub" in list_providers()
        provider = get_provider("stub", ConverterConfig())
        assert isinstance(provider, _Stub)
        assert provider.name == "stub"

    def test_empty_name_rejected(self) -> None:
        with self.assertRaises(ValueError):
            register_provider("", lambda: HttpAiProvider)
