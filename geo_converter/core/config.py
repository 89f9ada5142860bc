"""Converter configuration loaded from environment variables.

All values have defaults suitable for purely local conversions; the AI
flows only become available once ``GEO_CONVERTER_AI_URL`` points at a
collaborator service.

``from_env()`` raises ``ConfigValidationError`` if any value is out of
its valid range, so bad configuration is caught at startup rather than
in the middle of a conversion.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from geo_converter.core.exceptions import ConverterError

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})
_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


class ConfigValidationError(ConverterError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class ConverterConfig:
    """Immutable converter configuration.

    Attributes:
        ai_provider: Registered AI provider adapter name (``"http"`` by default).
        ai_base_url: Base URL of the AI collaborator service. Empty disables
            the cleanup, AI KML parser and PDF flows.
        ai_api_key: Optional bearer token sent to the collaborator.
        ai_timeout_s: Request timeout for collaborator calls in seconds.
        csv_bom: Prefix downloaded CSV files with a UTF-8 byte order mark.
        log_level: Standard library logging level name.
    """

    ai_provider: str = "http"
    ai_base_url: str = ""
    ai_api_key: str = ""
    ai_timeout_s: float = 120.0
    csv_bom: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ConverterConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or malformed.
            ValueError: If ``GEO_CONVERTER_AI_TIMEOUT_S`` is not a number.
        """
        config = cls(
            ai_provider=os.getenv("GEO_CONVERTER_AI_PROVIDER", "http"),
            ai_base_url=os.getenv("GEO_CONVERTER_AI_URL", "").rstrip("/"),
            ai_api_key=os.getenv("GEO_CONVERTER_AI_API_KEY", ""),
            ai_timeout_s=float(os.getenv("GEO_CONVERTER_AI_TIMEOUT_S", "120")),
            csv_bom=_parse_bool(
                "GEO_CONVERTER_CSV_BOM", os.getenv("GEO_CONVERTER_CSV_BOM", "true")
            ),
            log_level=os.getenv("GEO_CONVERTER_LOG_LEVEL", "INFO").upper(),
        )
        _validate(config)
        return config

    @property
    def ai_enabled(self) -> bool:
        """Whether an AI collaborator endpoint is configured."""
        return bool(self.ai_base_url)

    @property
    def logging_level(self) -> int:
        """Numeric logging level for ``logging.basicConfig``."""
        return logging.getLevelName(self.log_level)  # type: ignore[no-any-return]


def _parse_bool(key: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigValidationError(key, raw, "must be a boolean (true/false)")


def _validate(config: ConverterConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.ai_timeout_s <= 0:
        raise ConfigValidationError(
            "GEO_CONVERTER_AI_TIMEOUT_S",
            config.ai_timeout_s,
            "must be > 0 (seconds)",
        )

    if not config.ai_provider:
        raise ConfigValidationError(
            "GEO_CONVERTER_AI_PROVIDER",
            config.ai_provider,
            "must not be empty",
        )

    if config.ai_base_url and not config.ai_base_url.startswith(("http://", "https://")):
        raise ConfigValidationError(
            "GEO_CONVERTER_AI_URL",
            config.ai_base_url,
            "must be an http:// or https:// URL",
        )

    if config.log_level not in _LOG_LEVELS:
        raise ConfigValidationError(
            "GEO_CONVERTER_LOG_LEVEL",
            config.log_level,
            f"must be one of {', '.join(sorted(_LOG_LEVELS))}",
        )
