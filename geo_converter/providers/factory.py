"""Provider factory: selects the active AI collaborator adapter by name.

The factory maintains a registry of known adapters. New adapters are
registered with ``register_provider``.

Usage::

    from geo_converter.providers.factory import get_provider

    provider = get_provider("http", config)
    result = await provider.clean_data(request)

The provider name is read from the ``GEO_CONVERTER_AI_PROVIDER``
environment variable via ``ConverterConfig.ai_provider``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geo_converter.core.config import ConverterConfig
from geo_converter.providers.base import AiProvider, ProviderNotConfiguredError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("geo_converter.providers.factory")

# ---------------------------------------------------------------------------
# Provider name constants
# ---------------------------------------------------------------------------

HTTP = "http"

# ---------------------------------------------------------------------------
# Lazy-import adapter registry
# ---------------------------------------------------------------------------

# Each entry maps a provider name to a callable that returns the adapter
# class, so transport dependencies load only when that adapter is selected.

_ADAPTER_REGISTRY: dict[str, Callable[[], type[AiProvider]]] = {}


def _register_builtin_adapters() -> None:
    """Register the built-in provider adapters (lazy import thunks)."""

    def _http() -> type[AiProvider]:
        from geo_converter.providers.http import HttpAiProvider

        return HttpAiProvider

    _ADAPTER_REGISTRY[HTTP] = _http


def _ensure_registry() -> None:
    """Initialise the adapter registry once (idempotent)."""
    if not _ADAPTER_REGISTRY:
        _register_builtin_adapters()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_provider(
    name: str,
    loader: Callable[[], type[AiProvider]],
) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider name (e.g. ``"stub"``).
        loader: A zero-argument callable that returns the adapter class.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Provider name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _ADAPTER_REGISTRY[name] = loader
    logger.debug("Registered AI provider adapter: %s", name)


def get_provider(
    name: str | None = None,
    config: ConverterConfig | None = None,
) -> AiProvider:
    """Create and return an AI provider instance.

    Args:
        name: Provider identifier. Defaults to ``config.ai_provider``.
        config: Converter configuration. Defaults to ``ConverterConfig()``.

    Returns:
        A configured ``AiProvider`` instance.

    Raises:
        ProviderNotConfiguredError: If the named provider is not
            registered or cannot be configured.
    """
    _ensure_registry()
    config = config or ConverterConfig()
    name = name or config.ai_provider

    loader = _ADAPTER_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_ADAPTER_REGISTRY))
        msg = f"Unknown AI provider: {name!r}. Available: {available}"
        raise ProviderNotConfiguredError(provider=name, message=msg)

    adapter_cls = loader()
    logger.info("Creating AI provider: %s", name)
    return adapter_cls(config, name=name)


def list_providers() -> list[str]:
    """Return the names of all registered provider adapters."""
    _ensure_registry()
    return sorted(_ADAPTER_REGISTRY)
