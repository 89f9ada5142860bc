"""AI collaborator adapters.

Implements the provider-agnostic adapter pattern:
- AiProvider: Abstract base class defining the cleanup and PDF
  extraction capabilities
- HttpAiProvider: Collaborator service reached over HTTP

The active provider is selected via configuration.
"""

from geo_converter.providers.base import (
    AiProvider,
    ProviderContractError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderResponseError,
    ProviderTransientError,
)
from geo_converter.providers.factory import (
    HTTP,
    get_provider,
    list_providers,
    register_provider,
)

__all__ = [
    "HTTP",
    "AiProvider",
    "ProviderContractError",
    "ProviderError",
    "ProviderNotConfiguredError",
    "ProviderResponseError",
    "ProviderTransientError",
    "get_provider",
    "list_providers",
    "register_provider",
]
