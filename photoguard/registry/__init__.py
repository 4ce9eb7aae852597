"""
Registry module: provider metadata and adapter construction.

Public API:
- ProviderMetadata: Pydantic model for provider description
- ProviderRegistry: Central registry class (fallback order)
- get_provider_registry: Singleton accessor function
- create_adapters: Build configured adapters from Settings
"""

from photoguard.registry.providers import (
    ProviderMetadata,
    ProviderRegistry,
    create_adapters,
    get_provider_registry,
)

__all__ = [
    "ProviderMetadata",
    "ProviderRegistry",
    "get_provider_registry",
    "create_adapters",
]
