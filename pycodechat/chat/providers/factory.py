"""Chat provider factory for PyCodeChat.

Providers are registered by name; registry order is the fallback order used
when no preferred provider is configured.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from .anthropic import AnthropicProvider
from .base import ChatProvider, UnknownProviderError
from .google import GoogleProvider
from .openai import OpenAIProvider
from .openrouter import OpenRouterProvider

logger = logging.getLogger(__name__)


class ProviderFactory:
    """Factory class for creating chat providers."""

    _providers: Dict[str, Type[ChatProvider]] = {
        "openai": OpenAIProvider,
        "anthropic": AnthropicProvider,
        "google": GoogleProvider,
        "openrouter": OpenRouterProvider,
    }

    @classmethod
    def register_provider(cls, name: str, provider_class: Type[ChatProvider]) -> None:
        if not issubclass(provider_class, ChatProvider):
            raise ValueError("Provider class must inherit from ChatProvider")

        cls._providers[name] = provider_class
        logger.info(f"Registered chat provider: {name}")

    @classmethod
    def create_provider(
        cls, name: str, config: Optional[Dict[str, Any]] = None
    ) -> ChatProvider:
        """Create a chat provider instance.

        Args:
            name: Registered provider name
            config: Provider settings (api_key, model, max_tokens,
                temperature, timeout, base_url)

        Raises:
            UnknownProviderError: If the name is not registered
        """
        if name not in cls._providers:
            raise UnknownProviderError(f"Unknown provider: {name}", name)
        return cls._providers[name](config or {})

    @classmethod
    def get_available_providers(cls) -> List[Dict[str, str]]:
        return [
            {"name": name, "display_name": provider_class.display_name}
            for name, provider_class in cls._providers.items()
        ]

    @classmethod
    def get_configured_providers(cls, config) -> List[Dict[str, Any]]:
        """List registered providers with their configuration state.

        Args:
            config: Object exposing ``get_provider_config(name)``, usually
                the server Config
        """
        providers = []
        for info in cls.get_available_providers():
            provider = cls.create_provider(
                info["name"], config.get_provider_config(info["name"])
            )
            providers.append({**info, "is_configured": provider.is_configured()})
        return providers
