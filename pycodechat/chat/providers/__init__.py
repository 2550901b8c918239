"""LLM chat providers for PyCodeChat."""

from .anthropic import AnthropicProvider
from .base import (
    ChatMessage,
    ChatProvider,
    ChatResponse,
    ChatUsage,
    ProviderError,
    ProviderNotConfiguredError,
    UnknownProviderError,
)
from .factory import ProviderFactory
from .google import GoogleProvider
from .openai import OpenAIProvider
from .openrouter import OpenRouterProvider

__all__ = [
    "AnthropicProvider",
    "ChatMessage",
    "ChatProvider",
    "ChatResponse",
    "ChatUsage",
    "GoogleProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "ProviderError",
    "ProviderFactory",
    "ProviderNotConfiguredError",
    "UnknownProviderError",
]
