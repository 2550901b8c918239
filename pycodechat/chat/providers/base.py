"""Base chat provider interface and error hierarchy."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT = 60.0


class ProviderError(Exception):
    """Base exception for chat provider errors."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ProviderNotConfiguredError(ProviderError):
    """Raised when a provider is used without credentials."""

    pass


class UnknownProviderError(ProviderError):
    """Raised when a provider name is not registered."""

    pass


@dataclass
class ChatMessage:
    role: str  # "system", "user" or "assistant"
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatUsage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatResponse:
    content: str
    usage: Optional[ChatUsage] = None


class ChatProvider(ABC):
    """Abstract base class for LLM chat providers.

    Subclasses set ``name``, ``display_name`` and ``default_model`` and
    implement ``_build_request`` and ``_parse_response``; the HTTP round trip
    is shared.
    """

    name: str = ""
    display_name: str = ""
    default_model: str = ""

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        config = config or {}
        self.api_key: Optional[str] = config.get("api_key")
        self.model: str = config.get("model") or self.default_model
        self.max_tokens: int = config.get("max_tokens", DEFAULT_MAX_TOKENS)
        self.temperature: float = config.get("temperature", DEFAULT_TEMPERATURE)
        self.timeout: float = config.get("timeout", DEFAULT_TIMEOUT)
        self.base_url: Optional[str] = config.get("base_url")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @abstractmethod
    def _build_request(self, messages: List[ChatMessage]) -> Dict[str, Any]:
        """Return ``requests.post`` keyword arguments (url, headers, json)."""
        pass

    @abstractmethod
    def _parse_response(self, data: Dict[str, Any]) -> ChatResponse:
        pass

    def chat(self, messages: List[ChatMessage]) -> ChatResponse:
        """Send a chat completion request.

        Raises:
            ProviderNotConfiguredError: If no API key is set
            ProviderError: On transport errors, non-2xx responses or
                malformed response bodies
        """
        if not self.is_configured():
            raise ProviderNotConfiguredError(
                f"{self.display_name} API key not configured", self.name
            )

        request = self._build_request(messages)
        logger.debug(f"Sending {len(messages)} messages to {self.name} ({self.model})")
        try:
            response = requests.post(timeout=self.timeout, **request)
        except requests.RequestException as e:
            raise ProviderError(f"{self.display_name} request failed: {e}", self.name) from e

        if not response.ok:
            raise ProviderError(
                f"{self.display_name} API error: {response.status_code} {response.reason}",
                self.name,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                f"{self.display_name} returned invalid JSON: {e}", self.name
            ) from e

        try:
            return self._parse_response(data)
        except (KeyError, AttributeError, TypeError, IndexError) as e:
            raise ProviderError(
                f"{self.display_name} returned an unexpected response: {e!r}", self.name
            ) from e

    def get_provider_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "model": self.model,
            "configured": self.is_configured(),
        }
