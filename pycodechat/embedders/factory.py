"""Embedder registry keyed by provider name."""

import logging
from typing import Any, Dict, List, Type

from .base import BaseEmbedder
from .sentence_transformers_embedder import SentenceTransformersEmbedder

logger = logging.getLogger(__name__)


class EmbedderFactory:
    """Creates embedders from ``Config.get_embedding_config()`` style settings."""

    _providers: Dict[str, Type[BaseEmbedder]] = {
        "sentence_transformers": SentenceTransformersEmbedder,
    }

    @classmethod
    def register_provider(cls, name: str, embedder_class: Type[BaseEmbedder]) -> None:
        if not (isinstance(embedder_class, type) and issubclass(embedder_class, BaseEmbedder)):
            raise ValueError("Provider class must inherit from BaseEmbedder")
        cls._providers[name] = embedder_class
        logger.info(f"Registered embedding provider: {name}")

    @classmethod
    def from_config(cls, embedding_config: Dict[str, Any]) -> BaseEmbedder:
        """Build the embedder described by an embedding config dict.

        ``provider`` and ``model`` are required; every other key is passed
        to the embedder constructor.

        Raises:
            ValueError: If the provider is not registered
        """
        settings = dict(embedding_config)
        provider = settings.pop("provider")
        model_name = settings.pop("model")

        if provider not in cls._providers:
            raise ValueError(
                f"Unsupported provider '{provider}'. Available: {cls.get_registered_providers()}"
            )

        embedder = cls._providers[provider](model_name, **settings)
        logger.info(f"Created {provider} embedder with model {model_name}")
        return embedder

    @classmethod
    def get_registered_providers(cls) -> List[str]:
        return list(cls._providers)
