"""Embedders package for PyCodeChat.

Provides the embedding abstraction used by the FAISS vector backend.
"""

from .base import (
    BaseEmbedder,
    EmbeddingError,
    ModelNotFoundError,
    ProviderNotAvailableError,
)
from .factory import EmbedderFactory
from .sentence_transformers_embedder import SentenceTransformersEmbedder

__all__ = [
    "BaseEmbedder",
    "EmbedderFactory",
    "EmbeddingError",
    "ModelNotFoundError",
    "ProviderNotAvailableError",
    "SentenceTransformersEmbedder",
]
