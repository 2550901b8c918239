"""Embedding interface for code chunks and search queries.

Code chunks are embedded in batches while a file is indexed; queries are
embedded one at a time while searching. Both come back as unit-length
float32 rows so the inner-product FAISS index scores them by cosine
similarity.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

import numpy as np


class EmbeddingError(Exception):
    """Base exception for embedding operations."""

    pass


class ModelNotFoundError(EmbeddingError):
    """Raised when the requested model cannot be loaded."""

    pass


class ProviderNotAvailableError(EmbeddingError):
    """Raised when provider dependencies are missing."""

    pass


class BaseEmbedder(ABC):
    """Abstract embedder turning code and queries into normalized vectors.

    Subclasses only implement ``_encode``; prompt prefixes, input checks
    and normalization are shared.

    Args:
        model_name: Name of the model to use
        query_prefix: Text prepended to every search query
        document_prefix: Text prepended to every code chunk
    """

    provider_name: str = ""

    def __init__(
        self,
        model_name: str,
        query_prefix: str = "",
        document_prefix: str = "",
        **kwargs,
    ) -> None:
        self.model_name = model_name
        self.query_prefix = query_prefix or ""
        self.document_prefix = document_prefix or ""
        self.options = kwargs

    @abstractmethod
    def _encode(self, texts: List[str]) -> np.ndarray:
        """Encode prepared texts into a ``(len(texts), dimension)`` array."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Release the loaded model."""
        pass

    def embed_documents(self, texts: Sequence[str]) -> np.ndarray:
        """Embed a batch of code chunks.

        Raises:
            EmbeddingError: If the batch is empty, holds blank text or the
                model returns the wrong number of rows
        """
        if not texts:
            raise EmbeddingError("No code chunks provided for embedding")
        prepared = [
            self._prepare(text, self.document_prefix, position)
            for position, text in enumerate(texts)
        ]
        return self._normalize(self._encode(prepared), len(prepared))

    def embed_query(self, text: str) -> np.ndarray:
        """Embed one search query into a ``(dimension,)`` vector."""
        prepared = self._prepare(text, self.query_prefix, 0)
        return self._normalize(self._encode([prepared]), 1)[0]

    @staticmethod
    def _prepare(text: str, prefix: str, position: int) -> str:
        if not isinstance(text, str):
            raise EmbeddingError(f"Text at position {position} is not a string")
        stripped = text.strip()
        if not stripped:
            raise EmbeddingError(f"Text at position {position} is empty")
        return prefix + stripped

    @staticmethod
    def _normalize(vectors: Any, expected_rows: int) -> np.ndarray:
        matrix = np.asarray(vectors, dtype=np.float32)
        if matrix.ndim != 2 or matrix.shape[0] != expected_rows:
            raise EmbeddingError(
                f"Expected {expected_rows} embeddings, model returned shape {matrix.shape}"
            )
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return matrix / norms

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
