"""Sentence Transformers embedder, the default for the FAISS backend."""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from .base import (
    BaseEmbedder,
    EmbeddingError,
    ModelNotFoundError,
    ProviderNotAvailableError,
)

logger = logging.getLogger(__name__)


def resolve_device(device: Optional[str]) -> str:
    """Map ``auto`` to ``cuda`` when torch sees a GPU, else ``cpu``."""
    if device and device != "auto":
        return device
    try:
        import torch
    except ImportError:
        return "cpu"
    return "cuda" if torch.cuda.is_available() else "cpu"


class SentenceTransformersEmbedder(BaseEmbedder):
    """Embedder backed by a lazily loaded ``SentenceTransformer`` model.

    Args:
        model_name: Hugging Face model id or local path
        device: ``cpu``, ``cuda`` or ``auto``
        batch_size: Chunks encoded per forward pass
    """

    provider_name = "sentence_transformers"

    def __init__(
        self,
        model_name: str,
        device: Optional[str] = "auto",
        batch_size: int = 32,
        **kwargs,
    ) -> None:
        super().__init__(model_name, **kwargs)
        self.device = resolve_device(device)
        self.batch_size = batch_size
        self._model = None
        self._dimension: Optional[int] = None

    def _load_model(self):
        if self._model is not None:
            return self._model

        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise ProviderNotAvailableError(
                "sentence-transformers not installed. Install with: pip install sentence-transformers"
            ) from e

        logger.info(f"Loading sentence-transformers model {self.model_name} on {self.device}")
        try:
            model = SentenceTransformer(self.model_name, device=self.device)
        except OSError as e:
            raise ModelNotFoundError(f"Model '{self.model_name}' could not be loaded: {e}") from e
        except Exception as e:
            raise EmbeddingError(f"Failed to load model '{self.model_name}': {e}") from e

        self._model = model
        self._dimension = int(model.get_sentence_embedding_dimension())
        logger.info(f"Model {self.model_name} ready, embedding dimension {self._dimension}")
        return model

    def _encode(self, texts: List[str]) -> np.ndarray:
        model = self._load_model()
        try:
            return model.encode(
                texts,
                batch_size=self.batch_size,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=True,
            )
        except Exception as e:
            logger.error(f"Encoding {len(texts)} texts with {self.model_name} failed: {e}")
            raise EmbeddingError(f"Failed to embed texts: {e}") from e

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._load_model()
        return self._dimension

    def get_model_info(self) -> Dict[str, Any]:
        info = {
            "provider": self.provider_name,
            "model_name": self.model_name,
            "device": self.device,
            "batch_size": self.batch_size,
            "is_loaded": self._model is not None,
        }
        if self._dimension is not None:
            info["embedding_dimension"] = self._dimension
        return info

    def cleanup(self) -> None:
        if self._model is not None:
            self._model = None
            logger.info(f"Unloaded sentence-transformers model {self.model_name}")
