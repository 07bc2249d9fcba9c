"""Embedding gateway: text -> fixed-dimension vector.

The concrete gateway wraps a SentenceTransformer model (JobBERT-v2 by
default: trained on millions of job postings, 1024-dim embeddings),
loaded lazily on first use.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from config import MatchingConfig
from services.pipeline.base import BaseModelService
from services.pipeline.errors import EmbeddingDimMismatch

logger = logging.getLogger(__name__)


def check_dim(vectors: np.ndarray, expected: int, context: str = "") -> np.ndarray:
    """Raise EmbeddingDimMismatch unless vectors are (n, expected) or (expected,)."""
    actual = vectors.shape[-1] if vectors.ndim else 0
    if actual != expected:
        raise EmbeddingDimMismatch(expected, actual, context)
    return vectors


class EmbeddingGateway(ABC):
    """External capability boundary for the embedding provider."""

    dim: int

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> np.ndarray:
        """Return an (len(texts), dim) array."""

    def embed(self, text: str) -> np.ndarray:
        return self.embed_batch([text])[0]


class SentenceTransformerGateway(BaseModelService, EmbeddingGateway):
    model_name = "embedding_gateway"

    def __init__(self, config: MatchingConfig) -> None:
        super().__init__(config)
        self._encoder = None
        self.dim = config.embedding_dim

    def load(self) -> None:
        from sentence_transformers import SentenceTransformer

        self._encoder = SentenceTransformer(self.config.embedding_model)
        logger.info("Embedding model %s loaded", self.config.embedding_model)

    def predict(self, **kwargs: Any) -> np.ndarray:
        return self.embed_batch(kwargs["texts"])

    def embed_batch(self, texts: list[str]) -> np.ndarray:
        self.ensure_loaded()
        if not texts:
            return np.zeros((0, self.dim), dtype=np.float32)

        # Chunk provider calls independently of how many rules are in flight
        size = self.config.embedding_batch_size
        parts: list[np.ndarray] = []
        for start in range(0, len(texts), size):
            batch = texts[start:start + size]
            parts.append(
                self._encoder.encode(
                    batch,
                    convert_to_numpy=True,
                    normalize_embeddings=True,
                    show_progress_bar=False,
                )
            )
        vectors = np.vstack(parts)
        logger.debug("Embedded %d texts in %d batches", len(texts), len(parts))
        return check_dim(vectors, self.dim, context=self.config.embedding_model)
