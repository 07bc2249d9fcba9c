"""Nearest-neighbour search over one CV's embedded chunks.

SimilarityIndex is the boundary to the vector search engine. The
in-memory implementation keeps one matrix per CV scope and ranks by
cosine similarity; it backs tests and single-process runs.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as sklearn_cosine

from models.schemas.cv import CVDocument
from services.embedding import check_dim
from services.pipeline.errors import EmbeddingDimMismatch, MissingEmbeddings
from services.pipeline.similarity_contract import SECTION_PRIORITY, SECTION_WEIGHTS

logger = logging.getLogger(__name__)


class SimilarityIndex(ABC):
    @abstractmethod
    def query(self, vector: np.ndarray, scope: str, k: int) -> list[tuple[str, float]]:
        """Return up to k (chunk_id, score) pairs, descending by score.

        Equal scores follow the candidate tie-break order (section weight,
        section priority, CV order, chunk id). Raises MissingEmbeddings
        when the scope holds no embedded chunks.
        """


class InMemorySimilarityIndex(SimilarityIndex):
    def __init__(self, dim: int) -> None:
        self.dim = dim
        self._ids: dict[str, list[str]] = {}
        self._keys: dict[str, list[tuple]] = {}
        self._matrices: dict[str, np.ndarray] = {}

    def add(self, cv: CVDocument) -> int:
        """Index every embedded chunk of a CV, replacing any previous scope."""
        chunks = cv.embedded_chunks
        self.remove(cv.cv_id)
        if not chunks:
            logger.warning("CV %s has no embedded chunks; scope left empty", cv.cv_id)
            return 0

        for c in chunks:
            if len(c.embedding) != self.dim:
                raise EmbeddingDimMismatch(self.dim, len(c.embedding), f"chunk {c.id}")
        matrix = np.asarray([c.embedding for c in chunks], dtype=np.float64)
        self._ids[cv.cv_id] = [c.id for c in chunks]
        self._keys[cv.cv_id] = [
            (-SECTION_WEIGHTS[c.section], SECTION_PRIORITY[c.section], c.order, c.id)
            for c in chunks
        ]
        self._matrices[cv.cv_id] = matrix
        logger.debug("Indexed %d chunks for CV %s", len(chunks), cv.cv_id)
        return len(chunks)

    def remove(self, scope: str) -> None:
        self._ids.pop(scope, None)
        self._keys.pop(scope, None)
        self._matrices.pop(scope, None)

    def size(self, scope: str) -> int:
        return len(self._ids.get(scope, []))

    def query(self, vector: np.ndarray, scope: str, k: int) -> list[tuple[str, float]]:
        matrix = self._matrices.get(scope)
        if matrix is None:
            raise MissingEmbeddings(scope)

        query = np.asarray(vector, dtype=np.float64).reshape(1, -1)
        check_dim(query, matrix.shape[1], context=f"query against CV {scope}")
        scores = sklearn_cosine(query, matrix)[0]

        keys = self._keys[scope]
        order = sorted(range(len(scores)), key=lambda i: (-scores[i], keys[i]))[:k]
        ids = self._ids[scope]
        return [(ids[i], float(scores[i])) for i in order]
