"""Stage 2: Semantic Evaluator - rule vs CV chunk similarity and banding.

For each rule the top MATCH_TOP_K chunks of the CV are retrieved, ordered
deterministically, and the best score is mapped onto a similarity band
and a match status. Rules are evaluated independently in a bounded
thread pool; results come back in rule order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Sequence

import numpy as np

from config import MatchingConfig
from models.schemas.cv import CVDocument
from models.schemas.evaluation import ChunkMatch, RuleEvaluation
from models.schemas.rule import Rule
from services.embedding import EmbeddingGateway, check_dim
from services.pipeline.base import BaseModelService
from services.pipeline.errors import EvaluationFailed, MissingEmbeddings
from services.pipeline.similarity_contract import (
    classify_band,
    sort_candidates,
    status_for_band,
    status_score,
)
from services.similarity_index import InMemorySimilarityIndex, SimilarityIndex

logger = logging.getLogger(__name__)


class SemanticEvaluatorService(BaseModelService):
    model_name = "semantic_evaluator"

    def __init__(self, config: MatchingConfig, embedder: EmbeddingGateway | None = None) -> None:
        super().__init__(config)
        self._embedder = embedder

    def load(self) -> None:
        if self._embedder is None:
            logger.info("No embedder attached; rules must carry precomputed embeddings")

    def predict(self, **kwargs: Any) -> list[RuleEvaluation]:
        return self.evaluate(kwargs["rules"], kwargs["cv"], index=kwargs.get("index"))

    def evaluate(
        self,
        rules: Sequence[Rule],
        cv: CVDocument,
        index: SimilarityIndex | None = None,
    ) -> list[RuleEvaluation]:
        """Evaluate every rule against one CV.

        When no index is given, an in-memory index is built from the CV's
        own chunk embeddings. Raises MissingEmbeddings for a CV without
        embedded chunks and EmbeddingDimMismatch for mis-sized vectors.
        """
        self.ensure_loaded()
        if not cv.embedded_chunks:
            raise MissingEmbeddings(cv.cv_id)

        unit_vectors = _unit_chunk_vectors(cv, self.config.embedding_dim)
        if index is None:
            memory_index = InMemorySimilarityIndex(self.config.embedding_dim)
            memory_index.add(cv)
            index = memory_index

        rule_vectors = self._rule_vectors(rules)

        def _evaluate_one(pair: tuple[Rule, np.ndarray]) -> RuleEvaluation:
            rule, vector = pair
            return self._evaluate_rule(rule, vector, cv, index, unit_vectors)

        with ThreadPoolExecutor(max_workers=self.config.max_rule_workers) as pool:
            evaluations = list(pool.map(_evaluate_one, zip(rules, rule_vectors)))

        logger.info("Evaluated %d rules against CV %s", len(evaluations), cv.cv_id)
        return evaluations

    def _rule_vectors(self, rules: Sequence[Rule]) -> list[np.ndarray]:
        """Reuse embeddings from classification; embed the rest in one batch."""
        vectors: list[np.ndarray | None] = [
            np.asarray(r.embedding, dtype=np.float64) if r.embedding is not None else None
            for r in rules
        ]
        missing = [i for i, v in enumerate(vectors) if v is None]
        if missing:
            if self._embedder is None:
                raise EvaluationFailed(
                    f"{len(missing)} rules have no embedding and no embedder is configured"
                )
            fresh = np.asarray(self._embedder.embed_batch([rules[i].text for i in missing]))
            check_dim(fresh, self.config.embedding_dim, context="rule texts")
            for i, vector in zip(missing, fresh):
                vectors[i] = np.asarray(vector, dtype=np.float64)

        for rule, vector in zip(rules, vectors):
            check_dim(vector, self.config.embedding_dim, context=f"rule {rule.id}")
        return vectors

    def _evaluate_rule(
        self,
        rule: Rule,
        vector: np.ndarray,
        cv: CVDocument,
        index: SimilarityIndex,
        unit_vectors: dict[str, np.ndarray],
    ) -> RuleEvaluation:
        cfg = self.config
        hits = index.query(vector, cv.cv_id, cfg.match_top_k)

        matches = []
        for chunk_id, score in hits:
            chunk = cv.chunk(chunk_id)
            if chunk is None:
                logger.warning("Index returned unknown chunk %s for CV %s", chunk_id, cv.cv_id)
                continue
            matches.append(ChunkMatch(
                chunk_id=chunk_id, section=chunk.section, order=chunk.order, score=score,
            ))
        candidates = sort_candidates(matches)

        best = candidates[0] if candidates else None
        similarity = best.score if best else 0.0
        band = classify_band(similarity, cfg.sim_floor, cfg.sim_low_threshold, cfg.sim_high_threshold)
        status = status_for_band(band)
        mentions = count_distinct_mentions(
            candidates,
            unit_vectors,
            cfg.multi_mention_high_similarity,
            cfg.dedup_similarity_threshold,
        )

        logger.debug(
            "Rule %s: best=%.4f chunk=%s band=%s mentions=%d",
            rule.id, similarity, best.chunk_id if best else None, band.value, mentions,
        )
        return RuleEvaluation(
            rule=rule,
            best_chunk=best,
            similarity_score=similarity,
            band=band,
            match_status=status,
            mention_count=mentions,
            candidates=tuple(candidates),
            weighted_score=status_score(status) * cfg.rule_type_multipliers[rule.type],
        )


def count_distinct_mentions(
    candidates: Sequence[ChunkMatch],
    unit_vectors: dict[str, np.ndarray],
    min_similarity: float,
    dedup_threshold: float,
) -> int:
    """Count qualifying candidates, collapsing near-duplicate chunks.

    Candidates are walked in tie-break order; one whose chunk is at least
    dedup_threshold similar to an already kept chunk is not counted.
    """
    kept: list[np.ndarray] = []
    for match in candidates:
        if match.score < min_similarity:
            continue
        vector = unit_vectors.get(match.chunk_id)
        if vector is None:
            continue
        if any(float(np.dot(vector, other)) >= dedup_threshold for other in kept):
            continue
        kept.append(vector)
    return len(kept)


def _unit_chunk_vectors(cv: CVDocument, dim: int) -> dict[str, np.ndarray]:
    vectors = {}
    for chunk in cv.embedded_chunks:
        vector = check_dim(
            np.asarray(chunk.embedding, dtype=np.float64), dim, context=f"chunk {chunk.id}"
        )
        norm = np.linalg.norm(vector)
        vectors[chunk.id] = vector / norm if norm else vector
    return vectors
