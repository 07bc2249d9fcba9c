"""Shared test configuration, pytest markers and pipeline fixtures.

Vectors live in an 8-dim space. The rule axis is e0; a chunk built with
vector_at(s, axis) has cosine similarity s with e0, and two such chunks
on distinct axes have similarity s1 * s2 with each other.
"""

import math
import time
from typing import Sequence

import numpy as np
import pytest

from config import MatchingConfig
from models.schemas.cv import CVChunk, CVDocument
from models.schemas.enums import JudgeVerdict, RuleTarget, RuleType, Section
from models.schemas.evaluation import JudgeItem
from models.schemas.rule import Rule
from services.embedding import EmbeddingGateway
from services.pipeline.llm_judge import LLMJudge

DIM = 8


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: loads real embedding models (slow, downloads weights)"
    )


def basis(axis: int) -> tuple[float, ...]:
    v = [0.0] * DIM
    v[axis] = 1.0
    return tuple(v)


def vector_at(similarity: float, axis: int) -> tuple[float, ...]:
    """Unit vector with the given cosine similarity to e0, tilted towards axis."""
    v = [0.0] * DIM
    v[0] = similarity
    v[axis] = math.sqrt(max(0.0, 1.0 - similarity * similarity))
    return tuple(v)


class StubEmbedder(EmbeddingGateway):
    """Deterministic embedder: fixed vectors per text, e0 for anything unknown."""

    def __init__(self, vectors: dict[str, Sequence[float]] | None = None, dim: int = DIM) -> None:
        self.dim = dim
        self.vectors = dict(vectors or {})
        self.calls: list[list[str]] = []

    def embed_batch(self, texts: list[str]) -> np.ndarray:
        self.calls.append(list(texts))
        return np.asarray(
            [self.vectors.get(t, basis(0) + (0.0,) * (self.dim - DIM)) for t in texts],
            dtype=np.float64,
        )


class StubJudge(LLMJudge):
    """Judge returning a fixed verdict, or raising / sleeping on demand."""

    def __init__(
        self,
        verdict: JudgeVerdict | None = JudgeVerdict.SUPPORTS,
        error: Exception | None = None,
        delay: float = 0.0,
        verdicts: dict[str, JudgeVerdict] | None = None,
    ) -> None:
        self.verdict = verdict
        self.error = error
        self.delay = delay
        self.verdicts = verdicts or {}
        self.batches: list[list[JudgeItem]] = []

    def adjudicate(self, items: Sequence[JudgeItem]) -> list[JudgeVerdict | None]:
        self.batches.append(list(items))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [self.verdicts.get(item.rule_id, self.verdict) for item in items]


@pytest.fixture
def make_config():
    def _make(**overrides) -> MatchingConfig:
        values = {
            "embedding_dim": DIM,
            "semantic_classification_enabled": False,
            "llm_judge_enabled": False,
            "gemini_api_key": "",
            "_env_file": None,
        }
        values.update(overrides)
        return MatchingConfig(**values)
    return _make


@pytest.fixture
def config(make_config) -> MatchingConfig:
    return make_config()


@pytest.fixture
def make_rule():
    def _make(
        rule_id: str = "rule-001",
        rule_type: RuleType = RuleType.MUST_HAVE,
        text: str = "Python programming",
        target: RuleTarget = RuleTarget.DEFAULT,
        label: str = "Python programming",
        embedding: Sequence[float] | None = basis(0),
    ) -> Rule:
        return Rule(
            id=rule_id,
            type=rule_type,
            text=text,
            target=target,
            concept_label=label,
            embedding=tuple(embedding) if embedding is not None else None,
        )
    return _make


@pytest.fixture
def make_cv():
    def _make(cv_id: str, chunks: Sequence[tuple[str, Section, Sequence[float] | None]]) -> CVDocument:
        """chunks: (chunk_id, section, embedding) in CV order."""
        return CVDocument(
            cv_id=cv_id,
            chunks=tuple(
                CVChunk(
                    id=chunk_id,
                    section=section,
                    text=f"{section.value.lower()} content {chunk_id}",
                    embedding=tuple(embedding) if embedding is not None else None,
                    order=i,
                )
                for i, (chunk_id, section, embedding) in enumerate(chunks)
            ),
        )
    return _make
