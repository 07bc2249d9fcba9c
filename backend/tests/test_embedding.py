"""Tests for the embedding gateway."""

import numpy as np
import pytest

from conftest import DIM
from services.embedding import SentenceTransformerGateway, check_dim
from services.pipeline.errors import EmbeddingDimMismatch


class _FakeEncoder:
    def __init__(self, dim: int) -> None:
        self.dim = dim
        self.batches: list[list[str]] = []

    def encode(self, texts, **kwargs):
        self.batches.append(list(texts))
        return np.ones((len(texts), self.dim), dtype=np.float32)


def _gateway(config, encoder) -> SentenceTransformerGateway:
    gw = SentenceTransformerGateway(config)
    gw._encoder = encoder
    gw._loaded = True
    return gw


class TestCheckDim:
    def test_matching_dim(self):
        vectors = np.zeros((3, DIM))
        assert check_dim(vectors, DIM) is vectors

    def test_single_vector(self):
        check_dim(np.zeros(DIM), DIM)

    def test_mismatch(self):
        with pytest.raises(EmbeddingDimMismatch) as exc:
            check_dim(np.zeros((2, 4)), DIM, context="test")
        assert exc.value.expected == DIM
        assert exc.value.actual == 4


class TestSentenceTransformerGateway:
    def test_batches_by_configured_size(self, make_config):
        encoder = _FakeEncoder(DIM)
        gw = _gateway(make_config(embedding_batch_size=2), encoder)
        vectors = gw.embed_batch(["a", "b", "c", "d", "e"])
        assert vectors.shape == (5, DIM)
        assert [len(b) for b in encoder.batches] == [2, 2, 1]

    def test_empty_input(self, config):
        gw = _gateway(config, _FakeEncoder(DIM))
        assert gw.embed_batch([]).shape == (0, DIM)

    def test_embed_single(self, config):
        gw = _gateway(config, _FakeEncoder(DIM))
        assert gw.embed("python").shape == (DIM,)

    def test_wrong_provider_dim(self, config):
        gw = _gateway(config, _FakeEncoder(DIM + 1))
        with pytest.raises(EmbeddingDimMismatch):
            gw.embed_batch(["python"])

    def test_predict(self, config):
        gw = _gateway(config, _FakeEncoder(DIM))
        assert gw.predict(texts=["a", "b"]).shape == (2, DIM)


@pytest.mark.integration
class TestJobBertGateway:
    def test_real_model_dimension(self, make_config):
        gw = SentenceTransformerGateway(make_config(embedding_dim=1024))
        vectors = gw.embed_batch(["Python developer", "Built REST APIs with FastAPI"])
        assert vectors.shape == (2, 1024)
        assert np.allclose(np.linalg.norm(vectors, axis=1), 1.0, atol=1e-3)
