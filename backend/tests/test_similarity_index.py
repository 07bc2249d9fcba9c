"""Tests for the in-memory similarity index."""

import numpy as np
import pytest

from conftest import DIM, basis, vector_at
from models.schemas.enums import Section
from services.pipeline.errors import EmbeddingDimMismatch, MissingEmbeddings
from services.similarity_index import InMemorySimilarityIndex


@pytest.fixture
def index():
    return InMemorySimilarityIndex(DIM)


class TestInMemorySimilarityIndex:
    def test_query_descending(self, index, make_cv):
        cv = make_cv("cv-1", [
            ("c1", Section.SKILLS, vector_at(0.4, 1)),
            ("c2", Section.PROJECTS, vector_at(0.9, 2)),
            ("c3", Section.EXPERIENCE, vector_at(0.6, 3)),
        ])
        assert index.add(cv) == 3
        hits = index.query(np.asarray(basis(0)), "cv-1", k=5)
        assert [h[0] for h in hits] == ["c2", "c3", "c1"]
        assert hits[0][1] == pytest.approx(0.9)

    def test_query_respects_k(self, index, make_cv):
        cv = make_cv("cv-1", [(f"c{i}", Section.SKILLS, vector_at(0.1 * i, i)) for i in range(1, 6)])
        index.add(cv)
        assert len(index.query(np.asarray(basis(0)), "cv-1", k=2)) == 2

    def test_equal_scores_follow_cv_order(self, index, make_cv):
        cv = make_cv("cv-1", [
            ("b", Section.SKILLS, vector_at(0.7, 1)),
            ("a", Section.SKILLS, vector_at(0.7, 2)),
        ])
        index.add(cv)
        hits = index.query(np.asarray(basis(0)), "cv-1", k=2)
        assert [h[0] for h in hits] == ["b", "a"]

    def test_unknown_scope_raises(self, index):
        with pytest.raises(MissingEmbeddings):
            index.query(np.asarray(basis(0)), "nope", k=3)

    def test_cv_without_embeddings_leaves_scope_empty(self, index, make_cv):
        cv = make_cv("cv-1", [("c1", Section.SKILLS, None)])
        assert index.add(cv) == 0
        assert index.size("cv-1") == 0
        with pytest.raises(MissingEmbeddings):
            index.query(np.asarray(basis(0)), "cv-1", k=3)

    def test_unembedded_chunks_are_skipped(self, index, make_cv):
        cv = make_cv("cv-1", [
            ("c1", Section.SKILLS, None),
            ("c2", Section.SKILLS, basis(0)),
        ])
        assert index.add(cv) == 1

    def test_chunk_dim_mismatch(self, index, make_cv):
        cv = make_cv("cv-1", [("c1", Section.SKILLS, (1.0, 0.0, 0.0))])
        with pytest.raises(EmbeddingDimMismatch):
            index.add(cv)

    def test_query_dim_mismatch(self, index, make_cv):
        index.add(make_cv("cv-1", [("c1", Section.SKILLS, basis(0))]))
        with pytest.raises(EmbeddingDimMismatch):
            index.query(np.ones(3), "cv-1", k=1)

    def test_scopes_are_isolated(self, index, make_cv):
        index.add(make_cv("cv-1", [("c1", Section.SKILLS, basis(0))]))
        index.add(make_cv("cv-2", [("c9", Section.SKILLS, basis(1))]))
        assert [h[0] for h in index.query(np.asarray(basis(0)), "cv-2", k=5)] == ["c9"]

    def test_remove(self, index, make_cv):
        index.add(make_cv("cv-1", [("c1", Section.SKILLS, basis(0))]))
        index.remove("cv-1")
        assert index.size("cv-1") == 0

    def test_mixed_chunk_dims(self, index, make_cv):
        cv = make_cv("cv-1", [
            ("c1", Section.SKILLS, basis(0)),
            ("c2", Section.SKILLS, (1.0, 0.0)),
        ])
        with pytest.raises(EmbeddingDimMismatch) as exc:
            index.add(cv)
        assert exc.value.actual == 2
        assert index.size("cv-1") == 0

    def test_ties_at_k_follow_section_order(self, index, make_cv):
        cv = make_cv("cv-1", [
            ("s1", Section.SUMMARY, vector_at(0.7, 1)),
            ("k1", Section.SKILLS, vector_at(0.7, 2)),
            ("e1", Section.EXPERIENCE, vector_at(0.7, 3)),
        ])
        index.add(cv)
        hits = index.query(np.asarray(basis(0)), "cv-1", k=2)
        assert [h[0] for h in hits] == ["e1", "k1"]
