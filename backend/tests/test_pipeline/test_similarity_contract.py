"""Tests for the similarity contract: bands, statuses, tie-break order."""

import numpy as np
import pytest

from models.schemas.enums import MatchStatus, Section, SimilarityBand
from models.schemas.evaluation import ChunkMatch
from services.pipeline.similarity_contract import (
    BAND_TO_MATCH_STATUS,
    MATCH_STATUS_SCORES,
    classify_band,
    sort_candidates,
    status_for_band,
    status_score,
)

FLOOR, LOW, HIGH = 0.3, 0.5, 0.8


class TestClassifyBand:
    @pytest.mark.parametrize("similarity,band", [
        (0.92, SimilarityBand.HIGH),
        (0.8, SimilarityBand.HIGH),
        (0.79, SimilarityBand.AMBIGUOUS),
        (0.55, SimilarityBand.AMBIGUOUS),
        (0.5, SimilarityBand.AMBIGUOUS),
        (0.49, SimilarityBand.LOW),
        (0.3, SimilarityBand.LOW),
        (0.29, SimilarityBand.NO_EVIDENCE),
        (0.2, SimilarityBand.NO_EVIDENCE),
        (0.0, SimilarityBand.NO_EVIDENCE),
        (-0.4, SimilarityBand.NO_EVIDENCE),
    ])
    def test_boundaries(self, similarity, band):
        assert classify_band(similarity, FLOOR, LOW, HIGH) == band

    def test_total_over_unit_interval(self):
        for s in np.linspace(0.0, 1.0, 1001):
            band = classify_band(float(s), FLOOR, LOW, HIGH)
            assert band in BAND_TO_MATCH_STATUS

    def test_monotone_in_similarity(self):
        order = [
            SimilarityBand.NO_EVIDENCE,
            SimilarityBand.LOW,
            SimilarityBand.AMBIGUOUS,
            SimilarityBand.HIGH,
        ]
        ranks = [order.index(classify_band(float(s), FLOOR, LOW, HIGH)) for s in np.linspace(0, 1, 201)]
        assert ranks == sorted(ranks)


class TestStatusTables:
    def test_band_to_status(self):
        assert status_for_band(SimilarityBand.HIGH) == MatchStatus.FULL
        assert status_for_band(SimilarityBand.AMBIGUOUS) == MatchStatus.PARTIAL
        assert status_for_band(SimilarityBand.LOW) == MatchStatus.NONE
        assert status_for_band(SimilarityBand.NO_EVIDENCE) == MatchStatus.NO_EVIDENCE

    def test_every_band_and_status_mapped(self):
        assert set(BAND_TO_MATCH_STATUS) == set(SimilarityBand)
        assert set(MATCH_STATUS_SCORES) == set(MatchStatus)

    def test_scores(self):
        assert status_score(MatchStatus.FULL) == 1.0
        assert status_score(MatchStatus.PARTIAL) == 0.5
        assert status_score(MatchStatus.NONE) == 0.0
        assert status_score(MatchStatus.NO_EVIDENCE) == 0.0


class TestSortCandidates:
    def _match(self, chunk_id, section, score, order=0):
        return ChunkMatch(chunk_id=chunk_id, section=section, order=order, score=score)

    def test_score_first(self):
        ranked = sort_candidates([
            self._match("a", Section.EXPERIENCE, 0.6),
            self._match("b", Section.SUMMARY, 0.7),
        ])
        assert [m.chunk_id for m in ranked] == ["b", "a"]

    def test_section_weight_breaks_ties(self):
        ranked = sort_candidates([
            self._match("s", Section.SUMMARY, 0.7),
            self._match("k", Section.SKILLS, 0.7),
            self._match("p", Section.PROJECTS, 0.7),
        ])
        assert ranked[0].chunk_id == "p"
        assert [m.chunk_id for m in ranked][1:] == ["k", "s"]

    def test_priority_breaks_equal_weights(self):
        ranked = sort_candidates([
            self._match("p", Section.PROJECTS, 0.7),
            self._match("e", Section.EXPERIENCE, 0.7),
        ])
        assert [m.chunk_id for m in ranked] == ["e", "p"]

    def test_order_then_id(self):
        ranked = sort_candidates([
            self._match("z", Section.SKILLS, 0.7, order=2),
            self._match("y", Section.SKILLS, 0.7, order=1),
            self._match("x", Section.SKILLS, 0.7, order=2),
        ])
        assert [m.chunk_id for m in ranked] == ["y", "x", "z"]
