"""Tests for Stage 6: Gap Detector."""

import itertools

import pytest

from conftest import vector_at
from models.schemas.enums import GapSeverity, MatchStatus, RuleType, Section, SimilarityBand
from models.schemas.evaluation import ChunkMatch, RuleEvaluation
from services.pipeline.gap_detector import GapDetectorService
from services.pipeline.semantic_evaluator import SemanticEvaluatorService

_BAND_FOR = {
    MatchStatus.FULL: SimilarityBand.HIGH,
    MatchStatus.PARTIAL: SimilarityBand.AMBIGUOUS,
    MatchStatus.NONE: SimilarityBand.LOW,
    MatchStatus.NO_EVIDENCE: SimilarityBand.NO_EVIDENCE,
}


@pytest.fixture
def detector(config):
    return GapDetectorService(config)


@pytest.fixture
def evaluation(make_rule):
    def _make(rule_type, status, rule_id="rule-001", with_chunk=True):
        return RuleEvaluation(
            rule=make_rule(rule_id=rule_id, rule_type=rule_type),
            best_chunk=ChunkMatch(chunk_id="c1", section=Section.SKILLS, score=0.4) if with_chunk else None,
            similarity_score=0.4 if with_chunk else 0.0,
            band=_BAND_FOR[status],
            match_status=status,
        )
    return _make


class TestSeverityTable:
    @pytest.mark.parametrize("rule_type,status,severity", [
        (RuleType.MUST_HAVE, MatchStatus.NO_EVIDENCE, GapSeverity.CRITICAL_SKILL_GAP),
        (RuleType.MUST_HAVE, MatchStatus.NONE, GapSeverity.MAJOR_GAP),
        (RuleType.NICE_TO_HAVE, MatchStatus.NO_EVIDENCE, GapSeverity.MAJOR_GAP),
        (RuleType.NICE_TO_HAVE, MatchStatus.NONE, GapSeverity.MINOR_GAP),
    ])
    def test_severity(self, detector, evaluation, rule_type, status, severity):
        [gap] = detector.detect([evaluation(rule_type, status)])
        assert gap.severity == severity
        assert gap.band == _BAND_FOR[status]

    def test_nice_to_have_without_evidence(self, config, detector, make_rule, make_cv):
        cv = make_cv("cv-1", [("c1", Section.SKILLS, vector_at(0.2, 1))])
        rule = make_rule(rule_type=RuleType.NICE_TO_HAVE)
        [evaluated] = SemanticEvaluatorService(config).evaluate([rule], cv)
        assert evaluated.match_status == MatchStatus.NO_EVIDENCE
        [gap] = detector.detect([evaluated])
        assert gap.severity == GapSeverity.MAJOR_GAP
        assert gap.similarity == pytest.approx(0.2)
        assert gap.best_chunk_id == "c1"


class TestExclusivity:
    def test_no_gap_for_best_practice_partial_or_full(self, detector, evaluation):
        evaluations = [
            evaluation(rule_type, status, rule_id=f"rule-{i:03d}")
            for i, (rule_type, status) in enumerate(itertools.product(list(RuleType), list(MatchStatus)))
        ]
        gaps = detector.detect(evaluations)
        assert len(gaps) == 4
        for gap in gaps:
            assert gap.rule.type != RuleType.BEST_PRACTICE
        by_rule = {e.rule.id: e for e in evaluations}
        for gap in gaps:
            assert by_rule[gap.rule.id].match_status in (MatchStatus.NONE, MatchStatus.NO_EVIDENCE)


class TestGapFields:
    def test_sequential_ids(self, detector, evaluation):
        gaps = detector.detect([
            evaluation(RuleType.MUST_HAVE, MatchStatus.NONE, "rule-001"),
            evaluation(RuleType.MUST_HAVE, MatchStatus.FULL, "rule-002"),
            evaluation(RuleType.NICE_TO_HAVE, MatchStatus.NONE, "rule-003"),
        ])
        assert [g.gap_id for g in gaps] == ["gap-001", "gap-002"]
        assert [g.rule.id for g in gaps] == ["rule-001", "rule-003"]

    def test_no_chunk(self, detector, evaluation):
        [gap] = detector.detect([evaluation(RuleType.MUST_HAVE, MatchStatus.NO_EVIDENCE, with_chunk=False)])
        assert gap.similarity is None
        assert gap.best_chunk_id is None
        assert gap.reason

    def test_reason_mentions_section(self, detector, evaluation):
        [gap] = detector.detect([evaluation(RuleType.MUST_HAVE, MatchStatus.NONE)])
        assert "SKILLS" in gap.reason
