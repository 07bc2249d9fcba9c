"""Stage 5: Aggregator - join point turning rule evaluations into rates and a level.

    weighted_score_rate  = sum(score * W[type]) / sum(W[type])   over rules present
    must_have_score_rate = mean score over MUST_HAVE rules        (1.0 if none)
    match_level          = first of STRONG, GOOD, PARTIAL whose both thresholds
                           are reached, else LOW_MATCH

Sums use math.fsum and rates are rounded to RATE_PRECISION decimals, so a
rate equal to a threshold reaches it whatever the rule order.
"""

import logging
import math
from typing import Any, Sequence

from models.schemas.enums import MatchLevel, RuleType
from models.schemas.evaluation import RuleEvaluation
from models.schemas.report import CategoryScore, ScoreSummary
from services.pipeline.base import BaseModelService
from services.pipeline.errors import EvaluationFailed
from services.pipeline.similarity_contract import status_score

logger = logging.getLogger(__name__)

_LEVEL_ORDER = [MatchLevel.STRONG_MATCH, MatchLevel.GOOD_MATCH, MatchLevel.PARTIAL_MATCH]

# Rates are reported and compared at a fixed number of decimals
RATE_PRECISION = 9


class AggregatorService(BaseModelService):
    model_name = "aggregator"

    def load(self) -> None:
        pass

    def predict(self, **kwargs: Any) -> ScoreSummary:
        return self.aggregate(kwargs["evaluations"])

    def aggregate(self, evaluations: Sequence[RuleEvaluation]) -> ScoreSummary:
        if not evaluations:
            raise EvaluationFailed("No rules to aggregate")

        weights = self.config.rule_type_weights
        numerator = math.fsum(status_score(e.match_status) * weights[e.rule.type] for e in evaluations)
        denominator = math.fsum(weights[e.rule.type] for e in evaluations)
        if denominator <= 0:
            raise EvaluationFailed("Rule type weights of the rules present sum to zero")
        weighted_rate = round_rate(numerator / denominator)

        categories = []
        for rule_type in RuleType:
            scores = [status_score(e.match_status) for e in evaluations if e.rule.type == rule_type]
            categories.append(CategoryScore(
                rule_type=rule_type,
                rule_count=len(scores),
                weight=weights[rule_type],
                score_rate=round_rate(math.fsum(scores) / len(scores)) if scores else 0.0,
            ))

        must_have = next(c for c in categories if c.rule_type == RuleType.MUST_HAVE)
        # No MUST_HAVE rules means nothing mandatory is missing
        must_have_rate = must_have.score_rate if must_have.rule_count else 1.0

        level = self.match_level(weighted_rate, must_have_rate)
        logger.info(
            "Aggregated %d rules: weighted=%.4f must_have=%.4f level=%s",
            len(evaluations), weighted_rate, must_have_rate, level.value,
        )
        return ScoreSummary(
            weighted_score_rate=weighted_rate,
            must_have_score_rate=must_have_rate,
            match_level=level,
            category_scores=tuple(categories),
        )

    def match_level(self, weighted_rate: float, must_have_rate: float) -> MatchLevel:
        thresholds = self.config.match_level_thresholds
        weighted_rate = round_rate(weighted_rate)
        must_have_rate = round_rate(must_have_rate)
        for level in _LEVEL_ORDER:
            pair = thresholds[level]
            if weighted_rate >= pair.weighted_score_rate and must_have_rate >= pair.must_have_score_rate:
                return level
        return MatchLevel.LOW_MATCH


def round_rate(value: float) -> float:
    return round(value, RATE_PRECISION)
