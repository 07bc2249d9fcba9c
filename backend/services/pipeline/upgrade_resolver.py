"""Stage 3: Upgrade Resolver - PARTIAL -> FULL on repeated strong evidence.

The only transition this stage makes. A rule is promoted when its best
chunk is AMBIGUOUS, sits in an upgrade-eligible section, and the CV
mentions the concept at least MULTI_MENTION_THRESHOLD distinct times.
"""

import logging
from typing import Any, Sequence

from models.schemas.enums import MatchStatus, SimilarityBand
from models.schemas.evaluation import RuleEvaluation
from services.pipeline.base import BaseModelService
from services.pipeline.similarity_contract import status_score

logger = logging.getLogger(__name__)


class UpgradeResolverService(BaseModelService):
    model_name = "upgrade_resolver"

    def load(self) -> None:
        pass

    def predict(self, **kwargs: Any) -> list[RuleEvaluation]:
        return self.resolve(kwargs["evaluations"])

    def resolve(self, evaluations: Sequence[RuleEvaluation]) -> list[RuleEvaluation]:
        resolved = [self._resolve_one(e) for e in evaluations]
        upgraded = sum(1 for e in resolved if e.upgraded)
        if upgraded:
            logger.info("Upgraded %d of %d rules to FULL", upgraded, len(resolved))
        return resolved

    def is_eligible(self, evaluation: RuleEvaluation) -> bool:
        cfg = self.config
        best = evaluation.best_chunk
        return (
            evaluation.match_status == MatchStatus.PARTIAL
            and evaluation.band == SimilarityBand.AMBIGUOUS
            and best is not None
            and best.section in cfg.upgrade_eligible_sections
            and best.section not in cfg.no_upgrade_sections
            and evaluation.mention_count >= cfg.multi_mention_threshold
        )

    def _resolve_one(self, evaluation: RuleEvaluation) -> RuleEvaluation:
        if not self.is_eligible(evaluation):
            return evaluation
        logger.debug(
            "Rule %s upgraded: %d mentions, best in %s",
            evaluation.rule.id, evaluation.mention_count, evaluation.best_chunk.section.value,
        )
        multiplier = self.config.rule_type_multipliers[evaluation.rule.type]
        return evaluation.model_copy(update={
            "match_status": MatchStatus.FULL,
            "upgraded": True,
            "weighted_score": status_score(MatchStatus.FULL) * multiplier,
        })
