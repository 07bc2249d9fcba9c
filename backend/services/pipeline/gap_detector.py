"""Stage 6: Gap Detector - flag insufficiently evidenced requirements.

Only MUST_HAVE and NICE_TO_HAVE rules whose final status is NONE or
NO_EVIDENCE produce a gap; severity comes from the GAP_SEVERITY table.
"""

import logging
from typing import Any, Sequence

from models.schemas.enums import JudgeOutcome, MatchStatus
from models.schemas.evaluation import RuleEvaluation
from models.schemas.report import Gap
from services.pipeline.base import BaseModelService

logger = logging.getLogger(__name__)

_GAP_STATUSES = (MatchStatus.NONE, MatchStatus.NO_EVIDENCE)


class GapDetectorService(BaseModelService):
    model_name = "gap_detector"

    def load(self) -> None:
        pass

    def predict(self, **kwargs: Any) -> list[Gap]:
        return self.detect(kwargs["evaluations"])

    def detect(self, evaluations: Sequence[RuleEvaluation]) -> list[Gap]:
        table = self.config.gap_severity
        gaps: list[Gap] = []
        for e in evaluations:
            if e.match_status not in _GAP_STATUSES:
                continue
            severity = table.get(e.rule.type, {}).get(e.match_status)
            if severity is None:
                continue
            gaps.append(Gap(
                gap_id=f"gap-{len(gaps) + 1:03d}",
                rule=e.rule,
                severity=severity,
                band=e.band,
                similarity=e.similarity_score if e.best_chunk else None,
                best_chunk_id=e.best_chunk.chunk_id if e.best_chunk else None,
                reason=_reason(e),
            ))
        logger.debug("Detected %d gaps", len(gaps))
        return gaps


def _reason(e: RuleEvaluation) -> str:
    if e.best_chunk is None:
        return "No CV content was found for this requirement."
    if e.match_status == MatchStatus.NO_EVIDENCE:
        return (
            f"Closest CV content ({e.best_chunk.section.value}) is unrelated "
            f"(similarity {e.similarity_score:.2f})."
        )
    if e.judge_outcome == JudgeOutcome.DOES_NOT_SUPPORT:
        return (
            f"CV content in {e.best_chunk.section.value} was judged not to support "
            "this requirement."
        )
    return (
        f"CV content in {e.best_chunk.section.value} only weakly relates to this "
        f"requirement (similarity {e.similarity_score:.2f})."
    )
