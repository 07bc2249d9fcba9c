"""Stage 7: Suggestion Generator - templated, evidence-oriented advice.

PARTIAL -> EXPAND_BULLET, NONE/NO_EVIDENCE -> ADD_BULLET, FULL -> nothing.
Templates are keyed by (action, rule type, target) with a per-type default;
only the rule's concept label is ever substituted.
"""

import logging
from typing import Any, Sequence

from models.schemas.enums import MatchStatus, RuleTarget, Section, SuggestionAction
from models.schemas.evaluation import RuleEvaluation
from models.schemas.report import Suggestion
from models.schemas.rule import Rule
from services.pipeline.base import BaseModelService

logger = logging.getLogger(__name__)

_STATUS_TO_ACTION = {
    MatchStatus.PARTIAL: SuggestionAction.EXPAND_BULLET,
    MatchStatus.NONE: SuggestionAction.ADD_BULLET,
    MatchStatus.NO_EVIDENCE: SuggestionAction.ADD_BULLET,
}

_TARGET_SECTION = {
    RuleTarget.PROJECT: Section.PROJECTS,
    RuleTarget.SKILLS: Section.SKILLS,
    RuleTarget.EXPERIENCE: Section.EXPERIENCE,
}


class SuggestionGeneratorService(BaseModelService):
    model_name = "suggestion_generator"

    def load(self) -> None:
        pass

    def predict(self, **kwargs: Any) -> list[Suggestion]:
        return self.generate(kwargs["evaluations"])

    def generate(self, evaluations: Sequence[RuleEvaluation]) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        for e in evaluations:
            action = _STATUS_TO_ACTION.get(e.match_status)
            if action is None:
                continue

            expand = action == SuggestionAction.EXPAND_BULLET and e.best_chunk is not None
            if expand:
                target_chunk_id, section = e.best_chunk.chunk_id, e.best_chunk.section
            else:
                target_chunk_id, section = None, _TARGET_SECTION.get(e.rule.target)

            suggestions.append(Suggestion(
                suggestion_id=f"sug-{len(suggestions) + 1:03d}",
                rule=e.rule,
                action_type=action,
                rendered_text=self.render(action, e.rule),
                target_chunk_id=target_chunk_id,
                section=section,
            ))
        logger.debug("Generated %d suggestions", len(suggestions))
        return suggestions

    def render(self, action: SuggestionAction, rule: Rule) -> str:
        templates = self.config.suggestion_templates[action][rule.type]
        template = templates.get(rule.target, templates[RuleTarget.DEFAULT])
        return template.replace("{label}", rule.concept_label)
