"""Terminal output of one evaluation run."""

from pydantic import BaseModel, ConfigDict

from models.schemas.enums import (
    GapSeverity,
    MatchLevel,
    RuleType,
    Section,
    SimilarityBand,
    SuggestionAction,
)
from models.schemas.evaluation import RuleEvaluation
from models.schemas.rule import Rule


class Gap(BaseModel):
    model_config = ConfigDict(frozen=True)

    gap_id: str
    rule: Rule
    severity: GapSeverity
    band: SimilarityBand
    similarity: float | None = None  # None when nothing was returned
    best_chunk_id: str | None = None
    reason: str = ""


class Suggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    suggestion_id: str
    rule: Rule
    action_type: SuggestionAction
    rendered_text: str
    target_chunk_id: str | None = None
    section: Section | None = None


class CategoryScore(BaseModel):
    """Mean status score for one rule type."""
    model_config = ConfigDict(frozen=True)

    rule_type: RuleType
    rule_count: int = 0
    weight: float = 0.0
    score_rate: float = 0.0


class MatchReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    cv_id: str
    rule_set_version: str
    config_fingerprint: str
    weighted_score_rate: float
    must_have_score_rate: float
    match_level: MatchLevel
    category_scores: tuple[CategoryScore, ...] = ()
    evaluations: tuple[RuleEvaluation, ...] = ()
    gaps: tuple[Gap, ...] = ()
    suggestions: tuple[Suggestion, ...] = ()


class CVOutcome(BaseModel):
    """Per-CV result of a multi-CV run: either a report or the failure."""
    model_config = ConfigDict(frozen=True)

    cv_id: str
    report: MatchReport | None = None
    error_type: str | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.report is not None


class ScoreSummary(BaseModel):
    """Aggregator output: the two rates, the level and per-type breakdown."""
    model_config = ConfigDict(frozen=True)

    weighted_score_rate: float
    must_have_score_rate: float
    match_level: MatchLevel
    category_scores: tuple[CategoryScore, ...] = ()
