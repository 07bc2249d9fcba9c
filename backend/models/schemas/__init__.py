"""Inter-stage Pydantic contracts for the match evaluation pipeline."""

from models.schemas.cv import CVChunk, CVDocument
from models.schemas.enums import (
    ClassificationSource,
    GapSeverity,
    JudgeOutcome,
    JudgeVerdict,
    MatchLevel,
    MatchStatus,
    RuleTarget,
    RuleType,
    Section,
    SimilarityBand,
    SuggestionAction,
)
from models.schemas.evaluation import ChunkMatch, JudgeItem, RuleEvaluation
from models.schemas.report import (
    CategoryScore,
    CVOutcome,
    Gap,
    MatchReport,
    ScoreSummary,
    Suggestion,
)
from models.schemas.rule import ReferenceRule, Rule, RuleSet

__all__ = [
    "CVChunk",
    "CVDocument",
    "CVOutcome",
    "CategoryScore",
    "ChunkMatch",
    "ClassificationSource",
    "Gap",
    "GapSeverity",
    "JudgeItem",
    "JudgeOutcome",
    "JudgeVerdict",
    "MatchLevel",
    "MatchReport",
    "MatchStatus",
    "ReferenceRule",
    "Rule",
    "RuleEvaluation",
    "RuleSet",
    "RuleTarget",
    "RuleType",
    "ScoreSummary",
    "Section",
    "SimilarityBand",
    "Suggestion",
    "SuggestionAction",
]
