"""Stage 2-4 output: per-rule semantic evidence and match status."""

from pydantic import BaseModel, ConfigDict

from models.schemas.enums import (
    JudgeOutcome,
    MatchStatus,
    Section,
    SimilarityBand,
)
from models.schemas.rule import Rule


class ChunkMatch(BaseModel):
    """One nearest-neighbour chunk returned for a rule."""
    model_config = ConfigDict(frozen=True)

    chunk_id: str
    section: Section
    order: int = 0
    score: float  # cosine similarity


class RuleEvaluation(BaseModel):
    """Evidence and decision for one rule against one CV.

    Created by the semantic evaluator, replaced once by the upgrade
    resolver (status only) and at most once by the judge step.
    """
    model_config = ConfigDict(frozen=True)

    rule: Rule
    best_chunk: ChunkMatch | None = None
    similarity_score: float = 0.0
    band: SimilarityBand
    match_status: MatchStatus
    mention_count: int = 0
    candidates: tuple[ChunkMatch, ...] = ()
    upgraded: bool = False
    judge_outcome: JudgeOutcome = JudgeOutcome.NOT_REQUESTED
    weighted_score: float = 0.0  # status score x rule-type multiplier


class JudgeItem(BaseModel):
    """A residual ambiguous rule/chunk pair queued for the LLM judge."""
    model_config = ConfigDict(frozen=True)

    cv_id: str
    rule_id: str
    rule_text: str
    chunk_id: str
    chunk_text: str
    section: Section
