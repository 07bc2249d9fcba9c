from pydantic import BaseModel


class CategoryScoreResponse(BaseModel):
    rule_type: str
    rule_count: int = 0
    weight: float = 0.0
    score_rate: float = 0.0


class RuleEvaluationResponse(BaseModel):
    rule_id: str
    rule_type: str
    rule_text: str
    target: str = "default"
    concept_label: str = ""
    classification_source: str = ""
    best_chunk_id: str | None = None
    best_section: str | None = None
    similarity_score: float = 0.0
    band: str
    match_status: str
    mention_count: int = 0
    upgraded: bool = False
    judge_outcome: str = "NOT_REQUESTED"
    weighted_score: float = 0.0


class GapResponse(BaseModel):
    gap_id: str
    rule_id: str
    rule_type: str
    concept_label: str
    severity: str
    band: str
    similarity: float | None = None
    best_chunk_id: str | None = None
    reason: str = ""


class SuggestionResponse(BaseModel):
    suggestion_id: str
    rule_id: str
    action_type: str
    text: str
    target_chunk_id: str | None = None
    section: str | None = None


class MatchReportResponse(BaseModel):
    cv_id: str
    rule_set_version: str
    config_fingerprint: str
    weighted_score_rate: float = 0.0
    must_have_score_rate: float = 0.0
    match_level: str
    category_scores: list[CategoryScoreResponse] = []
    evaluations: list[RuleEvaluationResponse] = []
    gaps: list[GapResponse] = []
    suggestions: list[SuggestionResponse] = []


class CVOutcomeResponse(BaseModel):
    cv_id: str
    ok: bool = True
    report: MatchReportResponse | None = None
    error_type: str | None = None
    error_message: str | None = None
