"""Pipeline orchestrator: wires the match stages together.

Flow:
    JD statements + CV(s)
      ├─ RuleExtractor.extract(statements)             → RuleSet   (once per run)
      │       ↓
      ├─ per CV, concurrently (MAX_CONCURRENT_CVS):
      │     SemanticEvaluator.evaluate(rules, cv)       → [RuleEvaluation]
      │     UpgradeResolver.resolve(evaluations)        → [RuleEvaluation]
      │       ↓
      ├─ LLMJudge.adjudicate(all CVs' PARTIAL items)    → [RuleEvaluation] per CV
      │       ↓
      ├─ per CV:
      │     Aggregator.aggregate(evaluations)           → ScoreSummary
      │     GapDetector.detect(evaluations)             → [Gap]
      │     SuggestionGenerator.generate(evaluations)   → [Suggestion]
      │       ↓
      └─ MatchReport  ── to_response() ──→  MatchReportResponse

A failing CV (MissingEmbeddings, EmbeddingDimMismatch, EvaluationFailed)
is reported in its own CVOutcome and never affects the others.
"""

import asyncio
import logging
from typing import Sequence

from models.responses import (
    CategoryScoreResponse,
    CVOutcomeResponse,
    GapResponse,
    MatchReportResponse,
    RuleEvaluationResponse,
    SuggestionResponse,
)
from models.schemas.cv import CVDocument
from models.schemas.evaluation import RuleEvaluation
from models.schemas.report import CVOutcome, MatchReport
from models.schemas.rule import RuleSet
from services.pipeline.errors import EvaluationFailed, MatchingError
from services.pipeline.registry import StageRegistry

logger = logging.getLogger(__name__)


async def evaluate_cv(
    statements: Sequence[str],
    cv: CVDocument,
    registry: StageRegistry,
) -> MatchReport:
    """Evaluate one CV against one JD. Pipeline errors propagate to the caller."""
    rule_set = await asyncio.to_thread(extract_rules, statements, registry)
    evaluations = await asyncio.to_thread(_evaluate_deterministic, rule_set, cv, registry)

    judge = registry.get("llm_judge")
    [evaluations] = await judge.adjudicate([(cv, evaluations)])

    return _build_report(rule_set, cv, evaluations, registry)


async def evaluate_cvs(
    statements: Sequence[str],
    cvs: Sequence[CVDocument],
    registry: StageRegistry,
) -> list[CVOutcome]:
    """Evaluate several CVs against one JD, isolating per-CV failures.

    Outcomes are returned in input order.
    """
    try:
        rule_set = await asyncio.to_thread(extract_rules, statements, registry)
    except EvaluationFailed as e:
        logger.warning("Rule extraction failed for all %d CVs: %s", len(cvs), e)
        return [_failed(cv.cv_id, e) for cv in cvs]

    semaphore = asyncio.Semaphore(registry.config.max_concurrent_cvs)

    async def _deterministic(cv: CVDocument) -> list[RuleEvaluation] | MatchingError:
        async with semaphore:
            try:
                return await asyncio.to_thread(_evaluate_deterministic, rule_set, cv, registry)
            except MatchingError as e:
                logger.warning("CV %s failed during evaluation: %s", cv.cv_id, e)
                return e

    stage_results = await asyncio.gather(*(_deterministic(cv) for cv in cvs))

    # Judge items from every surviving CV are pooled into shared batches
    survivors = [
        (i, cv, result)
        for i, (cv, result) in enumerate(zip(cvs, stage_results))
        if not isinstance(result, MatchingError)
    ]
    judge = registry.get("llm_judge")
    judged = await judge.adjudicate([(cv, evals) for _, cv, evals in survivors])

    outcomes: list[CVOutcome | None] = [None] * len(cvs)
    for i, (cv, result) in enumerate(zip(cvs, stage_results)):
        if isinstance(result, MatchingError):
            outcomes[i] = _failed(cv.cv_id, result)
    for (i, cv, _), evaluations in zip(survivors, judged):
        try:
            outcomes[i] = CVOutcome(
                cv_id=cv.cv_id,
                report=_build_report(rule_set, cv, evaluations, registry),
            )
        except MatchingError as e:
            logger.warning("CV %s failed during aggregation: %s", cv.cv_id, e)
            outcomes[i] = _failed(cv.cv_id, e)

    ok = sum(1 for o in outcomes if o.ok)
    logger.info("Evaluated %d CVs: %d succeeded, %d failed", len(cvs), ok, len(cvs) - ok)
    return outcomes


def extract_rules(statements: Sequence[str], registry: StageRegistry) -> RuleSet:
    rule_set = registry.get("rule_extractor").extract(statements)
    if not rule_set.rules:
        raise EvaluationFailed("No rules could be extracted from the job description")
    return rule_set


def _evaluate_deterministic(
    rule_set: RuleSet,
    cv: CVDocument,
    registry: StageRegistry,
) -> list[RuleEvaluation]:
    evaluations = registry.get("semantic_evaluator").evaluate(rule_set.rules, cv)
    return registry.get("upgrade_resolver").resolve(evaluations)


def _build_report(
    rule_set: RuleSet,
    cv: CVDocument,
    evaluations: Sequence[RuleEvaluation],
    registry: StageRegistry,
) -> MatchReport:
    summary = registry.get("aggregator").aggregate(evaluations)
    gaps = registry.get("gap_detector").detect(evaluations)
    suggestions = registry.get("suggestion_generator").generate(evaluations)

    return MatchReport(
        cv_id=cv.cv_id,
        rule_set_version=rule_set.rule_set_version,
        config_fingerprint=registry.config.fingerprint(),
        weighted_score_rate=summary.weighted_score_rate,
        must_have_score_rate=summary.must_have_score_rate,
        match_level=summary.match_level,
        category_scores=summary.category_scores,
        evaluations=tuple(evaluations),
        gaps=tuple(gaps),
        suggestions=tuple(suggestions),
    )


def _failed(cv_id: str, error: MatchingError) -> CVOutcome:
    return CVOutcome(cv_id=cv_id, error_type=type(error).__name__, error_message=str(error))


def to_response(report: MatchReport) -> MatchReportResponse:
    """Map a MatchReport to the MatchReportResponse output schema."""
    return MatchReportResponse(
        cv_id=report.cv_id,
        rule_set_version=report.rule_set_version,
        config_fingerprint=report.config_fingerprint,
        weighted_score_rate=round(report.weighted_score_rate, 4),
        must_have_score_rate=round(report.must_have_score_rate, 4),
        match_level=report.match_level.value,
        category_scores=[
            CategoryScoreResponse(
                rule_type=c.rule_type.value,
                rule_count=c.rule_count,
                weight=c.weight,
                score_rate=round(c.score_rate, 4),
            )
            for c in report.category_scores
        ],
        evaluations=[
            RuleEvaluationResponse(
                rule_id=e.rule.id,
                rule_type=e.rule.type.value,
                rule_text=e.rule.text,
                target=e.rule.target.value,
                concept_label=e.rule.concept_label,
                classification_source=e.rule.classification_source.value,
                best_chunk_id=e.best_chunk.chunk_id if e.best_chunk else None,
                best_section=e.best_chunk.section.value if e.best_chunk else None,
                similarity_score=round(e.similarity_score, 4),
                band=e.band.value,
                match_status=e.match_status.value,
                mention_count=e.mention_count,
                upgraded=e.upgraded,
                judge_outcome=e.judge_outcome.value,
                weighted_score=round(e.weighted_score, 4),
            )
            for e in report.evaluations
        ],
        gaps=[
            GapResponse(
                gap_id=g.gap_id,
                rule_id=g.rule.id,
                rule_type=g.rule.type.value,
                concept_label=g.rule.concept_label,
                severity=g.severity.value,
                band=g.band.value,
                similarity=round(g.similarity, 4) if g.similarity is not None else None,
                best_chunk_id=g.best_chunk_id,
                reason=g.reason,
            )
            for g in report.gaps
        ],
        suggestions=[
            SuggestionResponse(
                suggestion_id=s.suggestion_id,
                rule_id=s.rule.id,
                action_type=s.action_type.value,
                text=s.rendered_text,
                target_chunk_id=s.target_chunk_id,
                section=s.section.value if s.section else None,
            )
            for s in report.suggestions
        ],
    )


def to_outcome_response(outcome: CVOutcome) -> CVOutcomeResponse:
    return CVOutcomeResponse(
        cv_id=outcome.cv_id,
        ok=outcome.ok,
        report=to_response(outcome.report) if outcome.report else None,
        error_type=outcome.error_type,
        error_message=outcome.error_message,
    )
