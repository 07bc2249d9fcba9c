"""Stage 4: LLM Judge - adjudicate residual ambiguous rule/chunk pairs.

Only evaluations still PARTIAL after the upgrade step are sent. Items
from any number of CVs are pooled into batches of at most
LLM_JUDGE_BATCH_SIZE; batches run concurrently up to
LLM_JUDGE_MAX_CONCURRENCY, each bounded by LLM_JUDGE_TIMEOUT_SECONDS.

The judge is an oracle, never a dependency: on timeout, error, an
unparseable or incomplete response, the deterministic PARTIAL status is
kept and the item is marked UNAVAILABLE.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

from config import MatchingConfig
from models.schemas.cv import CVDocument
from models.schemas.enums import JudgeOutcome, JudgeVerdict, MatchStatus
from models.schemas.evaluation import JudgeItem, RuleEvaluation
from services.pipeline.base import BaseModelService
from services.pipeline.errors import JudgeUnavailable
from services.pipeline.similarity_contract import status_score

logger = logging.getLogger(__name__)

_VERDICT_TO_STATUS = {
    JudgeVerdict.SUPPORTS: MatchStatus.FULL,
    JudgeVerdict.DOES_NOT_SUPPORT: MatchStatus.NONE,
}
_VERDICT_TO_OUTCOME = {
    JudgeVerdict.SUPPORTS: JudgeOutcome.SUPPORTS,
    JudgeVerdict.DOES_NOT_SUPPORT: JudgeOutcome.DOES_NOT_SUPPORT,
}


class LLMJudge(ABC):
    """External capability boundary for binary evidence adjudication."""

    @abstractmethod
    def adjudicate(self, items: Sequence[JudgeItem]) -> list[JudgeVerdict | None]:
        """Return one verdict per item, in order; None where none was given."""


class GeminiJudge(LLMJudge):
    def __init__(self, api_key: str, model: str) -> None:
        from services.gemini_client import GeminiClient

        self._client = GeminiClient(api_key=api_key, model=model)

    def adjudicate(self, items: Sequence[JudgeItem]) -> list[JudgeVerdict | None]:
        if not items:
            return []
        payload = self._client.generate_json(build_batch_prompt(items))
        return parse_batch_verdicts(payload, len(items))


def build_batch_prompt(items: Sequence[JudgeItem]) -> str:
    lines = [
        "You are a strict evaluator checking whether CV content provides evidence",
        "for a job requirement. For each numbered comparison decide whether the CV",
        "excerpt SUPPORTS the requirement or DOES_NOT_SUPPORT it.",
        "",
        "Rules:",
        "- Judge only the excerpt shown; do not assume anything beyond it.",
        "- Related but different skills or vague mentions do not support a requirement.",
        "- Do not rate the CV overall and do not suggest changes.",
        "",
    ]
    for i, item in enumerate(items):
        lines.extend([
            f"### Comparison {i}",
            f"Requirement: {item.rule_text}",
            f"CV section: {item.section.value}",
            f"CV excerpt: {item.chunk_text}",
            "",
        ])
    lines.extend([
        "Respond with ONLY a JSON array, one object per comparison:",
        '[{"id": 0, "verdict": "SUPPORTS" | "DOES_NOT_SUPPORT"}]',
    ])
    return "\n".join(lines)


def parse_batch_verdicts(payload: Any, expected: int) -> list[JudgeVerdict | None]:
    """Map a JSON array of {id, verdict} objects onto item positions.

    Unknown ids, duplicate ids and unrecognised verdicts are ignored; the
    affected positions stay None.
    """
    if isinstance(payload, dict):
        payload = payload.get("results", payload.get("verdicts"))
    if not isinstance(payload, list):
        raise JudgeUnavailable("Judge response is not a JSON array")

    verdicts: list[JudgeVerdict | None] = [None] * expected
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        idx = entry.get("id")
        raw = str(entry.get("verdict", "")).strip().upper()
        if not isinstance(idx, int) or not 0 <= idx < expected or verdicts[idx] is not None:
            continue
        try:
            verdicts[idx] = JudgeVerdict(raw)
        except ValueError:
            logger.debug("Ignoring unknown verdict %r for item %d", raw, idx)
    return verdicts


class LLMJudgeService(BaseModelService):
    model_name = "llm_judge"

    def __init__(self, config: MatchingConfig, judge: LLMJudge | None = None) -> None:
        super().__init__(config)
        self._judge = judge

    def load(self) -> None:
        if not self.config.llm_judge_enabled or self._judge is not None:
            return
        try:
            self._judge = GeminiJudge(self.config.gemini_api_key, self.config.llm_judge_model)
            logger.info("LLM judge using %s", self.config.llm_judge_model)
        except JudgeUnavailable as e:
            logger.warning("LLM judge enabled but unavailable: %s", e)

    def predict(self, **kwargs: Any) -> list[list[RuleEvaluation]]:
        return asyncio.run(self.adjudicate(kwargs["runs"]))

    async def adjudicate(
        self,
        runs: Sequence[tuple[CVDocument, Sequence[RuleEvaluation]]],
    ) -> list[list[RuleEvaluation]]:
        """Apply judge verdicts to every CV's evaluations.

        Returns one list per run, aligned with the input.
        """
        results = [list(evaluations) for _, evaluations in runs]
        if not self.config.llm_judge_enabled:
            return results
        self.ensure_loaded()

        positions: list[tuple[int, int]] = []
        items: list[JudgeItem] = []
        for run_idx, (cv, evaluations) in enumerate(runs):
            for eval_idx, evaluation in enumerate(evaluations):
                item = _to_item(cv, evaluation)
                if item is not None:
                    positions.append((run_idx, eval_idx))
                    items.append(item)
        if not items:
            return results

        if self._judge is None:
            verdicts: list[JudgeVerdict | None] = [None] * len(items)
        else:
            verdicts = await self._run_batches(items)

        for (run_idx, eval_idx), verdict in zip(positions, verdicts):
            results[run_idx][eval_idx] = self._apply(results[run_idx][eval_idx], verdict)

        resolved = sum(1 for v in verdicts if v is not None)
        logger.info("LLM judge resolved %d of %d ambiguous items", resolved, len(items))
        return results

    async def _run_batches(self, items: list[JudgeItem]) -> list[JudgeVerdict | None]:
        size = self.config.llm_judge_batch_size
        batches = [items[i:i + size] for i in range(0, len(items), size)]
        semaphore = asyncio.Semaphore(self.config.llm_judge_max_concurrency)

        async def _run(batch_idx: int, batch: list[JudgeItem]) -> list[JudgeVerdict | None]:
            async with semaphore:
                try:
                    verdicts = await asyncio.wait_for(
                        asyncio.to_thread(self._judge.adjudicate, batch),
                        timeout=self.config.llm_judge_timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    logger.warning(
                        "Judge batch %d timed out after %.1fs; keeping deterministic status",
                        batch_idx, self.config.llm_judge_timeout_seconds,
                    )
                    return [None] * len(batch)
                except Exception as e:
                    logger.warning(
                        "Judge batch %d failed (%s); keeping deterministic status", batch_idx, e
                    )
                    return [None] * len(batch)

            verdicts = list(verdicts)[:len(batch)]
            if len(verdicts) < len(batch):
                logger.warning(
                    "Judge batch %d returned %d of %d verdicts", batch_idx, len(verdicts), len(batch)
                )
                verdicts.extend([None] * (len(batch) - len(verdicts)))
            return verdicts

        per_batch = await asyncio.gather(*(_run(i, b) for i, b in enumerate(batches)))
        return [v for batch_verdicts in per_batch for v in batch_verdicts]

    def _apply(self, evaluation: RuleEvaluation, verdict: JudgeVerdict | None) -> RuleEvaluation:
        if verdict is None:
            return evaluation.model_copy(update={"judge_outcome": JudgeOutcome.UNAVAILABLE})
        status = _VERDICT_TO_STATUS[verdict]
        multiplier = self.config.rule_type_multipliers[evaluation.rule.type]
        return evaluation.model_copy(update={
            "match_status": status,
            "judge_outcome": _VERDICT_TO_OUTCOME[verdict],
            "weighted_score": status_score(status) * multiplier,
        })


def _to_item(cv: CVDocument, evaluation: RuleEvaluation) -> JudgeItem | None:
    if evaluation.match_status != MatchStatus.PARTIAL or evaluation.best_chunk is None:
        return None
    chunk = cv.chunk(evaluation.best_chunk.chunk_id)
    if chunk is None:
        return None
    return JudgeItem(
        cv_id=cv.cv_id,
        rule_id=evaluation.rule.id,
        rule_text=evaluation.rule.text,
        chunk_id=chunk.id,
        chunk_text=chunk.text,
        section=chunk.section,
    )
