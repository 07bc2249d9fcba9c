"""Lazy-loading stage registry bound to one MatchingConfig.

Stages are created on first access with deferred imports and loaded
once. A registry never outlives its configuration: runs with different
thresholds use different registries, so nothing is shared implicitly.
"""

import logging
import threading
from typing import TYPE_CHECKING, Sequence

from config import MatchingConfig
from models.schemas.rule import ReferenceRule
from services.embedding import EmbeddingGateway
from services.pipeline.base import BaseModelService
from services.pipeline.reference_rules import DEFAULT_REFERENCE_RULES

if TYPE_CHECKING:
    from services.pipeline.llm_judge import LLMJudge

logger = logging.getLogger(__name__)

STAGE_NAMES = (
    "rule_extractor",
    "semantic_evaluator",
    "upgrade_resolver",
    "llm_judge",
    "aggregator",
    "gap_detector",
    "suggestion_generator",
)


class StageRegistry:
    def __init__(
        self,
        config: MatchingConfig,
        embedder: EmbeddingGateway | None = None,
        judge: "LLMJudge | None" = None,
        reference_rules: Sequence[ReferenceRule] = DEFAULT_REFERENCE_RULES,
    ) -> None:
        self.config = config
        self._embedder = embedder
        self._judge = judge
        self._reference_rules = tuple(reference_rules)
        self._stages: dict[str, BaseModelService] = {}
        self._lock = threading.Lock()

    @property
    def embedder(self) -> EmbeddingGateway:
        """The injected gateway, or a SentenceTransformer one created on demand."""
        if self._embedder is None:
            with self._lock:
                if self._embedder is None:
                    from services.embedding import SentenceTransformerGateway
                    self._embedder = SentenceTransformerGateway(self.config)
        return self._embedder

    def _create_stage(self, name: str) -> BaseModelService:
        """Factory: create a stage by name with deferred imports."""
        if name == "rule_extractor":
            from services.pipeline.rule_extractor import RuleExtractorService
            embedder = self.embedder if self.config.semantic_classification_enabled else None
            return RuleExtractorService(self.config, embedder, self._reference_rules)
        elif name == "semantic_evaluator":
            from services.pipeline.semantic_evaluator import SemanticEvaluatorService
            return SemanticEvaluatorService(self.config, self.embedder)
        elif name == "upgrade_resolver":
            from services.pipeline.upgrade_resolver import UpgradeResolverService
            return UpgradeResolverService(self.config)
        elif name == "llm_judge":
            from services.pipeline.llm_judge import LLMJudgeService
            return LLMJudgeService(self.config, self._judge)
        elif name == "aggregator":
            from services.pipeline.aggregator import AggregatorService
            return AggregatorService(self.config)
        elif name == "gap_detector":
            from services.pipeline.gap_detector import GapDetectorService
            return GapDetectorService(self.config)
        elif name == "suggestion_generator":
            from services.pipeline.suggestion_generator import SuggestionGeneratorService
            return SuggestionGeneratorService(self.config)
        else:
            raise ValueError(f"Unknown stage: {name}")

    def get(self, name: str) -> BaseModelService:
        """Get a stage by name, creating and loading it on first access."""
        with self._lock:
            svc = self._stages.get(name)
        if svc is None:
            svc = self._create_stage(name)
            with self._lock:
                svc = self._stages.setdefault(name, svc)
        svc.ensure_loaded()
        return svc

    def preload(self, *names: str) -> None:
        """Pre-load stages (all of them by default)."""
        for name in names or STAGE_NAMES:
            self.get(name)

    def clear(self) -> None:
        """Drop all stages. Useful for testing."""
        with self._lock:
            self._stages.clear()
