"""Stage 1: Rule Extractor - JD statements to typed, weighted rules.

Classification order per statement:
    1. Cue phrases (MUST_HAVE list first, then NICE_TO_HAVE), case-insensitive
       substring match, first hit wins. Statements without a cue phrase that
       read as benefits, hiring process or company blurb are dropped.
    2. Semantic similarity against canonical reference rules, if enabled.
       Best category wins above the high threshold; above the ambiguous
       threshold only, the rule resolves to BEST_PRACTICE.
    3. BEST_PRACTICE.

Cue-classified statements are never embedded here.
"""

import logging
import re
from typing import Any, Mapping, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as sklearn_cosine

from config import MatchingConfig
from models.schemas.enums import ClassificationSource, RuleTarget, RuleType
from models.schemas.rule import ReferenceRule, Rule, RuleSet
from services.embedding import EmbeddingGateway, check_dim
from services.pipeline.base import BaseModelService
from services.pipeline.reference_rules import DEFAULT_REFERENCE_RULES

logger = logging.getLogger(__name__)

# Order used to break exact similarity ties between categories
_CATEGORY_ORDER = [RuleType.MUST_HAVE, RuleType.NICE_TO_HAVE, RuleType.BEST_PRACTICE]

_TARGET_PATTERNS: list[tuple[RuleTarget, re.Pattern]] = [
    (RuleTarget.PROJECT, re.compile(r"\bprojects?\b|\bportfolios?\b", re.IGNORECASE)),
    (RuleTarget.SKILLS, re.compile(r"\bskills?\b|\bproficien", re.IGNORECASE)),
    (RuleTarget.EXPERIENCE, re.compile(r"\bexperiences?\b|\bwork(ed|ing)?\b|\binternships?\b", re.IGNORECASE)),
]

_TOKEN_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9+#.\-/]*")
_NUMERIC_RE = re.compile(r"^\d+\+?$")
_MAX_LABEL_TERMS = 5
_FALLBACK_LABEL = "this requirement"

_STOPWORDS = frozenset({
    "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "shall", "can", "of", "in", "to", "for",
    "with", "on", "at", "by", "from", "as", "into", "through", "and", "or",
    "but", "if", "then", "when", "where", "how", "all", "each", "any",
    "some", "such", "this", "that", "these", "those", "other", "etc",
    "you", "your", "our", "we", "their", "its", "it", "who", "which",
    "least", "one", "more", "well", "also", "like", "e.g", "i.e",
    "cv", "resume", "candidate", "applicant", "demonstrate", "show",
    "include", "using", "use", "work", "working", "experience", "experienced",
    "skill", "skills", "strong", "good", "solid", "excellent", "basic",
    "knowledge", "understanding", "ability", "able", "familiarity",
    "familiar", "proficiency", "proficient", "year", "years", "related",
    "having", "plus", "must", "required", "preferred",
})


class RuleExtractorService(BaseModelService):
    model_name = "rule_extractor"

    def __init__(
        self,
        config: MatchingConfig,
        embedder: EmbeddingGateway | None = None,
        reference_rules: Sequence[ReferenceRule] = DEFAULT_REFERENCE_RULES,
    ) -> None:
        super().__init__(config)
        self._embedder = embedder
        self._reference_rules = tuple(reference_rules)
        self._reference_vectors: dict[RuleType, np.ndarray] = {}
        self._semantic = False

    def load(self) -> None:
        if not self.config.semantic_classification_enabled:
            logger.info("Semantic rule classification disabled; cue phrases only")
            return
        if self._embedder is None or not self._reference_rules:
            logger.warning("No embedder or reference rules; semantic classification skipped")
            return

        texts = [r.text for r in self._reference_rules]
        vectors = check_dim(
            np.asarray(self._embedder.embed_batch(texts)),
            self.config.embedding_dim,
            context="reference rules",
        )
        for category in _CATEGORY_ORDER:
            idx = [i for i, r in enumerate(self._reference_rules) if r.category == category]
            if idx:
                self._reference_vectors[category] = vectors[idx]
        self._semantic = True
        logger.info("Embedded %d reference rules for classification", len(texts))

    def predict(self, **kwargs: Any) -> RuleSet:
        return self.extract(kwargs["statements"])

    def extract(self, statements: Sequence[str]) -> RuleSet:
        self.ensure_loaded()
        cleaned: list[str] = []
        types: list[RuleType | None] = []
        sources: list[ClassificationSource] = []
        for text in normalize_statements(statements):
            cue = match_cue_phrase(
                text, self.config.must_have_cue_phrases, self.config.nice_to_have_cue_phrases
            )
            if cue is None:
                noise = match_noise_cue(text, self.config.noise_cue_phrases)
                if noise is not None:
                    logger.info("Ignoring %s statement: %r", noise, text)
                    continue
            cleaned.append(text)
            types.append(cue)
            sources.append(ClassificationSource.CUE_PHRASE if cue else ClassificationSource.DEFAULT)

        embeddings: dict[int, tuple[float, ...]] = {}
        pending = [i for i, t in enumerate(types) if t is None]
        if pending and self._semantic:
            vectors = check_dim(
                np.asarray(self._embedder.embed_batch([cleaned[i] for i in pending])),
                self.config.embedding_dim,
                context="JD statements",
            )
            for i, vector in zip(pending, vectors):
                types[i], sources[i] = self._classify_semantic(vector)
                embeddings[i] = tuple(float(x) for x in vector)

        cue_phrases = self.config.must_have_cue_phrases + self.config.nice_to_have_cue_phrases
        rules = []
        for i, text in enumerate(cleaned):
            rules.append(Rule(
                id=f"rule-{i + 1:03d}",
                type=types[i] or RuleType.BEST_PRACTICE,
                text=text,
                target=infer_target(text),
                concept_label=build_concept_label(text, cue_phrases),
                classification_source=sources[i],
                embedding=embeddings.get(i),
            ))

        logger.info(
            "Extracted %d rules (%s) from %d statements",
            len(rules),
            ", ".join(f"{t.value}={sum(1 for r in rules if r.type == t)}" for t in _CATEGORY_ORDER),
            len(statements),
        )
        return RuleSet(rule_set_version=self.config.rule_set_version, rules=tuple(rules))

    def _classify_semantic(self, vector: np.ndarray) -> tuple[RuleType, ClassificationSource]:
        best_type: RuleType | None = None
        best_sim = -1.0
        for category in _CATEGORY_ORDER:
            refs = self._reference_vectors.get(category)
            if refs is None:
                continue
            sim = float(np.max(sklearn_cosine(vector.reshape(1, -1), refs)[0]))
            if sim > best_sim:
                best_type, best_sim = category, sim

        if best_type is not None and best_sim >= self.config.rule_classification_high_threshold:
            return best_type, ClassificationSource.SEMANTIC
        if best_sim >= self.config.rule_classification_ambiguous_threshold:
            return RuleType.BEST_PRACTICE, ClassificationSource.SEMANTIC_AMBIGUOUS
        return RuleType.BEST_PRACTICE, ClassificationSource.DEFAULT


def normalize_statements(statements: Sequence[str]) -> list[str]:
    """Collapse whitespace, drop blanks and case-insensitive duplicates."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in statements:
        text = re.sub(r"\s+", " ", raw or "").strip()
        key = text.lower()
        if not text or key in seen:
            continue
        seen.add(key)
        result.append(text)
    return result


def match_cue_phrase(
    text: str,
    must_have: Sequence[str],
    nice_to_have: Sequence[str],
) -> RuleType | None:
    lowered = text.lower()
    for phrase in must_have:
        if phrase.lower() in lowered:
            return RuleType.MUST_HAVE
    for phrase in nice_to_have:
        if phrase.lower() in lowered:
            return RuleType.NICE_TO_HAVE
    return None


def match_noise_cue(text: str, noise_phrases: Mapping[str, Sequence[str]]) -> str | None:
    """Return the noise category (BENEFITS, PROCESS, COMPANY) a statement falls in, if any."""
    for category, phrases in noise_phrases.items():
        for phrase in phrases:
            if re.search(rf"\b{re.escape(phrase)}\b", text, re.IGNORECASE):
                return category
    return None


def infer_target(text: str) -> RuleTarget:
    for target, pattern in _TARGET_PATTERNS:
        if pattern.search(text):
            return target
    return RuleTarget.DEFAULT


def build_concept_label(text: str, cue_phrases: Sequence[str] = ()) -> str:
    """Reduce a statement to its content words (at most five, in order)."""
    stripped = text
    for phrase in sorted(cue_phrases, key=len, reverse=True):
        stripped = re.sub(rf"\b{re.escape(phrase)}\b", " ", stripped, flags=re.IGNORECASE)

    terms: list[str] = []
    seen: set[str] = set()
    for match in _TOKEN_RE.finditer(stripped):
        token = match.group(0).rstrip(".-/")
        key = token.lower()
        if len(token) < 2 and "+" not in token and "#" not in token:
            continue
        if key in _STOPWORDS or key in seen or _NUMERIC_RE.match(token):
            continue
        seen.add(key)
        terms.append(token)
        if len(terms) == _MAX_LABEL_TERMS:
            break
    return " ".join(terms) if terms else _FALLBACK_LABEL
