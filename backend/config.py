import hashlib
import json
import math

from pydantic import BaseModel, ValidationError, model_validator
from pydantic_settings import BaseSettings

from models.schemas.enums import (
    GapSeverity,
    MatchLevel,
    MatchStatus,
    RuleTarget,
    RuleType,
    Section,
    SuggestionAction,
)
from services.pipeline.errors import ConfigurationError


class FrozenDict(dict):
    """dict that refuses mutation; still a dict to pydantic serialisation."""

    def _readonly(self, *args, **kwargs):
        raise TypeError("MatchingConfig tables are read-only")

    __setitem__ = __delitem__ = __ior__ = _readonly
    clear = pop = popitem = setdefault = update = _readonly

    def __reduce__(self):
        return (FrozenDict, (dict(self),))


def _freeze(value):
    if isinstance(value, dict):
        return FrozenDict({k: _freeze(v) for k, v in value.items()})
    return value


class LevelThreshold(BaseModel):
    """Both rates must reach these values for the level to apply."""

    model_config = {"frozen": True}

    weighted_score_rate: float
    must_have_score_rate: float


DEFAULT_SUGGESTION_TEMPLATES: dict[SuggestionAction, dict[RuleType, dict[RuleTarget, str]]] = {
    SuggestionAction.ADD_BULLET: {
        RuleType.MUST_HAVE: {
            RuleTarget.DEFAULT: "Add content that clearly demonstrates {label}.",
            RuleTarget.SKILLS: "Add {label} to your Skills section and back it with an example.",
            RuleTarget.EXPERIENCE: "Highlight hands-on experience with {label} in your work history.",
            RuleTarget.PROJECT: "Include a project that showcases {label} and its outcome.",
        },
        RuleType.NICE_TO_HAVE: {
            RuleTarget.DEFAULT: "Your CV would be stronger with evidence of {label}.",
            RuleTarget.SKILLS: "Consider adding {label} to differentiate yourself.",
            RuleTarget.EXPERIENCE: "If you have worked with {label}, add a bullet describing it.",
            RuleTarget.PROJECT: "A project demonstrating {label} would strengthen your application.",
        },
        RuleType.BEST_PRACTICE: {
            RuleTarget.DEFAULT: "Optional improvement: consider showing {label}.",
            RuleTarget.SKILLS: "Bonus: {label} could be valuable to mention.",
            RuleTarget.EXPERIENCE: "If applicable, describe where you applied {label}.",
            RuleTarget.PROJECT: "Consider whether any of your projects relate to {label}.",
        },
    },
    SuggestionAction.EXPAND_BULLET: {
        RuleType.MUST_HAVE: {
            RuleTarget.DEFAULT: "Expand your existing content to clearly demonstrate {label}.",
            RuleTarget.SKILLS: "Back up {label} in your Skills section with a concrete example.",
            RuleTarget.EXPERIENCE: "Expand this bullet to show how you used {label} and the impact.",
            RuleTarget.PROJECT: "Describe your role in this project and how it used {label}.",
        },
        RuleType.NICE_TO_HAVE: {
            RuleTarget.DEFAULT: "Strengthen your evidence for {label} with specifics.",
            RuleTarget.SKILLS: "Add context on how you applied {label}.",
            RuleTarget.EXPERIENCE: "Add a measurable result related to {label}.",
            RuleTarget.PROJECT: "Clarify how {label} contributed to this project's outcome.",
        },
        RuleType.BEST_PRACTICE: {
            RuleTarget.DEFAULT: "Optional: make {label} more explicit.",
            RuleTarget.SKILLS: "Optional: add a short example of {label}.",
            RuleTarget.EXPERIENCE: "Optional: mention {label} more explicitly in this bullet.",
            RuleTarget.PROJECT: "Optional: point out where this project involved {label}.",
        },
    },
}


class MatchingConfig(BaseSettings):
    """Immutable scoring configuration for one run, versioned by rule_set_version."""

    rule_set_version: str = "student-fresher.jd-matching@2026-01-29"

    # Embedding provider
    embedding_model: str = "TechWolf/JobBERT-v2"
    embedding_dim: int = 1024
    embedding_batch_size: int = 32

    # Similarity banding
    match_top_k: int = 5
    sim_floor: float = 0.3
    sim_low_threshold: float = 0.5
    sim_high_threshold: float = 0.8

    # Aggregation
    rule_type_weights: dict[RuleType, float] = {
        RuleType.MUST_HAVE: 0.5,
        RuleType.NICE_TO_HAVE: 0.3,
        RuleType.BEST_PRACTICE: 0.2,
    }
    rule_type_multipliers: dict[RuleType, float] = {
        RuleType.MUST_HAVE: 2.0,
        RuleType.NICE_TO_HAVE: 1.0,
        RuleType.BEST_PRACTICE: 0.5,
    }
    match_level_thresholds: dict[MatchLevel, LevelThreshold] = {
        MatchLevel.STRONG_MATCH: LevelThreshold(weighted_score_rate=0.85, must_have_score_rate=0.9),
        MatchLevel.GOOD_MATCH: LevelThreshold(weighted_score_rate=0.65, must_have_score_rate=0.75),
        MatchLevel.PARTIAL_MATCH: LevelThreshold(weighted_score_rate=0.4, must_have_score_rate=0.5),
    }

    # PARTIAL -> FULL upgrade
    upgrade_eligible_sections: tuple[Section, ...] = (Section.PROJECTS, Section.EXPERIENCE)
    no_upgrade_sections: tuple[Section, ...] = (
        Section.SKILLS,
        Section.SUMMARY,
        Section.EDUCATION,
        Section.ACTIVITIES,
    )
    multi_mention_threshold: int = 3
    multi_mention_high_similarity: float = 0.5
    dedup_similarity_threshold: float = 0.95

    # Gaps and suggestions
    gap_severity: dict[RuleType, dict[MatchStatus, GapSeverity]] = {
        RuleType.MUST_HAVE: {
            MatchStatus.NO_EVIDENCE: GapSeverity.CRITICAL_SKILL_GAP,
            MatchStatus.NONE: GapSeverity.MAJOR_GAP,
        },
        RuleType.NICE_TO_HAVE: {
            MatchStatus.NO_EVIDENCE: GapSeverity.MAJOR_GAP,
            MatchStatus.NONE: GapSeverity.MINOR_GAP,
        },
    }
    suggestion_templates: dict[SuggestionAction, dict[RuleType, dict[RuleTarget, str]]] = DEFAULT_SUGGESTION_TEMPLATES

    # LLM judge
    llm_judge_enabled: bool = False
    llm_judge_batch_size: int = 10
    llm_judge_timeout_seconds: float = 30.0
    llm_judge_max_concurrency: int = 2
    llm_judge_model: str = "gemini-2.5-flash"
    gemini_api_key: str = ""

    # Rule classification
    semantic_classification_enabled: bool = True
    rule_classification_high_threshold: float = 0.8
    rule_classification_ambiguous_threshold: float = 0.5
    must_have_cue_phrases: tuple[str, ...] = (
        "must", "required", "need to", "minimum", "mandatory", "essential",
    )
    nice_to_have_cue_phrases: tuple[str, ...] = (
        "nice to have", "preferred", "plus", "bonus", "advantage", "desirable", "ideally",
    )
    # Statements without a requirement cue that match these are not rules
    noise_cue_phrases: dict[str, tuple[str, ...]] = {
        "BENEFITS": ("salary", "benefits", "wellness", "lunch", "healthcare", "work-life"),
        "PROCESS": (
            "recruitment process", "interview", "how to apply", "application deadline", "rolling basis",
        ),
        "COMPANY": ("about us", "who we are", "our culture", "our values", "diversity", "inclusion"),
    }

    # Concurrency
    max_rule_workers: int = 4
    max_concurrent_cvs: int = 4

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
        "protected_namespaces": ("settings_",),
    }

    @model_validator(mode="after")
    def _check_consistency(self) -> "MatchingConfig":
        _check_similarity_thresholds(self)
        _check_weights(self)
        _check_level_thresholds(self)
        _check_upgrade(self)
        _check_tables(self)
        _check_sizes(self)
        # frozen=True is shallow; table fields are frozen here
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, dict):
                object.__setattr__(self, name, _freeze(value))
        return self

    def fingerprint(self) -> str:
        """SHA-256 of every scoring field; stamped on reports for audit."""
        payload = self.model_dump(mode="json", exclude={"gemini_api_key"})
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _in_unit(value: float) -> bool:
    return 0.0 <= value <= 1.0


def _check_similarity_thresholds(cfg: MatchingConfig) -> None:
    for name in (
        "sim_floor",
        "sim_low_threshold",
        "sim_high_threshold",
        "multi_mention_high_similarity",
        "dedup_similarity_threshold",
        "rule_classification_high_threshold",
        "rule_classification_ambiguous_threshold",
    ):
        if not _in_unit(getattr(cfg, name)):
            raise ConfigurationError(f"{name} must be within [0, 1]")
    if not cfg.sim_floor <= cfg.sim_low_threshold <= cfg.sim_high_threshold:
        raise ConfigurationError("Require sim_floor <= sim_low_threshold <= sim_high_threshold")
    if cfg.rule_classification_ambiguous_threshold > cfg.rule_classification_high_threshold:
        raise ConfigurationError(
            "rule_classification_ambiguous_threshold exceeds rule_classification_high_threshold"
        )


def _check_weights(cfg: MatchingConfig) -> None:
    for name in ("rule_type_weights", "rule_type_multipliers"):
        table = getattr(cfg, name)
        missing = set(RuleType) - set(table)
        if missing:
            raise ConfigurationError(f"{name} missing {sorted(t.value for t in missing)}")
        if any(v < 0 for v in table.values()):
            raise ConfigurationError(f"{name} values must be non-negative")

    weights = cfg.rule_type_weights
    if not math.isclose(sum(weights.values()), 1.0, abs_tol=1e-9):
        raise ConfigurationError("rule_type_weights must sum to 1.0")
    if not (
        weights[RuleType.MUST_HAVE]
        > weights[RuleType.NICE_TO_HAVE]
        > weights[RuleType.BEST_PRACTICE]
    ):
        raise ConfigurationError("Require MUST_HAVE > NICE_TO_HAVE > BEST_PRACTICE weights")


def _check_level_thresholds(cfg: MatchingConfig) -> None:
    ordered = [MatchLevel.STRONG_MATCH, MatchLevel.GOOD_MATCH, MatchLevel.PARTIAL_MATCH]
    table = cfg.match_level_thresholds
    for level in ordered:
        if level not in table:
            raise ConfigurationError(f"match_level_thresholds missing {level.value}")
        pair = table[level]
        if not (_in_unit(pair.weighted_score_rate) and _in_unit(pair.must_have_score_rate)):
            raise ConfigurationError(f"{level.value} thresholds must be within [0, 1]")
    if MatchLevel.LOW_MATCH in table:
        raise ConfigurationError("LOW_MATCH is the fallback level and takes no thresholds")
    for stronger, weaker in zip(ordered, ordered[1:]):
        a, b = table[stronger], table[weaker]
        if a.weighted_score_rate < b.weighted_score_rate or a.must_have_score_rate < b.must_have_score_rate:
            raise ConfigurationError(
                f"{stronger.value} thresholds must not be below {weaker.value} thresholds"
            )


def _check_upgrade(cfg: MatchingConfig) -> None:
    overlap = set(cfg.upgrade_eligible_sections) & set(cfg.no_upgrade_sections)
    if overlap:
        raise ConfigurationError(
            f"Sections both upgrade-eligible and excluded: {sorted(s.value for s in overlap)}"
        )


def _check_tables(cfg: MatchingConfig) -> None:
    for rule_type in (RuleType.MUST_HAVE, RuleType.NICE_TO_HAVE):
        row = cfg.gap_severity.get(rule_type, {})
        for status in (MatchStatus.NONE, MatchStatus.NO_EVIDENCE):
            if status not in row:
                raise ConfigurationError(
                    f"gap_severity missing entry for {rule_type.value}/{status.value}"
                )
    if RuleType.BEST_PRACTICE in cfg.gap_severity:
        raise ConfigurationError("BEST_PRACTICE rules never produce gaps")

    for action in SuggestionAction:
        per_type = cfg.suggestion_templates.get(action, {})
        for rule_type in RuleType:
            templates = per_type.get(rule_type, {})
            if RuleTarget.DEFAULT not in templates:
                raise ConfigurationError(
                    f"suggestion_templates missing default for {action.value}/{rule_type.value}"
                )
            for target, template in templates.items():
                if "{label}" not in template:
                    raise ConfigurationError(
                        f"Template {action.value}/{rule_type.value}/{target.value} lacks {{label}}"
                    )

    for category, phrases in cfg.noise_cue_phrases.items():
        if any(not p.strip() for p in phrases):
            raise ConfigurationError(f"noise_cue_phrases[{category}] contains an empty phrase")


def _check_sizes(cfg: MatchingConfig) -> None:
    for name in (
        "embedding_dim",
        "embedding_batch_size",
        "match_top_k",
        "multi_mention_threshold",
        "llm_judge_batch_size",
        "llm_judge_max_concurrency",
        "max_rule_workers",
        "max_concurrent_cvs",
    ):
        if getattr(cfg, name) < 1:
            raise ConfigurationError(f"{name} must be >= 1")
    if cfg.llm_judge_timeout_seconds <= 0:
        raise ConfigurationError("llm_judge_timeout_seconds must be positive")


def load_config(**overrides) -> MatchingConfig:
    """Build the run configuration once at startup; invalid values are fatal."""
    try:
        return MatchingConfig(**overrides)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
