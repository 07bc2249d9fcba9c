"""Stage 1 output: typed, weighted rules extracted from a job description."""

from pydantic import BaseModel, ConfigDict

from models.schemas.enums import ClassificationSource, RuleTarget, RuleType


class Rule(BaseModel):
    """A single JD requirement.

    concept_label is a short canonical description of the evidence sought;
    suggestions render it instead of the raw statement.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    type: RuleType
    text: str
    target: RuleTarget = RuleTarget.DEFAULT
    concept_label: str
    classification_source: ClassificationSource = ClassificationSource.DEFAULT
    embedding: tuple[float, ...] | None = None  # reused by the evaluator when present


class RuleSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_set_version: str
    rules: tuple[Rule, ...] = ()


class ReferenceRule(BaseModel):
    """Canonical example statement used for semantic rule-type classification."""
    model_config = ConfigDict(frozen=True)

    category: RuleType
    text: str
