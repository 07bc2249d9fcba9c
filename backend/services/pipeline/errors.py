"""Error taxonomy for the match evaluation pipeline.

Configuration errors are fatal at startup. Input errors (missing or
mis-sized embeddings) abort a single CV. Logic errors surface as
EvaluationFailed. Judge failures never leave llm_judge.py.
"""


class MatchingError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(MatchingError, ValueError):
    """Invalid or inconsistent threshold configuration."""


class MissingEmbeddings(MatchingError):
    """The CV has no embedded chunks to search."""

    def __init__(self, cv_id: str) -> None:
        self.cv_id = cv_id
        super().__init__(f"CV {cv_id!r} has no embedded chunks")


class EmbeddingDimMismatch(MatchingError):
    """A vector does not have the configured dimensionality."""

    def __init__(self, expected: int, actual: int, context: str = "") -> None:
        self.expected = expected
        self.actual = actual
        self.context = context
        where = f" ({context})" if context else ""
        super().__init__(f"Expected embedding dim {expected}, got {actual}{where}")


class EvaluationFailed(MatchingError):
    """The evaluation is undefined for this input (e.g. zero rules)."""


class JudgeUnavailable(MatchingError):
    """The LLM judge timed out, errored or returned an unusable response."""
