"""Closed enumerations shared by every pipeline stage."""

from enum import Enum


class RuleType(str, Enum):
    MUST_HAVE = "MUST_HAVE"
    NICE_TO_HAVE = "NICE_TO_HAVE"
    BEST_PRACTICE = "BEST_PRACTICE"


class RuleTarget(str, Enum):
    """Where the evidence for a rule is expected to live on the CV."""
    SKILLS = "skills"
    EXPERIENCE = "experience"
    PROJECT = "project"
    DEFAULT = "default"


class ClassificationSource(str, Enum):
    CUE_PHRASE = "CUE_PHRASE"
    SEMANTIC = "SEMANTIC"
    SEMANTIC_AMBIGUOUS = "SEMANTIC_AMBIGUOUS"
    DEFAULT = "DEFAULT"


class Section(str, Enum):
    SKILLS = "SKILLS"
    SUMMARY = "SUMMARY"
    EDUCATION = "EDUCATION"
    ACTIVITIES = "ACTIVITIES"
    PROJECTS = "PROJECTS"
    EXPERIENCE = "EXPERIENCE"


class SimilarityBand(str, Enum):
    HIGH = "HIGH"
    AMBIGUOUS = "AMBIGUOUS"
    LOW = "LOW"
    NO_EVIDENCE = "NO_EVIDENCE"


class MatchStatus(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"
    NONE = "NONE"
    NO_EVIDENCE = "NO_EVIDENCE"


class MatchLevel(str, Enum):
    STRONG_MATCH = "STRONG_MATCH"
    GOOD_MATCH = "GOOD_MATCH"
    PARTIAL_MATCH = "PARTIAL_MATCH"
    LOW_MATCH = "LOW_MATCH"


class GapSeverity(str, Enum):
    CRITICAL_SKILL_GAP = "CRITICAL_SKILL_GAP"
    MAJOR_GAP = "MAJOR_GAP"
    MINOR_GAP = "MINOR_GAP"


class SuggestionAction(str, Enum):
    EXPAND_BULLET = "EXPAND_BULLET"
    ADD_BULLET = "ADD_BULLET"


class JudgeVerdict(str, Enum):
    SUPPORTS = "SUPPORTS"
    DOES_NOT_SUPPORT = "DOES_NOT_SUPPORT"


class JudgeOutcome(str, Enum):
    NOT_REQUESTED = "NOT_REQUESTED"
    SUPPORTS = "SUPPORTS"
    DOES_NOT_SUPPORT = "DOES_NOT_SUPPORT"
    UNAVAILABLE = "UNAVAILABLE"
