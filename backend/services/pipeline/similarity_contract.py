"""Canonical similarity contract shared by every stage.

Fixed tables (band -> status, status -> score) are global constants of
the scoring model and never vary per run. Thresholds come from
MatchingConfig.
"""

from models.schemas.enums import MatchStatus, Section, SimilarityBand
from models.schemas.evaluation import ChunkMatch

BAND_TO_MATCH_STATUS: dict[SimilarityBand, MatchStatus] = {
    SimilarityBand.HIGH: MatchStatus.FULL,
    SimilarityBand.AMBIGUOUS: MatchStatus.PARTIAL,
    SimilarityBand.LOW: MatchStatus.NONE,
    SimilarityBand.NO_EVIDENCE: MatchStatus.NO_EVIDENCE,
}

MATCH_STATUS_SCORES: dict[MatchStatus, float] = {
    MatchStatus.FULL: 1.0,
    MatchStatus.PARTIAL: 0.5,
    MatchStatus.NONE: 0.0,
    MatchStatus.NO_EVIDENCE: 0.0,
}

# Soft ranking weights, used for tie-breaking only
SECTION_WEIGHTS: dict[Section, float] = {
    Section.EXPERIENCE: 1.15,
    Section.PROJECTS: 1.15,
    Section.SKILLS: 1.05,
    Section.ACTIVITIES: 1.0,
    Section.SUMMARY: 0.9,
    Section.EDUCATION: 0.9,
}

# Lower = preferred when weights are equal
SECTION_PRIORITY: dict[Section, int] = {
    Section.EXPERIENCE: 1,
    Section.PROJECTS: 2,
    Section.SKILLS: 3,
    Section.ACTIVITIES: 4,
    Section.EDUCATION: 5,
    Section.SUMMARY: 6,
}


def classify_band(similarity: float, floor: float, low: float, high: float) -> SimilarityBand:
    """Map a similarity score onto exactly one band.

    >= high -> HIGH, [low, high) -> AMBIGUOUS, [floor, low) -> LOW,
    < floor -> NO_EVIDENCE.
    """
    if similarity >= high:
        return SimilarityBand.HIGH
    if similarity >= low:
        return SimilarityBand.AMBIGUOUS
    if similarity >= floor:
        return SimilarityBand.LOW
    return SimilarityBand.NO_EVIDENCE


def status_for_band(band: SimilarityBand) -> MatchStatus:
    return BAND_TO_MATCH_STATUS[band]


def status_score(status: MatchStatus) -> float:
    return MATCH_STATUS_SCORES[status]


def candidate_sort_key(match: ChunkMatch) -> tuple:
    """Deterministic order: score desc, section weight desc, priority, order, id."""
    return (
        -match.score,
        -SECTION_WEIGHTS[match.section],
        SECTION_PRIORITY[match.section],
        match.order,
        match.chunk_id,
    )


def sort_candidates(matches: list[ChunkMatch]) -> list[ChunkMatch]:
    return sorted(matches, key=candidate_sort_key)
