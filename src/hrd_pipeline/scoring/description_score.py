"""Description scores: rank the candidate description lines of one query.

Scoring runs in two phases. measure_descriptions() observes every candidate
to find dataset maxima and pattern frequencies; only then can
score_descriptions() normalize each candidate against them:

    description_score(c) = lexical_score(c)
                         + w_bit[db] * bit_score(c) / max_bit_score
                         + w_pattern * frequency(pattern(c)) / max_frequency
                         + w_domain * domain_similarity(c) / max_domain_similarity

Every ratio with a zero denominator contributes 0.
"""

from collections import Counter
from dataclasses import dataclass, field

import structlog

from hrd_pipeline.candidates.models import Candidate, Query
from hrd_pipeline.config.schema import ScoringWeights
from hrd_pipeline.scoring.token_score import FilteredTokenScores

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DescriptionMeasurements:
    """Dataset maxima and pattern frequencies of one query's candidates.

    Attributes:
        max_bit_score: Highest bit score of any candidate
        max_domain_similarity_score: Highest present domain similarity score
        pattern_frequencies: Number of candidates sharing each description pattern
        max_description_line_frequency: Highest pattern frequency
    """
    max_bit_score: float = 0.0
    max_domain_similarity_score: float = 0.0
    pattern_frequencies: dict[str, int] = field(default_factory=dict)
    max_description_line_frequency: int = 0


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate and the summands of its description score."""
    candidate: Candidate
    lexical_score: float
    relative_bit_score: float
    pattern_factor: float
    domain_similarity_factor: float

    @property
    def description_score(self) -> float:
        return (
            self.lexical_score
            + self.relative_bit_score
            + self.pattern_factor
            + self.domain_similarity_factor
        )


def measure_descriptions(query: Query) -> DescriptionMeasurements:
    """
    Measure maxima and pattern frequencies over all candidates of a query.

    Candidates without tokens are measured too; they only drop out at
    scoring time.
    """
    max_bit_score = 0.0
    max_domain_similarity_score = 0.0
    frequencies: Counter[str] = Counter()

    for candidate in query.iter_candidates():
        if candidate.bit_score > max_bit_score:
            max_bit_score = candidate.bit_score
        if (
            candidate.domain_similarity_score is not None
            and candidate.domain_similarity_score > max_domain_similarity_score
        ):
            max_domain_similarity_score = candidate.domain_similarity_score
        frequencies[candidate.pattern] += 1

    return DescriptionMeasurements(
        max_bit_score=max_bit_score,
        max_domain_similarity_score=max_domain_similarity_score,
        pattern_frequencies=dict(frequencies),
        max_description_line_frequency=max(frequencies.values(), default=0),
    )


def lexical_score(candidate: Candidate, token_scores: FilteredTokenScores) -> float:
    """Sum of the candidate's token scores."""
    return sum(token_scores.scores[token] for token in candidate.tokens)


def relative_bit_score(
    candidate: Candidate,
    measurements: DescriptionMeasurements,
    weights: ScoringWeights,
) -> float:
    if measurements.max_bit_score == 0:
        return 0.0
    return (
        weights.description_bit_score_weight(candidate.blast_database)
        * candidate.bit_score
        / measurements.max_bit_score
    )


def pattern_factor(
    candidate: Candidate,
    measurements: DescriptionMeasurements,
    weights: ScoringWeights,
) -> float:
    """Weighted frequency of the candidate's pattern relative to the most frequent one."""
    if measurements.max_description_line_frequency == 0:
        return 0.0
    frequency = measurements.pattern_frequencies.get(candidate.pattern, 0)
    return (
        weights.description_score_pattern_factor_weight
        * frequency
        / measurements.max_description_line_frequency
    )


def domain_similarity_factor(
    candidate: Candidate,
    measurements: DescriptionMeasurements,
    weights: ScoringWeights,
) -> float:
    """
    Weighted domain similarity relative to the highest one found.

    Zero if the candidate has no domain similarity score or the maximum is zero.
    """
    if (
        candidate.domain_similarity_score is None
        or measurements.max_domain_similarity_score <= 0
    ):
        return 0.0
    return (
        weights.description_score_domain_similarity_weight
        * candidate.domain_similarity_score
        / measurements.max_domain_similarity_score
    )


def score_descriptions(
    query: Query,
    token_scores: FilteredTokenScores,
    measurements: DescriptionMeasurements,
    weights: ScoringWeights,
) -> list[ScoredCandidate]:
    """
    Score every candidate that has at least one token.

    Args:
        query: Query whose candidates are scored
        token_scores: Token scores after demote_non_informative()
        measurements: Result of measure_descriptions() for the same query
        weights: Weight vector used for this pass

    Returns:
        Scored candidates in per-database, then insertion order

    Raises:
        TypeError: If token_scores have not been filtered
    """
    if not isinstance(token_scores, FilteredTokenScores):
        raise TypeError(
            "score_descriptions() requires FilteredTokenScores; "
            "call demote_non_informative() first"
        )

    scored = []
    for candidate in query.iter_candidates():
        if not candidate.tokens:
            continue
        scored.append(
            ScoredCandidate(
                candidate=candidate,
                lexical_score=lexical_score(candidate, token_scores),
                relative_bit_score=relative_bit_score(candidate, measurements, weights),
                pattern_factor=pattern_factor(candidate, measurements, weights),
                domain_similarity_factor=domain_similarity_factor(
                    candidate, measurements, weights
                ),
            )
        )

    return scored


def select_best_description(scored: list[ScoredCandidate]) -> ScoredCandidate | None:
    """
    Pick the highest scoring candidate.

    On equal scores the first candidate in per-database, then insertion order
    wins. Returns None if no candidate was scored.
    """
    best = None
    for scored_candidate in scored:
        if best is None or scored_candidate.description_score > best.description_score:
            best = scored_candidate
    return best
