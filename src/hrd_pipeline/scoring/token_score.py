"""Token scores: per-token evidence aggregated over all candidates of one query.

A token's score combines four cumulative evidence sums, each normalized by
its total over the query's candidates:

    token_score(t) = w_bit * cum_bit(t) / total_bit
                   + w_db * cum_db(t) / total_db
                   + w_overlap * cum_overlap(t) / total_overlap
                   + w_domain * cum_domain(t) / total_domain

Every ratio with a zero denominator contributes 0.
"""

from dataclasses import dataclass, field

import structlog

from hrd_pipeline.candidates.models import Query
from hrd_pipeline.config.schema import ScoringWeights

logger = structlog.get_logger(__name__)


class SequenceLengthError(ValueError):
    """Raised when a query sequence length cannot be used to compute overlap."""


@dataclass
class TokenAggregates:
    """Cumulative per-token evidence and dataset totals for one query.

    Attributes:
        cumulative_bit_scores: Sum of bit scores of candidates mentioning the token
        cumulative_database_scores: Sum of database weights of those candidates
        cumulative_overlap_scores: Sum of overlap scores of those candidates
        cumulative_domain_similarity_scores: Sum of domain similarity scores of
            those candidates with domain evidence; tokens without any domain
            evidence are absent
        total_bit_score: Bit scores summed once per (candidate, token) pair
        total_database_score: Database weights summed once per (candidate, token) pair
        total_overlap_score: Overlap scores summed once per (candidate, token) pair
        total_domain_similarity_score: Domain similarity scores summed once per
            candidate with domain evidence
    """
    cumulative_bit_scores: dict[str, float] = field(default_factory=dict)
    cumulative_database_scores: dict[str, float] = field(default_factory=dict)
    cumulative_overlap_scores: dict[str, float] = field(default_factory=dict)
    cumulative_domain_similarity_scores: dict[str, float] = field(default_factory=dict)
    total_bit_score: float = 0.0
    total_database_score: float = 0.0
    total_overlap_score: float = 0.0
    total_domain_similarity_score: float = 0.0

    @property
    def tokens(self) -> list[str]:
        """Distinct tokens in order of first appearance."""
        return list(self.cumulative_bit_scores)


@dataclass(frozen=True)
class TokenScores:
    """Raw token scores of one query and the highest of them."""
    scores: dict[str, float]
    token_high_score: float


@dataclass(frozen=True)
class FilteredTokenScores:
    """Token scores after non-informative tokens have been demoted.

    Attributes:
        scores: Final token scores used for lexical scoring
        token_high_score: Highest raw token score
        informative: Tokens scoring above half of token_high_score
    """
    scores: dict[str, float]
    token_high_score: float
    informative: frozenset[str]


def overlap_score(query_start: float, query_end: float, query_length: float) -> float:
    """
    Fraction of the query sequence covered by an alignment.

    Args:
        query_start: First aligned query position (1-based, inclusive)
        query_end: Last aligned query position (1-based, inclusive)
        query_length: Length of the query sequence

    Raises:
        SequenceLengthError: If query_length is not positive
    """
    if query_length <= 0:
        raise SequenceLengthError(
            f"Query sequence length must be positive, got {query_length}"
        )
    return (query_end - query_start + 1.0) / query_length


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator


def aggregate_token_evidence(query: Query, weights: ScoringWeights) -> TokenAggregates:
    """
    Measure cumulative and total token evidence over all candidates of a query.

    Args:
        query: Query with candidates grouped by source database
        weights: Weight vector providing per-database integer weights

    Returns:
        Freshly built TokenAggregates for this query only

    Raises:
        SequenceLengthError: If the query sequence length is not positive
        WeightConfigurationError: If a candidate with tokens comes from a
            database without weights; token-less candidates are not looked up
    """
    aggregates = TokenAggregates()
    cum_bit = aggregates.cumulative_bit_scores
    cum_db = aggregates.cumulative_database_scores
    cum_overlap = aggregates.cumulative_overlap_scores
    cum_domain = aggregates.cumulative_domain_similarity_scores

    for candidate in query.iter_candidates():
        if candidate.tokens:
            overlap = overlap_score(
                candidate.query_start, candidate.query_end, query.sequence_length
            )
            database_weight = weights.database_weight(candidate.blast_database)

            for token in candidate.tokens:
                cum_bit[token] = cum_bit.get(token, 0.0) + candidate.bit_score
                cum_db[token] = cum_db.get(token, 0.0) + database_weight
                cum_overlap[token] = cum_overlap.get(token, 0.0) + overlap

                aggregates.total_bit_score += candidate.bit_score
                aggregates.total_database_score += database_weight
                aggregates.total_overlap_score += overlap

        if candidate.has_domain_evidence():
            for token in candidate.tokens:
                cum_domain[token] = (
                    cum_domain.get(token, 0.0) + candidate.domain_similarity_score
                )
            aggregates.total_domain_similarity_score += candidate.domain_similarity_score

    return aggregates


def domain_similarity_fraction(
    token: str, aggregates: TokenAggregates, weights: ScoringWeights
) -> float:
    """Weighted share of the query's domain similarity evidence held by a token."""
    cumulative = aggregates.cumulative_domain_similarity_scores.get(token)
    if aggregates.total_domain_similarity_score > 0 and cumulative is not None:
        return (
            weights.token_score_domain_similarity_weight
            * cumulative
            / aggregates.total_domain_similarity_score
        )
    return 0.0


def token_score(token: str, aggregates: TokenAggregates, weights: ScoringWeights) -> float:
    """
    Score a single token from the query's aggregated evidence.

    Does not validate the weights; score_tokens() does so once per pass.
    """
    return (
        weights.token_score_bit_score_weight
        * _ratio(aggregates.cumulative_bit_scores[token], aggregates.total_bit_score)
        + weights.token_score_database_score_weight
        * _ratio(aggregates.cumulative_database_scores[token], aggregates.total_database_score)
        + weights.token_score_overlap_score_weight
        * _ratio(aggregates.cumulative_overlap_scores[token], aggregates.total_overlap_score)
        + domain_similarity_fraction(token, aggregates, weights)
    )


def score_tokens(aggregates: TokenAggregates, weights: ScoringWeights) -> TokenScores:
    """
    Score every distinct token once and remember the highest score.

    Raises:
        WeightConfigurationError: If the token score weights do not sum to 1.0.
            Raised before any token is scored.
    """
    weights.validate_sum()

    scores: dict[str, float] = {}
    high_score = 0.0
    for token in aggregates.tokens:
        score = token_score(token, aggregates, weights)
        scores[token] = score
        if score > high_score:
            high_score = score

    logger.debug(
        "score_tokens_complete",
        token_count=len(scores),
        token_high_score=high_score,
    )

    return TokenScores(scores=scores, token_high_score=high_score)


def is_informative(score: float, token_high_score: float) -> bool:
    """Informative tokens score strictly above half of the token high score."""
    return score > token_high_score / 2


def demote_non_informative(token_scores: TokenScores) -> FilteredTokenScores:
    """
    Penalize tokens that are not informative.

    Each non-informative token's score becomes score - token_high_score / 2.
    The input is left untouched, so repeated calls on the same TokenScores
    give the same result.
    """
    penalty = token_scores.token_high_score / 2
    scores: dict[str, float] = {}
    informative = set()

    for token, score in token_scores.scores.items():
        if is_informative(score, token_scores.token_high_score):
            scores[token] = score
            informative.add(token)
        else:
            scores[token] = score - penalty

    return FilteredTokenScores(
        scores=scores,
        token_high_score=token_scores.token_high_score,
        informative=frozenset(informative),
    )
