"""Assign one human-readable description per query from its scored candidates."""

from dataclasses import dataclass

import polars as pl
import structlog

from hrd_pipeline.candidates.models import Query
from hrd_pipeline.config.schema import ScoringWeights
from hrd_pipeline.scoring.description_score import (
    ScoredCandidate,
    measure_descriptions,
    score_descriptions,
    select_best_description,
)
from hrd_pipeline.scoring.token_score import (
    aggregate_token_evidence,
    demote_non_informative,
    score_tokens,
)

logger = structlog.get_logger(__name__)

# Column order of annotate_queries() output
DESCRIPTION_COLUMNS = [
    "query_id",
    "blast_database",
    "accession",
    "description",
    "description_score",
    "lexical_score",
    "relative_bit_score",
    "pattern_factor",
    "domain_similarity_factor",
    "bit_score",
]


@dataclass(frozen=True)
class DescriptionAssignment:
    """Outcome of scoring one query.

    Attributes:
        query_id: Identifier of the query sequence
        best: Highest scoring candidate, None if no candidate kept a token
        token_scores: Final per-token scores, for diagnostic reporting
        scored_count: Number of candidates that were scored
    """
    query_id: str
    best: ScoredCandidate | None
    token_scores: dict[str, float]
    scored_count: int

    @property
    def description_score(self) -> float | None:
        return self.best.description_score if self.best is not None else None

    @property
    def has_description(self) -> bool:
        return self.best is not None


def annotate_query(query: Query, weights: ScoringWeights) -> DescriptionAssignment:
    """
    Run the full token and description scoring for one query.

    All intermediate aggregates are built from scratch and discarded on
    return, so the result depends only on the query and the weights.

    Raises:
        WeightConfigurationError: If the weights are invalid
        SequenceLengthError: If the query sequence length is not positive
    """
    aggregates = aggregate_token_evidence(query, weights)
    token_scores = demote_non_informative(score_tokens(aggregates, weights))

    measurements = measure_descriptions(query)
    scored = score_descriptions(query, token_scores, measurements, weights)
    best = select_best_description(scored)

    logger.debug(
        "annotate_query_complete",
        query_id=query.query_id,
        candidate_count=query.candidate_count,
        scored_count=len(scored),
        token_count=len(token_scores.scores),
        description_score=best.description_score if best is not None else None,
    )

    return DescriptionAssignment(
        query_id=query.query_id,
        best=best,
        token_scores=token_scores.scores,
        scored_count=len(scored),
    )


def _assignment_row(assignment: DescriptionAssignment) -> dict:
    row = dict.fromkeys(DESCRIPTION_COLUMNS)
    row["query_id"] = assignment.query_id

    best = assignment.best
    if best is not None:
        row.update(
            blast_database=best.candidate.blast_database,
            accession=best.candidate.accession,
            description=best.candidate.description,
            description_score=best.description_score,
            lexical_score=best.lexical_score,
            relative_bit_score=best.relative_bit_score,
            pattern_factor=best.pattern_factor,
            domain_similarity_factor=best.domain_similarity_factor,
            bit_score=best.candidate.bit_score,
        )
    return row


def annotate_queries(queries: list[Query], weights: ScoringWeights) -> pl.DataFrame:
    """
    Assign descriptions to many queries with one weight vector.

    Queries are independent; each is scored by annotate_query().

    Args:
        queries: Queries to annotate
        weights: Weight vector shared by all queries

    Returns:
        DataFrame with DESCRIPTION_COLUMNS, one row per query in input order.
        Queries without a description have NULL in every column but query_id.

    Raises:
        WeightConfigurationError: If the weights are invalid
    """
    weights.validate_sum()

    rows = [_assignment_row(annotate_query(query, weights)) for query in queries]

    result = pl.DataFrame(
        rows,
        schema={
            "query_id": pl.Utf8,
            "blast_database": pl.Utf8,
            "accession": pl.Utf8,
            "description": pl.Utf8,
            "description_score": pl.Float64,
            "lexical_score": pl.Float64,
            "relative_bit_score": pl.Float64,
            "pattern_factor": pl.Float64,
            "domain_similarity_factor": pl.Float64,
            "bit_score": pl.Float64,
        },
    )

    with_description = result.filter(pl.col("description_score").is_not_null())
    mean_score = with_description["description_score"].mean() if with_description.height else None

    logger.info(
        "annotate_queries_complete",
        total_queries=result.height,
        with_description=with_description.height,
        without_description=result.height - with_description.height,
        mean_description_score=f"{mean_score:.4f}" if mean_score is not None else "N/A",
    )

    return result
