"""Evaluate a weight vector against reference descriptions.

The comparison is token based: an assigned description is good if its tokens
recover the reference description's tokens (recall) without adding unrelated
ones (precision). Weight-search loops call evaluate_weights() once per
candidate weight vector; it has no side effects.
"""

from dataclasses import dataclass

import polars as pl
import structlog

from hrd_pipeline.candidates.models import Query
from hrd_pipeline.config.schema import ScoringWeights
from hrd_pipeline.scoring.engine import annotate_query

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class WeightEvaluation:
    """Evaluation of one weight vector over a set of queries.

    Attributes:
        weights: The evaluated weight vector
        average_evaluation_score: Mean F-measure over queries with a reference
        evaluated_count: Number of queries with a reference
        skipped_count: Number of queries without a reference
        per_query: DataFrame with query_id, accession, description,
            description_score, evaluation_score (NULL if no reference)
    """
    weights: ScoringWeights
    average_evaluation_score: float
    evaluated_count: int
    skipped_count: int
    per_query: pl.DataFrame


def f_measure(
    assigned_tokens: set[str] | tuple[str, ...],
    reference_tokens: set[str] | tuple[str, ...],
    beta: float = 1.0,
) -> float:
    """
    Token set F-measure of an assigned description against its reference.

    Args:
        assigned_tokens: Tokens of the assigned description
        reference_tokens: Tokens of the reference description
        beta: Weight of recall relative to precision

    Returns:
        F-beta score in [0, 1]; 0.0 if either set is empty or nothing overlaps
    """
    assigned = set(assigned_tokens)
    reference = set(reference_tokens)
    if not assigned or not reference:
        return 0.0

    true_positives = len(assigned & reference)
    if true_positives == 0:
        return 0.0

    precision = true_positives / len(assigned)
    recall = true_positives / len(reference)
    beta_squared = beta ** 2
    return (1 + beta_squared) * precision * recall / (beta_squared * precision + recall)


def evaluate_weights(
    queries: list[Query],
    weights: ScoringWeights,
    beta: float = 1.0,
) -> WeightEvaluation:
    """
    Annotate all queries with one weight vector and score the result.

    Queries without reference tokens are annotated but excluded from the
    average. A query that receives no description scores 0.0.

    Raises:
        WeightConfigurationError: If the weights are invalid
    """
    weights.validate_sum()

    rows = []
    evaluation_scores = []
    for query in queries:
        assignment = annotate_query(query, weights)
        best = assignment.best

        evaluation_score = None
        if query.reference_tokens is not None:
            assigned_tokens = best.candidate.tokens if best is not None else ()
            evaluation_score = f_measure(assigned_tokens, query.reference_tokens, beta)
            evaluation_scores.append(evaluation_score)

        rows.append({
            "query_id": query.query_id,
            "accession": best.candidate.accession if best is not None else None,
            "description": best.candidate.description if best is not None else None,
            "reference_description": query.reference_description,
            "description_score": assignment.description_score,
            "evaluation_score": evaluation_score,
        })

    per_query = pl.DataFrame(
        rows,
        schema={
            "query_id": pl.Utf8,
            "accession": pl.Utf8,
            "description": pl.Utf8,
            "reference_description": pl.Utf8,
            "description_score": pl.Float64,
            "evaluation_score": pl.Float64,
        },
    )

    evaluated_count = len(evaluation_scores)
    skipped_count = len(queries) - evaluated_count

    if evaluated_count == 0:
        logger.warning(
            "evaluate_weights_no_references",
            total_queries=len(queries),
            message="No query has a reference description; average is 0.0",
        )
        average = 0.0
    else:
        average = sum(evaluation_scores) / evaluated_count

    logger.debug(
        "evaluate_weights_complete",
        evaluated_count=evaluated_count,
        skipped_count=skipped_count,
        average_evaluation_score=f"{average:.4f}",
    )

    return WeightEvaluation(
        weights=weights,
        average_evaluation_score=average,
        evaluated_count=evaluated_count,
        skipped_count=skipped_count,
        per_query=per_query,
    )
