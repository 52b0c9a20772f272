"""Token and description scoring, description assignment and weight evaluation."""

from hrd_pipeline.scoring.token_score import (
    FilteredTokenScores,
    SequenceLengthError,
    TokenAggregates,
    TokenScores,
    aggregate_token_evidence,
    demote_non_informative,
    domain_similarity_fraction,
    is_informative,
    overlap_score,
    score_tokens,
)
from hrd_pipeline.scoring.description_score import (
    DescriptionMeasurements,
    ScoredCandidate,
    domain_similarity_factor,
    lexical_score,
    measure_descriptions,
    pattern_factor,
    relative_bit_score,
    score_descriptions,
    select_best_description,
)
from hrd_pipeline.scoring.engine import (
    DESCRIPTION_COLUMNS,
    DescriptionAssignment,
    annotate_queries,
    annotate_query,
)
from hrd_pipeline.scoring.evaluation import (
    WeightEvaluation,
    evaluate_weights,
    f_measure,
)
from hrd_pipeline.scoring.sensitivity import (
    TOKEN_WEIGHT_FIELDS,
    generate_sensitivity_report,
    perturb_weight,
    run_sensitivity_analysis,
    summarize_sensitivity,
)

__all__ = [
    "FilteredTokenScores",
    "SequenceLengthError",
    "TokenAggregates",
    "TokenScores",
    "aggregate_token_evidence",
    "demote_non_informative",
    "domain_similarity_fraction",
    "is_informative",
    "overlap_score",
    "score_tokens",
    "DescriptionMeasurements",
    "ScoredCandidate",
    "domain_similarity_factor",
    "lexical_score",
    "measure_descriptions",
    "pattern_factor",
    "relative_bit_score",
    "score_descriptions",
    "select_best_description",
    "DESCRIPTION_COLUMNS",
    "DescriptionAssignment",
    "annotate_queries",
    "annotate_query",
    "WeightEvaluation",
    "evaluate_weights",
    "f_measure",
    "TOKEN_WEIGHT_FIELDS",
    "generate_sensitivity_report",
    "perturb_weight",
    "run_sensitivity_analysis",
    "summarize_sensitivity",
]
