"""Parameter sweep sensitivity analysis for token score weights."""

import math

import polars as pl
import structlog
from scipy.stats import spearmanr

from hrd_pipeline.candidates.models import Query
from hrd_pipeline.config.schema import ScoringWeights
from hrd_pipeline.scoring.evaluation import WeightEvaluation, evaluate_weights

logger = structlog.get_logger(__name__)

# Token score weight fields (must match ScoringWeights fields)
TOKEN_WEIGHT_FIELDS = [
    "token_score_bit_score_weight",
    "token_score_database_score_weight",
    "token_score_overlap_score_weight",
    "token_score_domain_similarity_weight",
]

# Default perturbation deltas (±5% and ±10%)
DEFAULT_DELTAS = [-0.10, -0.05, 0.05, 0.10]

# Spearman correlation threshold for stability classification
STABILITY_THRESHOLD = 0.85

# Minimum number of queries scored under both weight vectors for Spearman rho
MIN_PAIRED_QUERIES = 3


def perturb_weight(baseline: ScoringWeights, field: str, delta: float) -> ScoringWeights:
    """
    Perturb a single token score weight and renormalize to keep sum=1.0.

    Args:
        baseline: Baseline ScoringWeights instance
        field: Token weight to perturb (must be in TOKEN_WEIGHT_FIELDS)
        delta: Perturbation amount (can be negative)

    Returns:
        New ScoringWeights instance; database and description weights unchanged

    Raises:
        ValueError: If field not in TOKEN_WEIGHT_FIELDS

    Notes:
        - Clamps perturbed weight to [0.0, 1.0] before renormalization
        - Falls back to uniform token weights if all of them become zero
    """
    if field not in TOKEN_WEIGHT_FIELDS:
        raise ValueError(
            f"Invalid weight '{field}'. Must be one of {TOKEN_WEIGHT_FIELDS}"
        )

    w_dict = baseline.model_dump()
    w_dict[field] = max(0.0, min(1.0, w_dict[field] + delta))

    total = sum(w_dict[k] for k in TOKEN_WEIGHT_FIELDS)
    if total > 0:
        for k in TOKEN_WEIGHT_FIELDS:
            w_dict[k] = w_dict[k] / total
    else:
        uniform = 1.0 / len(TOKEN_WEIGHT_FIELDS)
        for k in TOKEN_WEIGHT_FIELDS:
            w_dict[k] = uniform

    return ScoringWeights(**w_dict)


def _selection_frame(evaluation: WeightEvaluation, suffix: str) -> pl.DataFrame:
    return evaluation.per_query.select([
        "query_id",
        pl.col("accession").alias(f"accession_{suffix}"),
        pl.col("description_score").alias(f"score_{suffix}"),
    ])


def _rank_stability(
    baseline: WeightEvaluation, perturbed: WeightEvaluation
) -> tuple[float | None, float | None, int, int]:
    """Spearman rho, p-value, paired query count and changed selection count."""
    joined = _selection_frame(baseline, "baseline").join(
        _selection_frame(perturbed, "perturbed"), on="query_id", how="inner"
    )

    changed_selections = joined.filter(
        pl.col("accession_baseline").ne_missing(pl.col("accession_perturbed"))
    ).height

    paired = joined.filter(
        pl.col("score_baseline").is_not_null() & pl.col("score_perturbed").is_not_null()
    )
    if paired.height < MIN_PAIRED_QUERIES:
        return None, None, paired.height, changed_selections

    rho, pval = spearmanr(
        paired["score_baseline"].to_numpy(), paired["score_perturbed"].to_numpy()
    )
    rho, pval = float(rho), float(pval)
    # Constant input has no defined rank correlation
    if math.isnan(rho):
        return None, None, paired.height, changed_selections
    return rho, pval, paired.height, changed_selections


def run_sensitivity_analysis(
    queries: list[Query],
    baseline_weights: ScoringWeights,
    deltas: list[float] | None = None,
    beta: float = 1.0,
) -> dict:
    """
    Perturb each token score weight and measure evaluation and rank stability.

    For each weight and each delta, re-runs the full description assignment
    with the perturbed weight vector, compares its average evaluation score
    with the baseline and measures Spearman rank correlation of description
    scores over queries scored under both vectors.

    Args:
        queries: Queries to annotate; those with reference tokens are evaluated
        baseline_weights: Baseline ScoringWeights to perturb
        deltas: List of perturbation amounts (default: DEFAULT_DELTAS)
        beta: F-measure beta used for evaluation

    Returns:
        Dict with keys:
        - baseline_weights: ScoringWeights - the baseline vector
        - baseline_evaluation_score: float
        - results: list[dict] - per-perturbation results with:
            - field: str
            - delta: float
            - weights: ScoringWeights - perturbed vector
            - average_evaluation_score: float
            - diff_to_baseline: float
            - changed_selections: int - queries whose selected accession changed
            - spearman_rho: float or None
            - spearman_pval: float or None
            - paired_count: int
        - total_perturbations: int

    Notes:
        - Every perturbation rebuilds all aggregates from scratch
        - rho is None if fewer than MIN_PAIRED_QUERIES queries are paired or
          the scores are constant
    """
    if deltas is None:
        deltas = DEFAULT_DELTAS

    logger.info(
        "run_sensitivity_analysis_start",
        baseline_weights=baseline_weights.token_weights(),
        deltas=deltas,
        query_count=len(queries),
        total_perturbations=len(TOKEN_WEIGHT_FIELDS) * len(deltas),
    )

    baseline = evaluate_weights(queries, baseline_weights, beta)

    results = []
    for field in TOKEN_WEIGHT_FIELDS:
        for delta in deltas:
            perturbed_weights = perturb_weight(baseline_weights, field, delta)
            perturbed = evaluate_weights(queries, perturbed_weights, beta)

            rho, pval, paired_count, changed_selections = _rank_stability(baseline, perturbed)

            if rho is None:
                logger.warning(
                    "run_sensitivity_analysis_no_correlation",
                    field=field,
                    delta=delta,
                    paired_count=paired_count,
                    message=f"Spearman rho undefined (need >= {MIN_PAIRED_QUERIES} varying scores)",
                )

            diff = perturbed.average_evaluation_score - baseline.average_evaluation_score
            results.append({
                "field": field,
                "delta": delta,
                "weights": perturbed_weights,
                "average_evaluation_score": perturbed.average_evaluation_score,
                "diff_to_baseline": diff,
                "changed_selections": changed_selections,
                "spearman_rho": rho,
                "spearman_pval": pval,
                "paired_count": paired_count,
            })

            logger.info(
                "run_sensitivity_analysis_perturbation",
                field=field,
                delta=f"{delta:+.2f}",
                average_evaluation_score=f"{perturbed.average_evaluation_score:.4f}",
                diff_to_baseline=f"{diff:+.4f}",
                changed_selections=changed_selections,
                spearman_rho=f"{rho:.4f}" if rho is not None else "N/A",
                stable=rho >= STABILITY_THRESHOLD if rho is not None else None,
            )

    logger.info(
        "run_sensitivity_analysis_complete",
        total_perturbations=len(results),
        baseline_evaluation_score=f"{baseline.average_evaluation_score:.4f}",
    )

    return {
        "baseline_weights": baseline_weights,
        "baseline_evaluation_score": baseline.average_evaluation_score,
        "results": results,
        "total_perturbations": len(results),
    }


def summarize_sensitivity(analysis_result: dict) -> dict:
    """
    Summarize sensitivity analysis results with stability classification.

    Args:
        analysis_result: Dict returned from run_sensitivity_analysis()

    Returns:
        Dict with keys:
        - min_rho, max_rho, mean_rho: float or None (None rhos excluded)
        - stable_count: int - perturbations with rho >= STABILITY_THRESHOLD
        - unstable_count: int
        - total_perturbations: int
        - overall_stable: bool - True if all non-None rhos are stable
        - most_sensitive_field: str or None - lowest mean rho
        - most_robust_field: str or None - highest mean rho
        - best_evaluation_score: float - highest average evaluation score,
          baseline included
        - best_origin: str - "baseline" or "<field><delta>" of the best vector
    """
    results = analysis_result["results"]

    best_evaluation_score = analysis_result["baseline_evaluation_score"]
    best_origin = "baseline"
    for r in results:
        if r["average_evaluation_score"] > best_evaluation_score:
            best_evaluation_score = r["average_evaluation_score"]
            best_origin = f"{r['field']}{r['delta']:+.2f}"

    rho_values = [r["spearman_rho"] for r in results if r["spearman_rho"] is not None]

    summary = {
        "min_rho": None,
        "max_rho": None,
        "mean_rho": None,
        "stable_count": 0,
        "unstable_count": 0,
        "total_perturbations": analysis_result["total_perturbations"],
        "overall_stable": False,
        "most_sensitive_field": None,
        "most_robust_field": None,
        "best_evaluation_score": best_evaluation_score,
        "best_origin": best_origin,
    }

    if not rho_values:
        return summary

    stable_count = sum(1 for rho in rho_values if rho >= STABILITY_THRESHOLD)

    field_rho_map = {}
    for field in TOKEN_WEIGHT_FIELDS:
        field_rhos = [
            r["spearman_rho"]
            for r in results
            if r["field"] == field and r["spearman_rho"] is not None
        ]
        if field_rhos:
            field_rho_map[field] = sum(field_rhos) / len(field_rhos)

    summary.update(
        min_rho=min(rho_values),
        max_rho=max(rho_values),
        mean_rho=sum(rho_values) / len(rho_values),
        stable_count=stable_count,
        unstable_count=len(rho_values) - stable_count,
        overall_stable=stable_count == len(rho_values),
        most_sensitive_field=min(field_rho_map, key=field_rho_map.get),
        most_robust_field=max(field_rho_map, key=field_rho_map.get),
    )
    return summary


def generate_sensitivity_report(analysis_result: dict, summary: dict) -> str:
    """
    Generate human-readable sensitivity analysis report.

    Args:
        analysis_result: Dict returned from run_sensitivity_analysis()
        summary: Dict returned from summarize_sensitivity()

    Returns:
        Multi-line text report with perturbation table and summary
    """
    status = "STABLE" if summary["overall_stable"] else "UNSTABLE"

    report = [
        f"Sensitivity Analysis: {status}",
        "",
        "Summary:",
        f"  Baseline evaluation score: {analysis_result['baseline_evaluation_score']:.4f}",
        f"  Best evaluation score: {summary['best_evaluation_score']:.4f} ({summary['best_origin']})",
        f"  Total perturbations: {summary['total_perturbations']}",
        f"  Stable perturbations: {summary['stable_count']} (rho >= {STABILITY_THRESHOLD})",
        f"  Unstable perturbations: {summary['unstable_count']}",
        f"  Mean Spearman rho: {summary['mean_rho']:.4f}" if summary["mean_rho"] is not None else "  Mean Spearman rho: N/A",
        "",
    ]

    if summary["most_sensitive_field"] and summary["most_robust_field"]:
        report.append(f"  Most sensitive weight: {summary['most_sensitive_field']}")
        report.append(f"  Most robust weight: {summary['most_robust_field']}")
        report.append("")

    report.append("Perturbation Results:")
    report.append("-" * 110)
    report.append(
        f"{'Weight':<38} {'Delta':>7} {'Eval score':>11} {'Diff':>9} "
        f"{'Changed':>8} {'Spearman rho':>13} {'Stable?':>8}"
    )
    report.append("-" * 110)

    for result in analysis_result["results"]:
        rho = result["spearman_rho"]
        if rho is not None:
            rho_str = f"{rho:.4f}"
            stable_mark = "yes" if rho >= STABILITY_THRESHOLD else "no"
        else:
            rho_str = "N/A"
            stable_mark = "N/A"

        report.append(
            f"{result['field']:<38} {result['delta']:>+7.2f} "
            f"{result['average_evaluation_score']:>11.4f} {result['diff_to_baseline']:>+9.4f} "
            f"{result['changed_selections']:>8} {rho_str:>13} {stable_mark:>8}"
        )

    return "\n".join(report)
