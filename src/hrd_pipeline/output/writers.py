"""TSV+Parquet writers with YAML provenance sidecars."""

from datetime import datetime, timezone
from pathlib import Path

import polars as pl
import yaml

from hrd_pipeline.config.schema import ScoringWeights


def _write_provenance(path: Path, output_files: list[Path], statistics: dict, df: pl.DataFrame) -> None:
    provenance = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "output_files": [p.name for p in output_files],
        "statistics": statistics,
        "column_count": len(df.columns),
        "column_names": df.columns,
    }
    with open(path, "w") as f:
        yaml.dump(provenance, f, default_flow_style=False, sort_keys=False)


def write_description_output(
    df: pl.DataFrame | pl.LazyFrame,
    output_dir: Path,
    filename_base: str = "descriptions",
) -> dict:
    """
    Write assigned descriptions to TSV and Parquet formats with provenance sidecar.

    Args:
        df: DataFrame from annotate_queries(), one row per query
        output_dir: Directory to write output files (created if doesn't exist)
        filename_base: Base filename without extension (default: "descriptions")

    Returns:
        Dictionary with output file paths:
        {
            "tsv": Path to TSV file,
            "parquet": Path to Parquet file,
            "provenance": Path to YAML provenance sidecar
        }

    Notes:
        - Sorts by query_id ASC for deterministic output
        - Queries without a description keep their row with NULL columns
        - Provenance YAML includes generated_at, output_files,
          statistics (total_queries, with/without description) and columns
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if isinstance(df, pl.LazyFrame):
        df = df.collect()

    df = df.sort("query_id")

    tsv_path = output_dir / f"{filename_base}.tsv"
    parquet_path = output_dir / f"{filename_base}.parquet"
    provenance_path = output_dir / f"{filename_base}.provenance.yaml"

    df.write_csv(tsv_path, separator="\t", include_header=True)
    df.write_parquet(parquet_path, compression="snappy", use_pyarrow=True)

    with_description = df.filter(pl.col("description_score").is_not_null()).height
    _write_provenance(
        provenance_path,
        [tsv_path, parquet_path],
        {
            "total_queries": df.height,
            "with_description": with_description,
            "without_description": df.height - with_description,
        },
        df,
    )

    return {
        "tsv": tsv_path,
        "parquet": parquet_path,
        "provenance": provenance_path,
    }


def settings_record(
    weights: ScoringWeights,
    average_evaluation_score: float,
    diff_to_baseline: float = 0.0,
    origin: str = "baseline",
) -> dict:
    """
    Flatten one evaluated weight vector into a settings report row.

    Columns: origin, average_evaluation_score, diff_to_baseline, the four
    token score weights, then per database (sorted by name) its weight and
    its description score bit score weight.
    """
    record = {
        "origin": origin,
        "average_evaluation_score": average_evaluation_score,
        "diff_to_baseline": diff_to_baseline,
    }
    record.update(weights.token_weights())

    for blast_database in sorted(weights.blast_databases):
        settings = weights.blast_databases[blast_database]
        record[f"{blast_database}_weight"] = settings.weight
        record[f"{blast_database}_description_score_bit_score_weight"] = (
            settings.description_score_bit_score_weight
        )

    return record


def write_settings_report(
    records: list[dict],
    output_dir: Path,
    filename_base: str = "settings",
) -> dict:
    """
    Write one row per evaluated weight vector to TSV with provenance sidecar.

    Args:
        records: Rows from settings_record(), in evaluation order
        output_dir: Directory to write output files (created if doesn't exist)
        filename_base: Base filename without extension (default: "settings")

    Returns:
        Dictionary with "tsv" and "provenance" paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    df = pl.DataFrame(records)

    tsv_path = output_dir / f"{filename_base}.tsv"
    provenance_path = output_dir / f"{filename_base}.provenance.yaml"

    df.write_csv(tsv_path, separator="\t", include_header=True)

    best = (
        df.sort("average_evaluation_score", descending=True, maintain_order=True).row(0, named=True)
        if df.height
        else None
    )
    _write_provenance(
        provenance_path,
        [tsv_path],
        {
            "evaluated_weight_vectors": df.height,
            "best_origin": best["origin"] if best else None,
            "best_average_evaluation_score": best["average_evaluation_score"] if best else None,
        },
        df,
    )

    return {
        "tsv": tsv_path,
        "provenance": provenance_path,
    }
