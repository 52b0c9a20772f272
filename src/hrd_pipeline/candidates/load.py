"""Load pre-tokenized candidate description lines from TSV files."""

from pathlib import Path

import polars as pl
import structlog

from hrd_pipeline.candidates.models import (
    CANDIDATE_COLUMNS,
    DOMAIN_SIMILARITY_COLUMN,
    REFERENCE_COLUMNS,
    Candidate,
    Query,
)

logger = structlog.get_logger(__name__)


def _read_tsv(path: Path, required_columns: list[str]) -> pl.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    # Read everything as strings; numeric columns are cast explicitly
    df = pl.read_csv(path, separator="\t", infer_schema_length=0, quote_char=None)

    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name} is missing required columns: {missing}")

    return df


def _split_tokens(value: str | None) -> tuple[str, ...]:
    return tuple(value.split()) if value else ()


def load_queries(candidates_path: Path | str) -> list[Query]:
    """
    Load queries and their candidates from a tab-separated file.

    One row per candidate description line. Rows are grouped by query_id,
    then by blast_database, both in order of first appearance.

    Args:
        candidates_path: TSV with columns CANDIDATE_COLUMNS and optionally
            domain_similarity_score (empty cell = no domain evidence).
            tokens is a space-separated list of pre-tokenized words.

    Returns:
        List of Query instances in order of first appearance

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If required columns are missing or a query has
            conflicting sequence lengths
        pydantic.ValidationError: If a row violates the Candidate model
    """
    candidates_path = Path(candidates_path)
    df = _read_tsv(candidates_path, CANDIDATE_COLUMNS)

    if DOMAIN_SIMILARITY_COLUMN not in df.columns:
        df = df.with_columns(pl.lit(None, dtype=pl.Utf8).alias(DOMAIN_SIMILARITY_COLUMN))

    df = df.with_columns(
        pl.col("sequence_length").cast(pl.Int64),
        pl.col("bit_score").cast(pl.Float64),
        pl.col("query_start").cast(pl.Int64),
        pl.col("query_end").cast(pl.Int64),
        pl.col(DOMAIN_SIMILARITY_COLUMN).cast(pl.Float64),
    )

    lengths: dict[str, int] = {}
    grouped: dict[str, dict[str, list[Candidate]]] = {}

    for row in df.iter_rows(named=True):
        query_id = row["query_id"]
        length = row["sequence_length"]

        if lengths.setdefault(query_id, length) != length:
            raise ValueError(
                f"Query {query_id} has conflicting sequence lengths: "
                f"{lengths[query_id]} and {length}"
            )

        candidate = Candidate(
            blast_database=row["blast_database"],
            accession=row["accession"],
            description=row["description"] or "",
            bit_score=row["bit_score"],
            query_start=row["query_start"],
            query_end=row["query_end"],
            tokens=_split_tokens(row["tokens"]),
            domain_similarity_score=row[DOMAIN_SIMILARITY_COLUMN],
        )
        grouped.setdefault(query_id, {}).setdefault(candidate.blast_database, []).append(candidate)

    queries = [
        Query(query_id=query_id, sequence_length=lengths[query_id], candidates=by_database)
        for query_id, by_database in grouped.items()
    ]

    logger.info(
        "load_queries_complete",
        path=str(candidates_path),
        query_count=len(queries),
        candidate_count=df.height,
        with_domain_evidence=df.filter(pl.col(DOMAIN_SIMILARITY_COLUMN).is_not_null()).height,
    )

    return queries


def load_references(references_path: Path | str) -> dict[str, tuple[str, tuple[str, ...]]]:
    """
    Load ground-truth descriptions from a tab-separated file.

    Args:
        references_path: TSV with columns REFERENCE_COLUMNS;
            reference_tokens is space-separated

    Returns:
        Dict mapping query_id to (reference_description, reference_tokens)
    """
    references_path = Path(references_path)
    df = _read_tsv(references_path, REFERENCE_COLUMNS)

    references = {
        row["query_id"]: (
            row["reference_description"] or "",
            _split_tokens(row["reference_tokens"]),
        )
        for row in df.iter_rows(named=True)
    }

    logger.info(
        "load_references_complete",
        path=str(references_path),
        reference_count=len(references),
    )

    return references


def attach_references(
    queries: list[Query],
    references: dict[str, tuple[str, tuple[str, ...]]],
) -> list[Query]:
    """Return copies of queries carrying their reference description, if one is known."""
    attached = []
    for query in queries:
        if query.query_id in references:
            description, tokens = references[query.query_id]
            query = query.model_copy(
                update={"reference_description": description, "reference_tokens": tokens}
            )
        attached.append(query)

    missing = sum(1 for q in attached if q.reference_tokens is None)
    if missing:
        logger.warning(
            "attach_references_incomplete",
            queries_without_reference=missing,
            total_queries=len(attached),
        )

    return attached
