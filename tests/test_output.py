"""Tests for output writers and provenance sidecars."""

import hashlib
import json

import polars as pl
import pytest
import yaml

from hrd_pipeline.config.schema import BlastDatabaseSettings, PipelineConfig, ScoringWeights
from hrd_pipeline.output import settings_record, write_description_output, write_settings_report
from hrd_pipeline.persistence import ProvenanceTracker
from hrd_pipeline.scoring import DESCRIPTION_COLUMNS


@pytest.fixture
def descriptions_df():
    """Three queries, one without a description, unsorted."""
    return pl.DataFrame(
        {
            "query_id": ["q3", "q1", "q2"],
            "blast_database": ["swissprot", "trembl", None],
            "accession": ["P3", "T1", None],
            "description": ["Protein kinase", "Transcription factor", None],
            "description_score": [2.1, 1.4, None],
            "lexical_score": [0.8, 0.4, None],
            "relative_bit_score": [0.8, 0.5, None],
            "pattern_factor": [0.5, 0.5, None],
            "domain_similarity_factor": [0.0, 0.0, None],
            "bit_score": [120.0, 80.0, None],
        },
        schema_overrides={"blast_database": pl.Utf8, "accession": pl.Utf8, "description": pl.Utf8},
    )


@pytest.fixture
def weights():
    return ScoringWeights(
        blast_databases={
            "trembl": BlastDatabaseSettings(weight=904, description_score_bit_score_weight=2.59),
            "swissprot": BlastDatabaseSettings(weight=653, description_score_bit_score_weight=2.71),
        },
    )


def test_write_description_output_files(tmp_path, descriptions_df):
    paths = write_description_output(descriptions_df, tmp_path / "out")

    assert paths["tsv"].exists()
    assert paths["parquet"].exists()
    assert paths["provenance"].exists()
    assert paths["provenance"].name == "descriptions.provenance.yaml"


def test_write_description_output_sorted(tmp_path, descriptions_df):
    paths = write_description_output(descriptions_df, tmp_path)

    tsv = pl.read_csv(paths["tsv"], separator="\t")
    parquet = pl.read_parquet(paths["parquet"])

    assert tsv["query_id"].to_list() == ["q1", "q2", "q3"]
    assert parquet["query_id"].to_list() == ["q1", "q2", "q3"]
    assert parquet.columns == DESCRIPTION_COLUMNS
    assert parquet["accession"].to_list() == ["T1", None, "P3"]


def test_write_description_output_provenance(tmp_path, descriptions_df):
    paths = write_description_output(descriptions_df.lazy(), tmp_path, filename_base="run1")

    with open(paths["provenance"]) as f:
        provenance = yaml.safe_load(f)

    assert provenance["statistics"] == {
        "total_queries": 3,
        "with_description": 2,
        "without_description": 1,
    }
    assert provenance["output_files"] == ["run1.tsv", "run1.parquet"]
    assert provenance["column_names"] == DESCRIPTION_COLUMNS
    assert "generated_at" in provenance


def test_settings_record_columns(weights):
    record = settings_record(weights, 0.75)

    assert list(record) == [
        "origin",
        "average_evaluation_score",
        "diff_to_baseline",
        "token_score_bit_score_weight",
        "token_score_database_score_weight",
        "token_score_overlap_score_weight",
        "token_score_domain_similarity_weight",
        "swissprot_weight",
        "swissprot_description_score_bit_score_weight",
        "trembl_weight",
        "trembl_description_score_bit_score_weight",
    ]
    assert record["origin"] == "baseline"
    assert record["average_evaluation_score"] == 0.75
    assert record["trembl_weight"] == 904


def test_write_settings_report(tmp_path, weights):
    records = [
        settings_record(weights, 0.6),
        settings_record(weights, 0.7, diff_to_baseline=0.1, origin="token_score_bit_score_weight+0.05"),
        settings_record(weights, 0.7, diff_to_baseline=0.1, origin="token_score_overlap_score_weight-0.05"),
    ]

    paths = write_settings_report(records, tmp_path)

    df = pl.read_csv(paths["tsv"], separator="\t")
    assert df.height == 3
    assert df["origin"].to_list()[0] == "baseline"

    with open(paths["provenance"]) as f:
        provenance = yaml.safe_load(f)
    assert provenance["statistics"]["evaluated_weight_vectors"] == 3
    # First of equal scores wins
    assert provenance["statistics"]["best_origin"] == "token_score_bit_score_weight+0.05"
    assert provenance["statistics"]["best_average_evaluation_score"] == 0.7


def test_provenance_tracker_sidecar(tmp_path, weights):
    config = PipelineConfig(output_dir=tmp_path / "out", weights=weights)
    tracker = ProvenanceTracker.from_config(config, version="9.9.9")
    tracker.record_step("load_queries", {"query_count": 3})
    tracker.record_step("annotate_queries")

    sidecar = tracker.save_sidecar(tmp_path / "out" / "descriptions.tsv")

    assert sidecar.name == "descriptions.provenance.json"
    metadata = ProvenanceTracker.load_sidecar(sidecar)
    assert metadata["pipeline_version"] == "9.9.9"
    assert metadata["config_hash"] == config.config_hash()
    assert metadata["weights"]["blast_databases"]["trembl"]["weight"] == 904
    assert [s["step_name"] for s in metadata["processing_steps"]] == [
        "load_queries",
        "annotate_queries",
    ]
    assert metadata["processing_steps"][0]["details"] == {"query_count": 3}
    assert "details" not in metadata["processing_steps"][1]

    with open(sidecar) as f:
        assert json.load(f) == metadata


def test_provenance_tracker_default_version(tmp_path):
    from hrd_pipeline import __version__

    tracker = ProvenanceTracker.from_config(PipelineConfig(output_dir=tmp_path))

    assert tracker.pipeline_version == __version__
    assert tracker.processing_steps == []


def test_provenance_tracker_records_input_checksums(tmp_path):
    candidates = tmp_path / "candidates.tsv"
    candidates.write_text("query_id\nq1\n")
    tracker = ProvenanceTracker.from_config(PipelineConfig(output_dir=tmp_path / "out"))

    tracker.record_input(candidates)
    metadata = ProvenanceTracker.load_sidecar(tracker.save_sidecar(tmp_path / "out" / "run.tsv"))

    assert metadata["input_files"] == {
        str(candidates): hashlib.sha256(b"query_id\nq1\n").hexdigest()
    }
    assert metadata["f_measure_beta"] == 1.0
