"""Integration tests for CLI commands using CliRunner.

Tests:
- info with valid and invalid weights
- annotate writes descriptions, Parquet and provenance
- evaluate writes per-query evaluation and settings report
- sensitivity writes one settings row per weight vector
- Error handling for invalid token weights
"""

import json

import polars as pl
import pytest
from click.testing import CliRunner

from hrd_pipeline.cli.main import cli
from hrd_pipeline.candidates import CANDIDATE_COLUMNS


def _config_text(tmp_path, bit_weight=0.5):
    return f"""
output_dir: {tmp_path}/output

weights:
  token_score_bit_score_weight: {bit_weight}
  token_score_database_score_weight: 0.3
  token_score_overlap_score_weight: 0.2
  token_score_domain_similarity_weight: 0.0
  blast_databases:
    swissprot:
      weight: 100
      description_score_bit_score_weight: 1.0
    trembl:
      weight: 50
      description_score_bit_score_weight: 0.5
  description_score_pattern_factor_weight: 0.5
  description_score_domain_similarity_weight: 0.0
"""


@pytest.fixture
def test_config(tmp_path):
    """Create minimal config YAML for testing."""
    config_path = tmp_path / "test_config.yaml"
    config_path.write_text(_config_text(tmp_path))
    return config_path


@pytest.fixture
def invalid_config(tmp_path):
    """Token weights summing to 1.2."""
    config_path = tmp_path / "invalid_config.yaml"
    config_path.write_text(_config_text(tmp_path, bit_weight=0.7))
    return config_path


@pytest.fixture
def candidates_tsv(tmp_path):
    rows = []
    for i in range(4):
        rows += [
            [f"q{i}", "200", "swissprot", f"P{i}", "Protein kinase", str(100 + 30 * i),
             "1", str(120 + 10 * i), "protein kinase", "0.7"],
            [f"q{i}", "200", "trembl", f"T{i}", "Putative kinase domain", str(140 - 5 * i),
             "1", "190", "putative kinase domain", ""],
        ]
    rows.append(["q9", "150", "trembl", "T9", "Uncharacterized protein", "40", "1", "60", "", ""])

    path = tmp_path / "candidates.tsv"
    lines = ["\t".join(CANDIDATE_COLUMNS + ["domain_similarity_score"])]
    lines += ["\t".join(r) for r in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def references_tsv(tmp_path):
    path = tmp_path / "references.tsv"
    lines = ["query_id\treference_description\treference_tokens"]
    lines += [f"q{i}\tProtein kinase\tprotein kinase" for i in range(4)]
    path.write_text("\n".join(lines) + "\n")
    return path


def test_info(test_config):
    runner = CliRunner()
    result = runner.invoke(cli, ['--config', str(test_config), 'info'])

    assert result.exit_code == 0
    assert "Token Score Weights:" in result.output
    assert "(sum = 1.0)" in result.output
    assert "swissprot: weight=100" in result.output


def test_info_reports_invalid_sum(invalid_config):
    runner = CliRunner()
    result = runner.invoke(cli, ['--config', str(invalid_config), 'info'])

    assert result.exit_code == 0
    assert "must sum to 1.0" in result.output


def test_annotate_help():
    runner = CliRunner()
    result = runner.invoke(cli, ['annotate', '--help'])

    assert result.exit_code == 0
    assert "--candidates" in result.output


def test_annotate_generates_files(test_config, candidates_tsv, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(test_config),
        'annotate',
        '--candidates', str(candidates_tsv),
    ])

    assert result.exit_code == 0, result.output
    assert "Annotation complete!" in result.output
    assert "With description: 4" in result.output
    assert "Without description: 1" in result.output

    output_dir = tmp_path / "output"
    assert (output_dir / "descriptions.tsv").exists()
    assert (output_dir / "descriptions.parquet").exists()
    assert (output_dir / "descriptions.provenance.yaml").exists()
    assert (output_dir / "descriptions.provenance.json").exists()

    df = pl.read_parquet(output_dir / "descriptions.parquet")
    assert df.height == 5
    assert df.filter(pl.col("query_id") == "q9")["accession"].to_list() == [None]


def test_annotate_custom_output_dir(test_config, candidates_tsv, tmp_path):
    custom_dir = tmp_path / "custom"
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(test_config),
        'annotate',
        '--candidates', str(candidates_tsv),
        '--output-dir', str(custom_dir),
    ])

    assert result.exit_code == 0, result.output
    assert (custom_dir / "descriptions.tsv").exists()


def test_annotate_invalid_weights(invalid_config, candidates_tsv, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(invalid_config),
        'annotate',
        '--candidates', str(candidates_tsv),
    ])

    assert result.exit_code == 1
    assert not (tmp_path / "output" / "descriptions.tsv").exists()


def test_annotate_unknown_database(test_config, tmp_path):
    path = tmp_path / "pdb.tsv"
    path.write_text(
        "\t".join(CANDIDATE_COLUMNS) + "\n"
        + "\t".join(["q1", "100", "pdb", "1ABC", "Kinase", "10", "1", "10", "kinase"]) + "\n"
    )

    runner = CliRunner()
    result = runner.invoke(cli, ['--config', str(test_config), 'annotate', '--candidates', str(path)])

    assert result.exit_code == 1
    assert "pdb" in result.output


def test_evaluate(test_config, candidates_tsv, references_tsv, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(test_config),
        'evaluate',
        '--candidates', str(candidates_tsv),
        '--references', str(references_tsv),
    ])

    assert result.exit_code == 0, result.output
    assert "Evaluated queries: 4" in result.output
    assert "Queries without reference: 1" in result.output
    assert "Evaluation complete!" in result.output

    output_dir = tmp_path / "output"
    evaluation = pl.read_csv(output_dir / "evaluation.tsv", separator="\t")
    assert evaluation.height == 5
    settings = pl.read_csv(output_dir / "settings.tsv", separator="\t")
    assert settings.height == 1
    assert settings["origin"].to_list() == ["baseline"]
    assert (output_dir / "evaluation.provenance.json").exists()


def test_sensitivity(test_config, candidates_tsv, references_tsv, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(test_config),
        'sensitivity',
        '--candidates', str(candidates_tsv),
        '--references', str(references_tsv),
        '--delta', '0.05',
        '--delta', '-0.05',
    ])

    assert result.exit_code == 0, result.output
    assert "Sensitivity Analysis:" in result.output
    assert "Sensitivity analysis complete!" in result.output

    settings = pl.read_csv(tmp_path / "output" / "sensitivity_settings.tsv", separator="\t")
    # baseline + 4 weights x 2 deltas
    assert settings.height == 9
    assert settings["origin"].to_list()[0] == "baseline"
    assert "token_score_bit_score_weight+0.05" in settings["origin"].to_list()


def test_annotate_set_overrides_weights(invalid_config, candidates_tsv, tmp_path):
    """--set repairs the invalid token weights and is recorded in provenance."""
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(invalid_config),
        'annotate',
        '--candidates', str(candidates_tsv),
        '--set', 'weights.token_score_bit_score_weight=0.5',
    ])

    assert result.exit_code == 0, result.output
    assert "token_score_bit_score_weight: 0.5000" in result.output

    metadata = json.loads((tmp_path / "output" / "descriptions.provenance.json").read_text())
    assert metadata["weights"]["token_score_bit_score_weight"] == 0.5
    assert metadata["processing_steps"][0]["details"] == {
        "overrides": ["weights.token_score_bit_score_weight=0.5"]
    }
    assert str(candidates_tsv) in metadata["input_files"]


def test_evaluate_set_changes_config_hash(test_config, candidates_tsv, references_tsv, tmp_path):
    runner = CliRunner()
    base_args = [
        '--config', str(test_config),
        'evaluate',
        '--candidates', str(candidates_tsv),
        '--references', str(references_tsv),
    ]
    sidecar = tmp_path / "output" / "evaluation.provenance.json"

    assert runner.invoke(cli, base_args).exit_code == 0
    baseline_hash = json.loads(sidecar.read_text())["config_hash"]

    result = runner.invoke(cli, base_args + ['--set', 'weights.blast_databases.trembl.weight=500'])

    assert result.exit_code == 0, result.output
    metadata = json.loads(sidecar.read_text())
    assert metadata["config_hash"] != baseline_hash
    assert metadata["weights"]["blast_databases"]["trembl"]["weight"] == 500


@pytest.mark.parametrize("assignment", [
    "weights.no_such_weight=0.1",
    "weights.token_score_bit_score_weight",
])
def test_sensitivity_rejects_bad_override(test_config, candidates_tsv, references_tsv, assignment):
    runner = CliRunner()
    result = runner.invoke(cli, [
        '--config', str(test_config),
        'sensitivity',
        '--candidates', str(candidates_tsv),
        '--references', str(references_tsv),
        '--set', assignment,
    ])

    assert result.exit_code == 1
    assert "Sensitivity command failed" in result.output
