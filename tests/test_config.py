"""Tests for configuration loading and weight validation."""

import pytest
from pydantic import ValidationError

from hrd_pipeline.config import (
    WeightConfigurationError,
    load_config,
    load_config_with_overrides,
    parse_overrides,
)
from hrd_pipeline.config.schema import (
    BlastDatabaseSettings,
    PipelineConfig,
    ScoringWeights,
)


def _write_config(tmp_path, weights_block=""):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f"""
output_dir: {tmp_path}/out
{weights_block}
""")
    return config_path


def test_load_valid_config():
    """Test loading valid default configuration."""
    config = load_config("config/default.yaml")

    assert isinstance(config, PipelineConfig)
    assert config.weights.token_score_bit_score_weight == 0.468
    assert config.weights.token_score_domain_similarity_weight == 0.0
    assert config.weights.database_weight("trembl") == 904
    assert config.weights.description_bit_score_weight("tair") == pytest.approx(2.917405)
    assert config.weights.description_score_pattern_factor_weight == 0.5
    assert config.evaluation.f_measure_beta == 1.0


def test_default_weights_validate_sum():
    """Default token score weights sum to 1.0 within tolerance."""
    ScoringWeights().validate_sum()  # Should not raise


def test_missing_output_dir_raises(tmp_path):
    """output_dir is required."""
    config_path = tmp_path / "invalid.yaml"
    config_path.write_text("""
weights:
  token_score_bit_score_weight: 0.5
""")

    with pytest.raises(ValidationError) as exc_info:
        load_config(config_path)

    assert "output_dir" in str(exc_info.value)


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_output_dir_created(tmp_path):
    """Loading a config creates its output directory."""
    config = load_config(_write_config(tmp_path))

    assert config.output_dir.exists()
    assert config.output_dir.is_dir()


def test_weights_summing_to_more_than_one_rejected():
    """Token weights summing to 1.2 raise WeightConfigurationError."""
    weights = ScoringWeights(
        token_score_bit_score_weight=0.6,
        token_score_database_score_weight=0.3,
        token_score_overlap_score_weight=0.3,
        token_score_domain_similarity_weight=0.0,
    )

    with pytest.raises(WeightConfigurationError, match="must sum to 1.0"):
        weights.validate_sum()


def test_weights_within_tolerance_accepted():
    """A sum of 0.9995 is inside the 0.001 tolerance."""
    weights = ScoringWeights(
        token_score_bit_score_weight=0.4675,
        token_score_database_score_weight=0.21,
        token_score_overlap_score_weight=0.322,
        token_score_domain_similarity_weight=0.0,
    )
    weights.validate_sum()  # Should not raise


def test_weights_outside_tolerance_rejected():
    weights = ScoringWeights(
        token_score_bit_score_weight=0.46,
        token_score_database_score_weight=0.21,
        token_score_overlap_score_weight=0.32,
        token_score_domain_similarity_weight=0.0,
    )

    with pytest.raises(WeightConfigurationError):
        weights.validate_sum()


def test_weight_configuration_error_is_value_error():
    assert issubclass(WeightConfigurationError, ValueError)


def test_negative_weight_rejected():
    with pytest.raises(ValidationError):
        ScoringWeights(token_score_bit_score_weight=-0.1)


def test_negative_database_weight_rejected():
    with pytest.raises(ValidationError):
        BlastDatabaseSettings(weight=-1, description_score_bit_score_weight=1.0)


def test_weights_are_frozen():
    weights = ScoringWeights()

    with pytest.raises(ValidationError):
        weights.token_score_bit_score_weight = 0.9


def test_unknown_blast_database_raises():
    """Looking up weights of an unconfigured database fails loudly."""
    weights = ScoringWeights()

    with pytest.raises(WeightConfigurationError, match="pdb"):
        weights.database_weight("pdb")

    with pytest.raises(WeightConfigurationError, match="pdb"):
        weights.description_bit_score_weight("pdb")


def test_custom_blast_databases_from_yaml(tmp_path):
    """Databases listed in YAML replace the defaults."""
    config_path = _write_config(tmp_path, """
weights:
  blast_databases:
    uniref90:
      weight: 10
      description_score_bit_score_weight: 1.5
""")

    config = load_config(config_path)

    assert set(config.weights.blast_databases) == {"uniref90"}
    assert config.weights.database_weight("uniref90") == 10
    assert config.weights.description_bit_score_weight("uniref90") == 1.5


def test_config_hash_deterministic(tmp_path):
    config_path = _write_config(tmp_path)

    assert load_config(config_path).config_hash() == load_config(config_path).config_hash()


def test_config_overrides(tmp_path):
    """Dotted override keys change nested weights and the config hash."""
    config_path = _write_config(tmp_path)
    baseline = load_config(config_path)

    config = load_config_with_overrides(
        config_path,
        {
            "weights.token_score_bit_score_weight": 0.5,
            "weights.token_score_overlap_score_weight": 0.2902,
            "weights.blast_databases.swissprot.weight": 1000,
        },
    )

    assert config.weights.token_score_bit_score_weight == 0.5
    assert config.weights.database_weight("swissprot") == 1000
    assert config.config_hash() != baseline.config_hash()
    config.weights.validate_sum()


def test_override_to_invalid_sum_loads_but_fails_validation(tmp_path):
    """Sum validation happens before scoring, not at load time."""
    config = load_config_with_overrides(
        _write_config(tmp_path),
        {"weights.token_score_bit_score_weight": 0.9},
    )

    with pytest.raises(WeightConfigurationError):
        config.weights.validate_sum()


def test_parse_overrides_types_values():
    overrides = parse_overrides([
        "weights.token_score_bit_score_weight=0.5",
        "weights.blast_databases.swissprot.weight = 700",
        "output_dir=out/run1",
    ])

    assert overrides == {
        "weights.token_score_bit_score_weight": 0.5,
        "weights.blast_databases.swissprot.weight": 700,
        "output_dir": "out/run1",
    }


@pytest.mark.parametrize("assignment", ["weights.token_score_bit_score_weight", "=0.5"])
def test_parse_overrides_rejects_malformed(assignment):
    with pytest.raises(ValueError, match="key=value"):
        parse_overrides([assignment])


@pytest.mark.parametrize("key", [
    "weights.token_score_bit_score_wieght",
    "weights.blast_databases.pdb.weight",
    "scoring.gnomad",
])
def test_override_unknown_key_raises(tmp_path, key):
    with pytest.raises(KeyError):
        load_config_with_overrides(_write_config(tmp_path), {key: 1})
