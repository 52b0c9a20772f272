"""Configuration loading with YAML parsing, validation and dotted-key overrides."""

from pathlib import Path
from typing import Any, Iterable

import pydantic_yaml
import yaml

from .schema import PipelineConfig


def load_config(config_path: Path | str) -> PipelineConfig:
    """
    Load and validate pipeline configuration from YAML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If config is invalid
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return pydantic_yaml.parse_yaml_raw_as(PipelineConfig, config_path.read_text())


def parse_overrides(assignments: Iterable[str]) -> dict[str, Any]:
    """
    Parse "dotted.key=value" strings into an override mapping.

    Values are parsed as YAML scalars, so "0.5" becomes a float and
    "653" an int.

    Raises:
        ValueError: If an assignment has no "=" or an empty key
    """
    overrides: dict[str, Any] = {}
    for assignment in assignments:
        key, sep, raw_value = assignment.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Override must look like key=value, got '{assignment}'")
        overrides[key] = yaml.safe_load(raw_value) if raw_value.strip() else None
    return overrides


def _set_dotted(config_dict: dict, key: str, value: Any) -> None:
    *parents, leaf = key.split(".")
    target = config_dict
    for depth, part in enumerate(parents):
        if not isinstance(target, dict) or part not in target:
            raise KeyError(f"Unknown config section '{'.'.join(parents[:depth + 1])}' in override '{key}'")
        target = target[part]
    if not isinstance(target, dict) or leaf not in target:
        raise KeyError(f"Unknown config key '{key}'")
    target[leaf] = value


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> PipelineConfig:
    """
    Load config from YAML and substitute single values.

    This is how one weight vector of a tuning loop is evaluated without
    writing a new YAML file; the CLI exposes it as repeatable --set options.

    Args:
        config_path: Path to YAML configuration file
        overrides: Values keyed by dotted path, e.g.
            "weights.token_score_bit_score_weight" or
            "weights.blast_databases.swissprot.weight"

    Raises:
        FileNotFoundError: If config file doesn't exist
        KeyError: If a key does not address an existing config field
        pydantic.ValidationError: If the overridden config is invalid
    """
    config_dict = load_config(config_path).model_dump()
    for key, value in overrides.items():
        _set_dotted(config_dict, key, value)
    return PipelineConfig.model_validate(config_dict)
