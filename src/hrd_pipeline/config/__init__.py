from .loader import load_config, load_config_with_overrides, parse_overrides
from .schema import (
    BlastDatabaseSettings,
    PipelineConfig,
    ScoringWeights,
    WeightConfigurationError,
)

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "parse_overrides",
    "PipelineConfig",
    "ScoringWeights",
    "BlastDatabaseSettings",
    "WeightConfigurationError",
]
