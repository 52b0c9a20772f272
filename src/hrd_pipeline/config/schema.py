"""Pydantic models for pipeline configuration."""

import hashlib
import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Token score weights must sum to 1.0 within this tolerance
TOKEN_WEIGHT_TOLERANCE = 0.001


class WeightConfigurationError(ValueError):
    """Raised when a weight vector cannot be used for scoring."""


class BlastDatabaseSettings(BaseModel):
    """Per-database weights for a homology-search source database."""

    model_config = ConfigDict(frozen=True)

    weight: int = Field(
        ...,
        ge=0,
        description="Database weight added to a token's cumulative database score",
    )
    description_score_bit_score_weight: float = Field(
        ...,
        ge=0.0,
        description="Weight of the relative bit score in the description score",
    )


def _default_blast_databases() -> dict[str, BlastDatabaseSettings]:
    return {
        "swissprot": BlastDatabaseSettings(
            weight=653, description_score_bit_score_weight=2.717061
        ),
        "trembl": BlastDatabaseSettings(
            weight=904, description_score_bit_score_weight=2.590211
        ),
        "tair": BlastDatabaseSettings(
            weight=854, description_score_bit_score_weight=2.917405
        ),
    }


class ScoringWeights(BaseModel):
    """
    Weight vector used for one scoring pass.

    Frozen so a single instance can be shared by any number of scoring runs.
    Token score weights form one group that must sum to 1.0; description score
    weights are independent multipliers.
    """

    model_config = ConfigDict(frozen=True)

    token_score_bit_score_weight: float = Field(
        default=0.468,
        ge=0.0,
        le=1.0,
        description="Weight of the cumulative bit score in a token score",
    )
    token_score_database_score_weight: float = Field(
        default=0.2098,
        ge=0.0,
        le=1.0,
        description="Weight of the cumulative database score in a token score",
    )
    token_score_overlap_score_weight: float = Field(
        default=0.3221,
        ge=0.0,
        le=1.0,
        description="Weight of the cumulative overlap score in a token score",
    )
    token_score_domain_similarity_weight: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Weight of the cumulative domain similarity score in a token score",
    )
    blast_databases: dict[str, BlastDatabaseSettings] = Field(
        default_factory=_default_blast_databases,
        description="Per-database weights keyed by database name",
    )
    description_score_pattern_factor_weight: float = Field(
        default=0.5,
        ge=0.0,
        description="Weight of the description line pattern frequency",
    )
    description_score_domain_similarity_weight: float = Field(
        default=0.0,
        ge=0.0,
        description="Weight of the relative domain similarity score",
    )

    def token_weights(self) -> dict[str, float]:
        """Return the four token score weights keyed by field name."""
        return {
            "token_score_bit_score_weight": self.token_score_bit_score_weight,
            "token_score_database_score_weight": self.token_score_database_score_weight,
            "token_score_overlap_score_weight": self.token_score_overlap_score_weight,
            "token_score_domain_similarity_weight": self.token_score_domain_similarity_weight,
        }

    def validate_sum(self) -> None:
        """
        Validate that the four token score weights sum to 1.0.

        Raises:
            WeightConfigurationError: If the weights do not sum to 1.0
                within TOKEN_WEIGHT_TOLERANCE

        Notes:
            - The sum is rounded to 9 decimal places before comparison
            - Must be called before any token is scored
        """
        total = round(sum(self.token_weights().values()), 9)

        if not (1.0 - TOKEN_WEIGHT_TOLERANCE <= total <= 1.0 + TOKEN_WEIGHT_TOLERANCE):
            raise WeightConfigurationError(
                f"Token score weights must sum to 1.0, got {total:.6f}"
            )

    def database_weight(self, blast_database: str) -> int:
        """Integer weight of a source database."""
        return self._database(blast_database).weight

    def description_bit_score_weight(self, blast_database: str) -> float:
        """Description score bit score weight of a source database."""
        return self._database(blast_database).description_score_bit_score_weight

    def _database(self, blast_database: str) -> BlastDatabaseSettings:
        try:
            return self.blast_databases[blast_database]
        except KeyError:
            raise WeightConfigurationError(
                f"No weights configured for blast database '{blast_database}'. "
                f"Configured: {sorted(self.blast_databases)}"
            ) from None


class EvaluationConfig(BaseModel):
    """Configuration for comparing assigned against reference descriptions."""

    f_measure_beta: float = Field(
        default=1.0,
        gt=0.0,
        description="Beta of the token based F-measure (1.0 = balanced)",
    )


class PipelineConfig(BaseModel):
    """Main pipeline configuration."""

    output_dir: Path = Field(
        ...,
        description="Directory for assigned descriptions and reports",
    )
    weights: ScoringWeights = Field(
        default_factory=ScoringWeights,
        description="Weight vector for token and description scores",
    )
    evaluation: EvaluationConfig = Field(
        default_factory=EvaluationConfig,
        description="Evaluation against reference descriptions",
    )

    @field_validator("output_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        useful for telling apart reports produced with different weights.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
