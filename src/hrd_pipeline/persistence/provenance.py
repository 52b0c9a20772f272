"""Provenance sidecars tying every output file to the weights that produced it."""

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


def _file_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 16), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ProvenanceTracker:
    """
    Collects provenance for one CLI run.

    Holds the pipeline version, the config hash, the full weight vector,
    checksums of the input files and a timestamped list of steps.
    """

    def __init__(self, pipeline_version: str, config: "PipelineConfig"):
        self.pipeline_version = pipeline_version
        self.config_hash = config.config_hash()
        self.weights = config.weights.model_dump()
        self.f_measure_beta = config.evaluation.f_measure_beta
        self.input_files: dict[str, str] = {}
        self.processing_steps: list[dict] = []
        self.created_at = datetime.now(timezone.utc)

    def record_input(self, path: Path) -> None:
        """Remember an input file by name and SHA-256 checksum."""
        path = Path(path)
        self.input_files[str(path)] = _file_sha256(path)

    def record_step(self, step_name: str, details: Optional[dict] = None) -> None:
        step = {
            "step_name": step_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if details:
            step["details"] = details
        self.processing_steps.append(step)

    def create_metadata(self) -> dict:
        return {
            "pipeline_version": self.pipeline_version,
            "config_hash": self.config_hash,
            "weights": self.weights,
            "f_measure_beta": self.f_measure_beta,
            "input_files": self.input_files,
            "created_at": self.created_at.isoformat(),
            "processing_steps": self.processing_steps,
        }

    def save_sidecar(self, output_path: Path) -> Path:
        """
        Write metadata next to an output file.

        "descriptions.tsv" gets "descriptions.provenance.json".

        Returns:
            Path of the written sidecar
        """
        sidecar_path = Path(output_path).with_suffix(".provenance.json")
        sidecar_path.parent.mkdir(parents=True, exist_ok=True)
        sidecar_path.write_text(json.dumps(self.create_metadata(), indent=2, default=str))
        return sidecar_path

    @staticmethod
    def load_sidecar(sidecar_path: Path) -> dict:
        with open(sidecar_path) as f:
            return json.load(f)

    @classmethod
    def from_config(
        cls,
        config: "PipelineConfig",
        version: Optional[str] = None
    ) -> "ProvenanceTracker":
        """Create a tracker, defaulting to the installed hrd_pipeline version."""
        if version is None:
            from hrd_pipeline import __version__
            version = __version__

        return cls(version, config)
