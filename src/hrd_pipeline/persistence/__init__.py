"""Provenance tracking for assigned descriptions and weight reports."""

from hrd_pipeline.persistence.provenance import ProvenanceTracker

__all__ = ["ProvenanceTracker"]
