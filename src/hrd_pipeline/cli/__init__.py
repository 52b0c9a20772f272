"""Command line interface for hrd-pipeline."""
