"""hrd-pipeline: human-readable description assignment from homology-search hits."""

__version__ = "0.1.0"
