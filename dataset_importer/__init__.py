"""Dataset tooling: CSV ingestion pipeline for evaluation datasets."""

__version__ = "0.3.0"
