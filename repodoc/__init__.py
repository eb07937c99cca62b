"""Repository ingestion, structural digests, and streamed documentation."""

__version__ = "0.1.0"
