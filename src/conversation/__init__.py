"""Retrieval-augmented conversation over ingested channel content."""
