"""Channel content ingestion and vector retrieval.

This package turns scraped YouTube channel content into attributable chunks,
embeds them into a vector index, and exposes similarity search over them.
"""
