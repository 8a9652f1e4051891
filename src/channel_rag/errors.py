"""Error taxonomy for ingestion, indexing and answer generation.

Timeouts are reported with the built-in ``TimeoutError`` (see
``src.utils.timeouts``) so callers can catch them alongside asyncio's own.
"""


class ChannelRAGError(Exception):
    """Base class for all errors raised by the channel RAG core."""


class ValidationError(ChannelRAGError, ValueError):
    """Caller supplied malformed or empty required input. Never retried."""


class IndexUnavailableError(ChannelRAGError):
    """The embedding provider or the vector store failed."""


class DataIntegrityError(IndexUnavailableError):
    """A stored vector came back without a complete, valid metadata payload."""


class GenerationError(ChannelRAGError):
    """The language model call failed or returned no content."""
