"""Shared fixtures for the channel chat test suite."""

import re
import zlib

import pytest

from src.channel_rag.config import ChannelRAGConfig
from src.channel_rag.schemas import VideoContentMetadata
from src.channel_rag.vector_index import VectorIndex
from src.channel_rag.vector_stores import InMemoryVectorStore

EMBEDDING_DIM = 256


class FakeEmbeddingService:
    """Deterministic bag-of-words embedder.

    Identical texts map to identical vectors and texts sharing words land
    close together, which is all similarity tests need.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * EMBEDDING_DIM
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            vector[zlib.crc32(token.encode()) % EMBEDDING_DIM] += 1.0
        return vector

    async def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        return self._vector(text)

    async def embed_batch(
        self, texts: list[str], batch_size: int | None = None
    ) -> list[list[float]]:
        return [await self.embed_text(text) for text in texts]


@pytest.fixture
def rag_config() -> ChannelRAGConfig:
    """Configuration with in-memory storage and no retry delay."""
    return ChannelRAGConfig(
        vector_backend="memory",
        chunk_size=1000,
        chunk_overlap=200,
        max_retries=1,
        retry_backoff_seconds=0,
        request_timeout_seconds=5,
    )


@pytest.fixture
def fake_embeddings() -> FakeEmbeddingService:
    return FakeEmbeddingService()


@pytest.fixture
def memory_index(
    rag_config: ChannelRAGConfig, fake_embeddings: FakeEmbeddingService
) -> VectorIndex:
    """Vector index over the numpy store with fake embeddings."""
    return VectorIndex(
        config=rag_config,
        embedding_service=fake_embeddings,  # type: ignore[arg-type]
        store=InMemoryVectorStore(),
    )


@pytest.fixture
def video_metadata() -> VideoContentMetadata:
    return VideoContentMetadata(
        channel_name="Test Channel",
        url="https://www.youtube.com/watch?v=test_video_123",
        view_count=1500,
        upload_date="2024-01-01",
    )
