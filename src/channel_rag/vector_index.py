"""Vector index over normalized chunks."""

import asyncio
import uuid
from typing import Any

import pydantic

from src.utils.logging import get_logger
from src.utils.timeouts import with_timeout

from .config import ChannelRAGConfig
from .embedding_service import EmbeddingService
from .errors import DataIntegrityError, IndexUnavailableError, ValidationError
from .schemas import Chunk, IndexedVector, IndexStats, SearchResult
from .vector_stores import VectorStore

logger = get_logger(__name__)

DEFAULT_SEARCH_K = 5


def chunk_id(chunk: Chunk) -> str:
    """Stable id for a chunk position, so re-ingestion overwrites instead of duplicating."""
    key = f"yt::{chunk.video_id}::{chunk.source_kind.value}::{chunk.chunk_index}"
    return str(uuid.uuid5(uuid.NAMESPACE_URL, key))


class VectorIndex:
    """Embeds chunks and searches them by cosine similarity.

    The index owns no clients of its own: the embedding service and the
    backing store are injected. The store is initialized lazily on first use.
    Provider and storage failures surface as ``IndexUnavailableError`` and
    deadline overruns as ``TimeoutError``.
    """

    def __init__(
        self,
        config: ChannelRAGConfig,
        embedding_service: EmbeddingService,
        store: VectorStore,
    ):
        """Initialize the index.

        Args:
            config: Configuration with timeouts and embedding batch size.
            embedding_service: Service that turns text into vectors.
            store: Persistence backend.
        """
        self.config = config
        self.embedding_service = embedding_service
        self.store = store
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Prepare the backing store. Safe to call repeatedly."""
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return
            await self._guard(self.store.initialize(), "store_initialize")
            self._initialized = True
            logger.info("vector_index_initialized", store=type(self.store).__name__)

    async def upsert(self, chunks: list[Chunk]) -> None:
        """Embed and store a batch of chunks, all-or-nothing.

        Every chunk is embedded before anything is written, and the batch goes
        to the store in a single call. An embedding failure therefore leaves
        the index untouched.

        Args:
            chunks: Chunks to store. Existing rows with the same position are
                overwritten.

        Raises:
            IndexUnavailableError: If embedding or storage fails.
            TimeoutError: If either step exceeds its deadline.
        """
        if not chunks:
            return

        await self.initialize()
        rows = await self._embed_rows(chunks)

        await self._guard(self.store.upsert(rows), "store_upsert")
        logger.info(
            "chunks_upserted",
            count=len(rows),
            video_ids=sorted({c.video_id for c in chunks}),
        )

    async def replace_video(self, video_id: str, chunks: list[Chunk]) -> None:
        """Swap a video's stored chunks for ``chunks``.

        Embedding happens before the old rows are deleted, so a provider
        failure leaves the previous version of the video searchable. Chunk
        positions that no longer exist are dropped.

        Args:
            video_id: Video whose rows are replaced.
            chunks: New chunks, all belonging to ``video_id``. An empty list
                just removes the video.

        Raises:
            ValidationError: If a chunk belongs to another video.
            IndexUnavailableError: If embedding or storage fails.
            TimeoutError: If a step exceeds its deadline.
        """
        stray = {c.video_id for c in chunks} - {video_id}
        if stray:
            raise ValidationError(f"chunks for {sorted(stray)} passed to replace {video_id}")

        await self.initialize()
        rows = await self._embed_rows(chunks) if chunks else []

        await self._guard(self.store.delete_where("video_id", video_id), "delete_by_video")
        if rows:
            await self._guard(self.store.upsert(rows), "store_upsert")
        logger.info("video_vectors_replaced", video_id=video_id, count=len(rows))

    async def search(self, query_text: str, k: int = DEFAULT_SEARCH_K) -> list[SearchResult]:
        """Return up to ``k`` chunks most similar to ``query_text``.

        Args:
            query_text: Natural-language query.
            k: Maximum number of results.

        Returns:
            Results ordered by descending cosine similarity.

        Raises:
            DataIntegrityError: If a stored row lacks valid chunk metadata.
            IndexUnavailableError: If embedding or search fails.
            TimeoutError: If either step exceeds its deadline.
        """
        await self.initialize()

        query_embedding = await self._guard(
            self.embedding_service.embed_text(query_text), "embed_query"
        )
        rows = await self._guard(self.store.query(query_embedding, k), "store_query")

        results = [
            SearchResult(chunk=self._to_chunk(row), score=float(row.get("similarity", 0.0)))
            for row in rows
        ]
        results.sort(key=lambda r: r.score, reverse=True)
        results = results[:k]

        logger.info("vector_search_completed", results=len(results), k=k)
        return results

    async def delete_by_video(self, video_id: str) -> None:
        """Remove every vector whose metadata names ``video_id``."""
        await self.initialize()
        await self._guard(self.store.delete_where("video_id", video_id), "delete_by_video")
        logger.info("video_vectors_deleted", video_id=video_id)

    async def delete_by_channel(self, channel_id: str) -> None:
        """Remove every vector whose metadata names ``channel_id``."""
        await self.initialize()
        await self._guard(
            self.store.delete_where("channel_id", channel_id), "delete_by_channel"
        )
        logger.info("channel_vectors_deleted", channel_id=channel_id)

    async def stats(self) -> IndexStats:
        """Aggregate counts over stored metadata, for diagnostics."""
        await self.initialize()
        return await self._guard(self.store.stats(), "stats")

    async def _embed_rows(self, chunks: list[Chunk]) -> list[dict[str, Any]]:
        """Embed ``chunks`` and build one store row per distinct chunk id."""
        # Each embedding request carries its own deadline inside the service
        embeddings = await self._guard(
            self.embedding_service.embed_batch([c.text for c in chunks]),
            "embed_batch",
            bounded=False,
        )
        if len(embeddings) != len(chunks):
            raise IndexUnavailableError(
                f"Embedding count {len(embeddings)} does not match chunk count {len(chunks)}"
            )

        # Later duplicates win, matching the store's overwrite semantics
        rows_by_id: dict[str, dict[str, Any]] = {}
        for chunk, embedding in zip(chunks, embeddings, strict=True):
            vector = IndexedVector(id=chunk_id(chunk), chunk=chunk, embedding=embedding)
            rows_by_id[vector.id] = self._to_row(vector)
        return list(rows_by_id.values())

    async def _guard(self, awaitable: Any, operation: str, bounded: bool = True) -> Any:
        """Apply the deadline and translate backend failures."""
        try:
            if not bounded:
                return await awaitable
            return await with_timeout(
                awaitable, self.config.request_timeout_seconds, operation
            )
        except (TimeoutError, IndexUnavailableError):
            raise
        except Exception as e:
            logger.exception(
                "vector_index_operation_failed",
                operation=operation,
                error_type=type(e).__name__,
            )
            raise IndexUnavailableError(f"{operation} failed: {e}") from e

    @staticmethod
    def _to_row(vector: IndexedVector) -> dict[str, Any]:
        return {
            "id": vector.id,
            "content": vector.chunk.text,
            "metadata": vector.chunk.model_dump(mode="json", exclude={"text"}),
            "embedding": vector.embedding,
        }

    @staticmethod
    def _to_chunk(row: dict[str, Any]) -> Chunk:
        metadata = row.get("metadata")
        if not isinstance(metadata, dict):
            raise DataIntegrityError(f"Vector {row.get('id')} has no metadata payload")
        try:
            return Chunk.model_validate({**metadata, "text": row.get("content")})
        except pydantic.ValidationError as e:
            raise DataIntegrityError(
                f"Vector {row.get('id')} has incomplete metadata: {e}"
            ) from e
