"""Persistence backends for the vector index.

Both stores speak the same row format::

    {"id": str, "content": str, "metadata": dict, "embedding": list[float]}

and return hits as the same dict plus a ``similarity`` key (cosine).
"""

import asyncio
from threading import RLock
from typing import Any, Protocol

import numpy as np
from supabase import Client

from src.utils.clients import get_supabase_client
from src.utils.logging import get_logger

from .config import ChannelRAGConfig
from .schemas import IndexStats

logger = get_logger(__name__)


class VectorStore(Protocol):
    """Raw row storage with cosine similarity search."""

    async def initialize(self) -> None: ...

    async def upsert(self, rows: list[dict[str, Any]]) -> None: ...

    async def query(self, embedding: list[float], k: int) -> list[dict[str, Any]]: ...

    async def delete_where(self, key: str, value: str) -> None: ...

    async def stats(self) -> IndexStats: ...


# ==============================================================================
# In-process store
# ==============================================================================


class InMemoryVectorStore:
    """Numpy-backed store for local runs and tests.

    All state sits behind one re-entrant lock, so concurrent searches and
    writes from different tasks or threads stay consistent.
    """

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}
        self._lock = RLock()

    async def initialize(self) -> None:
        return None

    async def upsert(self, rows: list[dict[str, Any]]) -> None:
        with self._lock:
            for row in rows:
                self._rows[row["id"]] = row

    async def query(self, embedding: list[float], k: int) -> list[dict[str, Any]]:
        with self._lock:
            rows = list(self._rows.values())

        if not rows or k <= 0:
            return []

        matrix = np.asarray([row["embedding"] for row in rows], dtype="float32")
        query = np.asarray(embedding, dtype="float32")

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        norms[norms == 0] = 1.0
        scores = (matrix @ query) / norms

        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:k]
        return [{**rows[i], "similarity": float(scores[i])} for i in order]

    async def delete_where(self, key: str, value: str) -> None:
        with self._lock:
            doomed = [
                row_id
                for row_id, row in self._rows.items()
                if row["metadata"].get(key) == value
            ]
            for row_id in doomed:
                del self._rows[row_id]

    async def stats(self) -> IndexStats:
        with self._lock:
            metadata = [row["metadata"] for row in self._rows.values()]

        return IndexStats(
            total_documents=len(metadata),
            distinct_channels=len({m.get("channel_id") for m in metadata}),
            distinct_videos=len({m.get("video_id") for m in metadata}),
        )


# ==============================================================================
# Supabase / pgvector store
# ==============================================================================


class SupabaseVectorStore:
    """Store backed by a Supabase table with a pgvector ``embedding`` column.

    The client is created lazily on ``initialize``. supabase-py is blocking,
    so every call runs in a worker thread and the caller can bound it with a
    deadline.
    """

    STATS_PAGE_SIZE = 1000

    def __init__(self, config: ChannelRAGConfig, client: Client | None = None):
        self.config = config
        self.table = config.vector_table
        self.match_function = config.match_function
        self.client = client

    async def initialize(self) -> None:
        if self.client is None:
            self.client = get_supabase_client(self.config)

        # Touch the table so a missing migration fails here, not mid-ingestion
        await asyncio.to_thread(
            lambda: self.client.table(self.table).select("id").limit(1).execute()
        )
        logger.info("supabase_vector_store_ready", table=self.table)

    async def upsert(self, rows: list[dict[str, Any]]) -> None:
        # One request per batch, so PostgREST applies it in a single statement
        await asyncio.to_thread(
            lambda: self.client.table(self.table)
            .upsert(rows, on_conflict="id")
            .execute()
        )

    async def query(self, embedding: list[float], k: int) -> list[dict[str, Any]]:
        response = await asyncio.to_thread(
            lambda: self.client.rpc(
                self.match_function,
                {
                    "query_embedding": embedding,
                    "match_count": k,
                    "filter": {},
                },
            ).execute()
        )
        rows: list[dict[str, Any]] = response.data or []
        return rows

    async def delete_where(self, key: str, value: str) -> None:
        await asyncio.to_thread(
            lambda: self.client.table(self.table)
            .delete()
            .eq(f"metadata->>{key}", value)
            .execute()
        )

    async def stats(self) -> IndexStats:
        channels: set[str] = set()
        videos: set[str] = set()
        total = 0
        offset = 0

        while True:
            response = await asyncio.to_thread(
                lambda start=offset: self.client.table(self.table)
                .select("channel:metadata->>channel_id, video:metadata->>video_id")
                .range(start, start + self.STATS_PAGE_SIZE - 1)
                .execute()
            )
            page = response.data or []
            for row in page:
                if row.get("channel"):
                    channels.add(row["channel"])
                if row.get("video"):
                    videos.add(row["video"])
            total += len(page)

            if len(page) < self.STATS_PAGE_SIZE:
                break
            offset += self.STATS_PAGE_SIZE

        return IndexStats(
            total_documents=total,
            distinct_channels=len(channels),
            distinct_videos=len(videos),
        )


def build_vector_store(config: ChannelRAGConfig) -> VectorStore:
    """Pick the store named by ``config.vector_backend``."""
    if config.vector_backend == "memory":
        return InMemoryVectorStore()
    if config.vector_backend == "supabase":
        return SupabaseVectorStore(config)
    raise ValueError(f"Unknown vector backend: {config.vector_backend}")
