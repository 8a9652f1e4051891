"""Text embeddings for chunks and queries through an OpenAI-compatible endpoint."""

from typing import Any

from openai import AsyncOpenAI

from src.utils.clients import get_embedding_client
from src.utils.logging import get_logger
from src.utils.timeouts import with_timeout

from .config import ChannelRAGConfig

logger = get_logger(__name__)


class EmbeddingService:
    """Turns chunk and query text into vectors.

    Queries go out one at a time. Chunks go out as list requests of up to
    ``embedding_batch_size`` texts, sent one after another. Each request
    carries its own ``request_timeout_seconds`` deadline.
    """

    def __init__(self, config: ChannelRAGConfig, client: AsyncOpenAI | None = None):
        self.config = config
        self.client = client or get_embedding_client(config)
        logger.info(
            "embedding_service_initialized",
            provider=config.embedding_provider,
            model=config.embedding_model,
            base_url=config.embedding_base_url,
        )

    async def embed_text(self, text: str) -> list[float]:
        """Embed one query or chunk.

        Raises:
            TimeoutError: If the provider misses the deadline.
            Exception: Whatever the provider raised.
        """
        try:
            response = await self._create(text)
        except Exception as e:
            logger.exception(
                "embedding_failed",
                text_length=len(text),
                error_type=type(e).__name__,
            )
            raise

        vector: list[float] = response.data[0].embedding
        logger.debug("embedding_generated", text_length=len(text), embedding_dim=len(vector))
        return vector

    async def embed_batch(
        self, texts: list[str], batch_size: int | None = None
    ) -> list[list[float]]:
        """Embed ``texts``, returning vectors in input order.

        Args:
            texts: Chunk texts.
            batch_size: Texts per request. Defaults to
                ``config.embedding_batch_size``.

        Raises:
            ValueError: If the provider returns a different number of vectors.
            Exception: The first failing request's error. Later batches are
                not sent.
        """
        size = max(1, batch_size or self.config.embedding_batch_size)
        vectors: list[list[float]] = []

        for start in range(0, len(texts), size):
            batch = texts[start : start + size]
            try:
                response = await self._create(batch)
            except Exception as e:
                logger.exception(
                    "batch_embedding_failed",
                    offset=start,
                    count=len(batch),
                    error_type=type(e).__name__,
                )
                raise

            # Providers tag each vector with its input position
            items = sorted(response.data, key=lambda item: item.index)
            if len(items) != len(batch):
                raise ValueError(
                    f"provider returned {len(items)} embeddings for {len(batch)} texts"
                )
            vectors.extend(item.embedding for item in items)

        logger.info("batch_embedding_completed", count=len(vectors), batch_size=size)
        return vectors

    async def _create(self, inputs: str | list[str]) -> Any:
        return await with_timeout(
            self.client.embeddings.create(input=inputs, model=self.config.embedding_model),
            self.config.request_timeout_seconds,
            "embedding",
        )
