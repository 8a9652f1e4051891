"""Configuration module for channel ingestion and the vector index."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class ChannelRAGConfig(BaseModel):
    """Configuration for channel ingestion, chunking, embedding and storage.

    Every setting can be overridden via environment variables or passed
    explicitly when constructing the model.
    """

    # Supadata API settings
    supadata_api_key: str = Field(
        default_factory=lambda: os.getenv("SUPADATA_API_KEY", "")
    )

    # Ingestion settings
    max_videos: int = Field(
        default_factory=lambda: int(os.getenv("YOUTUBE_MAX_VIDEOS", "20"))
    )
    ingestion_batch_size: int = Field(
        default_factory=lambda: int(os.getenv("YOUTUBE_BATCH_SIZE", "5"))
    )
    max_retries: int = Field(
        default_factory=lambda: int(os.getenv("YOUTUBE_MAX_RETRIES", "1"))
    )
    retry_backoff_seconds: float = Field(
        default_factory=lambda: float(os.getenv("RETRY_BACKOFF_SECONDS", "1.0"))
    )

    # Chunking settings (character-based)
    chunk_size: int = Field(
        default_factory=lambda: int(os.getenv("CHUNK_SIZE", "1000"))
    )
    chunk_overlap: int = Field(
        default_factory=lambda: int(os.getenv("CHUNK_OVERLAP", "200"))
    )

    # Embedding settings
    embedding_provider: str = Field(
        default_factory=lambda: os.getenv("EMBEDDING_PROVIDER", "openai")
    )
    embedding_base_url: str = Field(
        default_factory=lambda: os.getenv(
            "EMBEDDING_BASE_URL", "https://api.openai.com/v1"
        )
    )
    embedding_api_key: str = Field(
        default_factory=lambda: os.getenv("EMBEDDING_API_KEY", "")
    )
    embedding_model: str = Field(
        default_factory=lambda: os.getenv(
            "EMBEDDING_MODEL_CHOICE", "text-embedding-3-small"
        )
    )
    embedding_batch_size: int = Field(
        default_factory=lambda: int(os.getenv("EMBEDDING_BATCH_SIZE", "10"))
    )

    # Vector store settings
    vector_backend: str = Field(
        default_factory=lambda: os.getenv("VECTOR_BACKEND", "supabase")
    )
    vector_table: str = Field(
        default_factory=lambda: os.getenv("VECTOR_TABLE_NAME", "youtube_embeddings")
    )
    match_function: str = Field(
        default_factory=lambda: os.getenv("VECTOR_MATCH_FUNCTION", "match_documents")
    )
    supabase_url: str = Field(default_factory=lambda: os.getenv("SUPABASE_URL", ""))
    supabase_key: str = Field(
        default_factory=lambda: os.getenv("SUPABASE_SERVICE_KEY", "")
    )

    # Deadline applied to embedding and storage calls
    request_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
    )

    @model_validator(mode="after")
    def _check_chunking(self) -> "ChannelRAGConfig":
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")
        return self


def get_config() -> ChannelRAGConfig:
    """Get validated configuration instance.

    Returns:
        ChannelRAGConfig: Validated configuration object with all settings.

    Raises:
        pydantic.ValidationError: If environment variables hold invalid values.
    """
    return ChannelRAGConfig()
