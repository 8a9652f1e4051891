"""Pydantic schemas for channel ingestion and the vector index."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SourceKind(str, Enum):
    """Which part of a video a chunk was cut from."""

    TRANSCRIPT = "transcript"
    DESCRIPTION = "description"
    TITLE = "title"
    COMMENT = "comment"


class VideoContentMetadata(BaseModel):
    """Provenance block copied onto every chunk of one video.

    Unknown keys are rejected so nothing untyped leaks into the index.
    """

    model_config = ConfigDict(extra="forbid")

    channel_name: str
    url: str
    view_count: int | None = None
    upload_date: str | None = None


class Comment(BaseModel):
    """Public comment on a video."""

    author: str = "Anonymous"
    content: str
    like_count: int | None = None
    posted_at: str | None = None


class Chunk(BaseModel):
    """Bounded, attributable span of normalized text.

    Every chunk carries enough metadata to rebuild a clickable citation
    (``video_id``, ``url``, ``video_title``, ``channel_name``).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: Literal[1] = 1
    text: str = Field(min_length=1)
    source_kind: SourceKind
    chunk_index: int = Field(default=0, ge=0)
    video_id: str = Field(min_length=1)
    channel_id: str = Field(min_length=1)
    video_title: str
    channel_name: str
    url: str = Field(min_length=1)
    upload_date: str | None = None
    view_count: int | None = None
    timestamp_label: str | None = None
    comment_author: str | None = None
    comment_likes: int | None = None


class IndexedVector(BaseModel):
    """Chunk plus its embedding and the stable id it is stored under."""

    id: str
    chunk: Chunk
    embedding: list[float]


class SearchResult(BaseModel):
    """One similarity-search hit."""

    chunk: Chunk
    score: float


class IndexStats(BaseModel):
    """Aggregate counts derived from stored metadata (diagnostics only)."""

    total_documents: int = 0
    distinct_channels: int = 0
    distinct_videos: int = 0


# ==============================================================================
# External collaborator models (scraper and metadata store)
# ==============================================================================


class ChannelInfo(BaseModel):
    """Channel-level metadata returned by the scraper."""

    channel_id: str
    channel_name: str
    channel_url: str
    subscriber_count: int | None = None
    video_count: int | None = None
    description: str | None = None
    thumbnail_url: str | None = None


class VideoInfo(BaseModel):
    """Video-level metadata returned by the scraper.

    ``view_count`` and ``like_count`` are best-effort and may be missing.
    """

    video_id: str
    channel_id: str
    title: str
    url: str
    upload_date: str | None = None
    duration: int | None = None  # seconds
    view_count: int | None = None
    like_count: int | None = None
    description: str | None = None
    thumbnail_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)


class TranscriptSegment(BaseModel):
    """Single transcript segment, times in seconds."""

    start: float
    duration: float
    text: str


class TranscriptInfo(BaseModel):
    """Full transcript of one video."""

    video_id: str
    language: str | None = None
    segments: list[TranscriptSegment] = Field(default_factory=list)


# ==============================================================================
# Pipeline reporting
# ==============================================================================


class VideoIngestionStatus(BaseModel):
    """Outcome of ingesting a single video."""

    video_id: str
    status: str  # completed, failed
    chunks_created: int = 0
    attempts: int = 0
    error_message: str | None = None
    processed_at: datetime | None = None


class IngestionResult(BaseModel):
    """Summary of a channel ingestion run, used for reporting."""

    channel_id: str
    channel_name: str | None = None
    message: str = ""
    total_videos: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    chunks_created: int = 0
    errors: list[str] = Field(default_factory=list)
