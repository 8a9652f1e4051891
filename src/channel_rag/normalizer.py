"""Content normalizer that turns scraped video content into tagged chunks."""

import re
from collections.abc import Iterable, Mapping
from typing import Any

import pydantic

from src.utils.logging import get_logger

from .config import ChannelRAGConfig
from .errors import ValidationError
from .schemas import Chunk, Comment, SourceKind, VideoContentMetadata
from .text_splitter import TextSplitter

logger = get_logger(__name__)

# Transcript lines look like "[125s] text" (see youtube_service.format_transcript)
TIMESTAMP_MARKER = re.compile(r"\[(\d+(?:\.\d+)?)s\]")


class ContentNormalizer:
    """Normalizes one video's raw content into size-bounded chunks.

    Transcript, description, title and each comment are split independently
    so overlap never crosses sources. Every chunk inherits the same provenance
    block, which keeps it citable after splitting. The normalizer is pure: it
    performs no I/O and keeps no state between calls.
    """

    def __init__(self, config: ChannelRAGConfig | None = None):
        """Initialize the normalizer.

        Args:
            config: Configuration with chunk size and overlap. Uses the
                defaults (1000/200) when omitted.
        """
        self.config = config or ChannelRAGConfig()
        self.splitter = TextSplitter(
            chunk_size=self.config.chunk_size,
            chunk_overlap=self.config.chunk_overlap,
        )

    def normalize(
        self,
        video_id: str,
        channel_id: str,
        title: str,
        transcript_text: str | None = None,
        description_text: str | None = None,
        comments: Iterable[Comment] | None = None,
        metadata: VideoContentMetadata | Mapping[str, Any] | None = None,
    ) -> list[Chunk]:
        """Split a video's content into chunks carrying full provenance.

        Args:
            video_id: Video identifier. Must be non-blank.
            channel_id: Owning channel identifier. Must be non-blank.
            title: Video title, always emitted as exactly one chunk.
            transcript_text: Transcript as ``[<start>s] <text>`` lines.
            description_text: Video description.
            comments: Comments, rendered as ``"{author}: {content}"``.
            metadata: Channel name, URL, view count and upload date.

        Returns:
            Chunks ordered transcript, description, title, comments.

        Raises:
            ValidationError: If an id is blank or metadata is malformed or
                carries unknown fields.
        """
        if not video_id or not video_id.strip():
            raise ValidationError("video_id must not be empty")
        if not channel_id or not channel_id.strip():
            raise ValidationError("channel_id must not be empty")

        meta = self._coerce_metadata(metadata)
        video_title = title.strip() or video_id

        base: dict[str, Any] = {
            "video_id": video_id,
            "channel_id": channel_id,
            "video_title": video_title,
            "channel_name": meta.channel_name,
            "url": meta.url,
            "upload_date": meta.upload_date,
            "view_count": meta.view_count,
        }

        chunks: list[Chunk] = []

        if transcript_text:
            chunks.extend(self._transcript_chunks(transcript_text, base))

        if description_text:
            chunks.extend(
                self._make_chunks(description_text, SourceKind.DESCRIPTION, base)
            )

        # Title stays a single chunk even if the splitter would cut it
        title_pieces = self.splitter.split_text(title)
        if title_pieces:
            if len(title_pieces) > 1:
                logger.debug("title_truncated", video_id=video_id, length=len(title))
            chunks.append(
                Chunk(text=title_pieces[0], source_kind=SourceKind.TITLE, **base)
            )

        chunks.extend(self._comment_chunks(comments or [], base))

        logger.info(
            "content_normalized",
            video_id=video_id,
            chunks_created=len(chunks),
            transcript_chunks=sum(
                1 for c in chunks if c.source_kind is SourceKind.TRANSCRIPT
            ),
        )
        return chunks

    def _coerce_metadata(
        self, metadata: VideoContentMetadata | Mapping[str, Any] | None
    ) -> VideoContentMetadata:
        if isinstance(metadata, VideoContentMetadata):
            return metadata
        if metadata is None:
            raise ValidationError("metadata with channel_name and url is required")
        try:
            return VideoContentMetadata.model_validate(dict(metadata))
        except pydantic.ValidationError as e:
            raise ValidationError(f"invalid video metadata: {e}") from e

    def _make_chunks(
        self,
        text: str,
        source_kind: SourceKind,
        base: dict[str, Any],
        start_index: int = 0,
        **extra: Any,
    ) -> list[Chunk]:
        return [
            Chunk(
                text=piece,
                source_kind=source_kind,
                chunk_index=start_index + offset,
                **base,
                **extra,
            )
            for offset, piece in enumerate(self.splitter.split_text(text))
        ]

    def _transcript_chunks(self, text: str, base: dict[str, Any]) -> list[Chunk]:
        """Chunk a transcript, labelling each chunk with the marker in force at its start.

        Overlap means a chunk can begin mid-line, after the marker that
        opened that line. The label is the last marker at or before the
        chunk's first character, so citations point at where the passage
        really starts.
        """
        text = text.strip()
        markers = [(m.start(), m.group(0)) for m in TIMESTAMP_MARKER.finditer(text)]

        chunks: list[Chunk] = []
        offset = 0
        for index, piece in enumerate(self.splitter.split_text(text)):
            label = None
            for position, marker in markers:
                if position > offset:
                    break
                label = marker

            chunks.append(
                Chunk(
                    text=piece,
                    source_kind=SourceKind.TRANSCRIPT,
                    chunk_index=index,
                    timestamp_label=label,
                    **base,
                )
            )
            # Chunks are exact substrings, each starting one overlap before the previous end
            offset += len(piece) - self.splitter.chunk_overlap
        return chunks

    def _comment_chunks(
        self, comments: Iterable[Comment], base: dict[str, Any]
    ) -> list[Chunk]:
        """Chunk each comment separately, sharing one index sequence."""
        chunks: list[Chunk] = []
        for comment in comments:
            if not comment.content or not comment.content.strip():
                continue

            chunks.extend(
                self._make_chunks(
                    f"{comment.author}: {comment.content}",
                    SourceKind.COMMENT,
                    base,
                    start_index=len(chunks),
                    comment_author=comment.author,
                    comment_likes=comment.like_count,
                )
            )
        return chunks
