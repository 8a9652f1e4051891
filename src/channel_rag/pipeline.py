"""Channel ingestion orchestrator: scrape, normalize, embed and index."""

import asyncio
from datetime import UTC, datetime

from src.utils.logging import get_logger

from .config import ChannelRAGConfig, get_config
from .errors import ValidationError
from .interfaces import ChannelScraper, MetadataStore
from .normalizer import ContentNormalizer
from .schemas import (
    ChannelInfo,
    IngestionResult,
    VideoContentMetadata,
    VideoIngestionStatus,
    VideoInfo,
)
from .vector_index import VectorIndex
from .youtube_service import extract_channel_id, format_transcript

logger = get_logger(__name__)


class ChannelIngestionPipeline:
    """Orchestrates ingestion of a channel into the vector index.

    Videos are processed in bounded batches. Inside a batch each video is
    isolated: one failure is recorded and its siblings carry on. Transient
    failures are retried with exponential backoff. A ``ValidationError``
    means the input itself is bad, so it is never retried.
    """

    def __init__(
        self,
        scraper: ChannelScraper,
        metadata_store: MetadataStore,
        vector_index: VectorIndex,
        normalizer: ContentNormalizer | None = None,
        config: ChannelRAGConfig | None = None,
    ):
        """Initialize pipeline with its collaborators.

        Args:
            scraper: Source of channel, video and transcript data.
            metadata_store: Relational store for scraped records.
            vector_index: Index receiving the normalized chunks.
            normalizer: Content normalizer. Built from ``config`` when omitted.
            config: Configuration object. If None, loads from environment.
        """
        self.config = config or get_config()
        self.scraper = scraper
        self.metadata_store = metadata_store
        self.vector_index = vector_index
        self.normalizer = normalizer or ContentNormalizer(self.config)

        logger.info(
            "pipeline_initialized",
            batch_size=self.config.ingestion_batch_size,
            max_retries=self.config.max_retries,
        )

    async def process_channel(
        self,
        channel_url: str,
        max_videos: int | None = None,
        force: bool = False,
    ) -> IngestionResult:
        """Ingest a channel's videos.

        Args:
            channel_url: Public channel URL.
            max_videos: Upper bound on videos to ingest. Defaults to
                ``config.max_videos``.
            force: Re-ingest even if the channel was processed before. The
                channel's existing vectors are removed once the scrape succeeds.

        Returns:
            IngestionResult with counts and per-video errors.

        Raises:
            ValidationError: If the URL does not name a channel.
            Exception: If the channel itself cannot be scraped or stored.
        """
        channel_id = extract_channel_id(channel_url)
        if not channel_id:
            raise ValidationError(f"Not a YouTube channel URL: {channel_url}")

        max_videos = max_videos or self.config.max_videos
        logger.info(
            "pipeline_started",
            channel_id=channel_id,
            max_videos=max_videos,
            force=force,
        )

        existing = await self.metadata_store.get_channel(channel_id)
        if existing and not force:
            videos = await self.metadata_store.list_videos(channel_id)
            logger.info("channel_already_processed", channel_id=channel_id)
            return IngestionResult(
                channel_id=channel_id,
                channel_name=existing.get("channel_name"),
                message="Channel already processed",
                total_videos=len(videos),
                skipped=len(videos),
            )

        channel, videos = await self.scraper.scrape_channel_with_videos(
            channel_url, max_videos
        )
        await self.metadata_store.store_channel(channel)

        # Existing vectors go only once fresh content is in hand
        if existing:
            await self.vector_index.delete_by_channel(channel_id)

        result = IngestionResult(
            channel_id=channel.channel_id,
            channel_name=channel.channel_name,
            total_videos=len(videos),
        )

        batch_size = max(1, self.config.ingestion_batch_size)
        for i in range(0, len(videos), batch_size):
            batch = videos[i : i + batch_size]
            statuses = await self._process_batch(batch, channel)

            for status in statuses:
                if status.status == "completed":
                    result.processed += 1
                    result.chunks_created += status.chunks_created
                else:
                    result.failed += 1
                    result.errors.append(
                        f"{status.video_id}: {status.error_message or 'Unknown error'}"
                    )

        result.message = "Channel processed successfully"
        logger.info(
            "pipeline_completed",
            channel_id=channel.channel_id,
            processed=result.processed,
            failed=result.failed,
            chunks_created=result.chunks_created,
        )
        return result

    async def _process_batch(
        self, videos: list[VideoInfo], channel: ChannelInfo
    ) -> list[VideoIngestionStatus]:
        """Process one batch concurrently, turning stray exceptions into failures."""
        outcomes = await asyncio.gather(
            *[self._process_video(video, channel) for video in videos],
            return_exceptions=True,
        )

        statuses: list[VideoIngestionStatus] = []
        for video, outcome in zip(videos, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(
                    "video_processing_crashed",
                    video_id=video.video_id,
                    error_type=type(outcome).__name__,
                )
                statuses.append(
                    VideoIngestionStatus(
                        video_id=video.video_id,
                        status="failed",
                        error_message=str(outcome),
                    )
                )
            else:
                statuses.append(outcome)
        return statuses

    async def _process_video(
        self, video: VideoInfo, channel: ChannelInfo
    ) -> VideoIngestionStatus:
        """Process a single video, retrying transient failures.

        Steps: store metadata, fetch and store the transcript, store comments,
        normalize, replace the video's vectors.
        """
        logger.info("processing_video", video_id=video.video_id)
        attempts = self.config.max_retries + 1

        for attempt in range(attempts):
            try:
                chunks_created = await self._ingest_video(video, channel)
                logger.info(
                    "video_processed",
                    video_id=video.video_id,
                    chunks=chunks_created,
                )
                return VideoIngestionStatus(
                    video_id=video.video_id,
                    status="completed",
                    chunks_created=chunks_created,
                    attempts=attempt + 1,
                    processed_at=datetime.now(UTC),
                )

            except ValidationError as e:
                logger.error(
                    "video_validation_failed",
                    video_id=video.video_id,
                    error=str(e),
                )
                return VideoIngestionStatus(
                    video_id=video.video_id,
                    status="failed",
                    attempts=attempt + 1,
                    error_message=str(e),
                )

            except Exception as e:
                logger.warning(
                    "video_processing_attempt_failed",
                    video_id=video.video_id,
                    attempt=attempt + 1,
                    error_type=type(e).__name__,
                    error=str(e),
                )

                if attempt + 1 >= attempts:
                    logger.error(
                        "video_processing_failed",
                        video_id=video.video_id,
                        error=str(e),
                    )
                    return VideoIngestionStatus(
                        video_id=video.video_id,
                        status="failed",
                        attempts=attempt + 1,
                        error_message=str(e),
                    )

                delay = self.config.retry_backoff_seconds * (2**attempt)
                logger.info("retrying_video", video_id=video.video_id, delay=delay)
                await asyncio.sleep(delay)

        # Only reachable with a negative max_retries
        return VideoIngestionStatus(
            video_id=video.video_id, status="failed", error_message="No attempts made"
        )

    async def _ingest_video(self, video: VideoInfo, channel: ChannelInfo) -> int:
        await self.metadata_store.store_video(video)

        transcript_text: str | None = None
        transcript = await self.scraper.fetch_transcript(video.video_id)
        if transcript and transcript.segments:
            transcript_text = format_transcript(transcript.segments)
            await self.metadata_store.store_transcript(
                video.video_id, transcript.language, transcript_text
            )
        else:
            logger.warning("indexing_without_transcript", video_id=video.video_id)

        if video.comments:
            await self.metadata_store.store_comments(video.video_id, video.comments)

        chunks = self.normalizer.normalize(
            video_id=video.video_id,
            channel_id=channel.channel_id,
            title=video.title,
            transcript_text=transcript_text,
            description_text=video.description,
            comments=video.comments,
            metadata=VideoContentMetadata(
                channel_name=channel.channel_name,
                url=video.url,
                view_count=video.view_count,
                upload_date=video.upload_date,
            ),
        )

        await self.vector_index.replace_video(video.video_id, chunks)
        return len(chunks)
