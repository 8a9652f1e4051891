"""Unit tests for the channel ingestion pipeline."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.channel_rag.config import ChannelRAGConfig
from src.channel_rag.errors import ValidationError
from src.channel_rag.pipeline import ChannelIngestionPipeline
from src.channel_rag.schemas import (
    ChannelInfo,
    Comment,
    SourceKind,
    TranscriptInfo,
    TranscriptSegment,
    VideoInfo,
)
from src.channel_rag.vector_index import VectorIndex

CHANNEL_URL = "https://www.youtube.com/@testchannel"


def make_video(video_id: str, **overrides) -> VideoInfo:
    fields = {
        "video_id": video_id,
        "channel_id": "@testchannel",
        "title": f"Video {video_id}",
        "url": f"https://www.youtube.com/watch?v={video_id}",
        "description": f"Description of {video_id}.",
        "upload_date": "2024-01-01",
    }
    fields.update(overrides)
    return VideoInfo(**fields)


def make_transcript(video_id: str) -> TranscriptInfo:
    return TranscriptInfo(
        video_id=video_id,
        language="en",
        segments=[
            TranscriptSegment(start=0, duration=5, text="Hello world."),
            TranscriptSegment(start=5, duration=5, text="This is a test."),
        ],
    )


@pytest.mark.unit
class TestChannelIngestionPipeline:
    """Test suite for ChannelIngestionPipeline class."""

    @pytest.fixture
    def channel(self) -> ChannelInfo:
        return ChannelInfo(
            channel_id="@testchannel",
            channel_name="Test Channel",
            channel_url=CHANNEL_URL,
        )

    @pytest.fixture
    def videos(self) -> list[VideoInfo]:
        return [make_video(f"v{i}") for i in range(3)]

    @pytest.fixture
    def mock_scraper(self, channel: ChannelInfo, videos: list[VideoInfo]) -> MagicMock:
        scraper = MagicMock()
        scraper.scrape_channel_with_videos = AsyncMock(return_value=(channel, videos))
        scraper.fetch_transcript = AsyncMock(side_effect=make_transcript)
        return scraper

    @pytest.fixture
    def mock_store(self) -> MagicMock:
        store = MagicMock()
        store.get_channel = AsyncMock(return_value=None)
        store.list_videos = AsyncMock(return_value=[])
        store.store_channel = AsyncMock()
        store.store_video = AsyncMock()
        store.store_transcript = AsyncMock()
        store.store_comments = AsyncMock()
        return store

    @pytest.fixture
    def pipeline(
        self,
        rag_config: ChannelRAGConfig,
        mock_scraper: MagicMock,
        mock_store: MagicMock,
        memory_index: VectorIndex,
    ) -> ChannelIngestionPipeline:
        return ChannelIngestionPipeline(
            scraper=mock_scraper,
            metadata_store=mock_store,
            vector_index=memory_index,
            config=rag_config,
        )

    @pytest.mark.asyncio
    async def test_process_channel_success(
        self,
        pipeline: ChannelIngestionPipeline,
        mock_scraper: MagicMock,
        mock_store: MagicMock,
        memory_index: VectorIndex,
    ) -> None:
        """Test a full run indexes every video's transcript, description and title."""
        result = await pipeline.process_channel(CHANNEL_URL, max_videos=3)

        assert result.channel_id == "@testchannel"
        assert result.channel_name == "Test Channel"
        assert result.message == "Channel processed successfully"
        assert result.total_videos == 3
        assert result.processed == 3
        assert result.failed == 0
        assert result.chunks_created == 9
        assert result.errors == []

        mock_scraper.scrape_channel_with_videos.assert_awaited_once_with(CHANNEL_URL, 3)
        mock_store.store_channel.assert_awaited_once()
        assert mock_store.store_video.await_count == 3
        mock_store.store_transcript.assert_any_await(
            "v0", "en", "[0s] Hello world.\n[5s] This is a test."
        )

        stats = await memory_index.stats()
        assert stats.total_documents == 9
        assert stats.distinct_videos == 3

    @pytest.mark.asyncio
    async def test_uses_configured_max_videos(
        self, pipeline: ChannelIngestionPipeline, mock_scraper: MagicMock
    ) -> None:
        await pipeline.process_channel(CHANNEL_URL)

        mock_scraper.scrape_channel_with_videos.assert_awaited_once_with(
            CHANNEL_URL, pipeline.config.max_videos
        )

    @pytest.mark.asyncio
    async def test_invalid_url_raises(
        self, pipeline: ChannelIngestionPipeline, mock_scraper: MagicMock
    ) -> None:
        with pytest.raises(ValidationError):
            await pipeline.process_channel("https://example.com/not-a-channel")

        mock_scraper.scrape_channel_with_videos.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_processed_channel_is_skipped(
        self,
        pipeline: ChannelIngestionPipeline,
        mock_scraper: MagicMock,
        mock_store: MagicMock,
    ) -> None:
        """Test that a known channel is not scraped again without force."""
        mock_store.get_channel.return_value = {"channel_name": "Test Channel"}
        mock_store.list_videos.return_value = [{"video_id": "a"}, {"video_id": "b"}]

        result = await pipeline.process_channel(CHANNEL_URL)

        assert result.message == "Channel already processed"
        assert result.skipped == 2
        assert result.processed == 0
        mock_scraper.scrape_channel_with_videos.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_force_clears_channel_vectors(
        self,
        pipeline: ChannelIngestionPipeline,
        mock_store: MagicMock,
        memory_index: VectorIndex,
    ) -> None:
        """Test that forced re-ingestion replaces the channel's vectors."""
        await pipeline.process_channel(CHANNEL_URL)
        mock_store.get_channel.return_value = {"channel_name": "Test Channel"}
        memory_index.delete_by_channel = AsyncMock(wraps=memory_index.delete_by_channel)

        result = await pipeline.process_channel(CHANNEL_URL, force=True)

        memory_index.delete_by_channel.assert_awaited_once_with("@testchannel")
        assert result.processed == 3
        assert (await memory_index.stats()).total_documents == 9

    @pytest.mark.asyncio
    async def test_failed_forced_scrape_keeps_existing_vectors(
        self,
        pipeline: ChannelIngestionPipeline,
        mock_scraper: MagicMock,
        mock_store: MagicMock,
        memory_index: VectorIndex,
    ) -> None:
        """Test that a forced re-ingest whose scrape fails leaves the channel searchable."""
        await pipeline.process_channel(CHANNEL_URL)
        mock_store.get_channel.return_value = {"channel_name": "Test Channel"}
        mock_scraper.scrape_channel_with_videos.side_effect = ConnectionError("youtube down")

        with pytest.raises(ConnectionError, match="youtube down"):
            await pipeline.process_channel(CHANNEL_URL, force=True)

        stats = await memory_index.stats()
        assert stats.total_documents == 9
        assert stats.distinct_videos == 3
        assert await memory_index.search("Hello world")

    @pytest.mark.asyncio
    async def test_failed_video_reingest_keeps_previous_vectors(
        self,
        pipeline: ChannelIngestionPipeline,
        memory_index: VectorIndex,
    ) -> None:
        """Test that an embedding outage during re-ingest keeps each video's old chunks."""
        await pipeline.process_channel(CHANNEL_URL)
        memory_index.embedding_service.embed_batch = AsyncMock(
            side_effect=ConnectionError("provider down")
        )

        result = await pipeline.process_channel(CHANNEL_URL)

        assert result.failed == 3
        stats = await memory_index.stats()
        assert stats.total_documents == 9
        assert stats.distinct_videos == 3

    @pytest.mark.asyncio
    async def test_reingest_drops_stale_chunks(
        self,
        pipeline: ChannelIngestionPipeline,
        mock_scraper: MagicMock,
        memory_index: VectorIndex,
    ) -> None:
        """Test that a video that lost its description no longer returns the old one."""
        await pipeline.process_channel(CHANNEL_URL)
        trimmed = [make_video(f"v{i}", description=None) for i in range(3)]
        channel, _ = mock_scraper.scrape_channel_with_videos.return_value
        mock_scraper.scrape_channel_with_videos.return_value = (channel, trimmed)

        result = await pipeline.process_channel(CHANNEL_URL)

        assert result.chunks_created == 6
        stats = await memory_index.stats()
        assert stats.total_documents == 6
        results = await memory_index.search("Description of v0", k=10)
        assert all(r.chunk.source_kind is not SourceKind.DESCRIPTION for r in results)

    @pytest.mark.asyncio
    async def test_video_failure_is_isolated_and_retried(
        self,
        pipeline: ChannelIngestionPipeline,
        mock_scraper: MagicMock,
        memory_index: VectorIndex,
    ) -> None:
        """Test that one failing video is retried, then recorded, while siblings succeed."""

        async def fetch(video_id: str) -> TranscriptInfo:
            if video_id == "v1":
                raise ConnectionError("network down")
            return make_transcript(video_id)

        mock_scraper.fetch_transcript.side_effect = fetch

        result = await pipeline.process_channel(CHANNEL_URL)

        assert result.processed == 2
        assert result.failed == 1
        assert result.errors == ["v1: network down"]
        # One retry configured: two attempts for v1, one each for v0 and v2
        assert mock_scraper.fetch_transcript.await_count == 4

        stats = await memory_index.stats()
        assert stats.distinct_videos == 2

    @pytest.mark.asyncio
    async def test_transient_failure_recovers_on_retry(
        self, pipeline: ChannelIngestionPipeline, mock_scraper: MagicMock
    ) -> None:
        calls: dict[str, int] = {}

        async def flaky(video_id: str) -> TranscriptInfo:
            calls[video_id] = calls.get(video_id, 0) + 1
            if video_id == "v0" and calls[video_id] == 1:
                raise TimeoutError("slow")
            return make_transcript(video_id)

        mock_scraper.fetch_transcript.side_effect = flaky

        result = await pipeline.process_channel(CHANNEL_URL)

        assert result.processed == 3
        assert result.failed == 0
        assert calls["v0"] == 2

    @pytest.mark.asyncio
    async def test_validation_error_is_not_retried(
        self,
        rag_config: ChannelRAGConfig,
        mock_scraper: MagicMock,
        mock_store: MagicMock,
        memory_index: VectorIndex,
    ) -> None:
        normalizer = MagicMock()
        normalizer.normalize.side_effect = ValidationError("video_id must not be empty")
        pipeline = ChannelIngestionPipeline(
            scraper=mock_scraper,
            metadata_store=mock_store,
            vector_index=memory_index,
            normalizer=normalizer,
            config=rag_config,
        )

        result = await pipeline.process_channel(CHANNEL_URL)

        assert result.failed == 3
        assert normalizer.normalize.call_count == 3
        assert all("video_id must not be empty" in e for e in result.errors)

    @pytest.mark.asyncio
    async def test_video_without_transcript_is_still_indexed(
        self,
        pipeline: ChannelIngestionPipeline,
        mock_scraper: MagicMock,
        mock_store: MagicMock,
        memory_index: VectorIndex,
    ) -> None:
        """Test that title and description are indexed when no transcript exists."""
        mock_scraper.fetch_transcript.side_effect = None
        mock_scraper.fetch_transcript.return_value = None

        result = await pipeline.process_channel(CHANNEL_URL)

        assert result.processed == 3
        assert result.chunks_created == 6
        mock_store.store_transcript.assert_not_awaited()
        results = await memory_index.search("Description of v0.", k=1)
        assert results[0].chunk.source_kind is SourceKind.DESCRIPTION

    @pytest.mark.asyncio
    async def test_comments_are_stored_and_indexed(
        self,
        pipeline: ChannelIngestionPipeline,
        mock_scraper: MagicMock,
        mock_store: MagicMock,
        channel: ChannelInfo,
    ) -> None:
        video = make_video("v9", comments=[Comment(author="alice", content="Loved it")])
        mock_scraper.scrape_channel_with_videos.return_value = (channel, [video])

        result = await pipeline.process_channel(CHANNEL_URL)

        assert result.chunks_created == 4
        mock_store.store_comments.assert_awaited_once_with("v9", video.comments)

    @pytest.mark.asyncio
    async def test_batches_bound_concurrency(
        self,
        mock_scraper: MagicMock,
        mock_store: MagicMock,
        memory_index: VectorIndex,
        channel: ChannelInfo,
    ) -> None:
        """Test that no more than batch_size videos are processed at once."""
        config = ChannelRAGConfig(
            vector_backend="memory", ingestion_batch_size=2, retry_backoff_seconds=0
        )
        videos = [make_video(f"v{i}") for i in range(5)]
        mock_scraper.scrape_channel_with_videos.return_value = (channel, videos)

        active = 0
        peak = 0

        async def fetch(video_id: str) -> TranscriptInfo:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return make_transcript(video_id)

        mock_scraper.fetch_transcript.side_effect = fetch
        pipeline = ChannelIngestionPipeline(
            scraper=mock_scraper,
            metadata_store=mock_store,
            vector_index=memory_index,
            config=config,
        )

        result = await pipeline.process_channel(CHANNEL_URL)

        assert result.processed == 5
        assert peak == 2
