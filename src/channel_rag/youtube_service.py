"""YouTube scraper adapter backed by the Supadata API."""

import asyncio
import re
from typing import Any

from supadata import Supadata

from src.utils.logging import get_logger

from .config import ChannelRAGConfig
from .errors import ValidationError
from .schemas import ChannelInfo, TranscriptInfo, TranscriptSegment, VideoInfo

logger = get_logger(__name__)

CHANNEL_URL_PATTERNS = (
    re.compile(r"youtube\.com/(@[^/?#]+)"),
    re.compile(r"youtube\.com/channel/([^/?#]+)"),
    re.compile(r"youtube\.com/c/([^/?#]+)"),
    re.compile(r"youtube\.com/user/([^/?#]+)"),
)


def extract_channel_id(channel_url: str) -> str | None:
    """Extract the channel ID or handle from a YouTube channel URL.

    Examples:
        >>> extract_channel_id("https://www.youtube.com/@veritasium/videos")
        "@veritasium"
        >>> extract_channel_id("https://youtube.com/channel/UCabc123")
        "UCabc123"
    """
    for pattern in CHANNEL_URL_PATTERNS:
        match = pattern.search(channel_url)
        if match:
            return match.group(1)
    return None


def format_transcript(segments: list[TranscriptSegment]) -> str:
    """Join segments into ``[<start>s] <text>`` lines, start in whole seconds."""
    return "\n".join(f"[{int(s.start)}s] {s.text.strip()}" for s in segments if s.text.strip())


def video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


class YouTubeService:
    """Fetches channels, videos and transcripts through Supadata.

    The Supadata SDK is blocking, so each call runs in a worker thread. That
    way videos in one ingestion batch are fetched in parallel.
    """

    def __init__(self, config: ChannelRAGConfig, client: Supadata | None = None):
        """Initialize YouTube service with configuration.

        Args:
            config: Configuration object with the Supadata API key.
            client: Pre-built Supadata client. Built from ``config`` when omitted.
        """
        self.config = config
        self.client = client or Supadata(api_key=config.supadata_api_key)
        logger.info(
            "youtube_service_initialized",
            api_key_present=bool(config.supadata_api_key),
        )

    async def scrape_channel(self, channel_url: str) -> ChannelInfo:
        """Fetch channel metadata.

        Args:
            channel_url: Channel URL in any supported form.

        Returns:
            ChannelInfo for the channel.

        Raises:
            ValidationError: If no channel ID can be read from the URL.
            Exception: If the API request fails.
        """
        channel_id = extract_channel_id(channel_url)
        if not channel_id:
            raise ValidationError(f"Not a YouTube channel URL: {channel_url}")

        logger.info("fetching_channel", channel_id=channel_id)

        try:
            channel = await asyncio.to_thread(self.client.youtube.channel, id=channel_id)
        except Exception as e:
            logger.exception(
                "channel_fetch_failed",
                channel_id=channel_id,
                error_type=type(e).__name__,
            )
            raise

        return ChannelInfo(
            channel_id=channel_id,
            channel_name=getattr(channel, "name", None) or channel_id,
            channel_url=channel_url,
            subscriber_count=getattr(channel, "subscriber_count", None),
            video_count=getattr(channel, "video_count", None),
            description=getattr(channel, "description", None),
            thumbnail_url=getattr(channel, "thumbnail", None),
        )

    async def scrape_channel_with_videos(
        self, channel_url: str, max_videos: int
    ) -> tuple[ChannelInfo, list[VideoInfo]]:
        """Fetch channel metadata plus up to ``max_videos`` of its videos.

        Videos whose metadata cannot be fetched are logged and skipped.

        Raises:
            ValidationError: If no channel ID can be read from the URL.
            Exception: If the channel or video listing request fails.
        """
        channel = await self.scrape_channel(channel_url)

        try:
            response = await asyncio.to_thread(
                self.client.youtube.channel.videos,
                id=channel.channel_id,
                type="video",  # Exclude shorts and live streams
                limit=max_videos,
            )
        except Exception as e:
            logger.exception(
                "channel_videos_fetch_failed",
                channel_id=channel.channel_id,
                error_type=type(e).__name__,
            )
            raise

        video_ids = list(response.video_ids)[:max_videos]
        logger.info("videos_listed", channel_id=channel.channel_id, count=len(video_ids))

        videos: list[VideoInfo] = []
        for video_id in video_ids:
            try:
                videos.append(await self._fetch_video(video_id, channel.channel_id))
            except Exception as e:
                logger.warning(
                    "video_metadata_unavailable",
                    video_id=video_id,
                    error_type=type(e).__name__,
                    error=str(e),
                )

        return channel, videos

    async def _fetch_video(self, video_id: str, channel_id: str) -> VideoInfo:
        video = await asyncio.to_thread(self.client.youtube.video, id=video_id)

        upload_date: Any = getattr(video, "upload_date", None)
        if upload_date is not None and not isinstance(upload_date, str):
            upload_date = upload_date.isoformat()

        return VideoInfo(
            video_id=video_id,
            channel_id=channel_id,
            title=getattr(video, "title", None) or video_id,
            url=video_url(video_id),
            upload_date=upload_date,
            duration=getattr(video, "duration", None),
            view_count=getattr(video, "view_count", None),
            like_count=getattr(video, "like_count", None),
            description=getattr(video, "description", None),
            thumbnail_url=getattr(video, "thumbnail", None),
            tags=list(getattr(video, "tags", None) or []),
        )

    async def fetch_transcript(self, video_id: str) -> TranscriptInfo | None:
        """Fetch a video's transcript with segment timings.

        Args:
            video_id: YouTube video ID.

        Returns:
            TranscriptInfo with start/duration in seconds, or None if the
            video has no transcript.

        Raises:
            Exception: If the API request fails for any other reason.
        """
        logger.info("fetching_transcript", video_id=video_id)

        try:
            response = await asyncio.to_thread(
                self.client.youtube.transcript,
                video_id=video_id,
                text=False,  # Segments with timestamps instead of plain text
            )
        except Exception as e:
            error_str = str(e).lower()
            if "transcript-unavailable" in error_str or "206" in error_str:
                logger.warning("transcript_unavailable", video_id=video_id)
                return None

            logger.exception(
                "transcript_fetch_error",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            raise

        # Supadata reports offsets and durations in milliseconds
        segments = [
            TranscriptSegment(
                start=int(seg.offset) / 1000,
                duration=int(seg.duration) / 1000,
                text=seg.text,
            )
            for seg in response.content
        ]

        logger.info(
            "transcript_fetched",
            video_id=video_id,
            segments=len(segments),
            lang=getattr(response, "lang", None),
        )
        return TranscriptInfo(
            video_id=video_id,
            language=getattr(response, "lang", None),
            segments=segments,
        )
