"""Supabase-backed metadata store for channels, videos, transcripts and comments."""

import asyncio
from datetime import UTC, datetime
from typing import Any

from supabase import Client

from src.utils.clients import get_supabase_client
from src.utils.logging import get_logger

from .config import ChannelRAGConfig
from .schemas import ChannelInfo, Comment, VideoInfo

logger = get_logger(__name__)


class SupabaseMetadataStore:
    """Relational store for scraped channel metadata.

    Plain keyed upserts and reads against the ``channels``, ``videos``,
    ``transcripts`` and ``comments`` tables. Errors are logged and re-raised
    so the ingestion pipeline can decide whether to retry.
    """

    def __init__(self, config: ChannelRAGConfig, client: Client | None = None):
        """Initialize metadata store with configuration.

        Args:
            config: Configuration object with Supabase credentials.
            client: Pre-built client. Built from ``config`` when omitted.
        """
        self.config = config
        self.client: Client = client or get_supabase_client(config)
        logger.info("metadata_store_initialized", supabase_url=config.supabase_url)

    async def get_channel(self, channel_id: str) -> dict[str, Any] | None:
        """Fetch a channel row.

        Args:
            channel_id: Channel ID or handle.

        Returns:
            Channel row, or None if the channel was never stored.
        """
        try:
            response = (
                self.client.table("channels")
                .select("*")
                .eq("channel_id", channel_id)
                .execute()
            )
            if response.data:
                return response.data[0]

            logger.debug("channel_not_found", channel_id=channel_id)
            return None

        except Exception as e:
            logger.exception(
                "channel_fetch_failed",
                channel_id=channel_id,
                error_type=type(e).__name__,
            )
            raise

    async def store_channel(self, channel: ChannelInfo) -> None:
        """Insert or update channel metadata.

        Raises:
            Exception: If database operation fails.
        """
        try:
            data = {
                "channel_id": channel.channel_id,
                "channel_name": channel.channel_name,
                "channel_url": channel.channel_url,
                "subscriber_count": channel.subscriber_count,
                "video_count": channel.video_count,
                "description": channel.description,
                "thumbnail_url": channel.thumbnail_url,
                "last_scraped": datetime.now(UTC).isoformat(),
            }

            self.client.table("channels").upsert(data).execute()
            logger.info("channel_saved", channel_id=channel.channel_id)

        except Exception as e:
            logger.exception(
                "channel_save_failed",
                channel_id=channel.channel_id,
                error_type=type(e).__name__,
            )
            raise

    async def get_video(self, video_id: str) -> dict[str, Any] | None:
        """Fetch a video row, or None if unknown.

        Runs in a worker thread so the caller can bound it with a deadline.
        """
        try:
            response = await asyncio.to_thread(
                lambda: self.client.table("videos")
                .select("*")
                .eq("video_id", video_id)
                .execute()
            )
            return response.data[0] if response.data else None

        except Exception as e:
            logger.exception(
                "video_fetch_failed",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            raise

    async def list_videos(self, channel_id: str, limit: int = 100) -> list[dict[str, Any]]:
        """List a channel's videos, newest upload first."""
        try:
            response = (
                self.client.table("videos")
                .select("*")
                .eq("channel_id", channel_id)
                .order("upload_date", desc=True)
                .limit(limit)
                .execute()
            )
            rows: list[dict[str, Any]] = response.data or []
            return rows

        except Exception as e:
            logger.exception(
                "video_list_failed",
                channel_id=channel_id,
                error_type=type(e).__name__,
            )
            raise

    async def store_video(self, video: VideoInfo) -> None:
        """Insert or update video metadata.

        Raises:
            Exception: If database operation fails.
        """
        try:
            data = {
                "video_id": video.video_id,
                "channel_id": video.channel_id,
                "title": video.title,
                "url": video.url,
                "upload_date": video.upload_date,
                "duration": video.duration,
                "view_count": video.view_count,
                "like_count": video.like_count,
                "description": video.description,
                "thumbnail_url": video.thumbnail_url,
                "tags": ", ".join(video.tags) if video.tags else None,
            }

            self.client.table("videos").upsert(data).execute()
            logger.info("video_saved", video_id=video.video_id)

        except Exception as e:
            logger.exception(
                "video_save_failed",
                video_id=video.video_id,
                error_type=type(e).__name__,
            )
            raise

    async def store_transcript(
        self, video_id: str, language: str | None, content: str
    ) -> None:
        """Replace the stored transcript of a video.

        Raises:
            Exception: If database operation fails.
        """
        try:
            self.client.table("transcripts").delete().eq("video_id", video_id).execute()
            self.client.table("transcripts").insert(
                {"video_id": video_id, "language": language, "content": content}
            ).execute()
            logger.info("transcript_saved", video_id=video_id, length=len(content))

        except Exception as e:
            logger.exception(
                "transcript_save_failed",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            raise

    async def store_comments(self, video_id: str, comments: list[Comment]) -> None:
        """Replace the stored comments of a video.

        Raises:
            Exception: If database operation fails.
        """
        if not comments:
            return

        try:
            data = [
                {
                    "video_id": video_id,
                    "author": comment.author,
                    "content": comment.content,
                    "like_count": comment.like_count,
                    "date_posted": comment.posted_at,
                }
                for comment in comments
            ]

            self.client.table("comments").delete().eq("video_id", video_id).execute()
            self.client.table("comments").insert(data).execute()
            logger.info("comments_saved", video_id=video_id, count=len(data))

        except Exception as e:
            logger.exception(
                "comments_save_failed",
                video_id=video_id,
                error_type=type(e).__name__,
            )
            raise
