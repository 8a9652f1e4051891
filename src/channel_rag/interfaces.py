"""Interfaces of the external collaborators the core consumes."""

from typing import Any, Protocol

from .schemas import ChannelInfo, Comment, TranscriptInfo, VideoInfo


class ChannelScraper(Protocol):
    """Source of channel, video and transcript data."""

    async def scrape_channel(self, channel_url: str) -> ChannelInfo: ...

    async def scrape_channel_with_videos(
        self, channel_url: str, max_videos: int
    ) -> tuple[ChannelInfo, list[VideoInfo]]: ...

    async def fetch_transcript(self, video_id: str) -> TranscriptInfo | None: ...


class MetadataStore(Protocol):
    """Plain keyed store for channel, video, transcript and comment records."""

    async def get_channel(self, channel_id: str) -> dict[str, Any] | None: ...

    async def store_channel(self, channel: ChannelInfo) -> None: ...

    async def get_video(self, video_id: str) -> dict[str, Any] | None: ...

    async def store_video(self, video: VideoInfo) -> None: ...

    async def list_videos(self, channel_id: str, limit: int = 100) -> list[dict[str, Any]]: ...

    async def store_transcript(self, video_id: str, language: str | None, content: str) -> None: ...

    async def store_comments(self, video_id: str, comments: list[Comment]) -> None: ...


class VideoLookup(Protocol):
    """The slice of ``MetadataStore`` the conversation engine needs."""

    async def get_video(self, video_id: str) -> dict[str, Any] | None: ...
