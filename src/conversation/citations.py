"""Helpers that turn retrieved chunks into deduplicated source citations.

All functions here are deterministic and free of I/O.
"""

from src.channel_rag.normalizer import TIMESTAMP_MARKER
from src.channel_rag.schemas import Chunk, SearchResult, SourceKind

from .schemas import SourceCitation


def parse_timestamp_seconds(text: str | None) -> float | None:
    """Return the seconds of the first ``[<seconds>s]`` marker in ``text``.

    Examples:
        >>> parse_timestamp_seconds("[125s] and then")
        125.0
        >>> parse_timestamp_seconds("no marker") is None
        True
    """
    if not text:
        return None
    match = TIMESTAMP_MARKER.search(text)
    return float(match.group(1)) if match else None


def format_timestamp(seconds: float) -> str:
    """Format seconds as ``M:SS``. Minutes are not wrapped into hours.

    Examples:
        >>> format_timestamp(125)
        '2:05'
        >>> format_timestamp(3725)
        '62:05'
    """
    minutes = int(seconds // 60)
    remaining = int(seconds % 60)
    return f"{minutes}:{remaining:02d}"


def add_timestamp_to_url(url: str, seconds: float) -> str:
    """Append ``&t=<wholeSeconds>`` unless the URL already has one."""
    if "&t=" in url or "?t=" in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}t={int(seconds)}"


def citation_from_chunk(chunk: Chunk, url: str | None = None) -> SourceCitation:
    """Map a chunk to a citation, resolving transcript timestamps.

    Args:
        chunk: Retrieved chunk.
        url: Replacement for ``chunk.url``, e.g. from the metadata store.

    Returns:
        SourceCitation. Transcript chunks with a ``[<seconds>s]`` marker get
        an ``M:SS`` timestamp and a ``t=`` URL parameter.
    """
    citation_url = url or chunk.url
    timestamp = None

    if chunk.source_kind is SourceKind.TRANSCRIPT:
        seconds = parse_timestamp_seconds(chunk.timestamp_label)
        if seconds is None:
            seconds = parse_timestamp_seconds(chunk.text)
        if seconds is not None:
            timestamp = format_timestamp(seconds)
            citation_url = add_timestamp_to_url(citation_url, seconds)

    return SourceCitation(
        video_id=chunk.video_id,
        video_title=chunk.video_title,
        channel_name=chunk.channel_name,
        url=citation_url,
        source_kind=chunk.source_kind,
        timestamp=timestamp,
    )


def dedupe_by_video(results: list[SearchResult]) -> list[Chunk]:
    """Keep the first-ranked chunk of each video, preserving rank order."""
    seen: set[str] = set()
    chunks: list[Chunk] = []
    for result in results:
        if result.chunk.video_id in seen:
            continue
        seen.add(result.chunk.video_id)
        chunks.append(result.chunk)
    return chunks


def build_citations(
    results: list[SearchResult], urls: dict[str, str] | None = None
) -> list[SourceCitation]:
    """Build one citation per video from ranked search results.

    Args:
        results: Retrieval hits in rank order.
        urls: Optional ``video_id -> url`` overrides.

    Returns:
        Citations in rank order, at most one per ``video_id``.
    """
    urls = urls or {}
    return [
        citation_from_chunk(chunk, urls.get(chunk.video_id))
        for chunk in dedupe_by_video(results)
    ]
