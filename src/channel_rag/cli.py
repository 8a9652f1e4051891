"""Command-line interface for ingesting channels and chatting with them."""

import argparse
import asyncio

from src.conversation.config import ConversationConfig
from src.conversation.engine import ConversationEngine
from src.utils.logging import get_logger

from .config import ChannelRAGConfig, get_config
from .embedding_service import EmbeddingService
from .metadata_store import SupabaseMetadataStore
from .pipeline import ChannelIngestionPipeline
from .vector_index import VectorIndex
from .vector_stores import build_vector_store
from .youtube_service import YouTubeService

logger = get_logger(__name__)


def build_vector_index(config: ChannelRAGConfig) -> VectorIndex:
    return VectorIndex(
        config=config,
        embedding_service=EmbeddingService(config),
        store=build_vector_store(config),
    )


async def run_ingest(args: argparse.Namespace, config: ChannelRAGConfig) -> None:
    """Ingest one channel and print a summary."""
    print("\n" + "=" * 60)
    print("Channel Ingestion")
    print("=" * 60)
    print(f"Channel URL: {args.channel_url}")
    print(f"Max videos: {args.max_videos or config.max_videos}")
    print(f"Embedding model: {config.embedding_model}")
    print(f"Chunk size: {config.chunk_size} chars, overlap {config.chunk_overlap}")
    if args.force:
        print("\nForce mode: existing vectors for this channel will be replaced")
    print("=" * 60 + "\n")

    pipeline = ChannelIngestionPipeline(
        scraper=YouTubeService(config),
        metadata_store=SupabaseMetadataStore(config),
        vector_index=build_vector_index(config),
        config=config,
    )

    try:
        result = await pipeline.process_channel(
            args.channel_url, max_videos=args.max_videos, force=args.force
        )
    except Exception as e:
        logger.exception("ingestion_failed", error_type=type(e).__name__)
        print(f"\nIngestion failed: {e}")
        return

    print("\n" + "=" * 60)
    print(result.message or "Ingestion Results")
    print("=" * 60)
    print(f"Channel: {result.channel_name} ({result.channel_id})")
    print(f"Total videos found: {result.total_videos}")
    print(f"Successfully processed: {result.processed}")
    print(f"Failed: {result.failed}")
    print(f"Skipped: {result.skipped}")
    print(f"Total chunks created: {result.chunks_created}")

    if result.errors:
        print("\nErrors encountered:")
        for error in result.errors:
            print(f"  - {error}")
    print("=" * 60 + "\n")


async def run_chat(args: argparse.Namespace, config: ChannelRAGConfig) -> None:
    """Interactive question loop. ``/reset`` clears history, ``/quit`` exits."""
    conversation_config = ConversationConfig()
    if args.k:
        conversation_config.search_k = args.k

    engine = ConversationEngine(
        vector_index=build_vector_index(config),
        config=conversation_config,
        video_lookup=SupabaseMetadataStore(config) if config.vector_backend == "supabase" else None,
    )

    print("Ask a question about the ingested channels. /reset clears history, /quit exits.\n")
    while True:
        try:
            question = await asyncio.to_thread(input, "> ")
        except (EOFError, KeyboardInterrupt):
            break

        question = question.strip()
        if not question:
            continue
        if question == "/quit":
            break
        if question == "/reset":
            engine.clear_history()
            print("History cleared.\n")
            continue

        result = await engine.ask(question)
        print(f"\n{result.answer_text}\n")
        for source in result.sources:
            stamp = f" at {source.timestamp}" if source.timestamp else ""
            print(f"  - {source.video_title} ({source.channel_name}){stamp}: {source.url}")
        print()


async def run_stats(config: ChannelRAGConfig) -> None:
    stats = await build_vector_index(config).stats()
    print(f"Documents: {stats.total_documents}")
    print(f"Channels: {stats.distinct_channels}")
    print(f"Videos: {stats.distinct_videos}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Channel Chat - ingest a YouTube channel and ask questions about it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ingest the 20 most recent videos of a channel
  python -m src.channel_rag.cli ingest https://www.youtube.com/@veritasium

  # Re-ingest a channel that was already processed
  python -m src.channel_rag.cli ingest https://www.youtube.com/@veritasium --force

  # Chat with everything ingested so far
  python -m src.channel_rag.cli chat
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest a channel into the index")
    ingest.add_argument("channel_url", help="Public YouTube channel URL")
    ingest.add_argument("--max-videos", type=int, help="Maximum number of videos to ingest")
    ingest.add_argument(
        "--force",
        action="store_true",
        help="Re-ingest even if the channel was processed before",
    )

    chat = subparsers.add_parser("chat", help="Ask questions interactively")
    chat.add_argument("--k", type=int, help="Number of chunks to retrieve per question")

    subparsers.add_parser("stats", help="Show vector index statistics")
    return parser


async def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    config = get_config()
    logger.info("cli_started", command=args.command, backend=config.vector_backend)

    if args.command == "ingest":
        await run_ingest(args, config)
    elif args.command == "chat":
        await run_chat(args, config)
    else:
        await run_stats(config)


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
