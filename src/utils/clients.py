"""Client construction helpers.

Services receive their clients through their constructors. These helpers only
build those clients from configuration and keep no module-level instances.
"""

from openai import AsyncOpenAI
from supabase import Client, create_client

from src.channel_rag.config import ChannelRAGConfig
from src.utils.logging import get_logger

logger = get_logger(__name__)


def get_embedding_client(config: ChannelRAGConfig) -> AsyncOpenAI:
    """Build an OpenAI-compatible embedding client for the configured provider.

    Ollama needs no real key, so a placeholder is sent instead.

    Args:
        config: Configuration with ``embedding_provider``, base URL and key.

    Returns:
        Configured AsyncOpenAI client.
    """
    if config.embedding_provider == "ollama":
        return AsyncOpenAI(base_url=config.embedding_base_url, api_key="ollama")

    return AsyncOpenAI(
        base_url=config.embedding_base_url,
        api_key=config.embedding_api_key,
    )


def get_supabase_client(config: ChannelRAGConfig) -> Client:
    """Build a Supabase client.

    Args:
        config: Configuration with ``supabase_url`` and ``supabase_key``.

    Returns:
        Supabase client.

    Raises:
        ValueError: If the URL or key is missing.
    """
    if not config.supabase_url or not config.supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required")

    logger.info("supabase_client_created", supabase_url=config.supabase_url)
    return create_client(config.supabase_url, config.supabase_key)
