"""Conversation engine configuration and LLM model construction.

Settings are read from environment variables, with a ``.env`` file loaded
first outside production.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_ai.models.openai import OpenAIModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

# Check if we're in production
is_production = os.getenv("ENVIRONMENT") == "production"

if not is_production:
    # Development: prioritize .env file
    project_root = Path(__file__).resolve().parent.parent.parent
    load_dotenv(project_root / ".env", override=True)
else:
    # Production: use cloud platform env vars only
    load_dotenv()


class ConversationConfig(BaseModel):
    """Settings recognized by the conversation engine.

    ``temperature`` controls generation randomness: higher is more varied,
    lower is more deterministic. ``system_prompt`` replaces the default
    grounding directive when set.
    """

    model: str = Field(default_factory=lambda: os.getenv("LLM_CHOICE") or "gpt-4")
    llm_base_url: str = Field(
        default_factory=lambda: os.getenv("LLM_BASE_URL") or "https://api.openai.com/v1"
    )
    llm_api_key: str = Field(default_factory=lambda: os.getenv("LLM_API_KEY") or "ollama")
    temperature: float = Field(
        default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.7")),
        ge=0.0,
        le=2.0,
    )
    max_tokens: int = Field(
        default_factory=lambda: int(os.getenv("LLM_MAX_TOKENS", "1000")), gt=0
    )
    system_prompt: str | None = None
    search_k: int = Field(default_factory=lambda: int(os.getenv("RAG_SEARCH_K", "5")), gt=0)
    request_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("LLM_TIMEOUT_SECONDS", "30")), gt=0
    )


def get_model(config: ConversationConfig) -> OpenAIModel:
    """Build the LLM model described by ``config``.

    Args:
        config: Conversation settings with model name, base URL and key.

    Returns:
        OpenAIModel pointed at the configured OpenAI-compatible endpoint.

    Examples:
        >>> model = get_model(ConversationConfig(model="gpt-4o-mini"))
    """
    return OpenAIModel(
        config.model,
        provider=OpenAIProvider(base_url=config.llm_base_url, api_key=config.llm_api_key),
    )


def get_model_settings(config: ConversationConfig) -> ModelSettings:
    """Generation settings passed to every agent run."""
    return ModelSettings(
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=config.request_timeout_seconds,
    )
