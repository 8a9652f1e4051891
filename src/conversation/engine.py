"""Retrieval-augmented conversation engine.

Turns a follow-up question plus the session dialogue into a grounded answer
with deduplicated, attributable sources.
"""

import asyncio
from enum import Enum

from pydantic_ai import Agent
from pydantic_ai.models import Model

from src.channel_rag.errors import GenerationError, ValidationError
from src.channel_rag.interfaces import VideoLookup
from src.channel_rag.schemas import SearchResult
from src.channel_rag.vector_index import VectorIndex
from src.utils.logging import get_logger
from src.utils.timeouts import with_timeout

from .citations import build_citations
from .config import ConversationConfig, get_model, get_model_settings
from .memory import SessionMemory
from .prompts import (
    CONDENSE_SYSTEM_PROMPT,
    DEFAULT_SYSTEM_PROMPT,
    build_answer_prompt,
    build_condense_prompt,
)
from .schemas import AnswerResult, DialogueTurn, SourceCitation

logger = get_logger(__name__)

FALLBACK_ANSWER = "I encountered an error while processing your message. Please try again."


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class ConversationEngine:
    """Conversational retrieval loop over a shared vector index.

    Each conversation owns one engine and one ``SessionMemory``. Only the
    vector index is shared. ``ask`` calls on the same engine are serialized
    so every answer is appended right after the question it answers.

    The engine is lazy: the first ``ask`` initializes the vector index and
    builds the rewriting and answering agents. Changing the system prompt
    drops the agents, so they are rebuilt on the next ``ask``.
    """

    def __init__(
        self,
        vector_index: VectorIndex,
        config: ConversationConfig | None = None,
        memory: SessionMemory | None = None,
        model: Model | None = None,
        video_lookup: VideoLookup | None = None,
    ):
        """Initialize the engine with its collaborators.

        Args:
            vector_index: Index to retrieve chunks from.
            config: Generation and retrieval settings. Loads from environment
                when omitted.
            memory: Dialogue memory. A fresh one is created when omitted.
            model: LLM model. Built from ``config`` when omitted.
            video_lookup: Optional metadata store used to refresh citation URLs.
        """
        self.config = config or ConversationConfig()
        self.vector_index = vector_index
        self.memory = memory or SessionMemory()
        self.video_lookup = video_lookup
        self._model = model
        self._system_prompt = self.config.system_prompt or DEFAULT_SYSTEM_PROMPT

        self._state = EngineState.UNINITIALIZED
        self._condense_agent: Agent[None, str] | None = None
        self._answer_agent: Agent[None, str] | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def set_system_prompt(self, prompt: str) -> None:
        """Replace the grounding directive. Agents are rebuilt on the next ``ask``."""
        self._system_prompt = prompt
        self._condense_agent = None
        self._answer_agent = None
        self._state = EngineState.UNINITIALIZED
        logger.info("system_prompt_updated", length=len(prompt))

    async def initialize(self) -> None:
        """Build the retrieval pipeline. A no-op once the engine is ready."""
        if self._state is EngineState.READY:
            return

        await self.vector_index.initialize()

        model = self._model or get_model(self.config)
        settings = get_model_settings(self.config)
        self._condense_agent = Agent(
            model,
            output_type=str,
            system_prompt=CONDENSE_SYSTEM_PROMPT,
            model_settings=settings,
        )
        self._answer_agent = Agent(
            model,
            output_type=str,
            system_prompt=self._system_prompt,
            model_settings=settings,
        )

        self._state = EngineState.READY
        logger.info(
            "conversation_engine_ready",
            model=self.config.model,
            temperature=self.config.temperature,
            search_k=self.config.search_k,
        )

    async def ask(self, question: str) -> AnswerResult:
        """Answer ``question`` in the context of the dialogue so far.

        Never raises. Any failure returns ``FALLBACK_ANSWER`` with no sources
        and leaves the memory unchanged.

        Args:
            question: User's question, possibly a follow-up.

        Returns:
            AnswerResult with answer text, sources and the standalone question.
        """
        async with self._lock:
            try:
                if not question or not question.strip():
                    raise ValidationError("question must not be empty")

                await self.initialize()

                standalone = await self._condense_question(question)
                results = await self.vector_index.search(standalone, self.config.search_k)
                answer = await self._generate_answer(standalone, results)
                sources = await self._build_sources(results)

            except Exception as e:
                logger.exception(
                    "ask_failed",
                    error_type=type(e).__name__,
                    history_turns=len(self.memory),
                )
                return AnswerResult(answer_text=FALLBACK_ANSWER, sources=[])

            self.memory.append("user", question)
            self.memory.append("assistant", answer)

            logger.info(
                "ask_completed",
                retrieved=len(results),
                sources=len(sources),
                rewritten=standalone != question,
            )
            return AnswerResult(
                answer_text=answer,
                sources=sources,
                standalone_question=standalone,
            )

    def clear_history(self) -> None:
        self.memory.clear()

    def get_history(self) -> list[DialogueTurn]:
        return self.memory.history()

    async def _condense_question(self, question: str) -> str:
        """Rewrite a follow-up into a standalone question using the history."""
        if len(self.memory) == 0:
            return question

        prompt = build_condense_prompt(self.memory.format_history(), question)
        standalone = await self._run(self._condense_agent, prompt, "condense_question")
        logger.info("question_condensed", original=question, standalone=standalone)
        return standalone

    async def _generate_answer(self, question: str, results: list[SearchResult]) -> str:
        prompt = build_answer_prompt(question, results)
        return await self._run(self._answer_agent, prompt, "generate_answer")

    async def _run(self, agent: Agent[None, str] | None, prompt: str, operation: str) -> str:
        if agent is None:
            raise GenerationError(f"{operation} called before initialization")

        try:
            result = await with_timeout(
                agent.run(prompt), self.config.request_timeout_seconds, operation
            )
        except TimeoutError:
            raise
        except Exception as e:
            raise GenerationError(f"{operation} failed: {e}") from e

        text = (result.output or "").strip()
        if not text:
            raise GenerationError(f"{operation} returned no content")
        return text

    async def _build_sources(self, results: list[SearchResult]) -> list[SourceCitation]:
        """Build citations, refreshing URLs from the metadata store when available."""
        urls: dict[str, str] = {}

        if self.video_lookup is not None:
            for video_id in dict.fromkeys(r.chunk.video_id for r in results):
                try:
                    video = await with_timeout(
                        self.video_lookup.get_video(video_id),
                        self.config.request_timeout_seconds,
                        "video_lookup",
                    )
                except Exception as e:
                    logger.warning(
                        "citation_enrichment_failed",
                        video_id=video_id,
                        error_type=type(e).__name__,
                    )
                    continue
                if video and video.get("url"):
                    urls[video_id] = video["url"]

        return build_citations(results, urls)
