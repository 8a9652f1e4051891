"""Prompt templates for question rewriting and grounded answering."""

from src.channel_rag.schemas import SearchResult

# ==============================================================================
# Grounding directive
# ==============================================================================

DEFAULT_SYSTEM_PROMPT = """You are an assistant that helps users understand the content of a YouTube channel.
You are given passages from the channel's transcripts, descriptions, titles and comments.

When answering:
1. Answer only from the context provided. Do not use outside knowledge.
2. If the context does not contain the answer, say so plainly instead of guessing.
3. Attribute claims to specific videos by their title, and mention timestamps when a passage has one.
4. When the content reflects the creator's opinion rather than fact, present it as their view and stay neutral.
5. Be conversational and concise, but prefer accuracy over speculation."""

# ==============================================================================
# Standalone question rewriting
# ==============================================================================

CONDENSE_SYSTEM_PROMPT = """You rewrite follow-up questions so they can be understood without the conversation.
Replace pronouns and elliptical references with the concrete things they refer to.
Reply with the rewritten question only."""

CONDENSE_QUESTION_TEMPLATE = """Given the following conversation and a follow up question, rephrase the follow up question to be a standalone question that captures all relevant context from the conversation.

Chat History:
{chat_history}

Follow Up Input: {question}
Standalone question:"""

# ==============================================================================
# Answering
# ==============================================================================

ANSWER_TEMPLATE = """Context information from YouTube videos:
{context}

Question: {question}
Answer:"""

NO_CONTEXT = "(no relevant passages were found)"


def build_condense_prompt(chat_history: str, question: str) -> str:
    return CONDENSE_QUESTION_TEMPLATE.format(chat_history=chat_history, question=question)


def format_context(results: list[SearchResult]) -> str:
    """Render retrieved chunks as numbered, attributed passages."""
    if not results:
        return NO_CONTEXT

    passages = []
    for i, result in enumerate(results, 1):
        chunk = result.chunk
        header = (
            f'[Source {i}] "{chunk.video_title}" by {chunk.channel_name} '
            f"({chunk.source_kind.value})"
        )
        passages.append(f"{header}\n{chunk.text}")
    return "\n\n---\n\n".join(passages)


def build_answer_prompt(question: str, results: list[SearchResult]) -> str:
    return ANSWER_TEMPLATE.format(context=format_context(results), question=question)
