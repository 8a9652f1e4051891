"""Pydantic schemas exchanged across the conversation boundary."""

from typing import Literal

from pydantic import BaseModel, Field

from src.channel_rag.schemas import SourceKind


class DialogueTurn(BaseModel):
    """One message in the session dialogue."""

    role: Literal["user", "assistant"]
    text: str


class SourceCitation(BaseModel):
    """Attributable source returned alongside an answer.

    ``url`` carries a ``&t=<seconds>`` suffix for transcript passages and
    ``timestamp`` is the same moment formatted as ``M:SS``.
    """

    video_id: str
    video_title: str
    channel_name: str
    url: str
    source_kind: SourceKind
    timestamp: str | None = None


class AnswerResult(BaseModel):
    """Answer text plus its deduplicated sources."""

    answer_text: str
    sources: list[SourceCitation] = Field(default_factory=list)
    standalone_question: str = ""
