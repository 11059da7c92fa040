"""Conversation and query request/response models.

``Conversation`` and ``ConversationMessage`` are plain (non-frozen) models
because the conversation store appends to them in place; request and
response models are frozen like the rest of the package.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from lexrag.models.document import MetadataFilter, SourceCitation

Role = Literal["user", "assistant"]
Language = Literal["ja", "en"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationMessage(BaseModel):
    """One turn in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    sources: list[SourceCitation] | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class Conversation(BaseModel):
    """An ordered message list keyed by conversation id."""

    id: str
    messages: list[ConversationMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    last_activity: datetime = Field(default_factory=_utcnow)


class QueryRequest(BaseModel):
    """Input to :meth:`lexrag.services.query_service.QueryService.process_query`."""

    model_config = ConfigDict(frozen=True)

    query: str = Field(min_length=1)
    conversation_id: str | None = None
    language: Language = "ja"
    filters: MetadataFilter | None = None


class QueryResponse(BaseModel):
    """Answer, citations and follow-up suggestions for one query."""

    model_config = ConfigDict(frozen=True)

    answer: str
    sources: list[SourceCitation] = Field(default_factory=list)
    related_questions: list[str] = Field(default_factory=list)
    conversation_id: str
