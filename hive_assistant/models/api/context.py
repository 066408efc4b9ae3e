"""Pydantic models for the /context router."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from hive_assistant.models.domain.context import ContextMode, ConversationMessage
from hive_assistant.models.domain.context_summary import SummaryType


class ContextPreviewRequest(BaseModel):
    """Request body for POST /context/preview."""

    mode: ContextMode = "default"
    conversation_id: Optional[str] = None


class ContextPreviewResponse(BaseModel):
    """The context the assistant would see for the caller right now."""

    assembled_context: str
    recent_messages: List[ConversationMessage] = Field(default_factory=list)
    tokens_used: int = 0
    message_count: int = 0
    summaries_used: List[SummaryType] = Field(default_factory=list)
    cache_hits: List[SummaryType] = Field(default_factory=list)
    cache_misses: List[SummaryType] = Field(default_factory=list)


class SummaryInvalidateResponse(BaseModel):
    conversation_id: str
    invalidated: int = 0


class SummaryPurgeResponse(BaseModel):
    purged: int = 0
