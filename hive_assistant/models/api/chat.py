"""Pydantic models for the /chat router."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from hive_assistant.models.domain.context import Attachment, ContextMetadata, ContextMode
from hive_assistant.models.domain.context_summary import SummaryType


# ── Request models ────────────────────────────────────────────────────────────


class ChatRequest(BaseModel):
    """Request body for POST /chat."""

    message: str = ""
    mode: ContextMode = "default"
    context: Optional[Literal["skills", "wishes"]] = Field(
        default=None,
        description="Onboarding focus; omit for the unified onboarding flow.",
    )
    conversation_id: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    stream: bool = False
    refine_wish: Optional[str] = Field(
        default=None,
        description="Description of an existing wish the user wants to refine.",
    )


class TitleRequest(BaseModel):
    """Request body for POST /chat/title."""

    conversation_id: str


# ── Response models ───────────────────────────────────────────────────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ContextMetadataResponse(_CamelModel):
    tokens_used: int = Field(0, alias="tokensUsed")
    message_count: int = Field(0, alias="messageCount")
    summaries_used: List[SummaryType] = Field(default_factory=list, alias="summariesUsed")
    cache_hits: List[SummaryType] = Field(default_factory=list, alias="cacheHits")

    @classmethod
    def from_metadata(cls, metadata: ContextMetadata) -> "ContextMetadataResponse":
        return cls(
            tokens_used=metadata.tokens_used,
            message_count=metadata.conversation_message_count,
            summaries_used=list(metadata.summaries_used),
            cache_hits=list(metadata.cache_hits),
        )


class ChatMetadataEvent(_CamelModel):
    """Payload of the ``metadata`` stream event."""

    skills_added: int = Field(0, alias="skillsAdded")
    onboarding_complete: bool = Field(False, alias="onboardingComplete")
    context_metadata: ContextMetadataResponse = Field(
        default_factory=ContextMetadataResponse, alias="contextMetadata"
    )


class ChatResponse(ChatMetadataEvent):
    """Non-streaming response from POST /chat."""

    response: str


class TitleResponse(BaseModel):
    title: str
