"""Domain models for cached context summaries."""
from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ._time import utcnow

JsonDict = Dict[str, Any]


class SummaryType(str, Enum):
    CONVERSATION = "conversation"
    BOARD_ACTIVITY = "board_activity"
    ROOM_MESSAGES = "room_messages"
    MEETINGS = "meetings"

    @property
    def per_user(self) -> bool:
        """Whether the scope key carries the caller's user_id (else NULL)."""
        return self in (SummaryType.CONVERSATION, SummaryType.ROOM_MESSAGES)


# Conversation rows are normally expired early by the message-append hook;
# 24h is only the fallback.
SUMMARY_TTLS: Dict[SummaryType, timedelta] = {
    SummaryType.CONVERSATION: timedelta(hours=24),
    SummaryType.BOARD_ACTIVITY: timedelta(hours=1),
    SummaryType.ROOM_MESSAGES: timedelta(hours=1),
    SummaryType.MEETINGS: timedelta(hours=24),
}


class SummaryScope(BaseModel):
    """
    Natural key of a cached summary.

    Unique on (community_id, user_id, summary_type, conversation_id);
    user_id is NULL for community-wide types, conversation_id is NULL
    for everything except conversation summaries.
    """

    community_id: str
    summary_type: SummaryType
    user_id: Optional[str] = None
    conversation_id: Optional[str] = None

    @classmethod
    def for_type(
        cls,
        summary_type: SummaryType,
        *,
        community_id: str,
        user_id: str,
        conversation_id: Optional[str] = None,
    ) -> "SummaryScope":
        return cls(
            community_id=community_id,
            summary_type=summary_type,
            user_id=user_id if summary_type.per_user else None,
            conversation_id=conversation_id if summary_type == SummaryType.CONVERSATION else None,
        )

    def as_columns(self) -> JsonDict:
        return {
            "community_id": self.community_id,
            "user_id": self.user_id,
            "summary_type": self.summary_type.value,
            "conversation_id": self.conversation_id,
        }


class CachedSummary(BaseModel):
    """One row of public.context_summaries."""

    community_id: str
    summary_type: SummaryType
    user_id: Optional[str] = None
    conversation_id: Optional[str] = None

    summary_content: str
    source_count: int = 0
    last_source_timestamp: Optional[datetime] = None
    estimated_tokens: int = 0
    expires_at: datetime
    updated_at: datetime = Field(default_factory=utcnow)
