"""Domain models for the per-request context snapshot."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .context_summary import SummaryType

ContextMode = Literal["default", "onboarding"]


class ConversationMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


# ── User context ─────────────────────────────────────────────────────────────

class ProfileData(BaseModel):
    name: str = "Unknown"
    email: str = ""


class SkillData(BaseModel):
    description: str


class WishData(BaseModel):
    id: Optional[str] = None
    description: str
    status: str = "private"  # private | public | fulfilled | replaced
    is_active: bool = False


class ActionItemData(BaseModel):
    description: str
    due_date: Optional[str] = None
    completed: bool = False


class UserContext(BaseModel):
    profile: ProfileData = Field(default_factory=ProfileData)
    skills: List[SkillData] = Field(default_factory=list)
    wishes: List[WishData] = Field(default_factory=list)
    action_items: List[ActionItemData] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "UserContext":
        return cls()


# ── Community context ────────────────────────────────────────────────────────

class QueenBeeData(BaseModel):
    user_name: str = "Unknown"
    month: str
    project_title: str = ""
    project_description: Optional[str] = None
    status: str = ""


class EventData(BaseModel):
    title: str
    event_date: str
    event_type: Optional[str] = None


class PublicWishData(BaseModel):
    user_name: str = "Unknown"
    description: str
    is_current_user: bool = False


class CommunitySkillData(BaseModel):
    user_name: str = "Unknown"
    description: str


class CommunityContext(BaseModel):
    queen_bee: Optional[QueenBeeData] = None
    honey_pot: float = 0.0
    upcoming_events: List[EventData] = Field(default_factory=list)
    public_wishes: List[PublicWishData] = Field(default_factory=list)
    community_skills: List[CommunitySkillData] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "CommunityContext":
        return cls()


# ── Board / rooms ────────────────────────────────────────────────────────────

class BoardPostIndexEntry(BaseModel):
    id: Optional[str] = None
    title: str
    author_name: str = "Unknown"
    category_name: str = "General"
    reply_count: int = 0
    is_pinned: bool = False
    created_at: Optional[str] = None


class RoomMessageEntry(BaseModel):
    room_name: str
    sender_name: str = "Unknown"
    content: str
    created_at: Optional[str] = None


class MeetingNote(BaseModel):
    date: str
    summary: Optional[str] = None


# ── History / result ─────────────────────────────────────────────────────────

class HistoryResult(BaseModel):
    recent_messages: List[ConversationMessage] = Field(default_factory=list)
    summary: str = ""
    total_count: int = 0

    @classmethod
    def empty(cls) -> "HistoryResult":
        return cls()


class ContextMetadata(BaseModel):
    tokens_used: int = 0
    conversation_message_count: int = 0
    summaries_used: List[SummaryType] = Field(default_factory=list)
    cache_hits: List[SummaryType] = Field(default_factory=list)
    cache_misses: List[SummaryType] = Field(default_factory=list)


class ContextResult(BaseModel):
    assembled_context: str
    recent_messages: List[ConversationMessage] = Field(default_factory=list)
    metadata: ContextMetadata = Field(default_factory=ContextMetadata)


# ── Request inputs ───────────────────────────────────────────────────────────

class Attachment(BaseModel):
    url: str
    mime_type: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return bool(self.mime_type and self.mime_type.startswith("image/"))
