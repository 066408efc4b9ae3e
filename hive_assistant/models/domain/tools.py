"""
Typed tool inputs and tool-call envelopes.

Each tool the assistant can call has exactly one input model here; the
registry in hive_assistant/tools/hive_tools.py pairs tool names with these
models and with their handlers.
"""
from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class ToolCall(BaseModel):
    id: str
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    tool_call_id: str
    content: str
    is_error: bool = False


# ── Inputs: mutating ─────────────────────────────────────────────────────────

class StoreSkillInput(BaseModel):
    description: str = Field(..., description="The high-definition skill description")
    raw_input: str = Field(..., description="What the user originally said")


class StoreWishInput(BaseModel):
    description: str = Field(..., description="The high-definition wish")
    raw_input: str = Field(..., description="The original problem or desire expressed")


class PublishWishInput(BaseModel):
    wish_id: str = Field(..., description="The UUID of the wish to publish")


class FulfillWishInput(BaseModel):
    wish_id: str = Field(..., description="The wish ID to mark fulfilled")
    fulfilled_by: Optional[str] = Field(default=None, description="User ID of who fulfilled it")


class QueenBeePreference(BaseModel):
    preferred_month: Optional[str] = Field(default=None, description="Preferred month in YYYY-MM format")
    reason: Optional[str] = Field(default=None, description="The time-sensitive objective behind the preference")
    timeframe: Optional[str] = Field(default=None, description="The timeframe they're working with, e.g. 'by March'")


class UpdateProfileInput(BaseModel):
    name: Optional[str] = Field(default=None, description="User's name (only if they want to correct it)")
    birthday: Optional[str] = Field(default=None, description="User's birthday in YYYY-MM-DD format")
    phone: Optional[str] = Field(default=None, description="User's phone number")
    preferred_contact: Optional[Literal["email", "phone"]] = Field(
        default=None, description="Preferred contact method"
    )
    queen_bee_preference: Optional[QueenBeePreference] = Field(
        default=None, description="Queen Bee month preference for time-sensitive objectives"
    )


class CompleteOnboardingInput(BaseModel):
    pass


class UpdatePersonalityNotesInput(BaseModel):
    notes: str = Field(
        ...,
        description="Updated personality notes. Replaces the previous notes, so include all relevant observations.",
    )


# ── Inputs: read-only ────────────────────────────────────────────────────────

class NoArguments(BaseModel):
    pass


class SearchBoardPostsInput(BaseModel):
    query: str = Field(..., min_length=1, description="Words to look for in post titles and bodies")
    limit: int = Field(default=10, ge=1, le=25)


class GetBoardPostInput(BaseModel):
    post_id: str = Field(..., description="The UUID of the board post")
