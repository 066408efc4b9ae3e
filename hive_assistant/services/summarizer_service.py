"""
hive_assistant/services/summarizer_service.py
---------------------------------------------
LLM digests of raw HIVE records, used to fill the summary cache.

Each ``regenerate_*`` coroutine fetches its source rows and returns
``(summary, source_count)``. No rows means ``("", 0)`` so nothing gets
cached. A failing or slow model call is logged and also yields an empty
summary; source-query errors propagate to the cache layer.

Import
------
    from hive_assistant.services.summarizer_service import SummarizerService
"""
from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Tuple

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate

from hive_assistant.models.domain.context import (
    BoardPostIndexEntry,
    ConversationMessage,
    MeetingNote,
    RoomMessageEntry,
)
from hive_assistant.prompts.summary_prompts import (
    BOARD_ACTIVITY_SUMMARY_PROMPT,
    CONVERSATION_SUMMARY_PROMPT,
    MEETINGS_SUMMARY_PROMPT,
    ROOM_MESSAGES_SUMMARY_PROMPT,
)
from hive_assistant.services.hive_data_service import HiveDataService

logger = logging.getLogger(__name__)

BOARD_SUMMARY_WINDOW_DAYS = 7
ROOM_SUMMARY_WINDOW_DAYS = 1
ROOM_SUMMARY_MESSAGES_PER_ROOM = 5
ROOM_SUMMARY_MAX_CHARS = 100
MEETING_SUMMARY_MAX_CHARS = 200


# ── Formatting ───────────────────────────────────────────────────────────────

def format_transcript(messages: List[ConversationMessage]) -> str:
    return "\n\n".join(
        f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}" for m in messages
    )


def format_board_post(p: BoardPostIndexEntry) -> str:
    pinned = "[PINNED] " if p.is_pinned else ""
    replies = f" ({p.reply_count} replies)" if p.reply_count > 0 else ""
    return f'{pinned}[{p.category_name}] "{p.title}" by {p.author_name}{replies}'


def format_board_posts(posts: List[BoardPostIndexEntry]) -> str:
    return "\n".join(format_board_post(p) for p in posts)


def group_room_messages(messages: List[RoomMessageEntry]) -> "OrderedDict[str, List[RoomMessageEntry]]":
    """Group by room name, keeping the order rooms first appear in."""
    groups: "OrderedDict[str, List[RoomMessageEntry]]" = OrderedDict()
    for m in messages:
        groups.setdefault(m.room_name, []).append(m)
    return groups


def format_room_messages(messages: List[RoomMessageEntry]) -> str:
    blocks = []
    for room, entries in group_room_messages(messages).items():
        lines = [
            f"{e.sender_name}: {e.content[:ROOM_SUMMARY_MAX_CHARS]}"
            for e in entries[:ROOM_SUMMARY_MESSAGES_PER_ROOM]
        ]
        blocks.append(f"[{room}]\n" + "\n".join(lines))
    return "\n\n".join(blocks)


def format_meetings(meetings: List[MeetingNote]) -> str:
    return "\n\n".join(
        f"{m.date}: {(m.summary or '')[:MEETING_SUMMARY_MAX_CHARS] or 'No summary available'}"
        for m in meetings
    )


# ── Service ──────────────────────────────────────────────────────────────────

class SummarizerService:
    """Stateless summarizer over an injected chat model."""

    def __init__(self, model: BaseChatModel, data: HiveDataService, *, timeout: float = 30.0):
        self.model = model
        self.data = data
        self.timeout = timeout

    async def _summarize(self, label: str, prompt: ChatPromptTemplate, variables: Dict[str, Any]) -> str:
        chain = prompt | self.model | StrOutputParser()
        try:
            text = await asyncio.wait_for(chain.ainvoke(variables), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("%s summary timed out after %.0fs", label, self.timeout)
            return ""
        except Exception:
            logger.exception("%s summary failed", label)
            return ""
        return (text or "").strip()

    # ── Conversation ──────────────────────────────────────────────────────────

    async def summarize_conversation(self, messages: List[ConversationMessage]) -> str:
        if not messages:
            return ""
        return await self._summarize(
            "Conversation", CONVERSATION_SUMMARY_PROMPT, {"transcript": format_transcript(messages)}
        )

    async def regenerate_conversation(
        self, user_id: str, community_id: str, conversation_id: str, older_count: int
    ) -> Tuple[str, int]:
        """Summarize the ``older_count`` oldest messages of a conversation."""
        if older_count <= 0:
            return "", 0
        older = await self.data.list_chat_messages(
            user_id, community_id, conversation_id, limit=older_count
        )
        return await self.summarize_conversation(older), len(older)

    # ── Board ─────────────────────────────────────────────────────────────────

    async def regenerate_board_activity(self, community_id: str) -> Tuple[str, int]:
        posts = await self.data.fetch_board_index(community_id, window_days=BOARD_SUMMARY_WINDOW_DAYS)
        if not posts:
            return "", 0
        summary = await self._summarize(
            "Board activity", BOARD_ACTIVITY_SUMMARY_PROMPT, {"posts": format_board_posts(posts)}
        )
        return summary, len(posts)

    # ── Rooms ─────────────────────────────────────────────────────────────────

    async def regenerate_room_messages(self, user_id: str, community_id: str) -> Tuple[str, int]:
        messages = await self.data.fetch_recent_room_messages(
            user_id, community_id, window_days=ROOM_SUMMARY_WINDOW_DAYS
        )
        if not messages:
            return "", 0
        summary = await self._summarize(
            "Room messages", ROOM_MESSAGES_SUMMARY_PROMPT, {"messages": format_room_messages(messages)}
        )
        return summary, len(messages)

    # ── Meetings ──────────────────────────────────────────────────────────────

    async def regenerate_meetings(self, community_id: str) -> Tuple[str, int]:
        """Digest of recent meetings. Shared by every member, so it carries no personal items."""
        meetings = await self.data.fetch_meeting_notes(community_id)
        if not meetings:
            return "", 0
        summary = await self._summarize(
            "Meetings", MEETINGS_SUMMARY_PROMPT, {"meetings": format_meetings(meetings)}
        )
        return summary, len(meetings)
