"""
hive_assistant/services/context_service.py
------------------------------------------
Assembles the per-request context snapshot the assistant reasons over.

All sources are fetched concurrently. Each one is wrapped in a timeout and
degrades to an empty value on failure, so a broken source costs one section
of the prompt and never the request.

Default mode
------------
  About You, Queen Bee, public wishes, community skills, community state,
  board post index, board/room/meeting summaries, raw room messages,
  conversation summary.

Onboarding mode
---------------
  About You and the conversation summary only.

Import
------
    from hive_assistant.services.context_service import ContextService
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, List, Optional, TypeVar

from hive_assistant.models.domain.context import (
    BoardPostIndexEntry,
    CommunityContext,
    ContextMetadata,
    ContextMode,
    ContextResult,
    HistoryResult,
    RoomMessageEntry,
    UserContext,
)
from hive_assistant.models.domain.context_summary import SummaryScope, SummaryType
from hive_assistant.services.conversation_history_service import ConversationHistoryService
from hive_assistant.services.hive_data_service import HiveDataService
from hive_assistant.services.summarizer_service import (
    SummarizerService,
    format_board_post,
    group_room_messages,
)
from hive_assistant.services.summary_cache_service import SummaryCacheService, estimate_tokens

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n---\n\n"

T = TypeVar("T")


async def _guard(label: str, coro: Awaitable[T], default: T, timeout: float) -> T:
    """Await ``coro`` under a timeout; any failure yields ``default``."""
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("Context source %s timed out after %.0fs", label, timeout)
    except Exception as e:
        logger.warning("Context source %s failed: %s", label, e)
    return default


# ── Rendering ────────────────────────────────────────────────────────────────

def _render_user(user: UserContext) -> str:
    skills = "\n".join(f"- {s.description}" for s in user.skills) or "None recorded yet"
    wishes = "\n".join(
        f"- [{w.status.upper()}{', ACTIVE' if w.is_active else ''}] {w.description}"
        + (f" (id: {w.id})" if w.id else "")
        for w in user.wishes
    ) or "None recorded yet"
    actions = "\n".join(
        f"- {'[DONE]' if a.completed else '[TODO]'} {a.description}"
        + (f" (due: {a.due_date})" if a.due_date else "")
        for a in user.action_items
    ) or "None"
    return (
        "## About You\n"
        f"Name: {user.profile.name}\n\n"
        f"### Your Skills\n{skills}\n\n"
        f"### Your Wishes\n{wishes}\n\n"
        f"### Your Action Items\n{actions}"
    )


def _render_community(community: CommunityContext) -> List[str]:
    sections = []
    qb = community.queen_bee
    if qb:
        sections.append(
            f"## Current Queen Bee ({qb.month}): {qb.user_name}\n"
            f"**Project:** {qb.project_title}\n"
            f"{qb.project_description or ''}\n"
            f"Status: {qb.status}"
        )
    if community.public_wishes:
        wishes = "\n".join(
            f"- {w.user_name}{' (YOUR WISH)' if w.is_current_user else ''}: {w.description}"
            for w in community.public_wishes
        )
        sections.append(f"## Active Public Wishes in the HIVE\n{wishes}")
    if community.community_skills:
        skills = "\n".join(f"- {s.user_name}: {s.description}" for s in community.community_skills)
        sections.append(f"## Community Skills\n{skills}")

    events = "\n".join(f"- {e.event_date}: {e.title}" for e in community.upcoming_events) or "No upcoming events"
    sections.append(
        "## Community State\n"
        f"Honey Pot: ${community.honey_pot:.2f}\n\n"
        f"### Upcoming Events (Next 7 Days)\n{events}"
    )
    return sections


def _render_board_index(posts: List[BoardPostIndexEntry]) -> str:
    lines = [
        f"- {format_board_post(p)}" + (f" (id: {p.id})" if p.id else "")
        for p in posts
    ]
    return "## Recent Board Posts\n" + "\n".join(lines)


def _render_room_messages(messages: List[RoomMessageEntry]) -> str:
    blocks = []
    for room, entries in group_room_messages(messages).items():
        # fetched newest first; show each room oldest first
        lines = "\n".join(f"- {e.sender_name}: {e.content}" for e in reversed(entries))
        blocks.append(f"### {room}\n{lines}")
    return "## Recent Room Messages\n" + "\n\n".join(blocks)


def render_context(
    *,
    mode: ContextMode,
    user: UserContext,
    community: Optional[CommunityContext] = None,
    board_index: Optional[List[BoardPostIndexEntry]] = None,
    room_messages: Optional[List[RoomMessageEntry]] = None,
    board_summary: str = "",
    room_summary: str = "",
    meetings_summary: str = "",
    conversation_summary: str = "",
) -> str:
    sections = [_render_user(user)]

    if mode == "default":
        sections.extend(_render_community(community or CommunityContext.empty()))
        if board_index:
            sections.append(_render_board_index(board_index))
        if board_summary:
            sections.append(f"## Recent Board Activity\n{board_summary}")
        if room_messages:
            sections.append(_render_room_messages(room_messages))
        if room_summary:
            sections.append(f"## Recent Chat Activity\n{room_summary}")
        if meetings_summary:
            sections.append(f"## Recent Meeting Notes\n{meetings_summary}")

    if conversation_summary:
        sections.append(f"## Earlier in This Conversation\n{conversation_summary}")

    return SECTION_SEPARATOR.join(sections)


# ── Service ──────────────────────────────────────────────────────────────────

class ContextService:
    """Fans out to every context source and renders one prompt document."""

    def __init__(
        self,
        data: HiveDataService,
        cache: SummaryCacheService,
        summarizer: SummarizerService,
        *,
        source_timeout: float = 10.0,
        summary_timeout: float = 30.0,
    ):
        self.data = data
        self.cache = cache
        self.summarizer = summarizer
        self.history = ConversationHistoryService(data, cache, summarizer)
        self.source_timeout = source_timeout
        self.summary_timeout = summary_timeout

    def _cached_summary(self, summary_type: SummaryType, user_id: str, community_id: str,
                        metadata: ContextMetadata, regenerate) -> Awaitable[str]:
        scope = SummaryScope.for_type(summary_type, community_id=community_id, user_id=user_id)
        return _guard(
            summary_type.value,
            self.cache.get_or_generate(scope, regenerate, metadata),
            "",
            self.source_timeout + self.summary_timeout,
        )

    async def assemble_context(
        self,
        user_id: str,
        community_id: str,
        conversation_id: Optional[str] = None,
        mode: ContextMode = "default",
    ) -> ContextResult:
        metadata = ContextMetadata()
        slow = self.source_timeout + self.summary_timeout

        user_task = _guard(
            "user_context", self.data.fetch_user_context(user_id, community_id),
            UserContext.empty(), self.source_timeout,
        )
        history_task = _guard(
            "conversation_history",
            self.history.resolve_history(user_id, community_id, conversation_id, metadata),
            HistoryResult.empty(), slow,
        )

        if mode == "onboarding":
            user, history = await asyncio.gather(user_task, history_task)
            community: Optional[CommunityContext] = None
            board_index: List[BoardPostIndexEntry] = []
            room_messages: List[RoomMessageEntry] = []
            board_summary = room_summary = meetings_summary = ""
        else:
            results: List[Any] = await asyncio.gather(
                user_task,
                history_task,
                _guard(
                    "community_context", self.data.fetch_community_context(user_id, community_id),
                    CommunityContext.empty(), self.source_timeout,
                ),
                _guard(
                    "board_index", self.data.fetch_board_index(community_id),
                    [], self.source_timeout,
                ),
                _guard(
                    "room_messages", self.data.fetch_recent_room_messages(user_id, community_id),
                    [], self.source_timeout,
                ),
                self._cached_summary(
                    SummaryType.BOARD_ACTIVITY, user_id, community_id, metadata,
                    lambda: self.summarizer.regenerate_board_activity(community_id),
                ),
                self._cached_summary(
                    SummaryType.ROOM_MESSAGES, user_id, community_id, metadata,
                    lambda: self.summarizer.regenerate_room_messages(user_id, community_id),
                ),
                self._cached_summary(
                    SummaryType.MEETINGS, user_id, community_id, metadata,
                    lambda: self.summarizer.regenerate_meetings(community_id),
                ),
            )
            (user, history, community, board_index, room_messages,
             board_summary, room_summary, meetings_summary) = results

        assembled = render_context(
            mode=mode,
            user=user,
            community=community,
            board_index=board_index,
            room_messages=room_messages,
            board_summary=board_summary,
            room_summary=room_summary,
            meetings_summary=meetings_summary,
            conversation_summary=history.summary,
        )

        metadata.tokens_used = estimate_tokens(assembled)
        metadata.conversation_message_count = history.total_count
        logger.info(
            "Assembled %s context: %d tokens, %d messages, summaries=%s hits=%s",
            mode,
            metadata.tokens_used,
            history.total_count,
            [t.value for t in metadata.summaries_used],
            [t.value for t in metadata.cache_hits],
        )
        return ContextResult(
            assembled_context=assembled,
            recent_messages=history.recent_messages,
            metadata=metadata,
        )
