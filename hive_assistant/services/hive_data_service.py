"""
hive_assistant/services/hive_data_service.py
--------------------------------------------
Read/write access to the HIVE tables through the caller-scoped Supabase client.

Every query is filtered by community_id and, where the row belongs to a
person, by the authenticated user_id. Row-level security enforces the same
rules server-side; these filters are never relaxed here.

Import
------
    from hive_assistant.services.hive_data_service import HiveDataService
"""
from __future__ import annotations

import asyncio
import logging
import re
from datetime import timedelta
from typing import Any, Dict, List, Optional

from supabase import AsyncClient

from hive_assistant.models.domain._time import utcnow
from hive_assistant.models.domain.context import (
    ActionItemData,
    BoardPostIndexEntry,
    CommunityContext,
    CommunitySkillData,
    ConversationMessage,
    EventData,
    MeetingNote,
    ProfileData,
    PublicWishData,
    QueenBeeData,
    RoomMessageEntry,
    SkillData,
    UserContext,
    WishData,
)

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]

BOARD_INDEX_LIMIT = 15
BOARD_INDEX_WINDOW_DAYS = 14
ROOM_MESSAGES_LIMIT = 30
ROOM_MESSAGES_WINDOW_DAYS = 3
ROOM_MESSAGE_MAX_CHARS = 200
MEETINGS_WINDOW_DAYS = 30
UPCOMING_EVENTS_DAYS = 7

_POSTGREST_RESERVED = re.compile(r"[,()%*\\]")


def _name(embedded: Any, fallback: str = "Unknown") -> str:
    """Embedded relations come back as a dict (or a one-element list)."""
    if isinstance(embedded, list):
        embedded = embedded[0] if embedded else None
    if isinstance(embedded, dict):
        return embedded.get("name") or fallback
    return fallback


def _first(rows: Optional[List[JsonDict]]) -> Optional[JsonDict]:
    return rows[0] if rows else None


async def _rows_or_empty(label: str, query: Any) -> List[JsonDict]:
    """Run one sub-query of a multi-part fetch; a failure empties only its own section."""
    try:
        res = await query.execute()
    except Exception as e:
        logger.warning("Context query %s failed: %s", label, e)
        return []
    return res.data or []


def current_month() -> str:
    return utcnow().strftime("%Y-%m")


class HiveDataService:
    """Typed accessors over the HIVE schema for one authenticated caller."""

    def __init__(self, supabase: AsyncClient):
        self.sb = supabase

    # ── Profile ───────────────────────────────────────────────────────────────

    async def get_profile(self, user_id: str) -> Optional[JsonDict]:
        res = await self.sb.table("profiles").select("*").eq("id", user_id).limit(1).execute()
        return _first(res.data)

    async def update_profile(self, user_id: str, updates: JsonDict) -> List[JsonDict]:
        res = await self.sb.table("profiles").update(updates).eq("id", user_id).execute()
        return res.data or []

    # ── User context ──────────────────────────────────────────────────────────

    async def fetch_user_context(self, user_id: str, community_id: str) -> UserContext:
        profile_q = self.sb.table("profiles").select("name, email").eq("id", user_id).limit(1)
        skills_q = (
            self.sb.table("skills")
            .select("description")
            .eq("user_id", user_id)
            .eq("community_id", community_id)
        )
        wishes_q = (
            self.sb.table("wishes")
            .select("id, description, status, is_active")
            .eq("user_id", user_id)
            .eq("community_id", community_id)
        )
        actions_q = (
            self.sb.table("action_items")
            .select("description, due_date, completed")
            .eq("assigned_to", user_id)
            .eq("community_id", community_id)
            .eq("completed", False)
            .order("due_date")
            .limit(5)
        )
        profile_rows, skill_rows, wish_rows, action_rows = await asyncio.gather(
            _rows_or_empty("profile", profile_q),
            _rows_or_empty("skills", skills_q),
            _rows_or_empty("wishes", wishes_q),
            _rows_or_empty("action_items", actions_q),
        )

        profile = _first(profile_rows)
        return UserContext(
            profile=ProfileData(
                name=(profile or {}).get("name") or "Unknown",
                email=(profile or {}).get("email") or "",
            ),
            skills=[SkillData(description=r["description"]) for r in skill_rows],
            wishes=[
                WishData(
                    id=r.get("id"),
                    description=r["description"],
                    status=r.get("status") or "private",
                    is_active=bool(r.get("is_active")),
                )
                for r in wish_rows
            ],
            action_items=[
                ActionItemData(
                    description=r["description"],
                    due_date=r.get("due_date"),
                    completed=bool(r.get("completed")),
                )
                for r in action_rows
            ],
        )

    # ── Community context ─────────────────────────────────────────────────────

    async def fetch_community_context(self, user_id: str, community_id: str) -> CommunityContext:
        today = utcnow().date()
        next_week = today + timedelta(days=UPCOMING_EVENTS_DAYS)

        queen_bee_q = (
            self.sb.table("queen_bees")
            .select("month, project_title, project_description, status, user:profiles(name)")
            .eq("month", current_month())
            .eq("community_id", community_id)
            .limit(1)
        )
        honey_pot_q = (
            self.sb.table("honey_pot").select("balance").eq("community_id", community_id).limit(1)
        )
        events_q = (
            self.sb.table("events")
            .select("title, event_date, event_type")
            .eq("community_id", community_id)
            .gte("event_date", today.isoformat())
            .lte("event_date", next_week.isoformat())
            .order("event_date")
            .limit(5)
        )
        public_wishes_q = (
            self.sb.table("wishes")
            .select("description, user_id, user:profiles!wishes_user_id_fkey(name)")
            .eq("community_id", community_id)
            .eq("status", "public")
            .eq("is_active", True)
            .limit(10)
        )
        skills_q = (
            self.sb.table("skills")
            .select("description, user:profiles(name)")
            .eq("community_id", community_id)
            .neq("user_id", user_id)
            .limit(20)
        )
        qb_rows, hp_rows, event_rows, wish_rows, skill_rows = await asyncio.gather(
            _rows_or_empty("queen_bee", queen_bee_q),
            _rows_or_empty("honey_pot", honey_pot_q),
            _rows_or_empty("events", events_q),
            _rows_or_empty("public_wishes", public_wishes_q),
            _rows_or_empty("community_skills", skills_q),
        )

        qb = _first(qb_rows)
        honey_pot = _first(hp_rows)
        return CommunityContext(
            queen_bee=QueenBeeData(
                user_name=_name(qb.get("user")),
                month=qb["month"],
                project_title=qb.get("project_title") or "",
                project_description=qb.get("project_description"),
                status=qb.get("status") or "",
            ) if qb else None,
            honey_pot=float((honey_pot or {}).get("balance") or 0),
            upcoming_events=[
                EventData(title=r["title"], event_date=r["event_date"], event_type=r.get("event_type"))
                for r in event_rows
            ],
            public_wishes=[
                PublicWishData(
                    user_name=_name(r.get("user")),
                    description=r["description"],
                    is_current_user=r.get("user_id") == user_id,
                )
                for r in wish_rows
            ],
            community_skills=[
                CommunitySkillData(user_name=_name(r.get("user")), description=r["description"])
                for r in skill_rows
            ],
        )

    # ── Board ─────────────────────────────────────────────────────────────────

    async def fetch_board_index(
        self,
        community_id: str,
        *,
        window_days: int = BOARD_INDEX_WINDOW_DAYS,
        limit: int = BOARD_INDEX_LIMIT,
    ) -> List[BoardPostIndexEntry]:
        """Lightweight post metadata, pinned first then newest."""
        since = (utcnow() - timedelta(days=window_days)).isoformat()
        res = await (
            self.sb.table("board_posts")
            .select(
                "id, title, is_pinned, reply_count, created_at, "
                "category:board_categories(name), author:profiles(name)"
            )
            .eq("community_id", community_id)
            .gte("created_at", since)
            .order("is_pinned", desc=True)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [
            BoardPostIndexEntry(
                id=r.get("id"),
                title=r["title"],
                author_name=_name(r.get("author")),
                category_name=_name(r.get("category"), "General"),
                reply_count=r.get("reply_count") or 0,
                is_pinned=bool(r.get("is_pinned")),
                created_at=r.get("created_at"),
            )
            for r in res.data or []
        ]

    async def search_board_posts(self, community_id: str, query: str, limit: int = 10) -> List[JsonDict]:
        term = _POSTGREST_RESERVED.sub(" ", query).strip()
        if not term:
            return []
        res = await (
            self.sb.table("board_posts")
            .select("id, title, content, is_pinned, reply_count, created_at, author:profiles(name)")
            .eq("community_id", community_id)
            .or_(f"title.ilike.%{term}%,content.ilike.%{term}%")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [
            {
                "id": r.get("id"),
                "title": r.get("title"),
                "author": _name(r.get("author")),
                "is_pinned": bool(r.get("is_pinned")),
                "reply_count": r.get("reply_count") or 0,
                "created_at": r.get("created_at"),
                "preview": (r.get("content") or "")[:280],
            }
            for r in res.data or []
        ]

    async def get_board_post(self, community_id: str, post_id: str) -> Optional[JsonDict]:
        post_res = await (
            self.sb.table("board_posts")
            .select("id, title, content, is_pinned, reply_count, created_at, author:profiles(name)")
            .eq("id", post_id)
            .eq("community_id", community_id)
            .limit(1)
            .execute()
        )
        post = _first(post_res.data)
        if post is None:
            return None
        replies_res = await (
            self.sb.table("board_replies")
            .select("content, created_at, author:profiles(name)")
            .eq("post_id", post_id)
            .order("created_at")
            .limit(20)
            .execute()
        )
        return {
            "id": post.get("id"),
            "title": post.get("title"),
            "content": post.get("content"),
            "author": _name(post.get("author")),
            "is_pinned": bool(post.get("is_pinned")),
            "created_at": post.get("created_at"),
            "replies": [
                {"author": _name(r.get("author")), "content": r.get("content"), "created_at": r.get("created_at")}
                for r in replies_res.data or []
            ],
        }

    # ── Rooms ─────────────────────────────────────────────────────────────────

    async def fetch_recent_room_messages(
        self,
        user_id: str,
        community_id: str,
        *,
        window_days: int = ROOM_MESSAGES_WINDOW_DAYS,
        limit: int = ROOM_MESSAGES_LIMIT,
    ) -> List[RoomMessageEntry]:
        """Newest-first messages from rooms the caller belongs to."""
        memberships = await (
            self.sb.table("chat_room_members").select("room_id").eq("user_id", user_id).execute()
        )
        room_ids = [m["room_id"] for m in memberships.data or []]
        if not room_ids:
            return []

        since = (utcnow() - timedelta(days=window_days)).isoformat()
        res = await (
            self.sb.table("room_messages")
            .select("content, created_at, room:chat_rooms(name, room_type), sender:profiles(name)")
            .in_("room_id", room_ids)
            .eq("community_id", community_id)
            .is_("deleted_at", "null")
            .gte("created_at", since)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        entries = []
        for r in res.data or []:
            room = r.get("room") or {}
            room_name = room.get("name") or ("DM" if room.get("room_type") == "dm" else "Unknown")
            entries.append(
                RoomMessageEntry(
                    room_name=room_name,
                    sender_name=_name(r.get("sender")),
                    content=(r.get("content") or "")[:ROOM_MESSAGE_MAX_CHARS],
                    created_at=r.get("created_at"),
                )
            )
        return entries

    # ── Meetings ──────────────────────────────────────────────────────────────

    async def fetch_meeting_notes(self, community_id: str) -> List[MeetingNote]:
        """Completed meetings of the last month. Community-wide; no per-member data."""
        since = (utcnow() - timedelta(days=MEETINGS_WINDOW_DAYS)).date().isoformat()
        res = await (
            self.sb.table("meetings")
            .select("date, summary")
            .eq("community_id", community_id)
            .eq("processing_status", "complete")
            .gte("date", since)
            .order("date", desc=True)
            .limit(3)
            .execute()
        )
        return [MeetingNote(date=r["date"], summary=r.get("summary")) for r in res.data or []]

    # ── Assistant conversation history ────────────────────────────────────────

    def _chat_messages(self, columns: str, user_id: str, community_id: str,
                       conversation_id: Optional[str], **select_kwargs: Any):
        query = self.sb.table("chat_messages").select(columns, **select_kwargs).eq("user_id", user_id)
        if conversation_id:
            return query.eq("conversation_id", conversation_id)
        return query.eq("community_id", community_id)

    async def count_chat_messages(
        self, user_id: str, community_id: str, conversation_id: Optional[str] = None
    ) -> int:
        res = await self._chat_messages(
            "id", user_id, community_id, conversation_id, count="exact", head=True
        ).execute()
        return res.count or 0

    async def list_chat_messages(
        self,
        user_id: str,
        community_id: str,
        conversation_id: Optional[str] = None,
        *,
        limit: int,
        newest_first: bool = False,
    ) -> List[ConversationMessage]:
        """Messages ordered by created_at; newest_first selects the tail."""
        res = await (
            self._chat_messages("role, content, created_at", user_id, community_id, conversation_id)
            .order("created_at", desc=newest_first)
            .limit(limit)
            .execute()
        )
        return [ConversationMessage(role=r["role"], content=r["content"]) for r in res.data or []]

    # ── Conversations ─────────────────────────────────────────────────────────

    async def list_opening_messages(self, user_id: str, conversation_id: str, limit: int = 4) -> List[ConversationMessage]:
        res = await (
            self.sb.table("chat_messages")
            .select("role, content")
            .eq("conversation_id", conversation_id)
            .eq("user_id", user_id)
            .order("created_at")
            .limit(limit)
            .execute()
        )
        return [ConversationMessage(role=r["role"], content=r["content"]) for r in res.data or []]

    async def update_conversation_title(self, user_id: str, conversation_id: str, title: str) -> List[JsonDict]:
        res = await (
            self.sb.table("conversations")
            .update({"title": title})
            .eq("id", conversation_id)
            .eq("user_id", user_id)
            .execute()
        )
        return res.data or []

    # ── Skills / wishes ───────────────────────────────────────────────────────

    async def insert_skill(self, user_id: str, community_id: str, description: str,
                           raw_input: str, extracted_from: str) -> List[JsonDict]:
        res = await self.sb.table("skills").insert({
            "user_id": user_id,
            "community_id": community_id,
            "description": description,
            "raw_input": raw_input,
            "extracted_from": extracted_from,
        }).execute()
        return res.data or []

    async def insert_wish(self, user_id: str, community_id: str, description: str,
                          raw_input: str, extracted_from: str) -> List[JsonDict]:
        res = await self.sb.table("wishes").insert({
            "user_id": user_id,
            "community_id": community_id,
            "description": description,
            "raw_input": raw_input,
            "status": "private",
            "extracted_from": extracted_from,
        }).execute()
        return res.data or []

    async def update_own_wish(self, user_id: str, community_id: str, wish_id: str,
                              updates: JsonDict) -> List[JsonDict]:
        """Update a wish only if it belongs to the caller in this community."""
        res = await (
            self.sb.table("wishes")
            .update(updates)
            .eq("id", wish_id)
            .eq("user_id", user_id)
            .eq("community_id", community_id)
            .execute()
        )
        return res.data or []

    async def list_user_wishes(self, user_id: str, community_id: str) -> List[JsonDict]:
        res = await (
            self.sb.table("wishes")
            .select("id, description, status, is_active, created_at")
            .eq("user_id", user_id)
            .eq("community_id", community_id)
            .order("created_at", desc=True)
            .execute()
        )
        return res.data or []

    async def list_user_skills(self, user_id: str, community_id: str) -> List[JsonDict]:
        res = await (
            self.sb.table("skills")
            .select("id, description, created_at")
            .eq("user_id", user_id)
            .eq("community_id", community_id)
            .execute()
        )
        return res.data or []

    async def list_public_wishes(self, community_id: str) -> List[JsonDict]:
        res = await (
            self.sb.table("wishes")
            .select("id, description, user_id, created_at, user:profiles!wishes_user_id_fkey(name)")
            .eq("community_id", community_id)
            .eq("status", "public")
            .eq("is_active", True)
            .execute()
        )
        return [
            {**{k: v for k, v in r.items() if k != "user"}, "user_name": _name(r.get("user"))}
            for r in res.data or []
        ]

    async def list_community_skills(self, community_id: str) -> List[JsonDict]:
        res = await (
            self.sb.table("skills")
            .select("id, description, user_id, user:profiles(name)")
            .eq("community_id", community_id)
            .execute()
        )
        return [
            {**{k: v for k, v in r.items() if k != "user"}, "user_name": _name(r.get("user"))}
            for r in res.data or []
        ]

    async def get_current_queen_bee(self, community_id: str) -> Optional[JsonDict]:
        res = await (
            self.sb.table("queen_bees")
            .select("month, project_title, project_description, status, user_id, user:profiles(name)")
            .eq("month", current_month())
            .eq("community_id", community_id)
            .limit(1)
            .execute()
        )
        row = _first(res.data)
        if row is None:
            return None
        return {**{k: v for k, v in row.items() if k != "user"}, "user_name": _name(row.get("user"))}

    async def list_members(self, community_id: str) -> List[JsonDict]:
        memberships = await (
            self.sb.table("community_memberships").select("user_id").eq("community_id", community_id).execute()
        )
        member_ids = [row["user_id"] for row in memberships.data or []]
        if not member_ids:
            return []
        res = await (
            self.sb.table("profiles").select("id, name, avatar_url").in_("id", member_ids).order("name").execute()
        )
        return res.data or []

    # ── Personality notes ─────────────────────────────────────────────────────

    async def get_personality_notes(self, user_id: str, community_id: str) -> Optional[str]:
        res = await (
            self.sb.table("user_insights")
            .select("personality_notes")
            .eq("user_id", user_id)
            .eq("community_id", community_id)
            .limit(1)
            .execute()
        )
        row = _first(res.data)
        return (row or {}).get("personality_notes")

    async def save_personality_notes(self, user_id: str, community_id: str, notes: str) -> bool:
        """Update the caller's insight row, inserting it first time. Returns True if created."""
        existing = await (
            self.sb.table("user_insights")
            .select("id")
            .eq("user_id", user_id)
            .eq("community_id", community_id)
            .limit(1)
            .execute()
        )
        if existing.data:
            await (
                self.sb.table("user_insights")
                .update({"personality_notes": notes})
                .eq("user_id", user_id)
                .eq("community_id", community_id)
                .execute()
            )
            return False
        await self.sb.table("user_insights").insert({
            "user_id": user_id,
            "community_id": community_id,
            "personality_notes": notes,
            "shared_with": [],
        }).execute()
        return True
