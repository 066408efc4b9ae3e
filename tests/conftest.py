from __future__ import annotations

from datetime import timedelta

import pytest

from fakes import FakeSupabase
from hive_assistant.models.domain._time import utcnow
from hive_assistant.services.hive_data_service import current_month

USER_ID = "user-ada"
PEER_ID = "user-bo"
COMMUNITY_ID = "community-1"
OTHER_COMMUNITY_ID = "community-2"


def chat_rows(count, *, conversation_id="conv-1", user_id=USER_ID, community_id=COMMUNITY_ID):
    """``count`` alternating user/assistant messages with contents m01, m02, ..."""
    start = utcnow() - timedelta(hours=1)
    return [
        {
            "id": f"msg-{i}",
            "user_id": user_id,
            "community_id": community_id,
            "conversation_id": conversation_id,
            "role": "user" if i % 2 else "assistant",
            "content": f"m{i:02d}",
            "created_at": (start + timedelta(seconds=i)).isoformat(),
        }
        for i in range(1, count + 1)
    ]


@pytest.fixture
def empty_db():
    return FakeSupabase({
        "profiles": [
            {"id": USER_ID, "name": "Ada", "email": "ada@example.com", "current_community_id": COMMUNITY_ID},
        ],
    })


@pytest.fixture
def hive_db():
    now = utcnow()
    today = now.date()
    return FakeSupabase({
        "profiles": [
            {"id": USER_ID, "name": "Ada", "email": "ada@example.com", "current_community_id": COMMUNITY_ID},
            {"id": PEER_ID, "name": "Bo", "email": "bo@example.com", "current_community_id": COMMUNITY_ID},
        ],
        "community_memberships": [
            {"user_id": USER_ID, "community_id": COMMUNITY_ID},
            {"user_id": PEER_ID, "community_id": COMMUNITY_ID},
        ],
        "skills": [
            {"id": "s1", "user_id": USER_ID, "community_id": COMMUNITY_ID, "description": "Bakes sourdough",
             "user": {"name": "Ada"}},
            {"id": "s2", "user_id": PEER_ID, "community_id": COMMUNITY_ID, "description": "Fixes bikes",
             "user": {"name": "Bo"}},
            {"id": "s3", "user_id": PEER_ID, "community_id": OTHER_COMMUNITY_ID, "description": "Sails boats",
             "user": {"name": "Bo"}},
        ],
        "wishes": [
            {"id": "w1", "user_id": USER_ID, "community_id": COMMUNITY_ID, "description": "Learn to swim",
             "status": "private", "is_active": False, "created_at": now.isoformat(), "user": {"name": "Ada"}},
            {"id": "w2", "user_id": PEER_ID, "community_id": COMMUNITY_ID, "description": "Paint the shed",
             "status": "public", "is_active": True, "created_at": now.isoformat(), "user": {"name": "Bo"}},
        ],
        "action_items": [
            {"id": "a1", "assigned_to": USER_ID, "community_id": COMMUNITY_ID, "description": "Book the hall",
             "due_date": today.isoformat(), "completed": False},
        ],
        "queen_bees": [
            {"id": "qb1", "community_id": COMMUNITY_ID, "user_id": PEER_ID, "month": current_month(),
             "project_title": "Community garden", "project_description": "Raised beds", "status": "active",
             "user": {"name": "Bo"}},
        ],
        "honey_pot": [{"community_id": COMMUNITY_ID, "balance": 42.5}],
        "events": [
            {"community_id": COMMUNITY_ID, "title": "Potluck", "event_date": today.isoformat(),
             "event_type": "social"},
        ],
        "board_posts": [
            {"id": "p1", "community_id": COMMUNITY_ID, "title": "Garden rota", "content": "Who waters on Sunday?",
             "is_pinned": True, "reply_count": 2, "created_at": now.isoformat(),
             "category": {"name": "Announcements"}, "author": {"name": "Bo"}},
        ],
        "board_replies": [
            {"post_id": "p1", "content": "I can", "created_at": now.isoformat(), "author": {"name": "Ada"}},
        ],
        "chat_room_members": [{"room_id": "r1", "user_id": USER_ID}],
        "room_messages": [
            {"room_id": "r1", "community_id": COMMUNITY_ID, "content": "See you at the potluck",
             "created_at": now.isoformat(), "deleted_at": None,
             "room": {"name": "Lobby", "room_type": "group"}, "sender": {"name": "Bo"}},
        ],
        "meetings": [
            {"community_id": COMMUNITY_ID, "date": today.isoformat(), "summary": "Agreed on the garden plan",
             "processing_status": "complete"},
        ],
    })
