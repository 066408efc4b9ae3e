from __future__ import annotations

import pytest

from conftest import COMMUNITY_ID, USER_ID, chat_rows
from fakes import FakeSupabase, ScriptedChatModel
from hive_assistant.models.domain.context import ContextMetadata
from hive_assistant.models.domain.context_summary import SummaryScope, SummaryType
from hive_assistant.services.conversation_history_service import ConversationHistoryService
from hive_assistant.services.hive_data_service import HiveDataService
from hive_assistant.services.summarizer_service import SummarizerService
from hive_assistant.services.summary_cache_service import SummaryCacheService


def _service(db, llm):
    data = HiveDataService(db)
    return ConversationHistoryService(data, SummaryCacheService(db), SummarizerService(llm, data))


@pytest.mark.asyncio
async def test_twenty_messages_pass_through_without_summary():
    db = FakeSupabase({"chat_messages": chat_rows(20)})
    llm = ScriptedChatModel(default="should not be used")

    result = await _service(db, llm).resolve_history(USER_ID, COMMUNITY_ID, "conv-1", ContextMetadata())

    assert result.total_count == 20
    assert [m.content for m in result.recent_messages] == [f"m{i:02d}" for i in range(1, 21)]
    assert result.summary == ""
    assert llm.calls == []


@pytest.mark.asyncio
async def test_twenty_one_messages_keep_last_ten_and_summarize_eleven():
    db = FakeSupabase({"chat_messages": chat_rows(21)})
    llm = ScriptedChatModel(default="- talked about swimming")
    meta = ContextMetadata()

    result = await _service(db, llm).resolve_history(USER_ID, COMMUNITY_ID, "conv-1", meta)

    assert result.total_count == 21
    assert [m.content for m in result.recent_messages] == [f"m{i:02d}" for i in range(12, 22)]
    assert result.summary == "- talked about swimming"

    assert len(llm.calls) == 1
    prompt = "\n".join(str(m.content) for m in llm.calls[0])
    assert "m01" in prompt and "m11" in prompt
    assert "m12" not in prompt

    rows = db.rows("context_summaries")
    assert len(rows) == 1
    assert rows[0]["source_count"] == 11
    assert rows[0]["conversation_id"] == "conv-1"
    assert meta.summaries_used == [SummaryType.CONVERSATION]


@pytest.mark.asyncio
async def test_long_history_without_conversation_id_is_not_summarized():
    db = FakeSupabase({"chat_messages": chat_rows(30)})
    llm = ScriptedChatModel()

    result = await _service(db, llm).resolve_history(USER_ID, COMMUNITY_ID, None, ContextMetadata())

    assert result.total_count == 30
    assert len(result.recent_messages) == 10
    assert result.recent_messages[-1].content == "m30"
    assert result.summary == ""
    assert llm.calls == []


@pytest.mark.asyncio
async def test_other_users_messages_are_not_counted():
    db = FakeSupabase({"chat_messages": chat_rows(5) + chat_rows(30, user_id="intruder")})

    result = await _service(db, ScriptedChatModel()).resolve_history(
        USER_ID, COMMUNITY_ID, "conv-1", ContextMetadata()
    )

    assert result.total_count == 5


@pytest.mark.asyncio
async def test_summarizer_failure_keeps_recent_messages():
    db = FakeSupabase({"chat_messages": chat_rows(25)})
    llm = ScriptedChatModel(error="model unavailable")

    result = await _service(db, llm).resolve_history(USER_ID, COMMUNITY_ID, "conv-1", ContextMetadata())

    assert result.summary == ""
    assert len(result.recent_messages) == 10
    assert db.rows("context_summaries") == []


@pytest.mark.asyncio
async def test_fresh_summary_covering_all_older_messages_is_reused():
    scope = SummaryScope.for_type(
        SummaryType.CONVERSATION, community_id=COMMUNITY_ID, user_id=USER_ID, conversation_id="conv-1"
    )
    cached = {
        **scope.as_columns(),
        "summary_content": "- planned the potluck",
        "source_count": 15,
        "expires_at": "2999-01-01T00:00:00+00:00",
        "updated_at": "2026-01-01T00:00:00+00:00",
    }
    db = FakeSupabase({"chat_messages": chat_rows(25), "context_summaries": [dict(cached)]})
    llm = ScriptedChatModel(default="should not be used")
    meta = ContextMetadata()

    result = await _service(db, llm).resolve_history(USER_ID, COMMUNITY_ID, "conv-1", meta)

    assert result.summary == "- planned the potluck"
    assert [m.content for m in result.recent_messages] == [f"m{i:02d}" for i in range(16, 26)]
    assert meta.cache_hits == [SummaryType.CONVERSATION]
    assert meta.cache_misses == []
    assert llm.calls == []
    assert db.rows("context_summaries") == [cached]
    assert not [q for q in db.queries if q[0] == "context_summaries" and q[1] != "select"]
