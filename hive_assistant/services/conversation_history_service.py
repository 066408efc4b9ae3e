"""
hive_assistant/services/conversation_history_service.py
-------------------------------------------------------
Decides how much assistant-conversation history goes to the model verbatim.

Up to SUMMARY_THRESHOLD messages are passed through unchanged. Past that,
only the last RECENT_MESSAGE_COUNT are kept verbatim and (for a specific
conversation) everything older is replaced by a cached summary.

Import
------
    from hive_assistant.services.conversation_history_service import ConversationHistoryService
"""
from __future__ import annotations

import logging
from typing import Optional

from hive_assistant.models.domain.context import ContextMetadata, HistoryResult
from hive_assistant.models.domain.context_summary import SummaryScope, SummaryType
from hive_assistant.services.hive_data_service import HiveDataService
from hive_assistant.services.summarizer_service import SummarizerService
from hive_assistant.services.summary_cache_service import SummaryCacheService

logger = logging.getLogger(__name__)

SUMMARY_THRESHOLD = 20
RECENT_MESSAGE_COUNT = 10


class ConversationHistoryService:

    def __init__(self, data: HiveDataService, cache: SummaryCacheService, summarizer: SummarizerService):
        self.data = data
        self.cache = cache
        self.summarizer = summarizer

    async def resolve_history(
        self,
        user_id: str,
        community_id: str,
        conversation_id: Optional[str],
        metadata: ContextMetadata,
    ) -> HistoryResult:
        total = await self.data.count_chat_messages(user_id, community_id, conversation_id)

        if total <= SUMMARY_THRESHOLD:
            messages = await self.data.list_chat_messages(
                user_id, community_id, conversation_id, limit=SUMMARY_THRESHOLD
            )
            return HistoryResult(recent_messages=messages, summary="", total_count=total)

        tail = await self.data.list_chat_messages(
            user_id, community_id, conversation_id, limit=RECENT_MESSAGE_COUNT, newest_first=True
        )
        recent = list(reversed(tail))

        if not conversation_id:
            return HistoryResult(recent_messages=recent, summary="", total_count=total)

        older_count = total - RECENT_MESSAGE_COUNT
        logger.debug("Conversation %s has %d messages; summarizing %d", conversation_id, total, older_count)

        async def regenerate():
            return await self.summarizer.regenerate_conversation(
                user_id, community_id, conversation_id, older_count
            )

        scope = SummaryScope.for_type(
            SummaryType.CONVERSATION,
            community_id=community_id,
            user_id=user_id,
            conversation_id=conversation_id,
        )
        summary = await self.cache.get_or_generate(
            scope, regenerate, metadata, expected_source_count=older_count
        )
        return HistoryResult(recent_messages=recent, summary=summary, total_count=total)
