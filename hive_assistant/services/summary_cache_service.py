"""
Service layer for cached context summaries.

Reads and writes public.context_summaries through the caller-scoped
Supabase client. A summary is reused while it is still fresh; otherwise
the caller-supplied regenerate coroutine produces new content, which is
upserted under the scope's natural key.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional, Tuple

from pydantic import ValidationError
from supabase import AsyncClient

from hive_assistant.models.domain._time import utcnow
from hive_assistant.models.domain.context import ContextMetadata
from hive_assistant.models.domain.context_summary import (
    SUMMARY_TTLS,
    CachedSummary,
    SummaryScope,
    SummaryType,
)

logger = logging.getLogger(__name__)

TABLE = "context_summaries"
CONFLICT_KEY = "community_id,user_id,summary_type,conversation_id"

Regenerate = Callable[[], Awaitable[Tuple[str, int]]]


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return (len(text) + 3) // 4


def is_cache_valid(row: Optional[CachedSummary], now: Optional[datetime] = None) -> bool:
    """A row is fresh strictly before its expiry instant."""
    if row is None:
        return False
    return (now or utcnow()) < row.expires_at


class SummaryCacheService:
    """Get-or-generate access to context_summaries for one caller."""

    def __init__(self, supabase: AsyncClient):
        self.sb = supabase

    def _scoped(self, query, scope: SummaryScope):
        for column, value in scope.as_columns().items():
            query = query.is_(column, "null") if value is None else query.eq(column, value)
        return query

    # ── Read ──────────────────────────────────────────────────────────────────

    async def get_summary(self, scope: SummaryScope) -> Optional[CachedSummary]:
        """Fetch the cached row for a scope, or None. The latest-expiring row wins if duplicates exist."""
        res = await (
            self._scoped(self.sb.table(TABLE).select("*"), scope)
            .order("expires_at", desc=True)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        if not rows:
            return None
        try:
            return CachedSummary.model_validate(rows[0])
        except ValidationError as e:
            logger.warning("Ignoring malformed %s row: %s", scope.summary_type.value, e)
            return None

    # ── Upsert ────────────────────────────────────────────────────────────────

    async def upsert_summary(
        self,
        scope: SummaryScope,
        *,
        content: str,
        source_count: int,
        now: Optional[datetime] = None,
    ) -> None:
        """Insert or replace the single row for this scope."""
        now = now or utcnow()
        row = {
            **scope.as_columns(),
            "summary_content": content,
            "source_count": source_count,
            "last_source_timestamp": now.isoformat(),
            "estimated_tokens": estimate_tokens(content),
            "expires_at": (now + SUMMARY_TTLS[scope.summary_type]).isoformat(),
            "updated_at": now.isoformat(),
        }
        await self.sb.table(TABLE).upsert(row, on_conflict=CONFLICT_KEY).execute()

    # ── Invalidate / purge ────────────────────────────────────────────────────

    async def invalidate_conversation(self, conversation_id: str, *, user_id: str) -> int:
        """Expire the caller's conversation summary now. Returns the number of rows touched."""
        res = await (
            self.sb.table(TABLE)
            .update({"expires_at": utcnow().isoformat()})
            .eq("summary_type", SummaryType.CONVERSATION.value)
            .eq("conversation_id", conversation_id)
            .eq("user_id", user_id)
            .execute()
        )
        return len(res.data or [])

    async def purge_expired(self) -> int:
        """Delete expired rows visible to the caller. Returns the number removed."""
        res = await self.sb.table(TABLE).delete().lt("expires_at", utcnow().isoformat()).execute()
        return len(res.data or [])

    # ── Get or generate ───────────────────────────────────────────────────────

    async def get_or_generate(
        self,
        scope: SummaryScope,
        regenerate: Regenerate,
        metadata: ContextMetadata,
        *,
        expected_source_count: Optional[int] = None,
    ) -> str:
        """
        Return fresh cached content for ``scope`` or regenerate and store it.

        1. Read the row; a read failure counts as a miss
        2. On a hit append the type to ``metadata.cache_hits`` and return it
        3. On a miss call ``regenerate()`` for ``(content, source_count)``
        4. Empty content is returned as "" without writing a row
        5. Otherwise upsert, record the type in ``summaries_used`` and return

        ``expected_source_count`` marks a fresh row stale when the number of
        source items it was built from no longer matches.

        Never raises: generation failures are logged and yield "".
        """
        summary_type = scope.summary_type
        now = utcnow()

        try:
            cached = await self.get_summary(scope)
        except Exception as e:
            logger.warning("Summary cache read failed for %s: %s", summary_type.value, e)
            cached = None

        if is_cache_valid(cached, now) and (
            expected_source_count is None or cached.source_count == expected_source_count
        ):
            metadata.cache_hits.append(summary_type)
            return cached.summary_content

        metadata.cache_misses.append(summary_type)

        try:
            content, source_count = await regenerate()
        except Exception as e:
            logger.error("Summary generation failed for %s: %s", summary_type.value, e)
            return ""

        if not content:
            return ""

        try:
            await self.upsert_summary(scope, content=content, source_count=source_count, now=now)
        except Exception as e:
            logger.error("Summary cache write failed for %s: %s", summary_type.value, e)

        metadata.summaries_used.append(summary_type)
        return content
