"""
/context router
---------------
Inspect and invalidate the assistant's context for the caller.

POST   /context/preview                                   : assemble the context without calling the assistant
DELETE /context/summaries/conversation/{conversation_id}  : expire a cached conversation summary
DELETE /context/summaries/expired                         : delete expired summary rows (maintenance)
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from hive_assistant.models.api.context import (
    ContextPreviewRequest,
    ContextPreviewResponse,
    SummaryInvalidateResponse,
    SummaryPurgeResponse,
)
from hive_assistant.routers.deps import (
    get_auth,
    get_cache_service,
    get_context_service,
    get_data_service,
    resolve_community,
)
from hive_assistant.services.auth_service import AuthContext
from hive_assistant.services.context_service import ContextService
from hive_assistant.services.hive_data_service import HiveDataService
from hive_assistant.services.summary_cache_service import SummaryCacheService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/context", tags=["context"])


# ── POST /context/preview ─────────────────────────────────────────────────────

@router.post("/preview", response_model=ContextPreviewResponse)
async def preview_context(
    req: ContextPreviewRequest,
    auth: AuthContext = Depends(get_auth),
    data: HiveDataService = Depends(get_data_service),
    context_service: ContextService = Depends(get_context_service),
) -> ContextPreviewResponse:
    try:
        community_id = await resolve_community(data, auth.user_id)
        result = await context_service.assemble_context(
            auth.user_id, community_id, req.conversation_id, req.mode
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Context preview failed for user %s", auth.user_id)
        raise HTTPException(status_code=500, detail="Internal server error")

    meta = result.metadata
    return ContextPreviewResponse(
        assembled_context=result.assembled_context,
        recent_messages=result.recent_messages,
        tokens_used=meta.tokens_used,
        message_count=meta.conversation_message_count,
        summaries_used=meta.summaries_used,
        cache_hits=meta.cache_hits,
        cache_misses=meta.cache_misses,
    )


# ── DELETE /context/summaries/conversation/{conversation_id} ─────────────────

@router.delete("/summaries/conversation/{conversation_id}", response_model=SummaryInvalidateResponse)
async def invalidate_conversation_summary(
    conversation_id: str,
    auth: AuthContext = Depends(get_auth),
    cache: SummaryCacheService = Depends(get_cache_service),
) -> SummaryInvalidateResponse:
    """Expire the cached summary so the next turn rebuilds it. Call after appending messages."""
    try:
        count = await cache.invalidate_conversation(conversation_id, user_id=auth.user_id)
    except Exception:
        logger.exception("Summary invalidation failed for conversation %s", conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")
    return SummaryInvalidateResponse(conversation_id=conversation_id, invalidated=count)


# ── DELETE /context/summaries/expired ─────────────────────────────────────────

@router.delete("/summaries/expired", response_model=SummaryPurgeResponse)
async def purge_expired_summaries(
    auth: AuthContext = Depends(get_auth),
    cache: SummaryCacheService = Depends(get_cache_service),
) -> SummaryPurgeResponse:
    """Maintenance: drop expired cache rows. Row-level security limits it to rows the caller can see."""
    try:
        count = await cache.purge_expired()
    except Exception:
        logger.exception("Summary purge failed for user %s", auth.user_id)
        raise HTTPException(status_code=500, detail="Internal server error")
    logger.info("Purged %d expired context summaries", count)
    return SummaryPurgeResponse(purged=count)
