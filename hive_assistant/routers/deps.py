"""
Shared FastAPI dependencies: caller identity, request-scoped Supabase
client, services and the chat / summary models.

Tests replace any of these through ``app.dependency_overrides``.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException
from langchain_core.language_models import BaseChatModel
from supabase import AsyncClient

from hive_assistant.config import get_config
from hive_assistant.llm.llm_client import get_chat_model, get_summary_model
from hive_assistant.services.auth_service import (
    AuthContext,
    AuthError,
    FetchUser,
    supabase_user_id,
    verify_bearer,
)
from hive_assistant.services.context_service import ContextService
from hive_assistant.services.hive_data_service import HiveDataService
from hive_assistant.services.summarizer_service import SummarizerService
from hive_assistant.services.summary_cache_service import SummaryCacheService
from hive_assistant.supabase.supabase_client import create_user_client


def get_user_fetcher() -> FetchUser:
    if not get_config().supabase_configured:
        raise HTTPException(status_code=500, detail="Server misconfigured")
    return supabase_user_id


async def get_auth(
    authorization: Optional[str] = Header(default=None),
    fetch_user: FetchUser = Depends(get_user_fetcher),
) -> AuthContext:
    try:
        return await verify_bearer(authorization, fetch_user)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


async def get_supabase_client(auth: AuthContext = Depends(get_auth)) -> AsyncClient:
    return await create_user_client(auth.token)


def get_data_service(sb: AsyncClient = Depends(get_supabase_client)) -> HiveDataService:
    return HiveDataService(sb)


def get_cache_service(sb: AsyncClient = Depends(get_supabase_client)) -> SummaryCacheService:
    return SummaryCacheService(sb)


def get_chat_llm() -> BaseChatModel:
    return get_chat_model()


def get_summary_llm() -> BaseChatModel:
    return get_summary_model()


def get_context_service(
    data: HiveDataService = Depends(get_data_service),
    cache: SummaryCacheService = Depends(get_cache_service),
    summary_llm: BaseChatModel = Depends(get_summary_llm),
) -> ContextService:
    config = get_config()
    summarizer = SummarizerService(summary_llm, data, timeout=config.summary_timeout)
    return ContextService(
        data,
        cache,
        summarizer,
        source_timeout=config.source_timeout,
        summary_timeout=config.summary_timeout,
    )


async def resolve_community(data: HiveDataService, user_id: str) -> str:
    """The caller's current community, or 400 if they have none."""
    profile = await data.get_profile(user_id)
    community_id = (profile or {}).get("current_community_id")
    if not community_id:
        raise HTTPException(status_code=400, detail="No active community")
    return community_id
