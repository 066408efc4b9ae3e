"""Supabase client factories. The user client is created per request and carries the caller's JWT."""
from __future__ import annotations

from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from hive_assistant.config import get_config


async def create_user_client(token: str) -> AsyncClient:
    """Client that sends the caller's bearer token so row-level security applies."""
    config = get_config()
    if not config.supabase_configured:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in .env")
    return await acreate_client(
        config.supabase_url,
        config.supabase_anon_key,
        options=AsyncClientOptions(
            headers={"Authorization": f"Bearer {token}"},
            auto_refresh_token=False,
            persist_session=False,
        ),
    )


async def create_anon_client() -> AsyncClient:
    config = get_config()
    if not config.supabase_configured:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in .env")
    return await acreate_client(config.supabase_url, config.supabase_anon_key)
