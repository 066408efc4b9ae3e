"""
/chat router
------------
The HIVE assistant endpoint and conversation titles.

POST /chat        : one assistant turn (JSON or Server-Sent Events)
POST /chat/title  : generate and store a short conversation title
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from langchain_core.language_models import BaseChatModel

from hive_assistant.agents.chat_agent import build_transcript, run_chat_agent
from hive_assistant.agents.title_agent import generate_title
from hive_assistant.config import get_config
from hive_assistant.helpers.sse import SSE_HEADERS, EventStream, start_background, stream_chat_events
from hive_assistant.models.api.chat import (
    ChatMetadataEvent,
    ChatRequest,
    ChatResponse,
    ContextMetadataResponse,
    TitleRequest,
    TitleResponse,
)
from hive_assistant.prompts.chat_prompts import select_system_prompt
from hive_assistant.routers.deps import (
    get_auth,
    get_chat_llm,
    get_context_service,
    get_data_service,
    get_summary_llm,
    resolve_community,
)
from hive_assistant.services.auth_service import AuthContext
from hive_assistant.services.context_service import ContextService
from hive_assistant.services.hive_data_service import HiveDataService
from hive_assistant.tools.hive_tools import HiveToolbox

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat", tags=["chat"])


# ── POST /chat ────────────────────────────────────────────────────────────────

@router.post("", response_model=ChatResponse)
async def chat(
    req: ChatRequest,
    auth: AuthContext = Depends(get_auth),
    data: HiveDataService = Depends(get_data_service),
    context_service: ContextService = Depends(get_context_service),
    chat_llm: BaseChatModel = Depends(get_chat_llm),
):
    """
    Run one assistant turn for the authenticated caller.

    Builds the context snapshot, runs the tool loop to a final answer, then
    returns it as JSON or, with ``stream: true``, as an SSE stream whose
    events are produced by a detached task.
    """
    config = get_config()
    try:
        community_id = await resolve_community(data, auth.user_id)

        context = await context_service.assemble_context(
            auth.user_id, community_id, req.conversation_id, req.mode
        )
        toolbox = HiveToolbox(data, user_id=auth.user_id, community_id=community_id, mode=req.mode)
        result = await run_chat_agent(
            model=chat_llm,
            toolbox=toolbox,
            system_prompt=select_system_prompt(req.mode, req.context, req.refine_wish),
            context=context.assembled_context,
            transcript=build_transcript(context.recent_messages, req.message, req.attachments),
            max_iterations=config.max_tool_iterations,
            llm_timeout=config.llm_timeout,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Chat turn failed for user %s", auth.user_id)
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(
        "Chat turn done: user=%s mode=%s tool_rounds=%d skills_added=%d",
        auth.user_id, req.mode, result.iterations, result.skills_added,
    )
    context_metadata = ContextMetadataResponse.from_metadata(context.metadata)

    if not req.stream:
        return ChatResponse(
            response=result.final_text,
            skills_added=result.skills_added,
            onboarding_complete=result.onboarding_complete,
            context_metadata=context_metadata,
        )

    metadata_event = ChatMetadataEvent(
        skills_added=result.skills_added,
        onboarding_complete=result.onboarding_complete,
        context_metadata=context_metadata,
    ).model_dump(by_alias=True, mode="json")

    stream = EventStream()
    start_background(
        stream_chat_events(
            stream,
            result.final_text,
            metadata_event,
            chunk_size=config.stream_chunk_size,
            delay_ms=config.stream_delay_ms,
        )
    )
    return StreamingResponse(stream.readable(), media_type="text/event-stream", headers=SSE_HEADERS)


# ── POST /chat/title ──────────────────────────────────────────────────────────

@router.post("/title", response_model=TitleResponse)
async def conversation_title(
    req: TitleRequest,
    auth: AuthContext = Depends(get_auth),
    data: HiveDataService = Depends(get_data_service),
    summary_llm: BaseChatModel = Depends(get_summary_llm),
) -> TitleResponse:
    """Title a conversation from its first four messages and save it."""
    try:
        messages = await data.list_opening_messages(auth.user_id, req.conversation_id)
        if not messages:
            raise HTTPException(status_code=400, detail="Could not fetch messages")
        if not any(m.role == "user" for m in messages):
            raise HTTPException(status_code=400, detail="No user messages found")

        title = await generate_title(summary_llm, messages, timeout=get_config().summary_timeout)
        await data.update_conversation_title(auth.user_id, req.conversation_id, title)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Title generation failed for conversation %s", req.conversation_id)
        raise HTTPException(status_code=500, detail="Internal server error")

    return TitleResponse(title=title)
