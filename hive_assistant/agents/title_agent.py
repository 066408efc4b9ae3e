"""Short conversation titles from the opening messages."""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser

from hive_assistant.models.domain.context import ConversationMessage
from hive_assistant.prompts.chat_prompts import TITLE_PROMPT

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Conversation"
TITLE_MAX_CHARS = 80


async def generate_title(
    model: BaseChatModel, messages: Sequence[ConversationMessage], *, timeout: float = 30.0
) -> str:
    conversation = "\n\n".join(f"{m.role}: {m.content}" for m in messages)
    chain = TITLE_PROMPT | model | StrOutputParser()
    try:
        raw = await asyncio.wait_for(chain.ainvoke({"conversation": conversation}), timeout=timeout)
    except Exception as e:
        logger.warning("Title generation failed: %s", e)
        return DEFAULT_TITLE
    title = (raw or "").strip().strip("\"'").strip()
    return title[:TITLE_MAX_CHARS] or DEFAULT_TITLE
