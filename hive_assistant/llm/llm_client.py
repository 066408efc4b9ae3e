"""Process-wide chat model factories, injected into services through the routers."""
from __future__ import annotations

from functools import lru_cache

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from hive_assistant.config import get_config


@lru_cache(maxsize=1)
def get_chat_model() -> BaseChatModel:
    """Reasoning engine used by the tool loop."""
    config = get_config()
    return ChatOpenAI(
        model=config.chat_model,
        temperature=0.7,
        max_tokens=config.chat_max_tokens,
        timeout=config.llm_timeout,
        api_key=config.openai_api_key or None,
    )


@lru_cache(maxsize=1)
def get_summary_model() -> BaseChatModel:
    """Cheaper model for single-shot digests and conversation titles."""
    config = get_config()
    return ChatOpenAI(
        model=config.summary_model,
        temperature=0,
        max_tokens=400,
        timeout=config.summary_timeout,
        api_key=config.openai_api_key or None,
    )
