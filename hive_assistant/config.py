"""
hive_assistant/config.py
------------------------
Runtime configuration read from the environment (.env supported).

Import
------
    from hive_assistant.config import AssistantConfig, get_config
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

import dotenv

dotenv.load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw else default


@dataclass
class AssistantConfig:
    supabase_url: str = ""
    supabase_anon_key: str = ""
    openai_api_key: str = ""

    chat_model: str = "gpt-4o"
    summary_model: str = "gpt-4o-mini"
    chat_max_tokens: int = 1024

    max_tool_iterations: int = 8

    # Seconds
    source_timeout: float = 10.0
    summary_timeout: float = 30.0
    llm_timeout: float = 60.0

    stream_chunk_size: int = 12
    stream_delay_ms: int = 25

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @classmethod
    def from_env(cls) -> "AssistantConfig":
        return cls(
            supabase_url=os.environ.get("SUPABASE_URL", ""),
            supabase_anon_key=os.environ.get("SUPABASE_ANON_KEY", ""),
            openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
            chat_model=os.environ.get("HIVE_CHAT_MODEL", cls.chat_model),
            summary_model=os.environ.get("HIVE_SUMMARY_MODEL", cls.summary_model),
            chat_max_tokens=_env_int("HIVE_CHAT_MAX_TOKENS", cls.chat_max_tokens),
            max_tool_iterations=_env_int("HIVE_MAX_TOOL_ITERATIONS", cls.max_tool_iterations),
            source_timeout=_env_float("HIVE_SOURCE_TIMEOUT_S", cls.source_timeout),
            summary_timeout=_env_float("HIVE_SUMMARY_TIMEOUT_S", cls.summary_timeout),
            llm_timeout=_env_float("HIVE_LLM_TIMEOUT_S", cls.llm_timeout),
            stream_chunk_size=_env_int("HIVE_STREAM_CHUNK_SIZE", cls.stream_chunk_size),
            stream_delay_ms=_env_int("HIVE_STREAM_DELAY_MS", cls.stream_delay_ms),
        )


@lru_cache(maxsize=1)
def get_config() -> AssistantConfig:
    return AssistantConfig.from_env()
