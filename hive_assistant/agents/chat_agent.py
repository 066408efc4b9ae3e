"""
hive_assistant/agents/chat_agent.py
-----------------------------------
Bounded tool-calling loop for one assistant turn, built as a LangGraph StateGraph.

Graph
-----
  call_model ──(tool calls, under cap)──▶ execute_tools ──▶ call_model
      │
      ├──(tool calls, cap reached)──▶ give_up ──▶ END
      └──(plain answer)─────────────▶ finish  ──▶ END

The system message is the selected prompt followed by the assembled
context. Tool calls in one reply run one after another in the order the
model listed them; each result goes back as a ToolMessage, failures
included, so the model can react to them.

Usage
-----
    from hive_assistant.agents.chat_agent import run_chat_agent

    result = await run_chat_agent(
        model=get_chat_model(),
        toolbox=toolbox,
        system_prompt=prompt,
        context=context.assembled_context,
        transcript=build_transcript(context.recent_messages, "hi", []),
    )
    print(result.final_text)
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Sequence, TypedDict

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langgraph.graph import END, StateGraph
from pydantic import BaseModel

from hive_assistant.models.domain.context import Attachment, ConversationMessage
from hive_assistant.models.domain.tools import ToolCall
from hive_assistant.tools.hive_tools import HiveToolbox

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 8
NO_TEXT_FALLBACK = "I'm not sure how to respond to that."
ITERATION_CAP_FALLBACK = "I got a bit tangled up working on that. Could you try asking again?"
IMAGE_ONLY_PROMPT = "What do you see in this image?"


class ReasoningEngineError(RuntimeError):
    """The chat model failed or timed out; the turn cannot be answered."""


class AgentResult(BaseModel):
    final_text: str
    skills_added: int = 0
    onboarding_complete: bool = False
    iterations: int = 0


# ── State ────────────────────────────────────────────────────────────────────

class ChatState(TypedDict, total=False):
    messages: List[BaseMessage]
    iterations: int
    final_text: str


# ── Transcript ───────────────────────────────────────────────────────────────

def build_transcript(
    history: Sequence[ConversationMessage],
    message: str,
    attachments: Optional[Sequence[Attachment]] = None,
) -> List[BaseMessage]:
    """Prior turns plus the new user message; images go ahead of the text."""
    transcript: List[BaseMessage] = [
        HumanMessage(content=m.content) if m.role == "user" else AIMessage(content=m.content)
        for m in history
    ]
    if attachments:
        blocks: List[Any] = [
            {"type": "image_url", "image_url": {"url": a.url}} for a in attachments if a.is_image
        ]
        blocks.append({"type": "text", "text": message or IMAGE_ONLY_PROMPT})
        transcript.append(HumanMessage(content=blocks))
    else:
        transcript.append(HumanMessage(content=message))
    return transcript


def message_text(message: BaseMessage) -> str:
    """Text portion of a model reply, whether content is a string or blocks."""
    content = message.content
    if isinstance(content, str):
        return content.strip()
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts).strip()


# ── Graph ────────────────────────────────────────────────────────────────────

def build_chat_agent(
    model: BaseChatModel,
    toolbox: HiveToolbox,
    *,
    system_prompt: str,
    context: str,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    llm_timeout: float = 60.0,
):
    """Compile the tool loop for one request."""
    system = SystemMessage(content=f"{system_prompt}\n\n{context}")
    llm = model.bind_tools(toolbox.declarations())

    async def call_model(state: ChatState) -> ChatState:
        try:
            reply = await asyncio.wait_for(
                llm.ainvoke([system] + state["messages"]), timeout=llm_timeout
            )
        except asyncio.TimeoutError as e:
            raise ReasoningEngineError(f"Chat model timed out after {llm_timeout:.0f}s") from e
        except Exception as e:
            raise ReasoningEngineError(f"Chat model call failed: {e}") from e
        return {**state, "messages": state["messages"] + [reply]}

    async def execute_tools(state: ChatState) -> ChatState:
        reply = state["messages"][-1]
        results: List[BaseMessage] = []
        for tc in reply.tool_calls:
            call = ToolCall(id=tc.get("id") or "", name=tc["name"], input=tc.get("args") or {})
            result = await toolbox.execute(call)
            results.append(
                ToolMessage(
                    content=result.content,
                    tool_call_id=result.tool_call_id,
                    status="error" if result.is_error else "success",
                )
            )
        iterations = state.get("iterations", 0) + 1
        logger.info("Tool round %d: %s", iterations, [tc["name"] for tc in reply.tool_calls])
        return {**state, "messages": state["messages"] + results, "iterations": iterations}

    def finish(state: ChatState) -> ChatState:
        text = message_text(state["messages"][-1])
        return {**state, "final_text": text or NO_TEXT_FALLBACK}

    def give_up(state: ChatState) -> ChatState:
        logger.warning("Tool loop hit the %d-iteration cap; returning fallback", max_iterations)
        return {**state, "final_text": ITERATION_CAP_FALLBACK}

    def route_after_model(state: ChatState) -> str:
        reply = state["messages"][-1]
        if getattr(reply, "tool_calls", None):
            if state.get("iterations", 0) >= max_iterations:
                return "give_up"
            return "execute_tools"
        return "finish"

    graph = StateGraph(ChatState)

    graph.add_node("call_model", call_model)
    graph.add_node("execute_tools", execute_tools)
    graph.add_node("finish", finish)
    graph.add_node("give_up", give_up)

    graph.set_entry_point("call_model")

    graph.add_conditional_edges("call_model", route_after_model)
    graph.add_edge("execute_tools", "call_model")
    graph.add_edge("finish", END)
    graph.add_edge("give_up", END)

    return graph.compile()


async def run_chat_agent(
    *,
    model: BaseChatModel,
    toolbox: HiveToolbox,
    system_prompt: str,
    context: str,
    transcript: List[BaseMessage],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    llm_timeout: float = 60.0,
) -> AgentResult:
    agent = build_chat_agent(
        model,
        toolbox,
        system_prompt=system_prompt,
        context=context,
        max_iterations=max_iterations,
        llm_timeout=llm_timeout,
    )
    state = await agent.ainvoke(
        {"messages": transcript, "iterations": 0},
        config={"recursion_limit": 2 * max_iterations + 5},
    )
    return AgentResult(
        final_text=state["final_text"],
        skills_added=toolbox.skills_added,
        onboarding_complete=toolbox.onboarding_complete,
        iterations=state.get("iterations", 0),
    )
