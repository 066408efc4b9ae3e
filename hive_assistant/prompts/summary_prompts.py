"""
hive_assistant/prompts/summary_prompts.py
-----------------------------------------
Prompt templates for the context summarizers.

Provides four prompts, one per cached summary type:
  - CONVERSATION_SUMMARY_PROMPT  : older turns of a long assistant conversation
  - BOARD_ACTIVITY_SUMMARY_PROMPT: recent message-board posts
  - ROOM_MESSAGES_SUMMARY_PROMPT : recent chat-room traffic the user can see
  - MEETINGS_SUMMARY_PROMPT      : recent community meeting summaries
"""
from __future__ import annotations

from langchain_core.prompts import ChatPromptTemplate

_HIVE_BACKGROUND = (
    "The HIVE is a small community (about twelve people) that practises "
    "\"high-definition wishing\": turning vague desires into specific, actionable "
    "wishes and matching them with the skills of other members.\n\n"
)

# ── Conversation ─────────────────────────────────────────────────────────────

CONVERSATION_SUMMARY_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You summarize conversations between a HIVE member and the HIVE assistant.\n\n"
        + _HIVE_BACKGROUND
        + "Preserve:\n"
        "1. The main topics discussed\n"
        "2. Wishes that came up, noting whether each is private, public or fulfilled\n"
        "3. Skills the member said they have\n"
        "4. Decisions made and preferences expressed\n"
        "5. The emotional tone\n"
        "6. Open action items or follow-ups\n\n"
        "Stay under 200 words and use bullet points.",
    ),
    ("human", "Conversation:\n\n{transcript}\n\nSummary:"),
])

# ── Board activity ───────────────────────────────────────────────────────────

BOARD_ACTIVITY_SUMMARY_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You summarize recent message-board activity for the HIVE community.\n\n"
        "Cover the topics people are discussing, announcements (pinned posts first), "
        "Queen Bee project updates, open questions that need answers and any "
        "resources that were shared.\n\n"
        "Stay under 150 words.",
    ),
    ("human", "Recent board activity:\n{posts}\n\nSummary:"),
])

# ── Room messages ────────────────────────────────────────────────────────────

ROOM_MESSAGES_SUMMARY_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You summarize recent chat-room activity in the HIVE community.\n\n"
        "For community rooms, give the main discussion topics and anything important. "
        "For direct messages, only say who the member has been talking with and the "
        "general subject; never repeat private details.\n\n"
        "Stay under 100 words.",
    ),
    ("human", "Recent chat activity:\n{messages}\n\nSummary:"),
])

# ── Meetings ─────────────────────────────────────────────────────────────────

MEETINGS_SUMMARY_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        "You summarize recent HIVE community meetings for the whole community.\n\n"
        "Include the key points of each meeting and the decisions that were made. "
        "Do not attribute tasks to any individual member.\n\n"
        "Stay under 120 words.",
    ),
    (
        "human",
        "Recent meetings:\n{meetings}\n\nSummary:",
    ),
])
