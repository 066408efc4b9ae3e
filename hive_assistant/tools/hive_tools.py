"""
hive_assistant/tools/hive_tools.py
----------------------------------
Tools the HIVE assistant can call during a chat turn.

Each tool is a ``ToolSpec`` (name, description, pydantic input model,
mutating flag) plus one handler on ``HiveToolbox``. A toolbox is built per
request around the authenticated user and community, and every handler
scopes its reads and writes to that pair. Ids supplied by the model are
only ever used together with those filters.

Usage
-----
    toolbox = HiveToolbox(data, user_id=user_id, community_id=community_id, mode="default")
    llm.bind_tools(toolbox.declarations())
    result = await toolbox.execute(ToolCall(id="call_1", name="store_skill", input={...}))
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Type

from langchain_core.utils.function_calling import convert_to_openai_function
from pydantic import BaseModel, ValidationError

from hive_assistant.models.domain._time import utcnow
from hive_assistant.models.domain.context import ContextMode
from hive_assistant.models.domain.tools import (
    CompleteOnboardingInput,
    FulfillWishInput,
    GetBoardPostInput,
    NoArguments,
    PublishWishInput,
    SearchBoardPostsInput,
    StoreSkillInput,
    StoreWishInput,
    ToolCall,
    ToolResult,
    UpdatePersonalityNotesInput,
    UpdateProfileInput,
)
from hive_assistant.services.hive_data_service import HiveDataService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_schema: Type[BaseModel]
    mutating: bool = False


_SPECS = [
    # mutating
    ToolSpec("store_skill", "Store a skill or capability the user has said they have.",
             StoreSkillInput, mutating=True),
    ToolSpec("store_wish", "Store a wish that emerged from the conversation. Wishes start private.",
             StoreWishInput, mutating=True),
    ToolSpec("publish_wish", "Make one of the user's wishes public to the HIVE. "
             "Only call after the user has explicitly agreed.",
             PublishWishInput, mutating=True),
    ToolSpec("fulfill_wish", "Mark one of the user's wishes as fulfilled.",
             FulfillWishInput, mutating=True),
    ToolSpec("update_profile", "Update profile details learned in conversation: birthday, phone, "
             "name correction, preferred contact method, Queen Bee month preference.",
             UpdateProfileInput, mutating=True),
    ToolSpec("complete_onboarding", "Signal that onboarding is complete. Call once the user has shared "
             "their birthday (or declined), at least 2 skills and at least 1 wish.",
             CompleteOnboardingInput, mutating=True),
    ToolSpec("update_personality_notes", "Replace your observational notes about this user: communication "
             "style, recurring interests, projects, people they mention. Only the user can read them. "
             "Update when you learn something meaningful, not every message.",
             UpdatePersonalityNotesInput, mutating=True),
    # read-only
    ToolSpec("get_user_wishes", "List the current user's wishes, private and public.", NoArguments),
    ToolSpec("get_user_skills", "List the current user's stored skills.", NoArguments),
    ToolSpec("get_public_wishes", "List all active public wishes in the HIVE.", NoArguments),
    ToolSpec("get_all_skills", "List the skills of every HIVE member.", NoArguments),
    ToolSpec("get_current_queen_bee", "Get this month's Queen Bee and their project.", NoArguments),
    ToolSpec("get_hive_members", "List HIVE members with basic info.", NoArguments),
    ToolSpec("get_personality_notes", "Read your current personality notes about this user.", NoArguments),
    ToolSpec("search_board_posts", "Search message-board posts by words in the title or body.",
             SearchBoardPostsInput),
    ToolSpec("get_board_post", "Read one board post in full, with its replies.", GetBoardPostInput),
]

TOOL_SPECS: Dict[str, ToolSpec] = {spec.name: spec for spec in _SPECS}


def tool_declaration(spec: ToolSpec) -> Dict[str, Any]:
    """OpenAI-style tool dict built from the tool's pydantic input model."""
    fn = convert_to_openai_function(spec.args_schema)
    fn["name"] = spec.name
    fn["description"] = spec.description
    return {"type": "function", "function": fn}


def _dump(data: Any) -> str:
    return json.dumps(data, default=str)


class HiveToolbox:
    """Per-request tool executor bound to one authenticated caller."""

    def __init__(self, data: HiveDataService, *, user_id: str, community_id: str,
                 mode: ContextMode = "default"):
        self.data = data
        self.user_id = user_id
        self.community_id = community_id
        self.mode = mode
        self.skills_added = 0
        self.onboarding_complete = False

    @property
    def extracted_from(self) -> str:
        return "onboarding" if self.mode == "onboarding" else "chat"

    def declarations(self) -> List[Dict[str, Any]]:
        return [tool_declaration(spec) for spec in TOOL_SPECS.values()]

    async def execute(self, call: ToolCall) -> ToolResult:
        """Run one tool call; every failure comes back as an error result."""
        spec = TOOL_SPECS.get(call.name)
        if spec is None:
            return ToolResult(tool_call_id=call.id, content=f"Error: Unknown tool {call.name}", is_error=True)

        try:
            args = spec.args_schema.model_validate(call.input or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in e.errors()
            )
            return ToolResult(tool_call_id=call.id, content=f"Error: invalid input ({problems})", is_error=True)

        try:
            content = await _HANDLERS[spec.name](self, args)
        except Exception as e:
            logger.warning("Tool %s failed for user %s: %s", spec.name, self.user_id, e)
            return ToolResult(tool_call_id=call.id, content=f"Error: {e}", is_error=True)

        logger.debug("Tool %s ok (mutating=%s)", spec.name, spec.mutating)
        return ToolResult(tool_call_id=call.id, content=content)

    # ── Mutating handlers ─────────────────────────────────────────────────────

    async def _store_skill(self, args: StoreSkillInput) -> str:
        await self.data.insert_skill(
            self.user_id, self.community_id, args.description, args.raw_input, self.extracted_from
        )
        self.skills_added += 1
        return "Skill saved successfully"

    async def _store_wish(self, args: StoreWishInput) -> str:
        rows = await self.data.insert_wish(
            self.user_id, self.community_id, args.description, args.raw_input, self.extracted_from
        )
        wish_id = rows[0].get("id") if rows else None
        return f"Wish saved successfully (id: {wish_id})" if wish_id else "Wish saved successfully"

    async def _publish_wish(self, args: PublishWishInput) -> str:
        rows = await self.data.update_own_wish(
            self.user_id, self.community_id, args.wish_id, {"status": "public", "is_active": True}
        )
        if not rows:
            raise LookupError(f"No wish {args.wish_id} belonging to you")
        return "Wish published to the HIVE"

    async def _fulfill_wish(self, args: FulfillWishInput) -> str:
        rows = await self.data.update_own_wish(
            self.user_id,
            self.community_id,
            args.wish_id,
            {
                "status": "fulfilled",
                "is_active": False,
                "fulfilled_at": utcnow().isoformat(),
                "fulfilled_by": args.fulfilled_by,
            },
        )
        if not rows:
            raise LookupError(f"No wish {args.wish_id} belonging to you")
        return "Wish marked as fulfilled!"

    async def _update_profile(self, args: UpdateProfileInput) -> str:
        updates = args.model_dump(exclude_none=True)
        if not updates:
            return "No updates provided"
        await self.data.update_profile(self.user_id, updates)
        return "Profile updated successfully"

    async def _complete_onboarding(self, args: CompleteOnboardingInput) -> str:
        self.onboarding_complete = True
        return "Onboarding marked as complete. The user can now enter the HIVE!"

    async def _update_personality_notes(self, args: UpdatePersonalityNotesInput) -> str:
        created = await self.data.save_personality_notes(self.user_id, self.community_id, args.notes)
        return "Personality notes saved" if created else "Personality notes updated"

    # ── Read-only handlers ────────────────────────────────────────────────────

    async def _get_user_wishes(self, args: NoArguments) -> str:
        return _dump(await self.data.list_user_wishes(self.user_id, self.community_id))

    async def _get_user_skills(self, args: NoArguments) -> str:
        return _dump(await self.data.list_user_skills(self.user_id, self.community_id))

    async def _get_public_wishes(self, args: NoArguments) -> str:
        return _dump(await self.data.list_public_wishes(self.community_id))

    async def _get_all_skills(self, args: NoArguments) -> str:
        return _dump(await self.data.list_community_skills(self.community_id))

    async def _get_current_queen_bee(self, args: NoArguments) -> str:
        return _dump(await self.data.get_current_queen_bee(self.community_id))

    async def _get_hive_members(self, args: NoArguments) -> str:
        return _dump(await self.data.list_members(self.community_id))

    async def _get_personality_notes(self, args: NoArguments) -> str:
        notes = await self.data.get_personality_notes(self.user_id, self.community_id)
        return notes or "No personality notes recorded yet."

    async def _search_board_posts(self, args: SearchBoardPostsInput) -> str:
        posts = await self.data.search_board_posts(self.community_id, args.query, args.limit)
        return _dump(posts) if posts else "No matching board posts."

    async def _get_board_post(self, args: GetBoardPostInput) -> str:
        post = await self.data.get_board_post(self.community_id, args.post_id)
        if post is None:
            raise LookupError(f"Board post {args.post_id} not found")
        return _dump(post)


Handler = Callable[[HiveToolbox, Any], Awaitable[str]]

_HANDLERS: Dict[str, Handler] = {
    "store_skill": HiveToolbox._store_skill,
    "store_wish": HiveToolbox._store_wish,
    "publish_wish": HiveToolbox._publish_wish,
    "fulfill_wish": HiveToolbox._fulfill_wish,
    "update_profile": HiveToolbox._update_profile,
    "complete_onboarding": HiveToolbox._complete_onboarding,
    "update_personality_notes": HiveToolbox._update_personality_notes,
    "get_user_wishes": HiveToolbox._get_user_wishes,
    "get_user_skills": HiveToolbox._get_user_skills,
    "get_public_wishes": HiveToolbox._get_public_wishes,
    "get_all_skills": HiveToolbox._get_all_skills,
    "get_current_queen_bee": HiveToolbox._get_current_queen_bee,
    "get_hive_members": HiveToolbox._get_hive_members,
    "get_personality_notes": HiveToolbox._get_personality_notes,
    "search_board_posts": HiveToolbox._search_board_posts,
    "get_board_post": HiveToolbox._get_board_post,
}

if set(_HANDLERS) != set(TOOL_SPECS):
    raise RuntimeError(
        "Tool registry mismatch: "
        f"unhandled={sorted(set(TOOL_SPECS) - set(_HANDLERS))} "
        f"undeclared={sorted(set(_HANDLERS) - set(TOOL_SPECS))}"
    )
