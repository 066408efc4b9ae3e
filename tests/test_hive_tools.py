from __future__ import annotations

import json

import pytest

from conftest import COMMUNITY_ID, PEER_ID, USER_ID
from hive_assistant.models.domain.tools import ToolCall
from hive_assistant.services.hive_data_service import HiveDataService
from hive_assistant.tools.hive_tools import TOOL_SPECS, HiveToolbox


def _toolbox(db, mode="default"):
    return HiveToolbox(HiveDataService(db), user_id=USER_ID, community_id=COMMUNITY_ID, mode=mode)


def test_declarations_cover_every_tool_with_its_schema(hive_db):
    decls = _toolbox(hive_db).declarations()

    names = [d["function"]["name"] for d in decls]
    assert sorted(names) == sorted(TOOL_SPECS)
    store_skill = next(d for d in decls if d["function"]["name"] == "store_skill")
    assert store_skill["type"] == "function"
    assert set(store_skill["function"]["parameters"]["required"]) == {"description", "raw_input"}


def test_mutating_flags():
    mutating = {name for name, spec in TOOL_SPECS.items() if spec.mutating}
    assert mutating == {
        "store_skill", "store_wish", "publish_wish", "fulfill_wish",
        "update_profile", "complete_onboarding", "update_personality_notes",
    }


@pytest.mark.asyncio
async def test_store_skill_writes_for_the_caller_only(hive_db):
    toolbox = _toolbox(hive_db, mode="onboarding")
    call = ToolCall(
        id="c1",
        name="store_skill",
        input={"description": "Teaches beginner guitar", "raw_input": "I play guitar",
               "user_id": PEER_ID, "community_id": "elsewhere"},
    )

    result = await toolbox.execute(call)

    assert result.is_error is False
    assert result.tool_call_id == "c1"
    row = hive_db.rows("skills")[-1]
    assert row["user_id"] == USER_ID
    assert row["community_id"] == COMMUNITY_ID
    assert row["extracted_from"] == "onboarding"
    assert toolbox.skills_added == 1


@pytest.mark.asyncio
async def test_store_wish_starts_private_and_reports_id(hive_db):
    result = await _toolbox(hive_db).execute(
        ToolCall(id="c1", name="store_wish", input={"description": "Swim 1km", "raw_input": "swim"})
    )

    row = hive_db.rows("wishes")[-1]
    assert row["status"] == "private"
    assert row["extracted_from"] == "chat"
    assert row["id"] in result.content


@pytest.mark.asyncio
async def test_publish_wish_cannot_touch_another_members_wish(hive_db):
    result = await _toolbox(hive_db).execute(ToolCall(id="c1", name="publish_wish", input={"wish_id": "w2"}))

    assert result.is_error is True
    assert result.content.startswith("Error:")
    peer_wish = next(w for w in hive_db.rows("wishes") if w["id"] == "w2")
    assert peer_wish["status"] == "public"  # unchanged

    table, op, conditions = hive_db.queries[-1]
    assert (table, op) == ("wishes", "update")
    assert ("eq", "user_id", USER_ID) in conditions
    assert ("eq", "community_id", COMMUNITY_ID) in conditions


@pytest.mark.asyncio
async def test_publish_and_fulfill_own_wish(hive_db):
    toolbox = _toolbox(hive_db)

    assert (await toolbox.execute(ToolCall(id="c1", name="publish_wish", input={"wish_id": "w1"}))).content \
        == "Wish published to the HIVE"
    wish = next(w for w in hive_db.rows("wishes") if w["id"] == "w1")
    assert (wish["status"], wish["is_active"]) == ("public", True)

    await toolbox.execute(ToolCall(id="c2", name="fulfill_wish", input={"wish_id": "w1", "fulfilled_by": PEER_ID}))
    assert (wish["status"], wish["is_active"], wish["fulfilled_by"]) == ("fulfilled", False, PEER_ID)
    assert wish["fulfilled_at"]


@pytest.mark.asyncio
async def test_update_profile_only_sends_given_fields(hive_db):
    toolbox = _toolbox(hive_db)

    result = await toolbox.execute(ToolCall(
        id="c1",
        name="update_profile",
        input={"birthday": "1990-04-01", "queen_bee_preference": {"preferred_month": "2026-03"}},
    ))

    assert result.content == "Profile updated successfully"
    profile = next(p for p in hive_db.rows("profiles") if p["id"] == USER_ID)
    assert profile["birthday"] == "1990-04-01"
    assert profile["queen_bee_preference"] == {"preferred_month": "2026-03"}
    assert profile["name"] == "Ada"

    empty = await toolbox.execute(ToolCall(id="c2", name="update_profile", input={}))
    assert empty.content == "No updates provided"


@pytest.mark.asyncio
async def test_complete_onboarding_sets_flag(hive_db):
    toolbox = _toolbox(hive_db, mode="onboarding")
    await toolbox.execute(ToolCall(id="c1", name="complete_onboarding", input={}))
    assert toolbox.onboarding_complete is True


@pytest.mark.asyncio
async def test_personality_notes_insert_then_update(hive_db):
    toolbox = _toolbox(hive_db)

    first = await toolbox.execute(ToolCall(id="c1", name="update_personality_notes", input={"notes": "Curious"}))
    second = await toolbox.execute(ToolCall(id="c2", name="update_personality_notes", input={"notes": "Curious, dry humour"}))
    read = await toolbox.execute(ToolCall(id="c3", name="get_personality_notes", input={}))

    assert first.content == "Personality notes saved"
    assert second.content == "Personality notes updated"
    assert len(hive_db.rows("user_insights")) == 1
    assert read.content == "Curious, dry humour"


@pytest.mark.asyncio
async def test_read_tools_are_scoped_to_the_callers_community(hive_db):
    toolbox = _toolbox(hive_db)

    skills = json.loads((await toolbox.execute(ToolCall(id="c1", name="get_all_skills", input={}))).content)
    assert {s["description"] for s in skills} == {"Bakes sourdough", "Fixes bikes"}
    assert skills[0]["user_name"] in {"Ada", "Bo"}

    mine = json.loads((await toolbox.execute(ToolCall(id="c2", name="get_user_wishes", input={}))).content)
    assert [w["id"] for w in mine] == ["w1"]

    public = json.loads((await toolbox.execute(ToolCall(id="c3", name="get_public_wishes", input={}))).content)
    assert [w["id"] for w in public] == ["w2"]

    qb = json.loads((await toolbox.execute(ToolCall(id="c4", name="get_current_queen_bee", input={}))).content)
    assert qb["user_name"] == "Bo"

    members = json.loads((await toolbox.execute(ToolCall(id="c5", name="get_hive_members", input={}))).content)
    assert [m["name"] for m in members] == ["Ada", "Bo"]


@pytest.mark.asyncio
async def test_board_search_and_fetch(hive_db):
    toolbox = _toolbox(hive_db)

    found = json.loads((await toolbox.execute(
        ToolCall(id="c1", name="search_board_posts", input={"query": "sunday"})
    )).content)
    assert [p["id"] for p in found] == ["p1"]

    post = json.loads((await toolbox.execute(ToolCall(id="c2", name="get_board_post", input={"post_id": "p1"}))).content)
    assert post["title"] == "Garden rota"
    assert post["replies"][0]["author"] == "Ada"

    missing = await toolbox.execute(ToolCall(id="c3", name="get_board_post", input={"post_id": "nope"}))
    assert missing.is_error is True

    nothing = await toolbox.execute(ToolCall(id="c4", name="search_board_posts", input={"query": "(,)"}))
    assert nothing.content == "No matching board posts."


@pytest.mark.asyncio
async def test_unknown_tool_and_bad_input_become_error_results(hive_db):
    toolbox = _toolbox(hive_db)

    unknown = await toolbox.execute(ToolCall(id="c1", name="delete_everything", input={}))
    assert unknown.is_error is True
    assert "Unknown tool" in unknown.content

    invalid = await toolbox.execute(ToolCall(id="c2", name="store_skill", input={"description": "x"}))
    assert invalid.is_error is True
    assert "raw_input" in invalid.content
    assert toolbox.skills_added == 0


@pytest.mark.asyncio
async def test_persistence_failure_becomes_error_result(hive_db):
    hive_db.fail_tables.add("skills")

    result = await _toolbox(hive_db).execute(
        ToolCall(id="c1", name="store_skill", input={"description": "x", "raw_input": "y"})
    )

    assert result.is_error is True
    assert result.content == "Error: skills unavailable"
