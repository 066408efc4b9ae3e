"""In-memory stand-ins for the Supabase async client and the chat model."""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Set

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field


# ── Supabase ─────────────────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]], count: Optional[int] = None):
        self.data = data
        self.count = count


def _like(value: Any, pattern: str) -> bool:
    if value is None:
        return False
    return pattern.strip("%").lower() in str(value).lower()


def _matches(row: Dict[str, Any], cond: tuple) -> bool:
    op, col, val = cond
    current = row.get(col)
    if op == "eq":
        return current == val
    if op == "neq":
        return current != val
    if op == "is":
        return current is None if val == "null" else current == val
    if op == "in":
        return current in val
    if op == "ilike":
        return _like(current, val)
    if op == "or":
        return any(_matches(row, sub) for sub in val)
    if current is None:
        return False
    if op == "gte":
        return current >= val
    if op == "gt":
        return current > val
    if op == "lte":
        return current <= val
    if op == "lt":
        return current < val
    raise ValueError(f"unsupported filter {op}")


class FakeQuery:
    """Chainable query builder covering the PostgREST calls the services make.

    Column projections and embedded relations are ignored: seed rows carry
    nested dicts (``author: {"name": ...}``) where a join would appear.
    """

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.conditions: List[tuple] = []
        self.orders: List[tuple] = []
        self._limit: Optional[int] = None
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.count_mode: Optional[str] = None
        self.head = False

    # ── operations ──

    def select(self, columns: str = "*", count: Optional[str] = None, head: bool = False):
        self.op, self.count_mode, self.head = "select", count, head
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def upsert(self, payload, on_conflict: Optional[str] = None):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    # ── filters ──

    def _add(self, op, col, val):
        self.conditions.append((op, col, val))
        return self

    def eq(self, col, val):
        return self._add("eq", col, val)

    def neq(self, col, val):
        return self._add("neq", col, val)

    def gte(self, col, val):
        return self._add("gte", col, val)

    def gt(self, col, val):
        return self._add("gt", col, val)

    def lte(self, col, val):
        return self._add("lte", col, val)

    def lt(self, col, val):
        return self._add("lt", col, val)

    def is_(self, col, val):
        return self._add("is", col, val)

    def in_(self, col, vals):
        return self._add("in", col, list(vals))

    def ilike(self, col, pattern):
        return self._add("ilike", col, pattern)

    def or_(self, expr: str):
        subs = []
        for part in expr.split(","):
            col, op, val = part.split(".", 2)
            subs.append((op, col, val))
        return self._add("or", "", subs)

    def order(self, col, desc: bool = False):
        self.orders.append((col, desc))
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    # ── execution ──

    def _matching(self, rows):
        return [r for r in rows if all(_matches(r, c) for c in self.conditions)]

    async def execute(self) -> FakeResponse:
        self.db.queries.append((self.table_name, self.op, list(self.conditions)))
        if self.table_name in self.db.fail_tables:
            raise RuntimeError(f"{self.table_name} unavailable")
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "select":
            found = self._matching(rows)
            for col, desc in reversed(self.orders):
                found.sort(key=lambda r: (r.get(col) is None, r.get(col)), reverse=desc)
            count = len(found) if self.count_mode == "exact" else None
            if self._limit is not None:
                found = found[: self._limit]
            return FakeResponse([] if self.head else [dict(r) for r in found], count)

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in payload:
                row = {"id": str(uuid.uuid4()), **item}
                rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        if self.op == "upsert":
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            existing = next(
                (r for r in rows if all(r.get(k) == self.payload.get(k) for k in keys)), None
            )
            if existing is None:
                existing = {"id": str(uuid.uuid4())}
                rows.append(existing)
            existing.update(self.payload)
            return FakeResponse([dict(existing)])

        if self.op == "update":
            found = self._matching(rows)
            for r in found:
                r.update(self.payload)
            return FakeResponse([dict(r) for r in found])

        if self.op == "delete":
            found = self._matching(rows)
            self.db.tables[self.table_name] = [r for r in rows if r not in found]
            return FakeResponse([dict(r) for r in found])

        raise ValueError(self.op)


class FakeSupabase:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {k: list(v) for k, v in (tables or {}).items()}
        self.fail_tables: Set[str] = set()
        self.queries: List[tuple] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.get(name, [])

    def queried_tables(self) -> Set[str]:
        return {table for table, _, _ in self.queries}


# ── Chat model ───────────────────────────────────────────────────────────────

class ScriptedChatModel(BaseChatModel):
    """Replays queued AIMessages, then answers with ``default`` text.

    With ``echo`` set, the default answer repeats the last prompt message instead.
    """

    responses: List[AIMessage] = Field(default_factory=list)
    default: str = "Okay."
    error: Optional[str] = None
    echo: bool = False
    calls: List[List[BaseMessage]] = Field(default_factory=list)
    bound_tools: List[Any] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        self.calls.append(list(messages))
        if self.error:
            raise RuntimeError(self.error)
        if self.responses:
            message = self.responses.pop(0)
        elif self.echo:
            message = AIMessage(content=str(messages[-1].content))
        else:
            message = AIMessage(content=self.default)
        return ChatResult(generations=[ChatGeneration(message=message)])

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = list(tools)
        return self


def tool_call_message(name: str, args: Dict[str, Any], call_id: str) -> AIMessage:
    return AIMessage(content="", tool_calls=[{"name": name, "args": args, "id": call_id}])
