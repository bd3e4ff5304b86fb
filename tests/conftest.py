"""Shared test doubles for the oracle and the tool collaborator."""

from typing import (
    Any,
    Dict,
    List,
    Sequence,
)

import pytest

from parley.core.schema import (
    OracleRequest,
    OracleResponse,
    ToolOutcome,
    ToolSpec,
)


class FakeOracle:
    """Replays scripted replies; an Exception in the script is raised instead."""

    def __init__(self, replies: Sequence[Any]):
        self._replies = list(replies)
        self.requests: List[OracleRequest] = []

    async def chat(self, request: OracleRequest) -> OracleResponse:
        self.requests.append(request)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, OracleResponse):
            return reply
        return OracleResponse(text=reply)


class FakeCollaborator:
    """In-memory tool provider that records every call it receives."""

    def __init__(self, tools: Sequence[ToolSpec], outcomes: Dict[str, Any] | None = None):
        self.tools = list(tools)
        self.outcomes = outcomes or {}
        self.calls: List[tuple] = []

    async def list_tools(self) -> List[ToolSpec]:
        return list(self.tools)

    async def call_tool(self, name: str, args: Dict[str, Any]) -> ToolOutcome:
        self.calls.append((name, args))
        outcome = self.outcomes.get(name, ToolOutcome(text=f"{name} ok"))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


UUID_SCHEMA = {"type": "string", "format": "uuid"}

TODO_TOOLS = [
    ToolSpec(
        name="list_todos",
        description="Return all current todos",
        input_schema={"type": "object", "properties": {}},
    ),
    ToolSpec(
        name="add_todo",
        description="Add a new todo item",
        input_schema={
            "type": "object",
            "properties": {"title": {"type": "string"}},
            "required": ["title"],
        },
    ),
    ToolSpec(
        name="complete_todo",
        description="Mark a todo as completed by id",
        input_schema={"type": "object", "properties": {"id": UUID_SCHEMA}, "required": ["id"]},
    ),
]


@pytest.fixture
def todo_tools() -> List[ToolSpec]:
    return list(TODO_TOOLS)


@pytest.fixture
def collaborator(todo_tools: List[ToolSpec]) -> FakeCollaborator:
    return FakeCollaborator(todo_tools)
