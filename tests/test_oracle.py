"""Tests for the Ollama client, using httpx's mock transport."""

import json

import httpx
import pytest

from parley.core.oracle import (
    CapabilityError,
    OllamaOracle,
    OracleError,
)
from parley.core.schema import (
    OracleRequest,
    StructuredCall,
    ToolSpec,
)


def make_oracle(handler) -> OllamaOracle:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://ollama.test"
    )
    return OllamaOracle(model="test-model", host="http://ollama.test", client=client)


async def test_chat_sends_system_and_user_messages() -> None:
    """The request body follows the /api/chat contract."""

    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": {"role": "assistant", "content": "Hi!"}})

    async with make_oracle(handler) as oracle:
        response = await oracle.chat(
            OracleRequest(system_prompt="be brief", user_prompt="hello", temperature=0.55)
        )

    assert response.text == "Hi!"
    assert response.structured_call is None
    assert seen["path"] == "/api/chat"
    body = seen["body"]
    assert body["model"] == "test-model"
    assert body["stream"] is False
    assert body["options"] == {"temperature": 0.55}
    assert body["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hello"},
    ]
    assert "tools" not in body


async def test_chat_with_tools_reads_structured_call() -> None:
    """Tools go out as function descriptors; the first tool call comes back."""

    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "message": {
                    "role": "assistant",
                    "content": "",
                    "tool_calls": [
                        {"function": {"name": "add_todo", "arguments": {"title": "milk"}}},
                        {"function": {"name": "list_todos", "arguments": {}}},
                    ],
                }
            },
        )

    tool = ToolSpec(
        name="add_todo",
        description="Add a new todo item",
        input_schema={"type": "object", "properties": {"title": {"type": "string"}}},
    )
    async with make_oracle(handler) as oracle:
        response = await oracle.chat(
            OracleRequest(system_prompt="s", user_prompt="add milk", tools=[tool])
        )

    assert response.structured_call == StructuredCall(name="add_todo", arguments={"title": "milk"})
    assert seen["body"]["tools"] == [
        {
            "type": "function",
            "function": {
                "name": "add_todo",
                "description": "Add a new todo item",
                "parameters": tool.input_schema,
            },
        }
    ]


async def test_string_arguments_are_decoded() -> None:
    """Arguments delivered as a JSON string are parsed."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "message": {
                    "content": "",
                    "tool_calls": [
                        {"function": {"name": "add_todo", "arguments": '{"title": "tea"}'}}
                    ],
                }
            },
        )

    async with make_oracle(handler) as oracle:
        response = await oracle.chat(OracleRequest(system_prompt="s", user_prompt="u"))

    assert response.structured_call.arguments == {"title": "tea"}


async def test_capability_error() -> None:
    """A model without tool support raises CapabilityError."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"error": "registry.ollama.ai/library/gemma3:4b does not support tools"}
        )

    async with make_oracle(handler) as oracle:
        with pytest.raises(CapabilityError, match="does not support tools"):
            await oracle.chat(OracleRequest(system_prompt="s", user_prompt="u"))


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "model crashed"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"done": True}),
        httpx.Response(200, json={"message": None}),
        httpx.Response(200, json={"message": "hi"}),
        httpx.Response(200, json=["message"]),
        httpx.Response(200, json={"message": {"content": "x", "tool_calls": ["bad"]}}),
        httpx.Response(200, json={"message": {"content": "x", "tool_calls": [{"function": "f"}]}}),
        httpx.Response(200, json={"message": {"content": ["not", "text"]}}),
    ],
)
async def test_http_and_body_errors(response: httpx.Response) -> None:
    """Server errors and unreadable bodies raise OracleError."""

    async with make_oracle(lambda request: response) as oracle:
        with pytest.raises(OracleError):
            await oracle.chat(OracleRequest(system_prompt="s", user_prompt="u"))


async def test_transport_error() -> None:
    """A refused connection raises OracleError, not an httpx exception."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_oracle(handler) as oracle:
        with pytest.raises(OracleError, match="connection refused"):
            await oracle.chat(OracleRequest(system_prompt="s", user_prompt="u"))


async def test_list_models() -> None:
    """Model names come back sorted; failures give an empty list."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/tags"
        return httpx.Response(
            200, json={"models": [{"name": "llama3.2:3b"}, {"name": "gemma3:4b"}, {}]}
        )

    async with make_oracle(handler) as oracle:
        assert await oracle.list_models() == ["gemma3:4b", "llama3.2:3b"]

    async with make_oracle(lambda request: httpx.Response(503)) as oracle:
        assert await oracle.list_models() == []


async def test_list_models_ignores_unexpected_shapes() -> None:
    """An unexpected tags body lists nothing instead of raising."""

    for body in ([], {"models": None}, {"models": "llama"}, {"models": ["llama", {"name": 3}]}):
        async with make_oracle(lambda request, body=body: httpx.Response(200, json=body)) as oracle:
            assert await oracle.list_models() == []
