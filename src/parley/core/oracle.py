"""
Oracle interface for Parley.

This module is the only place that *directly* calls a language model.  Everything else (planner,
retry controller, quiz) stays model-agnostic and talks to an :class:`Oracle`.

The bundled back-end is a local Ollama runtime reached over its REST API with ``httpx``.
"""

import json
import logging
from typing import (
    Any,
    Dict,
    List,
    Protocol,
)

import httpx

from parley.config import settings
from parley.core.schema import (
    OracleRequest,
    OracleResponse,
    StructuredCall,
    ToolSpec,
)

logger = logging.getLogger(__name__)

# Ollama answers HTTP 400 with this phrase when the model has no tool-calling template.
CAPABILITY_MARKER = "does not support tools"


class OracleError(RuntimeError):
    """Raised when the language model cannot be reached or answers garbage."""


class CapabilityError(OracleError):
    """Raised when the selected model cannot honour a tool schema."""


class Oracle(Protocol):
    """Anything that can answer an :class:`OracleRequest`."""

    async def chat(self, request: OracleRequest) -> OracleResponse: ...


def tool_descriptors(tools: List[ToolSpec]) -> List[Dict[str, Any]]:
    """Render tool specs as function descriptors for a tool-aware chat endpoint."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema,
            },
        }
        for tool in tools
    ]


class OllamaOracle:
    """Async Ollama client for ``/api/chat`` and ``/api/tags``."""

    def __init__(
        self,
        model: str | None = None,
        host: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.model = model or settings.OLLAMA_MODEL
        self.host = (host or settings.OLLAMA_HOST).rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.host,
            timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT,
        )

    async def __aenter__(self) -> "OllamaOracle":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    async def chat(self, request: OracleRequest) -> OracleResponse:
        """
        Send one system + user exchange and return the assistant message.

        Raises
        ------
        CapabilityError
            If tools were supplied and the model does not support them.
        OracleError
            On transport errors, HTTP errors, or an unreadable body.
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "stream": False,
            "options": {"temperature": request.temperature},
        }
        if request.tools:
            payload["tools"] = tool_descriptors(request.tools)

        try:
            resp = await self._client.post("/api/chat", json=payload)
        except httpx.HTTPError as e:
            logger.error("Ollama request error: %s", str(e))
            raise OracleError(f"Error calling Ollama at {self.host}: {e}") from e

        if resp.is_error:
            detail = _error_detail(resp)
            if CAPABILITY_MARKER in detail:
                raise CapabilityError(detail)
            raise OracleError(f"Ollama returned HTTP {resp.status_code}: {detail}")

        try:
            message = resp.json()["message"]
            if not isinstance(message, dict):
                raise TypeError(f"message is {type(message).__name__}, not an object")
            response = OracleResponse(
                text=message.get("content") or "",
                structured_call=_first_tool_call(message.get("tool_calls")),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise OracleError(f"Malformed Ollama response: {resp.text[:200]}") from e

        logger.debug("Ollama response: %s", message)
        return response

    async def list_models(self) -> List[str]:
        """Return the sorted names of locally pulled models, or ``[]`` if unreachable."""
        try:
            resp = await self._client.get("/api/tags")
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Could not list Ollama models: %s", e)
            return []
        models = body.get("models") if isinstance(body, dict) else None
        if not isinstance(models, list):
            return []
        return sorted(
            m["name"] for m in models if isinstance(m, dict) and isinstance(m.get("name"), str)
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return resp.text


def _first_tool_call(tool_calls: Any) -> StructuredCall | None:
    """Map the first ``message.tool_calls[].function`` entry, if any."""
    if not tool_calls:
        return None
    if not isinstance(tool_calls, list) or not isinstance(tool_calls[0], dict):
        raise TypeError(f"unexpected tool_calls: {tool_calls!r}")
    function = tool_calls[0].get("function") or {}
    if not isinstance(function, dict):
        raise TypeError(f"unexpected tool-call function: {function!r}")
    name = function.get("name")
    if not name:
        return None
    arguments = function.get("arguments") or {}
    if isinstance(arguments, str):
        # Some templates emit the arguments as a JSON string
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError:
            logger.warning("Discarding unparsable tool-call arguments: %s", arguments)
            arguments = {}
    if len(tool_calls) > 1:
        logger.info("Model proposed %d tool calls; using the first", len(tool_calls))
    return StructuredCall(name=name, arguments=arguments if isinstance(arguments, dict) else {})
