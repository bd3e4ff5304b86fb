"""
Client side of the tool collaborator.

The todo tools live in a child process that speaks the Model Context Protocol over its standard
streams.  :class:`McpToolSession` owns that connection: it is opened once, reused for every turn
and closed exactly once when the ``async with`` block exits.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import AsyncExitStack
from typing import (
    Any,
    Dict,
    List,
    Protocol,
)

import anyio
from mcp import (
    ClientSession,
    StdioServerParameters,
)
from mcp.client.stdio import stdio_client
from mcp.shared.exceptions import McpError
from mcp.types import CONNECTION_CLOSED

from parley.config import settings
from parley.core.schema import (
    ToolOutcome,
    ToolSpec,
)

logger = logging.getLogger(__name__)

# Raised by the anyio memory streams under ClientSession when the child process goes away.
_TRANSPORT_ERRORS = (
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
    BrokenPipeError,
    ConnectionError,
)


class TransportFault(RuntimeError):
    """The connection to the tool server was lost.  Fatal to the session."""


def _lost_connection(e: Exception) -> TransportFault | None:
    """Map a connection-level failure to :class:`TransportFault`; ``None`` for anything else."""
    if isinstance(e, _TRANSPORT_ERRORS):
        return TransportFault(f"Lost connection to tool server: {e!r}")
    # Pending requests are failed with this code once the server's stdout closes
    if isinstance(e, McpError) and e.error.code == CONNECTION_CLOSED:
        return TransportFault(f"Tool server closed the connection: {e.error.message}")
    return None


class ToolCollaborator(Protocol):
    """What the dispatcher needs from a tool provider."""

    async def list_tools(self) -> List[ToolSpec]: ...

    async def call_tool(self, name: str, args: Dict[str, Any]) -> ToolOutcome: ...


def todo_server_parameters(data_file: str | None = None) -> StdioServerParameters:
    """Launch parameters for the bundled todo server (``python -m parley.todo.server``)."""
    env = dict(os.environ)
    env["TODO_DATA_FILE"] = os.path.abspath(data_file or settings.TODO_DATA_FILE)
    env["LOG_LEVEL"] = settings.LOG_LEVEL
    return StdioServerParameters(
        command=settings.TODO_SERVER_COMMAND or sys.executable,
        args=["-m", "parley.todo.server"],
        env=env,
    )


class McpToolSession:
    """A long-lived MCP client connection to a tool server subprocess."""

    def __init__(self, params: StdioServerParameters):
        self._params = params
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None

    async def __aenter__(self) -> "McpToolSession":
        stack = AsyncExitStack()
        try:
            read, write = await stack.enter_async_context(stdio_client(self._params))
            session = await stack.enter_async_context(ClientSession(read, write))
            init = await session.initialize()
        except BaseException:
            await stack.aclose()
            raise
        self._stack, self._session = stack, session
        logger.info(
            "Connected to tool server %s %s",
            init.serverInfo.name,
            init.serverInfo.version,
        )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Tear down the session and the child process.  Safe to call more than once."""
        stack, self._stack, self._session = self._stack, None, None
        if stack is not None:
            logger.info("Closing tool server connection")
            await stack.aclose()

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise TransportFault("Tool server session is not open")
        return self._session

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    async def list_tools(self) -> List[ToolSpec]:
        """Fetch the current tool list from the server."""
        session = self._require_session()
        try:
            result = await session.list_tools()
        except Exception as e:
            fault = _lost_connection(e)
            if fault is None:
                raise
            raise fault from e
        tools = [
            ToolSpec(
                name=tool.name,
                description=tool.description or "",
                input_schema=tool.inputSchema or {"type": "object", "properties": {}},
            )
            for tool in result.tools
        ]
        logger.debug("Tool server offers: %s", [tool.name for tool in tools])
        return tools

    async def call_tool(self, name: str, args: Dict[str, Any]) -> ToolOutcome:
        """Invoke *name* and unwrap the first text content item."""
        session = self._require_session()
        try:
            result = await session.call_tool(name, arguments=args)
        except Exception as e:
            fault = _lost_connection(e)
            if fault is None:
                raise
            raise fault from e

        text = next(
            (item.text for item in result.content if getattr(item, "type", None) == "text"),
            "",
        )
        if result.isError:
            return ToolOutcome(is_error=True, text=text or "Unknown tool error")
        return ToolOutcome(is_error=False, text=text)
