"""
MCP todo server.

Exposes the todo store as five tools over stdio.  Run it as ``python -m parley.todo.server``;
the CLI spawns it this way and talks to it through :class:`parley.core.tool_session.McpToolSession`.

Available tools:
- list_todos: Return all current todos
- add_todo: Add a new todo item
- complete_todo: Mark a todo as completed by id
- remove_todo: Remove a todo by id
- clear_completed: Remove all completed todos
"""

import json
import logging
import sys
import uuid
from typing import (
    Any,
    Dict,
    List,
)

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from parley.config import settings
from parley.todo.store import (
    TodoNotFoundError,
    TodoRecord,
    TodoStore,
)

logger = logging.getLogger(__name__)


def render(payload: TodoRecord | List[TodoRecord]) -> str:
    """Indented JSON text for one record or a list of them."""
    data: Dict[str, Any] | List[Dict[str, Any]]
    if isinstance(payload, list):
        data = [todo.to_json() for todo in payload]
    else:
        data = payload.to_json()
    return json.dumps(data, indent=2)


def build_server(store: TodoStore) -> FastMCP:
    """Register the todo tools against *store*."""
    server = FastMCP("todo-mcp")

    @server.tool(name="list_todos", description="Return all current todos")
    def list_todos() -> str:
        return render(store.list())

    @server.tool(name="add_todo", description="Add a new todo item")
    def add_todo(title: str) -> str:
        return render(store.add(title))

    @server.tool(name="complete_todo", description="Mark a todo as completed by id")
    def complete_todo(id: uuid.UUID) -> str:  # pylint: disable=redefined-builtin
        try:
            return render(store.complete(str(id)))
        except TodoNotFoundError as e:
            raise ToolError(str(e)) from e

    @server.tool(name="remove_todo", description="Remove a todo by id")
    def remove_todo(id: uuid.UUID) -> str:  # pylint: disable=redefined-builtin
        try:
            return render(store.remove(str(id)))
        except TodoNotFoundError as e:
            raise ToolError(str(e)) from e

    @server.tool(name="clear_completed", description="Remove all completed todos")
    def clear_completed() -> str:
        return f"Removed {store.clear_completed()} completed todos"

    return server


def main() -> None:
    """Serve the todo tools on stdio.  Logs go to stderr; stdout carries the protocol."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.WARNING),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stderr,
    )
    logger.info("Serving todos from %s", settings.TODO_DATA_FILE)
    build_server(TodoStore(settings.TODO_DATA_FILE)).run(transport="stdio")


if __name__ == "__main__":
    main()
