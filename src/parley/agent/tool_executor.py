"""Dispatches planned actions to the tool collaborator and normalizes the outcome."""

import copy
import logging
from typing import (
    Any,
    Dict,
    List,
    Mapping,
)

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from parley.core.schema import (
    ActionResult,
    PlannedAction,
    ToolSpec,
)
from parley.core.tool_session import (
    ToolCollaborator,
    TransportFault,
)

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run with the given arguments."""


def _closed_schema(schema: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of *schema* that rejects properties it does not declare."""
    closed = copy.deepcopy(dict(schema))
    closed.setdefault("type", "object")
    closed.setdefault("properties", {})
    closed["additionalProperties"] = False
    return closed


def check_arguments(tool: ToolSpec, args: Mapping[str, Any]) -> None:
    """
    Validate *args* against the tool's declared input schema.

    Raises
    ------
    ToolExecutionError
        If the arguments are missing required fields, carry unknown fields, or mistype a value.
    """
    schema = _closed_schema(tool.input_schema)
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as exc:
        raise ToolExecutionError(
            f"Tool '{tool.name}' declares an invalid schema: {exc.message}"
        ) from exc

    validator = Draft202012Validator(schema, format_checker=Draft202012Validator.FORMAT_CHECKER)
    errors = sorted(validator.iter_errors(dict(args)), key=lambda err: [str(p) for p in err.path])
    if errors:
        messages = "; ".join(
            f"{'/'.join(map(str, err.path)) or '<root>'}: {err.message}" for err in errors[:5]
        )
        raise ToolExecutionError(f"Invalid arguments for tool '{tool.name}': {messages}")


async def dispatch(
    action: PlannedAction,
    collaborator: ToolCollaborator,
    tools: List[ToolSpec] | None = None,
) -> ActionResult:
    """
    Look up ``action.tool`` among the collaborator's tools and invoke it with ``action.args``.

    Parameters
    ----------
    action:
        The planned tool invocation.
    collaborator:
        The tool provider.
    tools:
        The tool list fetched for this turn.  If *None*, it is fetched from *collaborator*.

    Returns
    -------
    ActionResult
        ``text`` carries the collaborator's own rendering on success; ``error`` carries the
        message for an unknown tool, rejected arguments, a tool-reported error, or a raised one.

    Raises
    ------
    TransportFault
        If the connection to the collaborator is lost.
    """
    if tools is None:
        tools = await collaborator.list_tools()

    spec = next((tool for tool in tools if tool.name == action.tool), None)
    if spec is None:
        logger.warning("Planner chose unknown tool '%s'", action.tool)
        return ActionResult(error=f"Tool '{action.tool}' is not registered.")

    try:
        check_arguments(spec, action.args)
    except ToolExecutionError as exc:
        logger.warning("%s", exc)
        return ActionResult(error=str(exc))

    try:
        logger.debug("Executing tool '%s' with args=%s", action.tool, action.args)
        outcome = await collaborator.call_tool(action.tool, dict(action.args))
    except TransportFault:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool '%s'", action.tool)
        return ActionResult(error=f"Tool '{action.tool}' raised an error: {exc}")

    if outcome.is_error:
        logger.info("Tool '%s' reported an error: %s", action.tool, outcome.text)
        return ActionResult(error=outcome.text or "Unknown tool error")
    logger.info("Tool '%s' returned: %s", action.tool, outcome.text)
    return ActionResult(text=outcome.text)
