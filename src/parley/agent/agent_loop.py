"""Interactive todo shell: natural language in, one tool call per turn."""

from __future__ import annotations

import logging

from parley.agent.planner_interface import BasePlanner
from parley.agent.tool_executor import dispatch
from parley.common import (
    AnsiColors,
    colored_print,
    interrupt_event,
    read_line,
)
from parley.core.schema import ActionResult
from parley.core.tool_session import ToolCollaborator

logger = logging.getLogger(__name__)

PROMPT = "todo: "
NO_MAPPING = "Could not map input to a tool."


# ---------------------------------------------------------------------------
# Agent Loop
# ---------------------------------------------------------------------------
async def handle_turn(
    user_msg: str, collaborator: ToolCollaborator, planner: BasePlanner
) -> ActionResult | None:
    """
    Resolve one user instruction: refresh tools, plan, dispatch, print.

    Returns the dispatch result, or None when no action was planned.
    """
    # Refresh tool list in case it changed
    tools = await collaborator.list_tools()

    action, message = await planner.plan(user_msg, tools)
    if message:
        colored_print(message, AnsiColors.YELLOW)
    if action is None:
        if not message:
            colored_print(NO_MAPPING, AnsiColors.YELLOW)
        return None

    logger.info("Planned %s(%s)", action.tool, action.args)
    result = await dispatch(action, collaborator, tools)
    if result.error is not None:
        colored_print(result.error, AnsiColors.RED)
    elif result.text:
        colored_print(result.text, AnsiColors.GREEN)
    return result


async def run_cli(collaborator: ToolCollaborator, planner: BasePlanner) -> None:
    """Run the todo shell until ``exit``/``quit``, end-of-input or Ctrl+C."""
    colored_print(
        f"📝  Parley todo shell [{planner.strategy.value} planner] - type 'exit' to quit.",
        AnsiColors.YELLOW,
    )
    async with interrupt_event() as stop:
        while not stop.is_set():
            user_msg = await read_line(PROMPT, stop)
            if user_msg is None:
                break  # end-of-input or Ctrl+C
            user_msg = user_msg.strip()
            if not user_msg:
                continue
            if user_msg.lower() in {"exit", "quit"}:
                break

            # The turn runs to completion even if Ctrl+C arrives meanwhile.
            await handle_turn(user_msg, collaborator, planner)
    print()
