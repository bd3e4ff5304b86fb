"""
Parley entry point.

This file handles startup concerns (arg-parsing, logging) and launches the requested interface:
the natural-language todo shell, the trivia quiz, or a listing of local models.
"""

import argparse
import asyncio
import logging
import sys

from parley.config import (
    PlanningStrategy,
    settings,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Keep per-request chatter out of the shell
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parley", description="Drive a local Ollama model through structured decisions"
    )
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["todo", "quiz", "models"],
        type=str.lower,
        default="todo",
        help="Natural-language todo shell, trivia quiz, or list local models (default: todo)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    parser.add_argument("--model", default=None, help="Ollama model name")
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in PlanningStrategy],
        default=PlanningStrategy(settings.PLANNER).value,
        help="Todo planning strategy (default from env: %(default)s)",
    )
    parser.add_argument(
        "--extractor",
        choices=["first-last", "balanced"],
        default=settings.EXTRACTOR,
        help="JSON extraction heuristic (default from env: %(default)s)",
    )
    parser.add_argument(
        "--questions",
        type=int,
        default=settings.QUIZ_QUESTIONS,
        help="Number of quiz questions (default from env: %(default)s)",
    )
    parser.add_argument(
        "--data-file",
        default=settings.TODO_DATA_FILE,
        help="Todo JSON file passed to the tool server (default from env: %(default)s)",
    )
    return parser


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------
async def _run_todo(args: argparse.Namespace) -> None:
    # Lazy imports keep `parley models` free of the MCP stack
    from parley.agent.agent_loop import run_cli  # pylint: disable=import-outside-toplevel
    from parley.agent.planner_interface import (  # pylint: disable=import-outside-toplevel
        load_planner,
    )
    from parley.core.oracle import OllamaOracle  # pylint: disable=import-outside-toplevel
    from parley.core.tool_session import (  # pylint: disable=import-outside-toplevel
        McpToolSession,
        todo_server_parameters,
    )
    from parley.tools.extractor import (  # pylint: disable=import-outside-toplevel
        load_extractor,
    )

    async with OllamaOracle(model=args.model) as oracle:
        planner = load_planner(oracle, args.strategy, extractor=load_extractor(args.extractor))
        async with McpToolSession(todo_server_parameters(args.data_file)) as session:
            await run_cli(session, planner)


async def _run_quiz(args: argparse.Namespace) -> None:
    from parley.common import interrupt_event  # pylint: disable=import-outside-toplevel
    from parley.core.oracle import OllamaOracle  # pylint: disable=import-outside-toplevel
    from parley.quiz.game import (  # pylint: disable=import-outside-toplevel
        choose_model,
        intro,
        run_quiz,
    )
    from parley.tools.extractor import (  # pylint: disable=import-outside-toplevel
        load_extractor,
    )

    async with OllamaOracle() as oracle:
        model = await choose_model(oracle, args.model)
        intro(model, args.questions)
        async with interrupt_event() as stop:
            await run_quiz(
                oracle, args.questions, stop=stop, extractor=load_extractor(args.extractor)
            )


async def _run_models(args: argparse.Namespace) -> None:
    from parley.core.oracle import OllamaOracle  # pylint: disable=import-outside-toplevel

    async with OllamaOracle(model=args.model) as oracle:
        models = await oracle.list_models()
    if not models:
        print(f"No models found at {settings.OLLAMA_HOST}")
        return
    for name in models:
        marker = "*" if name == (args.model or settings.OLLAMA_MODEL) else " "
        print(f"{marker} {name}")


_MODES = {"todo": _run_todo, "quiz": _run_quiz, "models": _run_models}


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the Parley application.

    Exits 0 on a graceful close (``exit``, end-of-input, Ctrl+C) and 1 when startup or the loop
    fails, including when the tool server connection is lost.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.questions < 1:
        parser.error("--questions must be at least 1")

    # Override log level setting with command-line argument
    settings.LOG_LEVEL = args.log_level
    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting Parley [%s mode]", args.mode)
    logger.debug("Settings: %s", settings.model_dump())

    try:
        asyncio.run(_MODES[args.mode](args))
    except KeyboardInterrupt:
        print()
    except Exception as e:  # pylint: disable=broad-except
        logger.exception("Parley stopped on an unrecoverable error")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
