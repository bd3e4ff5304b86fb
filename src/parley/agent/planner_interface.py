"""
Planner interface for Parley.

A planner maps one natural-language instruction to a single tool invocation.  Two strategies are
registered and one is chosen at startup from ``settings.PLANNER``:

1. **text**: list the tools in the system prompt, ask for a bare JSON object, and extract it from
   the reply.
2. **schema**: hand the tools to the model as function descriptors and read back its structured
   call.

Planning failures are never fatal: every strategy catches oracle errors at its boundary and
returns no action.
"""

import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    List,
    Mapping,
    Tuple,
    Type,
)

from parley.config import (
    PlanningStrategy,
    settings,
)
from parley.core.oracle import (
    CapabilityError,
    Oracle,
)
from parley.core.schema import (
    OracleRequest,
    PlannedAction,
    ToolSpec,
)
from parley.tools.extractor import (
    BaseExtractor,
    load_extractor,
)
from parley.tools.validator import validate

logger = logging.getLogger(__name__)

PlanResult = Tuple[PlannedAction | None, str | None]
"""The planned action (or None) and an optional message to show the user."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_PLANNER_REGISTRY: Dict[PlanningStrategy, Type["BasePlanner"]] = {}


def register_planner(strategy: PlanningStrategy) -> Callable:
    """Decorator to register a planner class under *strategy*."""

    def wrapper(cls: Type["BasePlanner"]) -> Type["BasePlanner"]:
        _PLANNER_REGISTRY[strategy] = cls
        return cls

    return wrapper


def load_planner(
    oracle: Oracle,
    strategy: PlanningStrategy | str | None = None,
    extractor: BaseExtractor | None = None,
) -> "BasePlanner":
    """
    Factory that returns an instantiated planner bound to *oracle*.

    Fallback order:
    1. *strategy* arg
    2. ``settings.PLANNER`` env/.env option
    """
    target = PlanningStrategy(strategy or settings.PLANNER)
    cls = _PLANNER_REGISTRY.get(target)
    if cls is None:
        raise ValueError(f"Planner '{target.value}' is not registered.")
    return cls(oracle, extractor=extractor)


def describe_arguments(schema: Mapping[str, Any]) -> str:
    """Render ``title: string (required)`` style hints from a JSON-Schema object."""
    properties: Mapping[str, Any] = schema.get("properties") or {}
    required = set(schema.get("required") or [])
    parts = []
    for name, info in properties.items():
        kind = info.get("type", "any") if isinstance(info, dict) else "any"
        fmt = info.get("format") if isinstance(info, dict) else None
        label = f"{name}: {kind}{f' ({fmt})' if fmt else ''}"
        parts.append(label if name in required else f"{label}, optional")
    return ", ".join(parts)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BasePlanner(ABC):
    """Abstract planner that converts an instruction -> one tool call."""

    strategy: ClassVar[PlanningStrategy]
    temperature: ClassVar[float] = 0.2

    def __init__(self, oracle: Oracle, extractor: BaseExtractor | None = None):
        self.oracle = oracle
        self.extractor = extractor or load_extractor()

    @abstractmethod
    async def plan(self, instruction: str, available_tools: List[ToolSpec]) -> PlanResult:
        """Return the planned action (or None) plus an optional user-facing message."""


# ---------------------------------------------------------------------------
# Concrete planners
# ---------------------------------------------------------------------------
@register_planner(PlanningStrategy.TEXT)
class TextModePlanner(BasePlanner):
    """Ask for a bare JSON object and extract it from the free-text reply."""

    strategy = PlanningStrategy.TEXT

    SYSTEM_PROMPT: ClassVar[
        str
    ] = """\
Map the user request to one MCP todo tool.
Tools:
{tools}
Return JSON {{"tool":"name","args":{{}}}}.
Only one object, no extra text.
"""

    def build_prompt(self, available_tools: List[ToolSpec]) -> str:
        """System prompt listing ``name: description`` for every tool."""
        lines = []
        for tool in available_tools:
            line = f"{tool.name}: {tool.description}".strip()
            args = describe_arguments(tool.input_schema)
            if args:
                line += f" (args: {args})"
            lines.append(line)
        return self.SYSTEM_PROMPT.format(tools="\n".join(lines))

    async def plan(self, instruction: str, available_tools: List[ToolSpec]) -> PlanResult:
        request = OracleRequest(
            system_prompt=self.build_prompt(available_tools),
            user_prompt=instruction,
            temperature=self.temperature,
        )
        try:
            response = await self.oracle.chat(request)
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Text planner oracle error: %s", str(e))
            return None, None

        logger.debug("Text planner response: %s", response.text)
        action = validate(self.extractor.extract(response.text), PlannedAction)
        if not isinstance(action, PlannedAction):
            logger.info("Could not read a tool call from reply: %s", action.reason)
            return None, None

        if action.tool not in {tool.name for tool in available_tools}:
            logger.info("Model picked unavailable tool '%s'", action.tool)
            return None, None
        return action, None


@register_planner(PlanningStrategy.SCHEMA)
class SchemaModePlanner(BasePlanner):
    """Offer the tools as function descriptors and read back the structured call."""

    strategy = PlanningStrategy.SCHEMA

    SYSTEM_PROMPT: ClassVar[
        str
    ] = """\
You manage the user's todo list through the provided tools.
Call exactly one tool that fulfils the request.
If the request is ambiguous or lacks a required value, reply with a short clarifying question instead.
"""

    async def plan(self, instruction: str, available_tools: List[ToolSpec]) -> PlanResult:
        request = OracleRequest(
            system_prompt=self.SYSTEM_PROMPT,
            user_prompt=instruction,
            temperature=self.temperature,
            tools=available_tools,
        )
        try:
            response = await self.oracle.chat(request)
        except CapabilityError as e:
            logger.error("Model cannot use tools: %s", str(e))
            return None, (
                f"The selected model cannot call tools ({e}). "
                "Choose a tool-capable model with --model, or use --strategy text."
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Schema planner oracle error: %s", str(e))
            return None, None

        call = response.structured_call
        if call is None:
            logger.debug("Schema planner answered in text: %s", response.text)
            return None, response.text if response.text.strip() else None
        return PlannedAction(tool=call.name, args=call.arguments), None
