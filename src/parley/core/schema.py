"""
Schema definitions for oracle <-> planner <-> tool messages.

These data models serve as the contract between the language model, the planner, the dispatcher
and the tool collaborator.  We keep them separate from runtime logic so they can be imported
anywhere without side-effects.
"""

from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# ---------------------------------------------------------------------------
# Oracle boundary
# ---------------------------------------------------------------------------
class ToolSpec(BaseModel):
    """A tool advertised by the collaborator."""

    name: str = Field(..., description="Tool name, unique within a session")
    description: str = ""
    input_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON-Schema descriptor of the tool arguments",
    )


class OracleRequest(BaseModel):
    """One call to the language model."""

    model_config = ConfigDict(frozen=True)

    system_prompt: str
    user_prompt: str
    temperature: float = 0.2
    tools: Optional[List[ToolSpec]] = None


class StructuredCall(BaseModel):
    """A function call emitted directly by a tool-aware model."""

    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class OracleResponse(BaseModel):
    """Free text, a structured call, or both."""

    text: str = ""
    structured_call: Optional[StructuredCall] = None


# ---------------------------------------------------------------------------
# Planning and dispatch
# ---------------------------------------------------------------------------
class PlannedAction(BaseModel):
    """A tool invocation the planner wants the dispatcher to execute."""

    tool: str = Field(..., min_length=1, description="Registered tool name")
    args: Dict[str, Any] = Field(default_factory=dict, description="Arguments for the tool")

    @field_validator("args", mode="before")
    @classmethod
    def _none_args(cls, value: Any) -> Any:
        return {} if value is None else value


class ActionResult(BaseModel):
    """Normalized outcome of a dispatched action: exactly one of *text* / *error*."""

    text: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "ActionResult":
        if (self.text is None) == (self.error is None):
            raise ValueError("exactly one of 'text' or 'error' must be set")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None


class ToolOutcome(BaseModel):
    """Raw result reported by the tool collaborator."""

    is_error: bool = False
    text: str = ""


# ---------------------------------------------------------------------------
# Generated items
# ---------------------------------------------------------------------------
class EvaluationPayload(BaseModel):
    """A grading verdict for one trivia answer."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    correct: bool
    short_feedback: str = Field("", alias="shortFeedback")
    model_answer: str = Field("", alias="modelAnswer")

    @field_validator("short_feedback", "model_answer", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float, bool)):
            return str(value)
        return value


class QuestionPayload(BaseModel):
    """A generated trivia question."""

    question: str = Field(..., min_length=1)


class NovelItem(BaseModel):
    """Result of the retry controller."""

    question: str
    attempts: int = Field(..., ge=1, description="Oracle calls spent on this item")
    novel: bool = Field(True, description="False when the forced final attempt was used")
