"""Shape checks for extracted payloads, with defaults for optional fields."""

import logging
import re
from typing import (
    Any,
    Type,
    TypeVar,
)

from pydantic import (
    BaseModel,
    ValidationError,
)

from parley.core.schema import (
    EvaluationPayload,
    QuestionPayload,
)
from parley.tools.extractor import (
    BaseExtractor,
    InterpretationFailure,
    extract_json,
    is_failure,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ValidationFailure(InterpretationFailure):
    """A payload was parsed but is missing or mistypes required fields."""


def validate(parsed: Any, model: Type[ModelT]) -> ModelT | ValidationFailure:
    """Validate *parsed* against *model*; never raises."""
    if is_failure(parsed):
        return ValidationFailure(reason=parsed.reason, raw_text=parsed.raw_text)
    if not isinstance(parsed, dict):
        return ValidationFailure(
            reason=f"expected a JSON object, got {type(parsed).__name__}", raw_text=str(parsed)
        )
    try:
        return model.model_validate(parsed)
    except ValidationError as e:
        logger.debug("Payload failed %s validation: %s", model.__name__, e)
        return ValidationFailure(
            reason=f"{model.__name__}: {e.error_count()} validation error(s)",
            raw_text=str(parsed),
        )


def validate_evaluation(
    raw_text: str, extractor: BaseExtractor | None = None
) -> EvaluationPayload | ValidationFailure:
    """Extract and validate a grading verdict from raw model output."""
    return validate(extract_json(raw_text, extractor), EvaluationPayload)


# "Q1:", "Question 2.", "q 3)", "Question 4-"
_QUESTION_PREFIX_RE = re.compile(r"^(?:Q(?:uestion)?\s*\d+[:.)-]\s*)", re.IGNORECASE)


def strip_quotes(text: str) -> str:
    """Trim whitespace and one pair of surrounding double quotes."""
    text = text.strip()
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return text


def clean_question(raw_text: str) -> QuestionPayload | ValidationFailure:
    """
    Recover the question from raw model output.

    Strips quotes and a leading "Question N:" label, and drops trailing commentary after the last
    question mark.
    """
    text = _QUESTION_PREFIX_RE.sub("", strip_quotes(raw_text or "")).strip()
    if not text.endswith("?"):
        idx = text.rfind("?")
        if idx != -1:
            text = text[: idx + 1]
    if not text:
        return ValidationFailure(reason="empty question", raw_text=raw_text or "")
    return QuestionPayload(question=text)
