"""
JSON extraction from free-form model output.

Models routinely wrap the JSON they were asked for in prose ("Here is the answer: {...}").  An
extractor pulls the payload out and parses it.  Extraction never raises: a failure is returned as
an :class:`ExtractionFailure` value so callers can branch on it like any other result.

Two extractors are registered:

``first-last``
    Slice from the first ``{`` to the last ``}`` and parse.  Tolerant and cheap, but mis-extracts
    when prose outside the payload contains braces.
``balanced``
    Strip markdown code fences, then try each ``{`` in turn, scanning to its matching brace while
    skipping over string literals, and return the first candidate that parses.
"""

import json
import logging
import re
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    Type,
)

from pydantic import BaseModel

from parley.config import settings

logger = logging.getLogger(__name__)


class InterpretationFailure(BaseModel):
    """Base for recoverable failures to turn model output into a payload."""

    reason: str
    raw_text: str = ""


class ExtractionFailure(InterpretationFailure):
    """No parseable JSON payload was found."""


def is_failure(value: Any) -> bool:
    """True for extraction and validation failures alike."""
    return isinstance(value, InterpretationFailure)


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_EXTRACTOR_REGISTRY: Dict[str, Type["BaseExtractor"]] = {}


def register_extractor(name: str) -> Callable:
    """Decorator to register an extractor class under *name*."""

    def wrapper(cls: Type["BaseExtractor"]) -> Type["BaseExtractor"]:
        _EXTRACTOR_REGISTRY[name] = cls
        return cls

    return wrapper


def load_extractor(name: str | None = None) -> "BaseExtractor":
    """Return an instantiated extractor; defaults to ``settings.EXTRACTOR``."""
    target = (name or settings.EXTRACTOR).lower()
    cls = _EXTRACTOR_REGISTRY.get(target)
    if cls is None:
        raise ValueError(f"Extractor '{target}' is not registered.")
    return cls()


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseExtractor(ABC):
    """Produce a parsed JSON value from raw text, or an :class:`ExtractionFailure`."""

    @abstractmethod
    def extract(self, raw_text: str) -> Any:
        """Return the parsed value or an :class:`ExtractionFailure`."""

    def __call__(self, raw_text: str) -> Any:
        return self.extract(raw_text)


@register_extractor("first-last")
class FirstLastBraceExtractor(BaseExtractor):
    """First ``{`` to last ``}`` inclusive, parsed as JSON."""

    def extract(self, raw_text: str) -> Any:
        text = raw_text or ""
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end == -1:
            return ExtractionFailure(reason="no JSON object in text", raw_text=text)
        if end < start:
            return ExtractionFailure(reason="closing brace precedes opening brace", raw_text=text)
        try:
            return json.loads(text[start : end + 1])
        except json.JSONDecodeError as e:
            logger.debug("JSON parse failed: %s", e)
            return ExtractionFailure(reason=f"invalid JSON: {e.msg}", raw_text=text)


_FENCE_RE = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL)


class _Unbalanced(ValueError):
    pass


def _skip_string(s: str, i: int) -> int:
    """Given s[i] == '"', return index just past the closing quote."""
    i += 1
    esc = False
    while i < len(s):
        ch = s[i]
        if esc:
            esc = False
        elif ch == "\\":
            esc = True
        elif ch == '"':
            return i + 1
        i += 1
    raise _Unbalanced("unterminated string literal")


def _find_matching_brace(s: str, i: int) -> int:
    """Given s[i] == '{', return index just past its matching '}'."""
    depth = 0
    while i < len(s):
        ch = s[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
        elif ch == '"':
            i = _skip_string(s, i)  # skip over quoted section
            continue  # i already advanced
        i += 1
    raise _Unbalanced("unbalanced braces")


@register_extractor("balanced")
class BalancedBraceExtractor(BaseExtractor):
    """Quote-aware balanced-brace scan; first candidate that parses wins."""

    def _candidates(self, text: str) -> Iterator[str]:
        start = text.find("{")
        while start != -1:
            try:
                end = _find_matching_brace(text, start)
            except _Unbalanced:
                pass
            else:
                yield text[start:end]
            start = text.find("{", start + 1)

    def extract(self, raw_text: str) -> Any:
        text = raw_text or ""
        match = _FENCE_RE.search(text)
        if match and "{" in match.group(1):
            text = match.group(1).strip()

        saw_candidate = False
        for candidate in self._candidates(text):
            saw_candidate = True
            try:
                return json.loads(candidate)
            except json.JSONDecodeError:
                continue
        reason = "no candidate object parsed" if saw_candidate else "no balanced JSON object"
        return ExtractionFailure(reason=reason, raw_text=raw_text or "")


def extract_json(raw_text: str, extractor: BaseExtractor | None = None) -> Any:
    """Extract with *extractor* (default: the tolerant first/last heuristic)."""
    return (extractor or FirstLastBraceExtractor()).extract(raw_text)
