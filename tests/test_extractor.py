"""Tests for JSON extraction from free-form model output."""

import pytest

from parley.tools.extractor import (
    BalancedBraceExtractor,
    ExtractionFailure,
    FirstLastBraceExtractor,
    extract_json,
    is_failure,
    load_extractor,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('{"tool": "list_todos", "args": {}}', {"tool": "list_todos", "args": {}}),
        ('Here is the answer: {"correct": false} thanks', {"correct": False}),
        ('```json\n{"a": [1, 2, {"b": null}]}\n```', {"a": [1, 2, {"b": None}]}),
        ('prefix {"nested": {"deep": {"x": "y"}}} suffix', {"nested": {"deep": {"x": "y"}}}),
    ],
)
def test_first_last_finds_embedded_object(raw: str, expected: dict) -> None:
    """The payload is returned however much prose surrounds it."""

    assert extract_json(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["", "no json here", "{ unterminated", "only closing }", "} backwards {", "{not: json}"],
)
def test_first_last_failure_is_a_value(raw: str) -> None:
    """Missing, unbalanced or malformed payloads come back as ExtractionFailure."""

    result = extract_json(raw)
    assert isinstance(result, ExtractionFailure)
    assert is_failure(result)
    assert result.raw_text == raw


def test_first_last_is_fooled_by_stray_braces() -> None:
    """Prose braces outside the payload defeat the tolerant heuristic."""

    raw = 'Use {braces} like this: {"tool": "list_todos", "args": {}}'
    assert is_failure(FirstLastBraceExtractor().extract(raw))


def test_balanced_recovers_from_stray_braces() -> None:
    """The balanced scan skips candidates that do not parse."""

    raw = 'Use {braces} like this: {"tool": "list_todos", "args": {}} and {more}'
    assert BalancedBraceExtractor().extract(raw) == {"tool": "list_todos", "args": {}}


def test_balanced_ignores_braces_inside_strings() -> None:
    """A '}' inside a string literal does not close the object."""

    raw = 'Reply: {"shortFeedback": "use } carefully", "correct": true}'
    assert BalancedBraceExtractor().extract(raw) == {
        "shortFeedback": "use } carefully",
        "correct": True,
    }


def test_balanced_prefers_fenced_block() -> None:
    """A fenced JSON block wins over braces in the surrounding prose."""

    raw = 'I picked {one}:\n```json\n{"tool": "add_todo", "args": {"title": "milk"}}\n```'
    assert BalancedBraceExtractor().extract(raw) == {
        "tool": "add_todo",
        "args": {"title": "milk"},
    }


def test_balanced_failure_is_a_value() -> None:
    """Nothing parseable still yields a failure, not an exception."""

    result = BalancedBraceExtractor().extract("{ never closed")
    assert isinstance(result, ExtractionFailure)


def test_load_extractor_by_name() -> None:
    """Extractors are looked up in the registry by name."""

    assert isinstance(load_extractor("balanced"), BalancedBraceExtractor)
    assert isinstance(load_extractor("FIRST-LAST"), FirstLastBraceExtractor)
    with pytest.raises(ValueError, match="not registered"):
        load_extractor("regex")
