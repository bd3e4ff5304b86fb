"""Tests for payload validation and question clean-up."""

import pytest

from parley.core.schema import (
    EvaluationPayload,
    QuestionPayload,
)
from parley.tools.normalizer import (
    is_duplicate,
    normalize,
)
from parley.tools.validator import (
    ValidationFailure,
    clean_question,
    validate,
    validate_evaluation,
)


def test_evaluation_embedded_in_prose() -> None:
    """Chatty grader output still yields the verdict."""

    raw = 'Sure! {"correct": true, "shortFeedback": "Nice", "modelAnswer": "Paris"} Hope that helps.'
    verdict = validate_evaluation(raw)
    assert verdict == EvaluationPayload(correct=True, short_feedback="Nice", model_answer="Paris")


def test_evaluation_defaults_optional_fields() -> None:
    """Missing or null feedback fields become empty strings."""

    verdict = validate_evaluation('{"correct": "false", "modelAnswer": null}')
    assert isinstance(verdict, EvaluationPayload)
    assert verdict.correct is False
    assert verdict.short_feedback == ""
    assert verdict.model_answer == ""


@pytest.mark.parametrize(
    "raw",
    [
        '{"shortFeedback": "no verdict"}',
        '{"correct": "perhaps"}',
        "[true]",
        "I could not decide.",
    ],
)
def test_evaluation_failures(raw: str) -> None:
    """A missing or non-boolean verdict, or no object at all, fails validation."""

    assert isinstance(validate_evaluation(raw), ValidationFailure)


def test_validate_passes_failure_through() -> None:
    """An extraction failure is reported as a validation failure with its reason."""

    from parley.tools.extractor import ExtractionFailure

    result = validate(ExtractionFailure(reason="nope", raw_text="x"), QuestionPayload)
    assert isinstance(result, ValidationFailure)
    assert result.reason == "nope"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("What is the capital of France?", "What is the capital of France?"),
        ('  "Which ocean is the largest?"  ', "Which ocean is the largest?"),
        ("Question 3: Who wrote Hamlet?", "Who wrote Hamlet?"),
        ("Q2) Who painted the Mona Lisa?", "Who painted the Mona Lisa?"),
        ("q 7. What is H2O? (Hint: think water)", "What is H2O?"),
        ("Name the longest river? It flows through Egypt.", "Name the longest river?"),
        ("Name the longest river", "Name the longest river"),
    ],
)
def test_clean_question(raw: str, expected: str) -> None:
    """Labels, quotes and trailing commentary are stripped."""

    result = clean_question(raw)
    assert isinstance(result, QuestionPayload)
    assert result.question == expected


@pytest.mark.parametrize("raw", ["", "   ", '""', "Question 1:"])
def test_clean_question_rejects_empty(raw: str) -> None:
    """Nothing left after clean-up is a validation failure."""

    assert isinstance(clean_question(raw), ValidationFailure)


def test_normalize_ignores_case_and_punctuation() -> None:
    """Keys differ only when the words differ."""

    assert normalize("What is the Capital of France?!") == "what is the capital of france"
    assert normalize("  --Hello,   World--  ") == "hello world"
    assert normalize("Café") == "caf"


def test_is_duplicate() -> None:
    """Duplicates are found by normalized key, not by exact text."""

    history = ["What is the capital of France?"]
    assert is_duplicate("what is the capital of france", history)
    assert is_duplicate("WHAT is the capital... of France??", history)
    assert not is_duplicate("What is the capital of Spain?", history)
    assert not is_duplicate("anything", [])
