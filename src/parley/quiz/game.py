"""
Trivia quiz game.

Questions come from the retry controller so that a round never repeats itself; answers are graded
by the model and read back through the evaluation validator, falling back to a "not correct"
verdict when the grader's reply cannot be interpreted.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import (
    List,
    Sequence,
)

from pydantic import (
    BaseModel,
    ConfigDict,
)

from parley.agent.retry import obtain_novel
from parley.common import (
    AnsiColors,
    colored_print,
    read_line,
)
from parley.config import settings
from parley.core.oracle import (
    OllamaOracle,
    Oracle,
    OracleError,
)
from parley.core.schema import (
    EvaluationPayload,
    NovelItem,
    OracleRequest,
)
from parley.quiz.prompts import (
    EVALUATION_SYSTEM,
    QUESTION_SYSTEM,
    evaluation_prompt,
    question_prompt,
)
from parley.tools.extractor import (
    BaseExtractor,
    is_failure,
)
from parley.tools.validator import validate_evaluation

logger = logging.getLogger(__name__)


class AnswerRecord(BaseModel):
    """One played question."""

    model_config = ConfigDict(protected_namespaces=())

    question: str
    answer: str
    correct: bool
    model_answer: str = ""


# ---------------------------------------------------------------------------
# Oracle calls
# ---------------------------------------------------------------------------
async def generate_question(
    oracle: Oracle,
    number: int,
    history: Sequence[str],
    max_attempts: int | None = None,
) -> NovelItem:
    """Produce a question that does not repeat anything in *history*."""

    async def producer(temperature: float) -> str:
        response = await oracle.chat(
            OracleRequest(
                system_prompt=QUESTION_SYSTEM,
                user_prompt=question_prompt(number, history),
                temperature=temperature,
            )
        )
        return response.text

    item = await obtain_novel(
        producer, history, max_attempts or settings.QUESTION_MAX_ATTEMPTS
    )
    if not item.novel:
        logger.warning("Question %d was not checked for novelty: %s", number, item.question)
    return item


async def evaluate_answer(
    oracle: Oracle,
    question: str,
    answer: str,
    extractor: BaseExtractor | None = None,
) -> EvaluationPayload:
    """Grade *answer*; an unreadable or failed verdict counts as incorrect."""
    try:
        response = await oracle.chat(
            OracleRequest(
                system_prompt=EVALUATION_SYSTEM,
                user_prompt=evaluation_prompt(question, answer),
                temperature=0.0,
            )
        )
    except OracleError as e:
        logger.error("Grading failed: %s", e)
        return EvaluationPayload(correct=False, short_feedback="Could not grade this answer.")

    verdict = validate_evaluation(response.text, extractor)
    if is_failure(verdict):
        logger.warning("Unreadable grading reply (%s): %s", verdict.reason, response.text)
        return EvaluationPayload(correct=False)
    return verdict


# ---------------------------------------------------------------------------
# Presentation
# ---------------------------------------------------------------------------
async def choose_model(oracle: OllamaOracle, requested: str | None = None) -> str:
    """
    Pick the model for this round.

    An explicit *requested* name wins.  Otherwise the locally pulled models are listed and the
    player picks one; the configured default is used when nothing can be listed or chosen.
    """
    default = settings.OLLAMA_MODEL
    if requested:
        oracle.model = requested
        return requested

    models = await oracle.list_models()
    if not models:
        colored_print(f"Could not list local models; using default: {default}", AnsiColors.YELLOW)
        oracle.model = default
        return default

    labels = list(models)
    if default not in models:
        labels.insert(0, f"{default} (pull with: ollama pull {default})")
    if len(labels) == 1:
        colored_print(f"Only one model detected, auto-selecting: {labels[0]}", AnsiColors.DIM)
        oracle.model = labels[0].split(" ")[0]
        return oracle.model

    for idx, label in enumerate(labels, start=1):
        print(f"  {idx}. {label}")
    choice = (await read_line("Select Ollama model [1]: ")) or "1"
    try:
        selected = labels[int(choice) - 1].split(" ")[0]
    except (ValueError, IndexError):
        colored_print(f"No valid selection; falling back to default: {default}", AnsiColors.YELLOW)
        selected = default
    oracle.model = selected
    return selected


def intro(model: str, total: int) -> None:
    """Print the round banner and rules."""
    colored_print("\nOllama Trivia Challenge", AnsiColors.CYAN)
    colored_print(f"Model: {model}", AnsiColors.DIM)
    print(f"\nYou will be asked {total} trivia questions.")
    print("Type your best answer and press Enter.")
    print("Scoring: Each correct answer = 1 point. Partial answers may be marked incorrect.")
    colored_print("\nLet's begin!\n", AnsiColors.YELLOW)


def rating(percent: int) -> tuple[str, AnsiColors]:
    """Closing remark and its color for an accuracy *percent*."""
    if percent == 100:
        return "Perfect score! Trivia master.", AnsiColors.GREEN
    if percent >= 70:
        return "Great job!", AnsiColors.GREEN
    if percent >= 40:
        return "Not bad, keep practicing.", AnsiColors.YELLOW
    return "Tough round. Try again!", AnsiColors.RED


def print_summary(score: int, total: int, latencies_ms: Sequence[float]) -> None:
    """Score, accuracy, generation timing and a closing remark."""
    colored_print("\nGame Summary", AnsiColors.MAGENTA)
    print(f"Score: {score}/{total}")
    percent = round(score / total * 100) if total else 0
    print(f"Accuracy: {percent}%")

    if latencies_ms:
        avg = sum(latencies_ms) / len(latencies_ms)
        colored_print("\nQuestion generation timing (ms):", AnsiColors.DIM)
        colored_print(
            f"  Avg: {avg:.0f}  Fastest: {min(latencies_ms):.0f}  Slowest: {max(latencies_ms):.0f}",
            AnsiColors.DIM,
        )

    remark, color = rating(percent)
    colored_print(remark, color)
    print("\nThanks for playing!")


# ---------------------------------------------------------------------------
# Game loop
# ---------------------------------------------------------------------------
async def run_quiz(
    oracle: Oracle,
    total: int | None = None,
    stop: asyncio.Event | None = None,
    extractor: BaseExtractor | None = None,
) -> List[AnswerRecord]:
    """Play one round; returns the answered questions (fewer than *total* if aborted)."""
    total = total or settings.QUIZ_QUESTIONS
    asked: List[str] = []
    details: List[AnswerRecord] = []
    latencies_ms: List[float] = []

    for number in range(1, total + 1):
        colored_print(f"Question {number}/{total}", AnsiColors.BOLD)
        if number == 1:
            colored_print("Warming up model & generating first question...", AnsiColors.DIM)

        started = time.perf_counter()
        item = await generate_question(oracle, number, asked)
        elapsed_ms = (time.perf_counter() - started) * 1000
        latencies_ms.append(elapsed_ms)
        if number == 1:
            colored_print(f"First question ready in {elapsed_ms / 1000:.2f}s", AnsiColors.DIM)
        else:
            colored_print(f"(generated in {elapsed_ms:.0f} ms)", AnsiColors.DIM)

        print(item.question)
        answer = await read_line("Your answer: ", stop)
        if answer is None:
            colored_print("Game aborted.", AnsiColors.RED)
            break

        answer = answer.strip()
        if not answer:
            verdict = EvaluationPayload(correct=False, short_feedback="No answer given")
        else:
            verdict = await evaluate_answer(oracle, item.question, answer, extractor)

        if verdict.correct:
            colored_print(f"✔ Correct! {verdict.short_feedback}", AnsiColors.GREEN)
        else:
            colored_print(f"✖ Incorrect. {verdict.short_feedback}", AnsiColors.RED)
            colored_print(f"Expected answer: {verdict.model_answer}", AnsiColors.YELLOW)
        details.append(
            AnswerRecord(
                question=item.question,
                answer=answer,
                correct=verdict.correct,
                model_answer=verdict.model_answer,
            )
        )
        asked.append(item.question)
        print()

    print_summary(sum(d.correct for d in details), total, latencies_ms)
    return details
