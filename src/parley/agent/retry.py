"""
Retry/escalation controller for generating novel items.

A producer is called with increasing temperature until it yields a valid item whose normalized
key is not already in the history.  The last attempt is accepted unconditionally so that a caller
always gets *something* back.
"""

import logging
from typing import (
    Awaitable,
    Callable,
    Sequence,
)

from parley.core.oracle import OracleError
from parley.core.schema import NovelItem
from parley.tools.extractor import is_failure
from parley.tools.normalizer import is_duplicate
from parley.tools.validator import (
    clean_question,
    strip_quotes,
)

logger = logging.getLogger(__name__)

MODERATE_TEMPERATURE = 0.55
HIGH_TEMPERATURE = 0.75
FINAL_TEMPERATURE = 0.85
DEFAULT_MAX_ATTEMPTS = 6
FALLBACK_QUESTION = "Trivia question?"

Producer = Callable[[float], Awaitable[str]]


def temperature_for(attempt: int, max_attempts: int) -> float:
    """Escalation schedule: moderate, then high, then highest for the forced attempt."""
    if attempt >= max_attempts - 1:
        return FINAL_TEMPERATURE
    if attempt == 0:
        return MODERATE_TEMPERATURE
    return HIGH_TEMPERATURE


async def obtain_novel(
    producer: Producer,
    history: Sequence[str],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> NovelItem:
    """
    Call *producer* until it returns a valid, non-duplicate question.

    Parameters
    ----------
    producer:
        Async callable taking a temperature and returning raw model text.
    history:
        Previously accepted questions, oldest first.  Not modified.
    max_attempts:
        Total producer calls allowed.  Attempts ``0 .. max_attempts-2`` are checked for validity
        and novelty; attempt ``max_attempts-1`` is returned whatever it contains.

    Returns
    -------
    NovelItem
        ``novel`` is False only when the forced final attempt produced the result.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(max_attempts - 1):
        temperature = temperature_for(attempt, max_attempts)
        try:
            raw = await producer(temperature)
        except OracleError as e:
            logger.warning("Attempt %d failed at the oracle: %s", attempt + 1, e)
            continue

        cleaned = clean_question(raw)
        if is_failure(cleaned):
            logger.info("Attempt %d produced no usable question: %s", attempt + 1, cleaned.reason)
            continue
        if is_duplicate(cleaned.question, history):
            logger.info("Attempt %d repeated an earlier question: %s", attempt + 1, cleaned.question)
            continue

        logger.debug("Accepted question after %d attempt(s)", attempt + 1)
        return NovelItem(question=cleaned.question, attempts=attempt + 1, novel=True)

    question = await _forced_attempt(producer, temperature_for(max_attempts - 1, max_attempts))
    if is_duplicate(question, history):
        logger.warning("Retry budget exhausted; accepting a repeated question: %s", question)
    return NovelItem(question=question, attempts=max_attempts, novel=False)


async def _forced_attempt(producer: Producer, temperature: float) -> str:
    """One last call whose result is used whatever it is."""
    try:
        raw = await producer(temperature)
    except OracleError as e:
        logger.error("Final attempt failed at the oracle: %s", e)
        return FALLBACK_QUESTION

    cleaned = clean_question(raw)
    if is_failure(cleaned):
        return strip_quotes(raw or "") or FALLBACK_QUESTION
    return cleaned.question
