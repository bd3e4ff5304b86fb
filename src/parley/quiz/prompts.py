"""Prompt templates for question generation and answer grading."""

from typing import Sequence

QUESTION_SYSTEM = """\
You are a trivia quiz master.
Task: Generate ONE clear general knowledge trivia question.
Output Rules:
  - Only the question text
  - No numbering, no answers, no hints
  - Avoid repeating earlier topics listed by the user
Style:
  - Concise, neutral tone
  - Prefer not yes/no questions
  - Must end with a question mark
"""

EVALUATION_SYSTEM = """\
You are an impartial trivia answer grader.
Return ONLY JSON:
{"correct": boolean, "shortFeedback": "one short sentence", "modelAnswer": "concise expected answer"}
Guidelines:
  - Allow minor spelling mistakes / synonyms
  - If missing key detail -> correct = false
  - shortFeedback <= 12 words
"""


def question_prompt(number: int, previous: Sequence[str]) -> str:
    """User prompt for question *number*, listing earlier questions to steer away from."""
    if not previous:
        return f"Generate question #{number}. Only the question text."
    lines = "\n".join(f" - {i}. {q}" for i, q in enumerate(previous, start=1))
    return (
        f"All previous questions (avoid similar topics):\n{lines}\n\n"
        f"Generate question #{number}. Only the question text."
    )


def evaluation_prompt(question: str, answer: str) -> str:
    """User prompt asking the grader to judge *answer* to *question*."""
    return f"Question: {question}\nPlayer answer: {answer}\nReturn ONLY the JSON."
