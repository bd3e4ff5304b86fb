"""Canonical keys for duplicate detection."""

import re
from typing import Iterable

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize(text: str) -> str:
    """Lower-case, collapse each run of non-alphanumerics to one space, trim."""
    return _NON_ALNUM_RE.sub(" ", text.lower()).strip()


def is_duplicate(text: str, history: Iterable[str]) -> bool:
    """True if *text* has the same normalized key as any entry of *history*."""
    key = normalize(text)
    return any(normalize(previous) == key for previous in history)
