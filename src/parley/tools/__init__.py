"""
Output interpretation helpers for Parley.

Extraction pulls a JSON payload out of free text, validation checks its shape, and normalization
produces the keys used for duplicate detection.
"""

from parley.tools.extractor import (
    BaseExtractor,
    ExtractionFailure,
    InterpretationFailure,
    extract_json,
    is_failure,
    load_extractor,
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

__all__ = [
    "BaseExtractor",
    "ExtractionFailure",
    "InterpretationFailure",
    "ValidationFailure",
    "clean_question",
    "extract_json",
    "is_duplicate",
    "is_failure",
    "load_extractor",
    "normalize",
    "validate",
    "validate_evaluation",
]
