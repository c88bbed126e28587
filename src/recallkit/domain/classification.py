"""
Structural question classification.

A question's shape is never stored; it is derived from its choices and text.
Every consumer (parser, validators, study grading, statistics) goes through
these functions so the rules cannot drift apart.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from .constants import BLANK_MARKER
from .models import Question


class QuestionKind(str, Enum):
    REGULAR = "regular"
    SORTING = "sorting"
    FILL_IN_BLANK = "fill_in_blank"


def _classify(text: str, choice_count: int, has_order: bool) -> QuestionKind:
    if has_order:
        return QuestionKind.SORTING
    if BLANK_MARKER in text and choice_count == 1:
        return QuestionKind.FILL_IN_BLANK
    return QuestionKind.REGULAR


def classify_question(question: Question) -> QuestionKind:
    has_order = any(c.correct_order is not None for c in question.choices)
    return _classify(question.text, len(question.choices), has_order)


def classify_raw_question(raw: Mapping[str, Any]) -> QuestionKind:
    """Same rules as classify_question, applied to an untrusted JSON object."""
    text = raw.get("text")
    choices = raw.get("choices")
    if not isinstance(choices, list):
        choices = []
    has_order = any(
        isinstance(c, Mapping) and c.get("correctOrder") is not None for c in choices
    )
    return _classify(text if isinstance(text, str) else "", len(choices), has_order)


def is_sorting(question: Question) -> bool:
    return classify_question(question) is QuestionKind.SORTING


def is_fill_in_blank(question: Question) -> bool:
    return classify_question(question) is QuestionKind.FILL_IN_BLANK
