"""
Answer grading for study sessions.

Dispatches on the structural question kind so that regular, fill-in-blank and
sorting questions are each graded by their own rule.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from recallkit.domain.classification import QuestionKind, classify_question
from recallkit.domain.models import Question

_EMPHASIS_RE = re.compile(r"[*_`]+")
_WHITESPACE_RE = re.compile(r"\s+")
_EDGE_PUNCT = " \t.,;:!?\"'()[]"


@dataclass
class StudyResponse:
    """
    What the learner submitted. Only the field matching the question kind is used.

    Attributes:
        selected_ids: Chosen choice IDs (regular questions).
        typed: Free-text answer (fill-in-blank questions).
        ordered_ids: Choice IDs in the learner's final order (sorting questions).
    """

    selected_ids: set[str] = field(default_factory=set)
    typed: str = ""
    ordered_ids: list[str] = field(default_factory=list)


def normalize_answer(text: str) -> str:
    text = _EMPHASIS_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip(_EDGE_PUNCT)
    return text.casefold()


def grade_choice_answer(question: Question, selected_ids: set[str]) -> bool:
    """Correct only when exactly the correct choices are selected."""
    correct = {c.id for c in question.choices if c.is_correct}
    return bool(selected_ids) and set(selected_ids) == correct


def grade_fill_in_blank(question: Question, typed: str) -> bool:
    """
    Compare typed text with the expected answer after normalization.

    Questions with several blanks store a comma-joined answer; each blank is
    then compared in order.
    """
    expected = question.choices[0].text
    if normalize_answer(typed) == normalize_answer(expected):
        return True

    expected_parts = [normalize_answer(p) for p in expected.split(",")]
    typed_parts = [normalize_answer(p) for p in typed.split(",")]
    return len(expected_parts) > 1 and expected_parts == typed_parts


def correct_sequence(question: Question) -> list[str]:
    """Choice IDs in their correct order."""
    ordered = sorted(question.choices, key=lambda c: c.correct_order or 0)
    return [c.id for c in ordered]


def grade_sorting(question: Question, ordered_ids: Sequence[str]) -> bool:
    return list(ordered_ids) == correct_sequence(question)


def grade_answer(question: Question, response: StudyResponse) -> bool:
    kind = classify_question(question)
    if kind is QuestionKind.SORTING:
        return grade_sorting(question, response.ordered_ids)
    if kind is QuestionKind.FILL_IN_BLANK:
        return grade_fill_in_blank(question, response.typed)
    return grade_choice_answer(question, response.selected_ids)


def correct_answer_text(question: Question) -> str:
    """Human-readable solution shown after answering."""
    kind = classify_question(question)
    by_id = {c.id: c for c in question.choices}
    if kind is QuestionKind.SORTING:
        return " -> ".join(by_id[cid].text for cid in correct_sequence(question))
    if kind is QuestionKind.FILL_IN_BLANK:
        return question.choices[0].text
    return ", ".join(f"{c.label}. {c.text}" for c in question.choices if c.is_correct)
