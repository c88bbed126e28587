"""Structural checks for a single question and choice relabeling."""

from recallkit.domain.constants import MAX_CHOICES, MAX_POINTS, MIN_CHOICES, MIN_POINTS
from recallkit.domain.models import Question, QuestionChoice


def choice_label(index: int) -> str:
    """0 -> A, 1 -> B, ..."""
    return chr(65 + index)


def relabel_choices(choices: list[QuestionChoice]) -> list[QuestionChoice]:
    """
    Recompute labels sequentially (A, B, C...).

    Sorting choices keep the label derived from their correct position, so they
    are returned unchanged.
    """
    if any(c.correct_order is not None for c in choices):
        return list(choices)
    return [c.model_copy(update={"label": choice_label(i)}) for i, c in enumerate(choices)]


def validate_question(question: Question, require_correct: bool = True) -> list[str]:
    """
    Validate a question for editing.

    Shape-agnostic: sorting questions have no ``is_correct`` choice, so callers
    pass ``require_correct=False`` for them.

    Returns:
        Violation messages; an empty list means the question is valid.
    """
    errors: list[str] = []

    if not question.text or not question.text.strip():
        errors.append("Question text is required")

    if not MIN_POINTS <= question.points <= MAX_POINTS:
        errors.append(f"Points must be between {MIN_POINTS} and {MAX_POINTS}")

    if len(question.choices) < MIN_CHOICES:
        errors.append(f"Question must have at least {MIN_CHOICES} choices")

    if len(question.choices) > MAX_CHOICES:
        errors.append(f"Question cannot have more than {MAX_CHOICES} choices")

    if require_correct and not any(c.is_correct for c in question.choices):
        errors.append("Question must have at least one correct answer")

    seen: set[str] = set()
    for choice in question.choices:
        if choice.label in seen:
            errors.append(f"Duplicate choice label: {choice.label}")
        seen.add(choice.label)

        if not choice.text or not choice.text.strip():
            errors.append(f"Choice {choice.label} has no text")

    return errors
