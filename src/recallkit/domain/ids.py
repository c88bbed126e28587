"""Stable identifiers for questions and choices."""

from ulid import ULID


def generate_question_id() -> str:
    """Generate a question ID using ULID."""
    return f"q_{ULID()}"


def generate_choice_id() -> str:
    return f"c_{ULID()}"
