"""
Domain models for questions and review scheduling.

These are pure data structures with no I/O. The JSON form of every model uses
camelCase keys so that stored data and export envelopes share one shape.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_EASE, DEFAULT_POINTS
from .ids import generate_choice_id, generate_question_id


def local_now() -> datetime:
    """Current time as a timezone-aware local datetime."""
    return datetime.now().astimezone()


def ensure_aware(value: datetime) -> datetime:
    """Interpret naive datetimes as local time."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    def to_json_dict(self) -> dict:
        """Serialize with camelCase keys, ISO dates and optional fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class QuestionChoice(_CamelModel):
    """
    One selectable (or sortable) option of a question.

    Attributes:
        label: Display tag (A, B, C...). Recomputed when choices change.
        is_correct: Marks a correct answer. Not meaningful for sorting questions.
        correct_order: 1-based target position; only set on sorting questions.
    """

    id: str = Field(default_factory=generate_choice_id)
    label: str = ""
    text: str
    is_correct: bool = False
    correct_order: int | None = None


class Question(_CamelModel):
    """A single quiz item."""

    id: str = Field(default_factory=generate_question_id)
    text: str
    points: int = DEFAULT_POINTS
    difficulty: Difficulty = Difficulty.MEDIUM
    choices: list[QuestionChoice] = Field(default_factory=list)
    explanation: str = ""
    category: str | None = None
    tags: list[str] | None = None
    created_at: datetime = Field(default_factory=local_now)
    updated_at: datetime = Field(default_factory=local_now)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _aware_timestamps(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class ReviewMetadata(_CamelModel):
    """
    Spaced-repetition state for one question.

    A record without ``last_reviewed`` belongs to a question that has never
    been answered ("new").
    """

    question_id: str
    easiness_factor: float = DEFAULT_EASE
    interval: int = 0
    repetitions: int = 0
    next_review_date: datetime
    last_reviewed: datetime | None = None

    @field_validator("next_review_date", "last_reviewed")
    @classmethod
    def _aware_dates(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return None
        return ensure_aware(v)

    @property
    def is_new(self) -> bool:
        return self.last_reviewed is None
