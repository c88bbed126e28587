"""Question library: the persisted question collection and its edit operations."""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime

from recallkit.domain.classification import QuestionKind, classify_question
from recallkit.domain.errors import InvalidQuestionError, QuestionNotFoundError
from recallkit.domain.models import Question, local_now
from recallkit.domain.ports import QuestionRepository

from .parsing.validation import relabel_choices, validate_question

logger = logging.getLogger(__name__)


class QuestionLibrary:
    def __init__(
        self,
        repository: QuestionRepository,
        clock: Callable[[], datetime] | None = None,
    ):
        self._repo = repository
        self._clock = clock or local_now

    def all(self) -> list[Question]:
        return self._repo.load_all()

    def ids(self) -> set[str]:
        return {q.id for q in self._repo.load_all()}

    def get(self, question_id: str) -> Question:
        for question in self._repo.load_all():
            if question.id == question_id:
                return question
        raise QuestionNotFoundError(question_id)

    def _save(self, questions: list[Question], action: str) -> bool:
        saved = self._repo.save_all(questions)
        if saved:
            logger.info(f"{action}: library now holds {len(questions)} questions")
        else:
            logger.error(f"{action}: failed to save questions. Storage quota may be exceeded.")
        return saved

    @staticmethod
    def _merge(
        stored: list[Question], questions: Iterable[Question]
    ) -> tuple[list[Question], int]:
        position = {q.id: i for i, q in enumerate(stored)}
        replaced = 0
        for question in questions:
            if question.id in position:
                stored[position[question.id]] = question
                replaced += 1
            else:
                position[question.id] = len(stored)
                stored.append(question)
        return stored, replaced

    def add(self, questions: Iterable[Question]) -> bool:
        """
        Merge questions into the library (the markdown and JSON import flows).

        A question whose ID is already stored replaces the stored copy in
        place; the rest are appended. IDs therefore stay unique.
        """
        merged, replaced = self._merge(self._repo.load_all(), questions)
        if replaced:
            logger.info(f"add: replaced {replaced} questions with matching IDs")
        return self._save(merged, "add")

    def replace(self, questions: Iterable[Question]) -> bool:
        merged, _ = self._merge([], questions)
        return self._save(merged, "replace")

    def update(self, question: Question) -> bool:
        """
        Store an edited question, refreshing ``updated_at`` and choice labels.

        Raises:
            QuestionNotFoundError: No stored question has this ID.
            InvalidQuestionError: The edited question breaks a structural rule.
        """
        candidate = question.model_copy(
            update={"choices": relabel_choices(question.choices), "updated_at": self._clock()}
        )
        kind = classify_question(candidate)
        # Fill-in-blank questions carry a single answer choice by construction.
        if kind is not QuestionKind.FILL_IN_BLANK:
            problems = validate_question(candidate, require_correct=kind is QuestionKind.REGULAR)
            if problems:
                raise InvalidQuestionError(question.id, problems)

        questions = self._repo.load_all()
        for i, existing in enumerate(questions):
            if existing.id == question.id:
                questions[i] = candidate
                return self._save(questions, "update")
        raise QuestionNotFoundError(question.id)

    def delete(self, question_id: str) -> bool:
        questions = self._repo.load_all()
        kept = [q for q in questions if q.id != question_id]
        if len(kept) == len(questions):
            raise QuestionNotFoundError(question_id)
        return self._save(kept, "delete")
