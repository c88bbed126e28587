"""Repositories persisting domain models through a KeyValueStore."""

import logging

from pydantic import ValidationError

from recallkit.domain.constants import QUESTIONS_KEY, REVIEW_METADATA_KEY
from recallkit.domain.models import Question, ReviewMetadata
from recallkit.domain.ports import KeyValueStore, QuestionRepository, ReviewRepository

logger = logging.getLogger(__name__)


class KeyValueReviewRepository(ReviewRepository):
    """
    Review metadata stored as one JSON object keyed by question ID.

    Dates are written as ISO-8601 strings and parsed back on load. Entries that
    no longer validate are skipped with a warning rather than failing the load.
    """

    def __init__(self, store: KeyValueStore, key: str = REVIEW_METADATA_KEY):
        self.store = store
        self.key = key

    def load_all(self) -> dict[str, ReviewMetadata]:
        raw = self.store.get(self.key)
        if not isinstance(raw, dict):
            return {}

        result: dict[str, ReviewMetadata] = {}
        for question_id, entry in raw.items():
            try:
                result[question_id] = ReviewMetadata.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Skipping malformed review metadata for {question_id}: {e}")
        return result

    def save_all(self, metadata: dict[str, ReviewMetadata]) -> bool:
        payload = {qid: m.to_json_dict() for qid, m in metadata.items()}
        return self.store.set(self.key, payload)


class KeyValueQuestionRepository(QuestionRepository):
    def __init__(self, store: KeyValueStore, key: str = QUESTIONS_KEY):
        self.store = store
        self.key = key

    def load_all(self) -> list[Question]:
        raw = self.store.get(self.key)
        if not isinstance(raw, list):
            return []

        questions: list[Question] = []
        for i, entry in enumerate(raw):
            try:
                questions.append(Question.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed stored question #{i + 1}: {e}")
        return questions

    def save_all(self, questions: list[Question]) -> bool:
        return self.store.set(self.key, [q.to_json_dict() for q in questions])
