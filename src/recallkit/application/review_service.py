"""
Review Service: application layer orchestrator for spaced repetition.

Combines the SM-2 scheduler and quality mapping with persisted per-question
review metadata. Persistence is a whole-map read-modify-write through the
ReviewRepository port.
"""

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from recallkit.domain.constants import MASTERY_REPETITIONS
from recallkit.domain.models import Question, ReviewMetadata, local_now
from recallkit.domain.ports import ReviewRepository

from .scheduler import SM2State, calculate_sm2, get_quality_rating, initial_state, is_due

logger = logging.getLogger(__name__)

ImportMode = Literal["merge", "replace"]


@dataclass(frozen=True)
class RecordResult:
    """
    Outcome of recording an answer.

    Attributes:
        metadata: The updated schedule.
        quality: SM-2 quality derived from the answer.
        saved: False if the store refused the write; the update is then lost.
    """

    metadata: ReviewMetadata
    quality: int
    saved: bool


@dataclass(frozen=True)
class ReviewStats:
    total: int
    new: int
    learning: int
    review: int
    due: int


@dataclass(frozen=True)
class CleanupResult:
    removed: int
    saved: bool = True


@dataclass
class StatisticsSummary:
    """Summary of stored statistics, counting only questions that still exist."""

    total_statistics: int = 0
    with_progress: int = 0
    categories: dict[str, int] = field(default_factory=dict)
    orphaned_count: int = 0


class ReviewService:
    """
    Application service for review scheduling.

    Follows Dependency Inversion: depends on the ReviewRepository abstraction,
    so a keyed database can replace the whole-map store without touching the
    scheduler.
    """

    def __init__(
        self,
        repository: ReviewRepository,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            repository: The repository (port) holding review metadata.
            clock: Optional source of "now"; defaults to the local wall clock.
        """
        self._repo = repository
        self._clock = clock or local_now

    def now(self) -> datetime:
        return self._clock()

    def _initial(self, question_id: str) -> ReviewMetadata:
        initial = initial_state(self.now())
        return ReviewMetadata(
            question_id=question_id,
            easiness_factor=initial.ease_factor,
            interval=initial.interval,
            repetitions=initial.repetitions,
            next_review_date=initial.next_review_date,
        )

    def get_metadata(self, question_id: str) -> ReviewMetadata:
        """
        Return stored metadata, or a fresh initial schedule.

        Reading never persists anything.
        """
        return self._lookup(self._repo.load_all(), question_id)

    def _lookup(self, all_metadata: dict[str, ReviewMetadata], question_id: str) -> ReviewMetadata:
        metadata = all_metadata.get(question_id)
        if metadata is not None:
            return metadata
        return self._initial(question_id)

    def record_answer(
        self,
        question_id: str,
        is_correct: bool,
        confidence: float | None = None,
    ) -> RecordResult:
        """Run the SM-2 update for one answer and persist the whole metadata map."""
        all_metadata = self._repo.load_all()
        current = self._lookup(all_metadata, question_id)
        quality = get_quality_rating(is_correct, confidence)
        now = self.now()

        result = calculate_sm2(
            SM2State(current.easiness_factor, current.interval, current.repetitions),
            quality,
            now,
        )

        updated = ReviewMetadata(
            question_id=question_id,
            easiness_factor=result.ease_factor,
            interval=result.interval,
            repetitions=result.repetitions,
            next_review_date=result.next_review_date,
            last_reviewed=now,
        )

        all_metadata[question_id] = updated
        saved = self._repo.save_all(all_metadata)
        if saved:
            logger.debug(
                f"[review] {question_id} q={quality} interval={updated.interval} "
                f"reps={updated.repetitions} ease={updated.easiness_factor:.2f}"
            )
        else:
            logger.error(f"Failed to save review metadata for {question_id}")

        return RecordResult(metadata=updated, quality=quality, saved=saved)

    def get_due(self, questions: Iterable[Question], now: datetime | None = None) -> list[Question]:
        all_metadata = self._repo.load_all()
        current = now or self.now()
        return [
            q
            for q in questions
            if is_due(self._lookup(all_metadata, q.id).next_review_date, current)
        ]

    def get_new(self, questions: Iterable[Question]) -> list[Question]:
        all_metadata = self._repo.load_all()
        return [q for q in questions if self._lookup(all_metadata, q.id).is_new]

    def get_stats(self, questions: Iterable[Question], now: datetime | None = None) -> ReviewStats:
        """
        Classify every question as new, learning or review in one pass.

        New questions always count as due; learning and review questions only
        when their next review date has passed.
        """
        all_metadata = self._repo.load_all()
        current = now or self.now()
        total = new = learning = review = due = 0

        for question in questions:
            total += 1
            metadata = self._lookup(all_metadata, question.id)

            if metadata.is_new:
                new += 1
                due += 1
                continue

            if metadata.repetitions < MASTERY_REPETITIONS:
                learning += 1
            else:
                review += 1

            if is_due(metadata.next_review_date, current):
                due += 1

        return ReviewStats(total=total, new=new, learning=learning, review=review, due=due)

    def next_review_date(self, question_id: str) -> datetime:
        return self.get_metadata(question_id).next_review_date

    def is_question_due(self, question_id: str) -> bool:
        return is_due(self.get_metadata(question_id).next_review_date, self.now())

    # ---------- Orphans & bulk operations ----------

    def find_orphans(self, questions: Iterable[Question]) -> list[str]:
        """IDs of stored metadata whose question no longer exists."""
        known = {q.id for q in questions}
        return [qid for qid in self._repo.load_all() if qid not in known]

    def cleanup_orphans(self, questions: Iterable[Question]) -> CleanupResult:
        """
        Drop metadata for questions that no longer exist.

        The map is only rewritten when something was removed, so a second run
        is a no-op.
        """
        known = {q.id for q in questions}
        all_metadata = self._repo.load_all()
        kept = {qid: m for qid, m in all_metadata.items() if qid in known}
        removed = len(all_metadata) - len(kept)

        if removed == 0:
            return CleanupResult(removed=0)

        saved = self._repo.save_all(kept)
        if saved:
            logger.info(f"Removed {removed} orphaned review records")
        else:
            logger.error("Failed to save review metadata after orphan cleanup")
        return CleanupResult(removed=removed, saved=saved)

    def reset_all(self) -> bool:
        """Forget every review schedule."""
        saved = self._repo.save_all({})
        if not saved:
            logger.error("Failed to reset review metadata")
        return saved

    def statistics_summary(self, questions: Iterable[Question]) -> StatisticsSummary:
        by_id = {q.id: q for q in questions}
        summary = StatisticsSummary()
        categories: Counter[str] = Counter()

        for qid, metadata in self._repo.load_all().items():
            question = by_id.get(qid)
            if question is None:
                summary.orphaned_count += 1
                continue

            summary.total_statistics += 1
            if metadata.repetitions > 0:
                summary.with_progress += 1
            if question.category:
                categories[question.category] += 1

        summary.categories = dict(categories)
        return summary

    def all_metadata(self) -> dict[str, ReviewMetadata]:
        return self._repo.load_all()

    def import_statistics(
        self,
        records: Iterable[ReviewMetadata],
        mode: ImportMode = "merge",
    ) -> bool:
        """
        Store imported schedules.

        Args:
            records: Metadata already matched against the current library.
            mode: "merge" overwrites matching entries; "replace" discards
                everything stored first.
        """
        all_metadata = {} if mode == "replace" else self._repo.load_all()
        count = 0
        for record in records:
            all_metadata[record.question_id] = record
            count += 1

        saved = self._repo.save_all(all_metadata)
        if saved:
            logger.info(f"Imported {count} review records ({mode})")
        else:
            logger.error("Failed to save imported review metadata")
        return saved
