"""
Statistics (review metadata) export/import.

Envelope::

    {"version": "1.0", "exportDate": ..., "statisticsCount": N, "statistics": [...]}

Records are matched to the current library by ``questionId``; records for
unknown questions are counted and excluded so an import never creates
orphaned metadata.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from recallkit.domain.constants import EXPORT_VERSION, MAX_IMPORT_EASE, MIN_EASE
from recallkit.domain.models import Question, ReviewMetadata, ensure_aware, local_now

logger = logging.getLogger(__name__)


class QuestionStatistics(BaseModel):
    """Exported schedule of one question, with its text for human readability."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question_id: str
    category: str | None = None
    question_text: str = ""
    easiness_factor: float
    interval: int
    repetitions: int
    next_review_date: datetime
    last_reviewed: datetime | None = None

    def to_metadata(self) -> ReviewMetadata:
        return ReviewMetadata(
            question_id=self.question_id,
            easiness_factor=self.easiness_factor,
            interval=self.interval,
            repetitions=self.repetitions,
            next_review_date=self.next_review_date,
            last_reviewed=self.last_reviewed,
        )


@dataclass
class StatisticsImportResult:
    success: bool = False
    statistics: list[QuestionStatistics] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    matched_count: int = 0
    unmatched_count: int = 0


def build_statistics_export(
    metadata: Mapping[str, ReviewMetadata],
    questions: list[Question],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Export review metadata, skipping records whose question was deleted."""
    by_id = {q.id: q for q in questions}
    statistics = []
    for record in metadata.values():
        question = by_id.get(record.question_id)
        if question is None:
            continue
        stat = QuestionStatistics(
            question_id=record.question_id,
            category=question.category,
            question_text=question.text,
            easiness_factor=record.easiness_factor,
            interval=record.interval,
            repetitions=record.repetitions,
            next_review_date=record.next_review_date,
            last_reviewed=record.last_reviewed,
        )
        statistics.append(stat.model_dump(mode="json", by_alias=True, exclude_none=True))

    exported_at = ensure_aware(now) if now else local_now()
    return {
        "version": EXPORT_VERSION,
        "exportDate": exported_at.isoformat(),
        "statisticsCount": len(statistics),
        "statistics": statistics,
    }


def export_statistics_json(
    metadata: Mapping[str, ReviewMetadata],
    questions: list[Question],
    now: datetime | None = None,
) -> str:
    return json.dumps(
        build_statistics_export(metadata, questions, now), indent=2, ensure_ascii=False
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _parses_as_date(value: str) -> bool:
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def validate_imported_statistic(raw: Any, index: int) -> list[str]:
    prefix = f"Statistic {index + 1}"
    if not isinstance(raw, Mapping):
        return [f"{prefix}: Invalid object"]

    errors: list[str] = []
    question_id = raw.get("questionId")
    if not isinstance(question_id, str) or not question_id:
        errors.append(f"{prefix}: Missing or invalid questionId")

    ease = raw.get("easinessFactor")
    if not _is_number(ease) or ease < MIN_EASE or ease > MAX_IMPORT_EASE:
        errors.append(f"{prefix}: Invalid easinessFactor (must be {MIN_EASE}-{MAX_IMPORT_EASE})")

    interval = raw.get("interval")
    if not _is_number(interval) or interval < 0:
        errors.append(f"{prefix}: Invalid interval (must be >= 0)")

    repetitions = raw.get("repetitions")
    if not _is_number(repetitions) or repetitions < 0:
        errors.append(f"{prefix}: Invalid repetitions (must be >= 0)")

    next_review = raw.get("nextReviewDate")
    if not isinstance(next_review, str):
        errors.append(f"{prefix}: Invalid nextReviewDate")
    elif not _parses_as_date(next_review):
        errors.append(f"{prefix}: Invalid nextReviewDate format")

    last_reviewed = raw.get("lastReviewed")
    if last_reviewed is not None and (
        not isinstance(last_reviewed, str) or not _parses_as_date(last_reviewed)
    ):
        errors.append(f"{prefix}: Invalid lastReviewed")

    return errors


def parse_imported_statistics(json_string: str, question_ids: set[str]) -> StatisticsImportResult:
    """
    Parse a statistics export and match it against the current library.

    Args:
        json_string: File contents.
        question_ids: IDs of the questions currently in the library.
    """
    result = StatisticsImportResult()

    try:
        data = json.loads(json_string)
    except json.JSONDecodeError as e:
        result.errors.append(f"Failed to parse JSON: {e}")
        return result

    if not isinstance(data, dict):
        result.errors.append("Invalid JSON structure: Expected an object")
        return result

    if not isinstance(data.get("version"), str):
        result.warnings.append("Missing or invalid version field")

    records = data.get("statistics")
    if not isinstance(records, list):
        result.errors.append("Invalid JSON structure: Missing or invalid statistics array")
        return result

    for index, raw in enumerate(records):
        problems = validate_imported_statistic(raw, index)
        if problems:
            result.errors.extend(problems)
            continue

        try:
            stat = QuestionStatistics.model_validate(raw)
        except ValidationError as e:
            first = e.errors()[0]
            loc = ".".join(str(p) for p in first["loc"])
            result.errors.append(f"Statistic {index + 1}: Invalid {loc} ({first['msg']})")
            continue

        if stat.question_id not in question_ids:
            result.unmatched_count += 1
            result.warnings.append(
                f'Question not found for statistic {index + 1}: "{stat.question_text}" '
                f"(ID: {stat.question_id})"
            )
            continue

        result.matched_count += 1
        result.statistics.append(stat)

    result.success = bool(result.statistics) or not result.errors
    if not result.statistics and not result.errors:
        result.warnings.append("No statistics matched any questions in your current library")

    logger.debug(
        f"[import] statistics matched={result.matched_count} "
        f"unmatched={result.unmatched_count} errors={len(result.errors)}"
    )
    return result
