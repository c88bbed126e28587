"""
Question export/import in a versioned JSON envelope.

Envelope::

    {"version": "1.0", "exportDate": "<ISO8601>", "questionCount": N, "questions": [...]}

Import also accepts a bare array of questions (with a warning). Each record is
validated independently; one bad record never blocks the others.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from recallkit.domain.classification import QuestionKind, classify_raw_question
from recallkit.domain.constants import EXPORT_VERSION
from recallkit.domain.ids import generate_choice_id, generate_question_id
from recallkit.domain.models import Question, ensure_aware, local_now

logger = logging.getLogger(__name__)


@dataclass
class QuestionImportResult:
    success: bool = False
    questions: list[Question] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def build_questions_export(questions: list[Question], now: datetime | None = None) -> dict[str, Any]:
    exported_at = ensure_aware(now) if now else local_now()
    return {
        "version": EXPORT_VERSION,
        "exportDate": exported_at.isoformat(),
        "questionCount": len(questions),
        "questions": [q.to_json_dict() for q in questions],
    }


def export_questions_json(questions: list[Question], now: datetime | None = None) -> str:
    return json.dumps(build_questions_export(questions, now), indent=2, ensure_ascii=False)


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def validate_imported_question(raw: Any, index: int) -> list[str]:
    """
    Check one foreign question object.

    Returns:
        Messages prefixed with the 1-based record number; empty when valid.
    """
    prefix = f"Question {index + 1}"
    if not isinstance(raw, Mapping):
        return [f"{prefix}: Invalid question object"]

    errors: list[str] = []
    for name in ("id", "text", "explanation"):
        if not _non_empty_str(raw.get(name)):
            errors.append(f"{prefix}: Missing or invalid '{name}'")

    points = raw.get("points")
    if isinstance(points, bool) or not isinstance(points, int | float) or points < 1:
        errors.append(f"{prefix}: Missing or invalid 'points'")

    if not _non_empty_str(raw.get("difficulty")):
        errors.append(f"{prefix}: Missing or invalid 'difficulty'")

    choices = raw.get("choices")
    if not isinstance(choices, list) or not choices:
        errors.append(f"{prefix}: Missing or invalid 'choices' array")
        return errors

    if not all(isinstance(c, Mapping) and _non_empty_str(c.get("text")) for c in choices):
        errors.append(f"{prefix}: Invalid choice structure")

    has_correct = any(isinstance(c, Mapping) and c.get("isCorrect") is True for c in choices)
    if not has_correct and classify_raw_question(raw) is QuestionKind.REGULAR:
        errors.append(
            f"{prefix}: No correct answer marked (unless it's a sorting/fill-in-blank question)"
        )

    return errors


def _collect(records: list[Any], result: QuestionImportResult) -> None:
    for index, raw in enumerate(records):
        problems = validate_imported_question(raw, index)
        if problems:
            result.errors.extend(problems)
            continue
        try:
            result.questions.append(Question.model_validate(raw))
        except ValidationError as e:
            first = e.errors()[0]
            loc = ".".join(str(p) for p in first["loc"])
            result.errors.append(f"Question {index + 1}: Invalid '{loc}' ({first['msg']})")


def parse_imported_questions(json_string: str) -> QuestionImportResult:
    """
    Parse and validate an exported questions file.

    Malformed JSON yields a single error. Success means at least one question
    was accepted.
    """
    result = QuestionImportResult()

    try:
        data = json.loads(json_string)
    except json.JSONDecodeError as e:
        result.errors.append(f"JSON parse error: {e}")
        return result

    if isinstance(data, list):
        result.warnings.append("Imported plain array format (no version info)")
        _collect(data, result)
    elif isinstance(data, dict) and "version" in data and "questions" in data:
        if data["version"] != EXPORT_VERSION:
            result.warnings.append(
                f"Version mismatch: Expected {EXPORT_VERSION}, got {data['version']}"
            )
        if not isinstance(data["questions"], list):
            result.errors.append("Invalid format: questions must be an array")
            return result
        _collect(data["questions"], result)
    elif isinstance(data, dict):
        result.errors.append("Invalid format: Expected questions array or export object")
        return result
    else:
        result.errors.append("Invalid JSON format: Expected an object")
        return result

    result.success = len(result.questions) > 0
    logger.debug(
        f"[import] questions={len(result.questions)} errors={len(result.errors)} "
        f"warnings={len(result.warnings)}"
    )
    return result


def regenerate_question_ids(
    questions: list[Question], now: datetime | None = None
) -> list[Question]:
    """Give imported questions fresh IDs and timestamps to avoid collisions."""
    stamp = ensure_aware(now) if now else local_now()
    return [
        q.model_copy(
            update={
                "id": generate_question_id(),
                "choices": [c.model_copy(update={"id": generate_choice_id()}) for c in q.choices],
                "created_at": stamp,
                "updated_at": stamp,
            }
        )
        for q in questions
    ]
