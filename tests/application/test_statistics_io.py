import json
from datetime import timedelta

from recallkit.application.statistics_io import (
    QuestionStatistics,
    build_statistics_export,
    export_statistics_json,
    parse_imported_statistics,
    validate_imported_statistic,
)
from recallkit.domain.models import ReviewMetadata


def _stat(question_id="q_1", **overrides):
    raw = {
        "questionId": question_id,
        "questionText": "What is 2+2?",
        "easinessFactor": 2.36,
        "interval": 6,
        "repetitions": 2,
        "nextReviewDate": "2024-03-16T09:30:00+01:00",
        "lastReviewed": "2024-03-10T09:30:00+01:00",
    }
    raw.update(overrides)
    return raw


def _envelope(*stats):
    return json.dumps({"version": "1.0", "statistics": list(stats)})


def test_export_skips_orphaned_records(make_question, clock):
    q = make_question(category="Math")
    metadata = {
        q.id: ReviewMetadata(
            question_id=q.id,
            interval=1,
            repetitions=1,
            next_review_date=clock.now + timedelta(days=1),
            last_reviewed=clock.now,
        ),
        "q_gone": ReviewMetadata(question_id="q_gone", next_review_date=clock.now),
    }

    envelope = build_statistics_export(metadata, [q], clock.now)

    assert envelope["version"] == "1.0"
    assert envelope["statisticsCount"] == 1
    [stat] = envelope["statistics"]
    assert stat["questionId"] == q.id
    assert stat["questionText"] == q.text
    assert stat["category"] == "Math"
    assert stat["nextReviewDate"] == "2024-03-11T09:30:00+01:00"


def test_round_trip(make_question, review_service):
    q = make_question()
    review_service.record_answer(q.id, is_correct=True)
    exported = export_statistics_json(review_service.all_metadata(), [q])

    result = parse_imported_statistics(exported, {q.id})

    assert result.success
    assert result.errors == []
    assert result.matched_count == 1
    assert result.statistics[0].to_metadata() == review_service.get_metadata(q.id)


def test_unmatched_records_are_excluded():
    result = parse_imported_statistics(_envelope(_stat("q_1"), _stat("q_2")), {"q_1"})

    assert result.success
    assert [s.question_id for s in result.statistics] == ["q_1"]
    assert result.matched_count == 1
    assert result.unmatched_count == 1
    assert result.warnings == [
        'Question not found for statistic 2: "What is 2+2?" (ID: q_2)'
    ]


def test_nothing_matched_warns():
    result = parse_imported_statistics(_envelope(_stat("q_2")), {"q_1"})
    assert result.success
    assert result.statistics == []
    assert "No statistics matched any questions in your current library" in result.warnings


def test_invalid_records_are_reported():
    result = parse_imported_statistics(
        _envelope(_stat(easinessFactor=3.1), _stat(interval=1.5)), {"q_1"}
    )
    assert not result.success
    assert result.errors[0] == "Statistic 1: Invalid easinessFactor (must be 1.3-2.5)"
    assert result.errors[1].startswith("Statistic 2: Invalid interval")


def test_structural_failures():
    assert parse_imported_statistics("{", set()).errors[0].startswith("Failed to parse JSON")
    assert parse_imported_statistics("[]", set()).errors == [
        "Invalid JSON structure: Expected an object"
    ]
    missing = parse_imported_statistics('{"version": "1.0"}', set())
    assert missing.errors == ["Invalid JSON structure: Missing or invalid statistics array"]


def test_missing_version_warns():
    result = parse_imported_statistics(json.dumps({"statistics": [_stat()]}), {"q_1"})
    assert "Missing or invalid version field" in result.warnings
    assert result.matched_count == 1


def test_validate_imported_statistic_messages():
    raw = _stat(
        questionId="",
        interval=-1,
        repetitions="2",
        nextReviewDate="tomorrow",
        lastReviewed=5,
    )
    assert validate_imported_statistic(raw, 0) == [
        "Statistic 1: Missing or invalid questionId",
        "Statistic 1: Invalid interval (must be >= 0)",
        "Statistic 1: Invalid repetitions (must be >= 0)",
        "Statistic 1: Invalid nextReviewDate format",
        "Statistic 1: Invalid lastReviewed",
    ]
    assert validate_imported_statistic(_stat(nextReviewDate=None), 0) == [
        "Statistic 1: Invalid nextReviewDate"
    ]


def test_to_metadata():
    stat = QuestionStatistics.model_validate(_stat())
    metadata = stat.to_metadata()
    assert metadata.question_id == "q_1"
    assert metadata.interval == 6
    assert not metadata.is_new
