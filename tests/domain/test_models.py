from datetime import datetime, timezone

from recallkit.domain.models import Difficulty, Question, QuestionChoice, ReviewMetadata


def test_ids_are_prefixed_and_unique():
    a = Question(text="a")
    b = Question(text="b")
    assert a.id.startswith("q_")
    assert a.id != b.id
    assert QuestionChoice(text="x").id.startswith("c_")


def test_defaults():
    q = Question(text="Q")
    assert q.points == 1
    assert q.difficulty is Difficulty.MEDIUM
    assert q.choices == []
    assert q.explanation == ""
    assert q.created_at.tzinfo is not None


def test_json_dict_uses_camel_case_and_omits_none():
    choice = QuestionChoice(id="c_1", label="A", text="x", is_correct=True)
    q = Question(
        id="q_1",
        text="Q",
        choices=[choice],
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )

    data = q.to_json_dict()

    assert data["createdAt"] == "2024-01-01T00:00:00Z"
    assert data["difficulty"] == "medium"
    assert data["choices"] == [{"id": "c_1", "label": "A", "text": "x", "isCorrect": True}]
    assert "category" not in data
    assert "tags" not in data


def test_accepts_camel_case_input():
    metadata = ReviewMetadata.model_validate(
        {
            "questionId": "q_1",
            "easinessFactor": 2.1,
            "interval": 3,
            "repetitions": 2,
            "nextReviewDate": "2024-01-04T00:00:00+00:00",
        }
    )
    assert metadata.question_id == "q_1"
    assert metadata.is_new
    assert metadata.next_review_date == datetime(2024, 1, 4, tzinfo=timezone.utc)


def test_naive_datetimes_become_aware():
    metadata = ReviewMetadata(question_id="q", next_review_date=datetime(2024, 1, 1, 12))
    assert metadata.next_review_date.tzinfo is not None
