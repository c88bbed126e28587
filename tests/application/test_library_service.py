import pytest

from recallkit.application.library_service import QuestionLibrary
from recallkit.domain.errors import InvalidQuestionError, QuestionNotFoundError
from recallkit.domain.models import Question, QuestionChoice
from recallkit.infrastructure.storage import KeyValueQuestionRepository, MemoryStore


def test_add_and_get(library, make_question):
    q1 = make_question("Q1")
    q2 = make_question("Q2")

    assert library.add([q1])
    assert library.add([q2])

    assert [q.text for q in library.all()] == ["Q1", "Q2"]
    assert library.ids() == {q1.id, q2.id}
    assert library.get(q2.id).to_json_dict() == q2.to_json_dict()


def test_get_unknown_raises(library):
    with pytest.raises(QuestionNotFoundError, match="Question not found: q_nope"):
        library.get("q_nope")


def test_update_relabels_choices_and_touches_timestamp(library, make_question, clock):
    q = make_question()
    library.add([q])
    clock.advance(hours=2)

    edited = q.model_copy(
        update={
            "text": "What is 3+3?",
            "choices": [
                QuestionChoice(label="X", text="6", is_correct=True),
                QuestionChoice(label="Y", text="7"),
            ],
        }
    )
    assert library.update(edited)

    stored = library.get(q.id)
    assert stored.text == "What is 3+3?"
    assert [c.label for c in stored.choices] == ["A", "B"]
    assert stored.updated_at == clock.now
    assert stored.created_at == q.created_at


def test_update_unknown_raises(library, make_question):
    with pytest.raises(QuestionNotFoundError):
        library.update(make_question())


def test_delete(library, make_question):
    q1 = make_question("Q1")
    q2 = make_question("Q2")
    library.replace([q1, q2])

    assert library.delete(q1.id)
    assert library.ids() == {q2.id}

    with pytest.raises(QuestionNotFoundError):
        library.delete(q1.id)


def test_replace_discards_existing(library, make_question):
    library.add([make_question("old")])
    fresh = make_question("fresh")
    library.replace([fresh])
    assert library.ids() == {fresh.id}


def test_save_failure_returns_false(make_question, caplog):
    library = QuestionLibrary(KeyValueQuestionRepository(MemoryStore(max_bytes=20)))

    assert not library.add([make_question()])
    assert library.all() == []
    assert "Storage quota may be exceeded" in caplog.text


def test_update_rejects_invalid_question(library, make_question):
    q = make_question()
    library.add([q])

    broken = q.model_copy(update={"choices": [QuestionChoice(text="4")]})
    with pytest.raises(InvalidQuestionError) as exc_info:
        library.update(broken)

    assert exc_info.value.problems == [
        "Question must have at least 2 choices",
        "Question must have at least one correct answer",
    ]
    assert library.get(q.id).choices == q.choices


def test_update_sorting_and_blank_questions(library):
    sorting = Question(
        text="Order",
        choices=[
            QuestionChoice(label="B", text="b", correct_order=2),
            QuestionChoice(label="A", text="a", correct_order=1),
        ],
    )
    blank = Question(text="Fill ___", choices=[QuestionChoice(text="x", is_correct=True)])
    library.add([sorting, blank])

    assert library.update(sorting.model_copy(update={"text": "Order these"}))
    assert library.update(blank.model_copy(update={"text": "Fill the ___"}))

    stored = library.get(sorting.id)
    assert [c.label for c in stored.choices] == ["B", "A"]
    assert library.get(blank.id).choices[0].label == "A"


def test_add_replaces_questions_with_stored_ids(library, make_question):
    first = make_question("Q1")
    second = make_question("Q2")
    library.add([first, second])

    edited = first.model_copy(update={"text": "Q1 edited"})
    fresh = make_question("Q3")
    assert library.add([edited, fresh])

    stored = library.all()
    assert [q.id for q in stored] == [first.id, second.id, fresh.id]
    assert stored[0].text == "Q1 edited"


def test_replace_keeps_ids_unique(library, make_question):
    q = make_question("Q1")
    library.replace([q, q.model_copy(update={"text": "Q1 again"})])

    [stored] = library.all()
    assert stored.text == "Q1 again"
