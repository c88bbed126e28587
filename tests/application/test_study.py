import pytest

from recallkit.application.study import (
    StudyResponse,
    correct_answer_text,
    correct_sequence,
    grade_answer,
    normalize_answer,
)
from recallkit.domain.models import Question, QuestionChoice


@pytest.fixture
def sorting_question():
    return Question(
        text="Order by size",
        choices=[
            QuestionChoice(label="B", text="Dog", correct_order=2),
            QuestionChoice(label="A", text="Mouse", correct_order=1),
            QuestionChoice(label="C", text="Whale", correct_order=3),
        ],
    )


def _blank(answer: str) -> Question:
    return Question(
        text="Fill in ___",
        choices=[QuestionChoice(label="A", text=answer, is_correct=True)],
    )


def test_regular_question_requires_exact_selection(make_question):
    q = make_question()
    a, b = q.choices

    assert grade_answer(q, StudyResponse(selected_ids={b.id}))
    assert not grade_answer(q, StudyResponse(selected_ids={a.id}))
    assert not grade_answer(q, StudyResponse(selected_ids={a.id, b.id}))
    assert not grade_answer(q, StudyResponse())
    assert correct_answer_text(q) == "B. 4"


def test_multi_answer_question():
    q = Question(
        text="Primes",
        choices=[
            QuestionChoice(label="A", text="2", is_correct=True),
            QuestionChoice(label="B", text="3", is_correct=True),
            QuestionChoice(label="C", text="4"),
        ],
    )
    two, three, _ = q.choices
    assert grade_answer(q, StudyResponse(selected_ids={two.id, three.id}))
    assert not grade_answer(q, StudyResponse(selected_ids={two.id}))
    assert correct_answer_text(q) == "A. 2, B. 3"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Paris", "paris"),
        ("  **Paris**. ", "paris"),
        ("New   York", "new york"),
        ("`x`", "x"),
    ],
)
def test_normalize_answer(raw, expected):
    assert normalize_answer(raw) == expected


@pytest.mark.parametrize("typed", ["Paris", "paris", " PARIS. ", "**Paris**"])
def test_fill_in_blank_accepts_normalized_answers(typed):
    assert grade_answer(_blank("Paris"), StudyResponse(typed=typed))


def test_fill_in_blank_rejects_wrong_answer():
    assert not grade_answer(_blank("Paris"), StudyResponse(typed="Lyon"))
    assert not grade_answer(_blank("Paris"), StudyResponse(typed=""))


def test_fill_in_blank_with_several_blanks():
    q = _blank("100, Celsius")
    assert grade_answer(q, StudyResponse(typed="100, celsius"))
    assert grade_answer(q, StudyResponse(typed="100,Celsius"))
    assert not grade_answer(q, StudyResponse(typed="100"))
    assert correct_answer_text(q) == "100, Celsius"


def test_sorting_question(sorting_question):
    dog, mouse, whale = sorting_question.choices

    assert correct_sequence(sorting_question) == [mouse.id, dog.id, whale.id]
    assert grade_answer(sorting_question, StudyResponse(ordered_ids=[mouse.id, dog.id, whale.id]))
    assert not grade_answer(
        sorting_question, StudyResponse(ordered_ids=[dog.id, mouse.id, whale.id])
    )
    assert correct_answer_text(sorting_question) == "Mouse -> Dog -> Whale"
