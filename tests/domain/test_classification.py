import pytest

from recallkit.domain.classification import (
    QuestionKind,
    classify_question,
    classify_raw_question,
    is_fill_in_blank,
    is_sorting,
)
from recallkit.domain.models import Question, QuestionChoice


def _question(text, *choices):
    return Question(text=text, choices=list(choices))


def test_regular(make_question):
    q = make_question()
    assert classify_question(q) is QuestionKind.REGULAR
    assert not is_sorting(q)
    assert not is_fill_in_blank(q)


def test_sorting_wins_over_blank_marker():
    q = _question("Order ___", QuestionChoice(text="only", correct_order=1))
    assert classify_question(q) is QuestionKind.SORTING
    assert is_sorting(q)


def test_fill_in_blank_needs_marker_and_single_choice():
    single = _question("Capital is ___", QuestionChoice(text="Paris", is_correct=True))
    assert is_fill_in_blank(single)

    no_marker = _question("Capital?", QuestionChoice(text="Paris", is_correct=True))
    assert classify_question(no_marker) is QuestionKind.REGULAR

    two_choices = _question(
        "Capital is ___",
        QuestionChoice(text="Paris", is_correct=True),
        QuestionChoice(text="Lyon"),
    )
    assert classify_question(two_choices) is QuestionKind.REGULAR


@pytest.mark.parametrize(
    "raw,kind",
    [
        ({"text": "Q", "choices": [{"text": "a", "correctOrder": 1}]}, QuestionKind.SORTING),
        ({"text": "Q ___", "choices": [{"text": "a"}]}, QuestionKind.FILL_IN_BLANK),
        ({"text": "Q", "choices": [{"text": "a"}, {"text": "b"}]}, QuestionKind.REGULAR),
        ({"text": None, "choices": "junk"}, QuestionKind.REGULAR),
        ({}, QuestionKind.REGULAR),
    ],
)
def test_classify_raw_question(raw, kind):
    assert classify_raw_question(raw) is kind
