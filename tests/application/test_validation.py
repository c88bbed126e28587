from recallkit.application.parsing import relabel_choices, validate_question
from recallkit.domain.models import Question, QuestionChoice


def _choice(label, text="x", correct=False, order=None):
    return QuestionChoice(label=label, text=text, is_correct=correct, correct_order=order)


def test_valid_question(make_question):
    assert validate_question(make_question()) == []


def test_missing_text_and_too_few_choices():
    q = Question(text="  ", choices=[_choice("A", correct=True)])
    errors = validate_question(q)
    assert "Question text is required" in errors
    assert "Question must have at least 2 choices" in errors


def test_too_many_choices():
    choices = [_choice(chr(65 + i), correct=i == 0) for i in range(11)]
    errors = validate_question(Question(text="Q", choices=choices))
    assert errors == ["Question cannot have more than 10 choices"]


def test_no_correct_answer():
    q = Question(text="Q", choices=[_choice("A"), _choice("B")])
    assert validate_question(q) == ["Question must have at least one correct answer"]


def test_duplicate_label_and_empty_choice_text():
    q = Question(text="Q", choices=[_choice("A", correct=True), _choice("A", text=" ")])
    errors = validate_question(q)
    assert "Duplicate choice label: A" in errors
    assert "Choice A has no text" in errors


def test_relabel_choices_is_sequential():
    relabeled = relabel_choices([_choice("D"), _choice("Q"), _choice("")])
    assert [c.label for c in relabeled] == ["A", "B", "C"]


def test_relabel_keeps_sorting_labels():
    choices = [_choice("B", order=2), _choice("A", order=1)]
    assert [c.label for c in relabel_choices(choices)] == ["B", "A"]


def test_relabel_does_not_mutate_input():
    original = [_choice("Z")]
    relabel_choices(original)
    assert original[0].label == "Z"


def test_points_range(make_question):
    assert validate_question(make_question(points=10)) == []
    assert validate_question(make_question(points=11)) == ["Points must be between 1 and 10"]
    assert validate_question(make_question(points=0)) == ["Points must be between 1 and 10"]


def test_correct_answer_rule_can_be_skipped():
    q = Question(text="Order", choices=[_choice("A", order=1), _choice("B", order=2)])
    assert validate_question(q) == ["Question must have at least one correct answer"]
    assert validate_question(q, require_correct=False) == []
