class RecallkitError(Exception):
    """Base error for conditions the CLI reports to the user."""


class QuestionNotFoundError(RecallkitError):
    def __init__(self, question_id: str):
        super().__init__(f"Question not found: {question_id}")
        self.question_id = question_id


class InvalidQuestionError(RecallkitError):
    def __init__(self, question_id: str, problems: list[str]):
        super().__init__(f"Invalid question {question_id}: " + "; ".join(problems))
        self.question_id = question_id
        self.problems = problems
