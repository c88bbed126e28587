from .parser import parse_questions, segment_blocks
from .results import ParseError, ParseResult
from .validation import relabel_choices, validate_question

__all__ = [
    "parse_questions",
    "segment_blocks",
    "ParseError",
    "ParseResult",
    "relabel_choices",
    "validate_question",
]
