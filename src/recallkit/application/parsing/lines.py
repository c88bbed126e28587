"""
Line classification for the question markdown dialect.

Each physical line of a question block is offered to an ordered tuple of
classifiers. The first classifier that recognizes the line returns a
``ParsedLine`` tagged with its ``LineKind``; ``apply_line`` then folds it into
the block's ``BlockState``. Order matters: code blocks and explanation mode
swallow lines before any choice pattern sees them.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from recallkit.domain.constants import (
    BLANK_MARKER,
    CHECKMARK,
    DEFAULT_POINTS,
    EM_DASH,
    MAX_CHOICE_LETTER,
)
from recallkit.domain.models import QuestionChoice

from .results import ParseError

logger = logging.getLogger(__name__)

QUESTION_START_RE = re.compile(r"^\*\*Question\s+\d+", re.IGNORECASE)
HEADER_RE = re.compile(r"^\*\*Question\s+\d+(?P<rest>.*?)\*\*", re.IGNORECASE)
POINTS_RE = re.compile(r"\(\s*(\d+)\s*points?\b", re.IGNORECASE)
EXPLANATION_HEADER_RE = re.compile(r"^\*\*Explanation\s*:?\s*\*\*\s*:?\s*(.*)$", re.IGNORECASE)
NOISE_RE = re.compile(r"^(Options|Choices|Answers)\s*:?\s*$", re.IGNORECASE)
LETTERED_RE = re.compile(rf"^([A-{MAX_CHOICE_LETTER}])\.\s+(.+)$")
NUMBERED_RE = re.compile(r"^#(\d+)[.):]?\s+(.+)$")
BULLETED_RE = re.compile(r"^-\s+(.+)$")
INLINE_ANSWER_RE = re.compile(rf"^{CHECKMARK}\s*\*\*(.+?)\*\*\s*$")
PARENTHETICAL_RE = re.compile(r"^\(.*\)$")
CODE_FENCE = "```"


class LineKind(str, Enum):
    BLANK = "blank"
    HEADER = "header"
    NOISE = "noise"
    CODE_FENCE = "code_fence"
    CODE_LINE = "code_line"
    IMAGE = "image"
    EXPLANATION_START = "explanation_start"
    EXPLANATION_CONTINUATION = "explanation_continuation"
    LETTERED_CHOICE = "lettered_choice"
    NUMBERED_CHOICE = "numbered_choice"
    BULLETED_CHOICE = "bulleted_choice"
    INLINE_ANSWER = "inline_answer"
    PROMPT_TEXT = "prompt_text"
    IGNORED = "ignored"


class ExplanationMode(Enum):
    NONE = "none"
    DASH = "dash"  # em-dash: runs to the end of the block
    BLOCK = "block"  # **Explanation:** header: runs to the next blank line


@dataclass(frozen=True)
class ParsedLine:
    kind: LineKind
    line_no: int
    text: str = ""
    raw: str = ""
    label: str | None = None
    correct_order: int | None = None
    is_correct: bool = False
    points: int | None = None


@dataclass
class BlockState:
    """Mutable accumulator for one question block."""

    start_line: int
    points: int = DEFAULT_POINTS
    has_header: bool = False
    prompt: str = ""
    choices: list[QuestionChoice] = field(default_factory=list)
    explanation: str = ""
    explanation_mode: ExplanationMode = ExplanationMode.NONE
    in_code: bool = False
    code_open_line: int = 0
    code_lang: str = ""
    code_lines: list[str] = field(default_factory=list)
    issues: list[ParseError] = field(default_factory=list)

    def warn(self, line_no: int, message: str) -> None:
        self.issues.append(ParseError(line_no, message, "warning"))


def _join(existing: str, addition: str, sep: str = " ") -> str:
    if not addition:
        return existing
    return f"{existing}{sep}{addition}" if existing else addition


def split_checkmark(text: str) -> tuple[str, bool]:
    """
    Strip a trailing correctness checkmark from choice text.

    A parenthesized remark after the checkmark is kept as part of the text:
    ``"Paris ✅ (capital since 508)"`` -> ``("Paris (capital since 508)", True)``.
    """
    idx = text.find(CHECKMARK)
    if idx < 0:
        return text.strip(), False

    before = text[:idx].strip()
    after = text[idx + len(CHECKMARK) :].strip()
    if after and PARENTHETICAL_RE.match(after):
        return _join(before, after), True
    return before, True


def order_label(n: int) -> str:
    """Map a 1-based position to its display letter (1 -> A)."""
    if 1 <= n <= 26:
        return chr(64 + n)
    return str(n)


# ---------- Classifiers ----------

Classifier = Callable[[str, str, int, BlockState], ParsedLine | None]


def _code_content(line: str, raw: str, line_no: int, state: BlockState) -> ParsedLine | None:
    if not state.in_code:
        return None
    if line.startswith(CODE_FENCE):
        return ParsedLine(LineKind.CODE_FENCE, line_no, raw=raw)
    return ParsedLine(LineKind.CODE_LINE, line_no, raw=raw)


def _blank(line: str, raw: str, line_no: int, state: BlockState) -> ParsedLine | None:
    if line:
        return None
    return ParsedLine(LineKind.BLANK, line_no)


def _header(line: str, raw: str, line_no: int, state: BlockState) -> ParsedLine | None:
    m = HEADER_RE.match(line)
    if not m:
        return None
    points = DEFAULT_POINTS
    pm = POINTS_RE.search(m.group("rest"))
    if pm:
        value = int(pm.group(1))
        if value >= 1:
            points = value
    return ParsedLine(LineKind.HEADER, line_no, points=points)


def _explanation_header(
    line: str, raw: str, line_no: int, state: BlockState
) -> ParsedLine | None:
    m = EXPLANATION_HEADER_RE.match(line)
    if not m:
        return None
    return ParsedLine(LineKind.EXPLANATION_START, line_no, text=m.group(1).strip(), label="block")


def _explanation_continuation(
    line: str, raw: str, line_no: int, state: BlockState
) -> ParsedLine | None:
    if state.explanation_mode is ExplanationMode.NONE:
        return None
    return ParsedLine(LineKind.EXPLANATION_CONTINUATION, line_no, text=line)


def _noise(line: str, raw: str, line_no: int, state: BlockState) -> ParsedLine | None:
    if NOISE_RE.match(line):
        return ParsedLine(LineKind.NOISE, line_no)
    return None


def _code_fence(line: str, raw: str, line_no: int, state: BlockState) -> ParsedLine | None:
    if line.startswith(CODE_FENCE):
        return ParsedLine(LineKind.CODE_FENCE, line_no, text=line[len(CODE_FENCE) :].strip())
    return None


def _image(line: str, raw: str, line_no: int, state: BlockState) -> ParsedLine | None:
    if line.startswith("!["):
        return ParsedLine(LineKind.IMAGE, line_no)
    return None


def _dash_explanation(
    line: str, raw: str, line_no: int, state: BlockState
) -> ParsedLine | None:
    if not line.startswith(EM_DASH):
        return None
    return ParsedLine(
        LineKind.EXPLANATION_START, line_no, text=line[len(EM_DASH) :].strip(), label="dash"
    )


def _lettered_choice(
    line: str, raw: str, line_no: int, state: BlockState
) -> ParsedLine | None:
    m = LETTERED_RE.match(line)
    if not m:
        return None
    text, is_correct = split_checkmark(m.group(2))
    return ParsedLine(
        LineKind.LETTERED_CHOICE, line_no, text=text, label=m.group(1), is_correct=is_correct
    )


def _numbered_choice(
    line: str, raw: str, line_no: int, state: BlockState
) -> ParsedLine | None:
    m = NUMBERED_RE.match(line)
    if not m:
        return None
    order = int(m.group(1))
    if order < 1:
        return None
    text, is_correct = split_checkmark(m.group(2))
    return ParsedLine(
        LineKind.NUMBERED_CHOICE,
        line_no,
        text=text,
        label=order_label(order),
        correct_order=order,
        is_correct=is_correct,
    )


def _bulleted_choice(
    line: str, raw: str, line_no: int, state: BlockState
) -> ParsedLine | None:
    # A leading bullet before any prompt text belongs to the prompt.
    if not state.prompt:
        return None
    m = BULLETED_RE.match(line)
    if not m:
        return None
    text, is_correct = split_checkmark(m.group(1))
    return ParsedLine(LineKind.BULLETED_CHOICE, line_no, text=text, is_correct=is_correct)


def _inline_answer(line: str, raw: str, line_no: int, state: BlockState) -> ParsedLine | None:
    if state.choices or BLANK_MARKER not in state.prompt:
        return None
    m = INLINE_ANSWER_RE.match(line)
    if not m:
        return None
    return ParsedLine(LineKind.INLINE_ANSWER, line_no, text=m.group(1).strip())


def _prompt_text(line: str, raw: str, line_no: int, state: BlockState) -> ParsedLine | None:
    if state.choices or line.startswith(CHECKMARK):
        return None
    return ParsedLine(LineKind.PROMPT_TEXT, line_no, text=line)


CLASSIFIERS: tuple[Classifier, ...] = (
    _code_content,
    _blank,
    _header,
    _explanation_header,
    _explanation_continuation,
    _noise,
    _code_fence,
    _image,
    _dash_explanation,
    _lettered_choice,
    _numbered_choice,
    _bulleted_choice,
    _inline_answer,
    _prompt_text,
)


def classify_line(raw: str, line_no: int, state: BlockState) -> ParsedLine:
    line = raw.strip()
    for classifier in CLASSIFIERS:
        parsed = classifier(line, raw, line_no, state)
        if parsed is not None:
            return parsed
    return ParsedLine(LineKind.IGNORED, line_no, text=line)


# ---------- Handlers ----------


def _on_blank(state: BlockState, parsed: ParsedLine) -> None:
    if state.explanation_mode is ExplanationMode.BLOCK:
        state.explanation_mode = ExplanationMode.NONE


def _on_header(state: BlockState, parsed: ParsedLine) -> None:
    state.points = parsed.points or DEFAULT_POINTS
    state.has_header = True
    state.explanation_mode = ExplanationMode.NONE


def _on_skip(state: BlockState, parsed: ParsedLine) -> None:
    pass


def _on_code_fence(state: BlockState, parsed: ParsedLine) -> None:
    if not state.in_code:
        state.in_code = True
        state.code_open_line = parsed.line_no
        state.code_lang = parsed.text
        state.code_lines = []
        return
    close_code_block(state)


def close_code_block(state: BlockState) -> None:
    """Append the buffered code to the prompt as a fenced block."""
    body = "\n".join(state.code_lines)
    fenced = f"{CODE_FENCE}{state.code_lang}\n{body}\n{CODE_FENCE}"
    state.prompt = _join(state.prompt, fenced, sep="\n")
    state.in_code = False
    state.code_lang = ""
    state.code_lines = []


def _on_code_line(state: BlockState, parsed: ParsedLine) -> None:
    state.code_lines.append(parsed.raw)


def _on_explanation_start(state: BlockState, parsed: ParsedLine) -> None:
    state.explanation_mode = (
        ExplanationMode.BLOCK if parsed.label == "block" else ExplanationMode.DASH
    )
    state.explanation = _join(state.explanation, parsed.text)


def _on_explanation_continuation(state: BlockState, parsed: ParsedLine) -> None:
    state.explanation = _join(state.explanation, parsed.text)


def _on_choice(state: BlockState, parsed: ParsedLine) -> None:
    state.choices.append(
        QuestionChoice(
            label=parsed.label or "",
            text=parsed.text,
            is_correct=parsed.is_correct,
            correct_order=parsed.correct_order,
        )
    )


def _on_inline_answer(state: BlockState, parsed: ParsedLine) -> None:
    state.choices.append(QuestionChoice(label="A", text=parsed.text, is_correct=True))


def _on_prompt_text(state: BlockState, parsed: ParsedLine) -> None:
    state.prompt = _join(state.prompt, parsed.text)


def _on_ignored(state: BlockState, parsed: ParsedLine) -> None:
    logger.debug(f"line {parsed.line_no}: ignored {parsed.text!r}")
    state.warn(parsed.line_no, f"Ignored unrecognized line: {parsed.text[:50]}")


HANDLERS: dict[LineKind, Callable[[BlockState, ParsedLine], None]] = {
    LineKind.BLANK: _on_blank,
    LineKind.HEADER: _on_header,
    LineKind.NOISE: _on_skip,
    LineKind.IMAGE: _on_skip,
    LineKind.CODE_FENCE: _on_code_fence,
    LineKind.CODE_LINE: _on_code_line,
    LineKind.EXPLANATION_START: _on_explanation_start,
    LineKind.EXPLANATION_CONTINUATION: _on_explanation_continuation,
    LineKind.LETTERED_CHOICE: _on_choice,
    LineKind.NUMBERED_CHOICE: _on_choice,
    LineKind.BULLETED_CHOICE: _on_choice,
    LineKind.INLINE_ANSWER: _on_inline_answer,
    LineKind.PROMPT_TEXT: _on_prompt_text,
    LineKind.IGNORED: _on_ignored,
}


def apply_line(state: BlockState, parsed: ParsedLine) -> None:
    HANDLERS[parsed.kind](state, parsed)
