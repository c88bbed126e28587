"""
Markdown question parser.

Expected format::

    **Question 1 (1 point)**
    Which of the following...?
    A. Option A
    B. Option B ✅
    C. Option C
    — Explanation text here

Blocks are separated by a ``---`` line or by the next ``**Question N`` header.
The parser never raises on malformed input: every problem becomes a
``ParseError`` and well-formed blocks are still returned.
"""

import logging
import re
from dataclasses import dataclass, field

from recallkit.domain.classification import QuestionKind, classify_question
from recallkit.domain.constants import BLANK_MARKER, CHECKMARK, QUESTION_PREVIEW_LEN
from recallkit.domain.models import Difficulty, Question, QuestionChoice, local_now

from .lines import QUESTION_START_RE, BlockState, apply_line, classify_line, close_code_block
from .results import ParseError, ParseResult
from .validation import relabel_choices

logger = logging.getLogger(__name__)

SEPARATOR_RE = re.compile(r"^-{3,}$")
BOLD_RE = re.compile(r"\*\*(.+?)\*\*")


@dataclass
class Block:
    """Raw lines of one question, with their 1-based physical line numbers."""

    lines: list[tuple[int, str]] = field(default_factory=list)

    @property
    def start_line(self) -> int:
        return self.lines[0][0] if self.lines else 0

    def has_content(self) -> bool:
        return any(raw.strip() for _, raw in self.lines)

    def trimmed(self) -> "Block":
        lines = list(self.lines)
        while lines and not lines[0][1].strip():
            lines.pop(0)
        while lines and not lines[-1][1].strip():
            lines.pop()
        return Block(lines)


def segment_blocks(text: str) -> list[Block]:
    """
    Split raw text into question blocks.

    A block ends at a separator line (three or more hyphens) or right before a
    ``**Question N`` header when the current block already has content.
    Separators and headers inside fenced code are ordinary lines.
    """
    blocks: list[Block] = []
    current = Block()
    in_code = False

    for i, raw in enumerate(text.split("\n"), start=1):
        raw = raw.rstrip("\r")
        line = raw.strip()

        if not in_code and SEPARATOR_RE.match(line):
            blocks.append(current)
            current = Block()
            continue

        if not in_code and QUESTION_START_RE.match(line) and current.has_content():
            blocks.append(current)
            current = Block()

        if line.startswith("```"):
            in_code = not in_code
        current.lines.append((i, raw))

    blocks.append(current)
    return [b.trimmed() for b in blocks if b.has_content()]


def _preview(text: str) -> str:
    return text[:QUESTION_PREVIEW_LEN]


def synthesize_blanks(prompt: str) -> tuple[str, QuestionChoice]:
    """
    Turn every bold span into a blank marker.

    The bold contents become the single correct answer, comma-joined in
    reading order.
    """
    answers = [m.strip() for m in BOLD_RE.findall(prompt)]
    blanked = BOLD_RE.sub(BLANK_MARKER, prompt)
    choice = QuestionChoice(label="A", text=", ".join(answers), is_correct=True)
    return blanked, choice


def true_false_choices() -> list[QuestionChoice]:
    return [
        QuestionChoice(label="A", text="True", is_correct=True),
        QuestionChoice(label="B", text="False", is_correct=False),
    ]


def _synthesize_choices(prompt: str) -> tuple[str, list[QuestionChoice]]:
    """Derive choices for a prompt that listed none."""
    if BOLD_RE.search(prompt) and CHECKMARK not in prompt:
        blanked, choice = synthesize_blanks(prompt)
        return blanked, [choice]

    if prompt.endswith(CHECKMARK):
        stripped = prompt[: -len(CHECKMARK)].rstrip()
        if BOLD_RE.search(stripped):
            blanked, choice = synthesize_blanks(stripped)
            return blanked, [choice]
        return stripped, true_false_choices()

    return prompt, []


def _sorting_problem(choices: list[QuestionChoice]) -> str | None:
    orders = [c.correct_order for c in choices]
    if any(o is None for o in orders):
        return "mixes numbered (#n) and unnumbered choices"
    expected = set(range(1, len(choices) + 1))
    if len(set(orders)) != len(orders):
        return "has duplicate #n positions"
    if set(orders) != expected:
        return f"positions must run from #1 to #{len(choices)} without gaps"
    return None


def build_question(state: BlockState) -> tuple[Question | None, list[ParseError]]:
    """Finish a block: synthesize choices, check invariants, build the Question."""
    issues = list(state.issues)
    line = state.start_line

    if state.in_code:
        issues.append(ParseError(state.code_open_line, "Unclosed code block", "warning"))
        close_code_block(state)

    prompt = state.prompt.strip()
    if not prompt:
        issues.append(ParseError(line, "Block has no question text", "warning"))
        return None, issues

    choices = list(state.choices)
    if not choices:
        prompt, choices = _synthesize_choices(prompt)

    if not choices:
        issues.append(
            ParseError(
                line,
                f'Question "{_preview(prompt)}..." has no answer choices',
                "warning",
            )
        )
        return None, issues

    now = local_now()
    question = Question(
        text=prompt,
        points=state.points,
        difficulty=Difficulty.MEDIUM,
        choices=choices,
        explanation=state.explanation.strip(),
        created_at=now,
        updated_at=now,
    )

    kind = classify_question(question)
    if kind is QuestionKind.SORTING:
        problem = _sorting_problem(choices)
        if problem:
            issues.append(
                ParseError(line, f'Sorting question "{_preview(prompt)}..." {problem}')
            )
            return None, issues
        return question, issues

    if kind is QuestionKind.REGULAR and not any(c.is_correct for c in choices):
        issues.append(
            ParseError(
                line,
                f'Question "{_preview(prompt)}..." must have at least one correct answer '
                f"(marked with {CHECKMARK})",
            )
        )
        return None, issues

    question.choices = relabel_choices(choices)
    return question, issues


def parse_block(block: Block) -> tuple[Question | None, list[ParseError]]:
    state = BlockState(start_line=block.start_line)
    for line_no, raw in block.lines:
        apply_line(state, classify_line(raw, line_no, state))
    return build_question(state)


def parse_questions(text: str) -> ParseResult:
    """
    Parse questions from markdown.

    Args:
        text: Raw markdown containing one or more question blocks.

    Returns:
        ParseResult with every question that could be built and all errors and
        warnings, in input order.
    """
    result = ParseResult()

    if not text or not text.strip():
        result.errors.append(ParseError(0, "Input is empty"))
        return result

    blocks = segment_blocks(text)
    for block in blocks:
        question, issues = parse_block(block)
        result.errors.extend(issues)
        if question is not None:
            result.questions.append(question)

    logger.debug(
        f"[parser] blocks={len(blocks)} questions={len(result.questions)} "
        f"issues={len(result.errors)}"
    )
    return result
