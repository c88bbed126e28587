from dataclasses import dataclass, field
from typing import Literal

from recallkit.domain.models import Question

Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class ParseError:
    """
    A problem found while parsing.

    Attributes:
        line: 1-based physical line (best effort); 0 when not attributable.
        message: Human-readable description.
        severity: "error" for rejected input, "warning" for recoverable oddities.
    """

    line: int
    message: str
    severity: Severity = "error"


@dataclass
class ParseResult:
    questions: list[Question] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ParseError]:
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def has_errors(self) -> bool:
        return any(e.severity == "error" for e in self.errors)
