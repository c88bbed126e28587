import time
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from recallkit.application.library_service import QuestionLibrary
from recallkit.application.review_service import ReviewService
from recallkit.domain.models import Question, QuestionChoice
from recallkit.infrastructure.storage import (
    KeyValueQuestionRepository,
    KeyValueReviewRepository,
    MemoryStore,
)

FIXED_NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone(timedelta(hours=1)))


class FakeClock:
    """Manually advanced clock for scheduling tests."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def review_service(store, clock):
    return ReviewService(KeyValueReviewRepository(store), clock=clock)


@pytest.fixture
def library(store, clock):
    return QuestionLibrary(KeyValueQuestionRepository(store), clock=clock)


def _make_question(text: str = "What is 2+2?", qid: str | None = None, **kwargs) -> Question:
    choices = kwargs.pop(
        "choices",
        [
            QuestionChoice(label="A", text="3"),
            QuestionChoice(label="B", text="4", is_correct=True),
        ],
    )
    if qid is not None:
        kwargs["id"] = qid
    return Question(text=text, choices=choices, explanation="Basic math.", **kwargs)


@pytest.fixture
def make_question():
    return _make_question


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config files
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "RECALLKIT_DATA_DIR",
        "RECALLKIT_STORE_FILE",
        "RECALLKIT_MAX_STORE_BYTES",
        "RECALLKIT_VERBOSE",
    ):
        monkeypatch.delenv(var, raising=False)
    return home


def _apply_tz(monkeypatch, name: str) -> None:
    monkeypatch.setenv("TZ", name)
    time.tzset()


@pytest.fixture(autouse=True)
def utc_local_time(monkeypatch):
    """Pins the process local time zone to UTC; ``local_tz`` switches it."""
    if not hasattr(time, "tzset"):
        yield
        return
    _apply_tz(monkeypatch, "UTC")
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture
def local_tz(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")

    def switch(name: str) -> None:
        try:
            ZoneInfo(name)
        except ZoneInfoNotFoundError:
            pytest.skip(f"time zone data for {name} is not installed")
        _apply_tz(monkeypatch, name)

    return switch
