"""
SM-2 spaced repetition scheduler.

Pure functions mapping (schedule state, answer quality) to a new schedule.
Based on the SuperMemo SM-2 algorithm:
https://www.supermemo.com/en/archives1990-2015/english/ol/sm2

Quality ratings:
    5: Perfect response
    4: Correct response after hesitation
    3: Correct response with serious difficulty
    2: Incorrect response; correct answer seemed easy to recall
    1: Incorrect response; correct answer remembered
    0: Complete blackout
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from recallkit.domain.constants import DEFAULT_EASE, MAX_QUALITY, MIN_EASE, PASSING_QUALITY
from recallkit.domain.models import ensure_aware, local_now


@dataclass(frozen=True)
class SM2State:
    ease_factor: float = DEFAULT_EASE
    interval: int = 0
    repetitions: int = 0


@dataclass(frozen=True)
class SM2Result:
    ease_factor: float
    interval: int
    repetitions: int
    next_review_date: datetime

    @property
    def state(self) -> SM2State:
        return SM2State(self.ease_factor, self.interval, self.repetitions)


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; schedules must round .5 up.
    return math.floor(value + 0.5)


def add_local_days(moment: datetime, days: int) -> datetime:
    """
    Add whole calendar days on the local wall clock.

    The time of day is kept across a DST change, so the result always lands
    on the local date ``days`` after ``moment``.
    """
    wall = ensure_aware(moment).astimezone().replace(tzinfo=None)
    return (wall + timedelta(days=days)).astimezone()


def calculate_sm2(state: SM2State, quality: int, now: datetime | None = None) -> SM2Result:
    """
    Compute the next review schedule.

    The ease factor is updated from the *original* ease and the clamped quality,
    for correct and incorrect answers alike. An incorrect answer schedules the
    item one day out rather than immediately.
    """
    q = max(0, min(MAX_QUALITY, quality))

    if q >= PASSING_QUALITY:
        if state.repetitions == 0:
            interval = 1
        elif state.repetitions == 1:
            interval = 6
        else:
            interval = round_half_up(state.interval * state.ease_factor)
        repetitions = state.repetitions + 1
    else:
        repetitions = 0
        interval = 1

    miss = MAX_QUALITY - q
    ease = max(MIN_EASE, state.ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))

    base = ensure_aware(now) if now else local_now()
    return SM2Result(
        ease_factor=ease,
        interval=interval,
        repetitions=repetitions,
        next_review_date=add_local_days(base, interval),
    )


def get_quality_rating(is_correct: bool, confidence: float | None = None) -> int:
    """
    Convert answer correctness (and optional 0-1 confidence) to SM-2 quality.

    Incorrect answers map to 0-2, correct answers to 3-5. Without a confidence
    estimate a correct answer counts as "correct after hesitation" (4).
    """
    if confidence is not None:
        confidence = max(0.0, min(1.0, confidence))

    if not is_correct:
        if confidence is not None:
            return round_half_up(confidence * 2)
        return 0

    if confidence is not None:
        return 3 + round_half_up(confidence * 2)
    return 4


def is_due(next_review_date: datetime, now: datetime | None = None) -> bool:
    current = ensure_aware(now) if now else local_now()
    return current >= ensure_aware(next_review_date)


def initial_state(now: datetime | None = None) -> SM2Result:
    """Schedule for a never-reviewed item: due immediately."""
    return SM2Result(
        ease_factor=DEFAULT_EASE,
        interval=0,
        repetitions=0,
        next_review_date=ensure_aware(now) if now else local_now(),
    )
