"""Spaced-repetition state updates (a lightweight SM-2 variant).

Unlike canonical SM-2, the first successful review sets the interval to 1 day
(HARD) or 2 days (EASY), and later ones grow it geometrically by the ease.
Ease is clamped into [MIN_EASE, MAX_EASE].
"""
import logging
import math
from dataclasses import replace
from typing import Optional, Union

from wordloop.models.base import now_ms
from wordloop.models.srs_models import Grade, SchedulingState

logger = logging.getLogger(__name__)

MIN_EASE = 1.3
MAX_EASE = 3.0
FAIL_EASE_PENALTY = 0.2
HARD_EASE_PENALTY = 0.05
EASY_EASE_BONUS = 0.05
HARD_FIRST_INTERVAL = 1
EASY_FIRST_INTERVAL = 2
DAY_MS = 86_400_000


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up."""
    return int(math.floor(value + 0.5))


def clamp_ease(ease: float) -> float:
    """Keep ease inside [MIN_EASE, MAX_EASE]."""
    return min(MAX_EASE, max(MIN_EASE, ease))


def _grown_interval(state: SchedulingState, first_interval: int) -> int:
    if state.repetitions == 0:
        return first_interval
    return max(1, round_half_up(state.interval_days * state.ease))


def update(
    state: SchedulingState, grade: Union[Grade, int], now: Optional[int] = None
) -> SchedulingState:
    """Return the scheduling state that follows grading ``state`` with ``grade``.

    Args:
        state: Current scheduling state. Not modified.
        grade: One of Grade.FAIL, Grade.HARD, Grade.EASY (or 0, 3, 5).
        now: Review time in epoch milliseconds. Defaults to the wall clock.

    Raises:
        InvalidGrade: If ``grade`` is not 0, 3 or 5.
    """
    grade = Grade.parse(grade)
    if now is None:
        now = now_ms()

    if grade == Grade.FAIL:
        repetitions = 0
        interval = 1
        lapses = state.lapses + 1
        ease = clamp_ease(state.ease - FAIL_EASE_PENALTY)
    elif grade == Grade.HARD:
        repetitions = state.repetitions + 1
        interval = _grown_interval(state, HARD_FIRST_INTERVAL)
        lapses = state.lapses
        ease = clamp_ease(state.ease - HARD_EASE_PENALTY)
    else:
        repetitions = state.repetitions + 1
        interval = _grown_interval(state, EASY_FIRST_INTERVAL)
        lapses = state.lapses
        ease = clamp_ease(state.ease + EASY_EASE_BONUS)

    logger.debug(
        f"SRS update grade={grade.name}: ease {state.ease:.2f}->{ease:.2f}, "
        f"interval {state.interval_days}->{interval}, reps {state.repetitions}->{repetitions}"
    )
    return replace(
        state,
        ease=ease,
        interval_days=interval,
        repetitions=repetitions,
        lapses=lapses,
        due_at=now + interval * DAY_MS,
        last_reviewed_at=now,
    )
