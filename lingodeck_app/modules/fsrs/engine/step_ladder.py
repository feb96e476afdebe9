"""
Step ladder for Learning and Relearning cards.

A card in a ladder state waits through a short list of minute steps before it
graduates to day-based review. Each decision is returned as a tagged value so
that no caller ever indexes the ladder directly.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Sequence, Union

from ..config import FSRSDefaultConfig
from ..exceptions import InvalidStepConfigError
from ..schemas import Rating


@dataclass(frozen=True)
class Reset:
    """Back to the first step."""
    minutes: int
    step_index: int = 0


@dataclass(frozen=True)
class Repeat:
    """Same step again."""
    step_index: int
    minutes: int


@dataclass(frozen=True)
class Advance:
    """On to the next step."""
    step_index: int
    minutes: int


@dataclass(frozen=True)
class Graduate:
    """Leave the ladder for day-based review."""
    scheduled_days: int


StepDecision = Union[Reset, Repeat, Advance, Graduate]


def advance_or_graduate(steps: Sequence[int], step_index: int) -> Union[Advance, Graduate]:
    next_index = step_index + 1
    if next_index >= len(steps):
        return Graduate(FSRSDefaultConfig.GOOD_GRADUATING_INTERVAL)
    return Advance(next_index, steps[next_index])


def decide_step(steps: Sequence[int], step_index: int, rating: Rating) -> StepDecision:
    """
    Move a card along ``steps`` for one rating.

    Again resets to the first step, Hard repeats the current one, Good
    advances (graduating past the last step) and Easy graduates at once.
    """
    if not steps:
        raise InvalidStepConfigError("step ladder must not be empty")

    rating = Rating(rating)
    if rating == Rating.Again:
        return Reset(steps[0])
    if rating == Rating.Easy:
        return Graduate(FSRSDefaultConfig.EASY_GRADUATING_INTERVAL)
    if rating == Rating.Good:
        return advance_or_graduate(steps, step_index)

    # Hard. A ladder shortened since the last review falls back to its last step.
    current = min(max(step_index, 0), len(steps) - 1)
    return Repeat(current, steps[current])
