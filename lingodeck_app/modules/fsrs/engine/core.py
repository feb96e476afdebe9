from __future__ import annotations
import datetime
import logging
import random
from typing import Optional

from fsrs_rs_python import FSRS, MemoryState

from ..exceptions import EngineCalculationError
from ..schemas import (
    CardMemoryState,
    CardStateEnum,
    ModelOutcome,
    Rating,
    SchedulerParameters,
)

logger = logging.getLogger(__name__)

# FSRS works on difficulty 1..10, cards store it normalized to 0..1
FSRS_MIN_DIFFICULTY = 1.0
FSRS_MAX_DIFFICULTY = 10.0
MIN_STABILITY = 0.1


def clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


class FSRSEngine:
    """
    FSRS memory model backed by fsrs-rs-python.
    Pure Logic Layer: No Database, No Flask Context.
    """

    def __init__(self, parameters: Optional[SchedulerParameters] = None, rng: Optional[random.Random] = None):
        self.parameters = parameters or SchedulerParameters()
        self.fsrs = FSRS(parameters=list(self.parameters.weights))
        self._rng = rng or random.Random()

    @staticmethod
    def to_fsrs_difficulty(difficulty: float) -> float:
        span = FSRS_MAX_DIFFICULTY - FSRS_MIN_DIFFICULTY
        return FSRS_MIN_DIFFICULTY + span * clamp_unit(difficulty)

    @staticmethod
    def from_fsrs_difficulty(difficulty: float) -> float:
        span = FSRS_MAX_DIFFICULTY - FSRS_MIN_DIFFICULTY
        return clamp_unit((float(difficulty) - FSRS_MIN_DIFFICULTY) / span)

    def _to_memory_state(self, card: CardMemoryState):
        if card.lifecycle_state == CardStateEnum.NEW or (card.stability <= 0 and card.reps == 0):
            return None
        return MemoryState(
            stability=max(MIN_STABILITY, float(card.stability)),
            difficulty=self.to_fsrs_difficulty(card.difficulty)
        )

    @staticmethod
    def days_elapsed(card: CardMemoryState, now: datetime.datetime) -> int:
        """Whole days since the last review, falling back to the stored counter."""
        if card.last_reviewed_at is None:
            return max(0, int(card.elapsed_days))
        delta = as_utc(now) - as_utc(card.last_reviewed_at)
        return max(0, int(delta.total_seconds() // 86400))

    @staticmethod
    def next_lifecycle_state(current: CardStateEnum, rating: Rating) -> CardStateEnum:
        if current in (CardStateEnum.NEW, CardStateEnum.LEARNING):
            return CardStateEnum.REVIEW if rating == Rating.Easy else CardStateEnum.LEARNING
        if current == CardStateEnum.REVIEW:
            return CardStateEnum.RELEARNING if rating == Rating.Again else CardStateEnum.REVIEW
        # Relearning cards leave through the step ladder
        return CardStateEnum.RELEARNING

    def _bounded_interval(self, raw_interval: float) -> float:
        params = self.parameters
        interval = max(0.0, min(float(params.maximum_interval), raw_interval))
        if params.enable_fuzz and interval > params.fuzz_threshold_days:
            fuzz = self._rng.uniform(1.0 - params.fuzz_factor, 1.0 + params.fuzz_factor)
            interval = max(params.fuzz_threshold_days, interval * fuzz)
            interval = min(float(params.maximum_interval), interval)
        return interval

    @staticmethod
    def forecast_retrievability(stability: float, days: float) -> float:
        """Recall probability ``days`` after a review, on the 90% forgetting curve."""
        if days <= 0:
            return 1.0
        if stability <= 0:
            return 0.0
        try:
            return clamp_unit(0.9 ** (days / stability))
        except OverflowError:
            return 0.0

    def retention_at(self, card: CardMemoryState, now: datetime.datetime) -> float:
        """Calculate current retention probability."""
        if card.lifecycle_state == CardStateEnum.NEW:
            return 0.0
        if card.last_reviewed_at is None:
            return 1.0
        elapsed = (as_utc(now) - as_utc(card.last_reviewed_at)).total_seconds() / 86400.0
        return self.forecast_retrievability(card.stability, elapsed)

    def next_state(self, card: CardMemoryState, rating: Rating, now: datetime.datetime) -> ModelOutcome:
        """Run one FSRS step for ``rating`` and report the proposed memory state."""
        rating = Rating(rating)
        memory_state = self._to_memory_state(card)
        days = self.days_elapsed(card, now)

        try:
            next_states = self.fsrs.next_states(memory_state, self.parameters.desired_retention, days)
        except Exception as e:
            logger.error(f"[FSRS ENGINE] next_states error: {e}")
            raise EngineCalculationError(str(e)) from e

        rating_map = {
            Rating.Again: next_states.again,
            Rating.Hard: next_states.hard,
            Rating.Good: next_states.good,
            Rating.Easy: next_states.easy,
        }
        selected = rating_map[rating]

        interval = self._bounded_interval(float(selected.interval))
        stability = float(selected.memory.stability)

        return ModelOutcome(
            difficulty=self.from_fsrs_difficulty(selected.memory.difficulty),
            stability=stability,
            retrievability=self.forecast_retrievability(stability, interval),
            lifecycle_state=self.next_lifecycle_state(card.lifecycle_state, rating),
            interval_days=interval,
        )
