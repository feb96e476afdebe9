"""
Scheduler - review scheduling for a single card.

Pure function, no database and no Flask context. The memory model proposes
the next difficulty, stability and lifecycle state. Cards that stay in
Learning or Relearning are then placed on the deck's step ladder instead of
taking the model's interval.
"""

from __future__ import annotations
import datetime
import logging
import math
from typing import Optional, Protocol

from ..exceptions import DomainViolationError, EngineCalculationError, InvalidRatingError, InvalidStepConfigError
from ..schemas import (
    LADDER_STATES,
    CardMemoryState,
    CardStateEnum,
    DeckStepConfig,
    ModelOutcome,
    Rating,
)
from ..config import FSRSDefaultConfig
from .core import as_utc, clamp_unit
from .step_ladder import Graduate, StepDecision, decide_step

logger = logging.getLogger(__name__)


class MemoryModel(Protocol):
    def next_state(self, card: CardMemoryState, rating: Rating, now: datetime.datetime) -> ModelOutcome:
        ...


def coerce_rating(rating) -> Rating:
    """Accept a Rating, an int or a string holding one. Bools and floats are rejected."""
    value = rating
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidRatingError(f"Rating must be 1-4, got {rating!r}") from None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRatingError(f"Rating must be an integer 1-4, got {rating!r}")
    try:
        return Rating(value)
    except ValueError:
        raise InvalidRatingError(f"Rating must be 1-4, got {rating!r}") from None


def _checked_card(card: CardMemoryState) -> CardMemoryState:
    """Reject out-of-domain values, clamping only difficulty drift."""
    try:
        state = CardStateEnum(int(card.lifecycle_state))
    except (TypeError, ValueError):
        raise DomainViolationError(f"Unknown lifecycle state {card.lifecycle_state!r}") from None

    if math.isnan(card.stability) or card.stability < 0:
        raise DomainViolationError(f"stability must be >= 0, got {card.stability}")
    if math.isnan(card.retrievability) or not 0.0 <= card.retrievability <= 1.0:
        raise DomainViolationError(f"retrievability must be in [0, 1], got {card.retrievability}")
    for name in ('elapsed_days', 'scheduled_days', 'step_index', 'reps', 'lapses'):
        if getattr(card, name) < 0:
            raise DomainViolationError(f"{name} must be >= 0, got {getattr(card, name)}")
    if card.scheduled_in_minutes is not None and card.scheduled_in_minutes < 0:
        raise DomainViolationError(f"scheduled_in_minutes must be >= 0, got {card.scheduled_in_minutes}")
    if math.isnan(card.difficulty):
        raise DomainViolationError("difficulty is NaN")

    difficulty = clamp_unit(card.difficulty)
    if difficulty != card.difficulty:
        logger.debug("Clamped stored difficulty %s to %s", card.difficulty, difficulty)

    return card.evolve(lifecycle_state=state, difficulty=difficulty)


def _checked_outcome(outcome: ModelOutcome) -> ModelOutcome:
    if math.isnan(outcome.stability) or outcome.stability < 0:
        raise EngineCalculationError(f"memory model returned stability {outcome.stability}")
    if math.isnan(outcome.retrievability) or not 0.0 <= outcome.retrievability <= 1.0:
        raise EngineCalculationError(f"memory model returned retrievability {outcome.retrievability}")
    if math.isnan(outcome.interval_days) or outcome.interval_days < 0:
        raise EngineCalculationError(f"memory model returned interval {outcome.interval_days}")
    if outcome.lifecycle_state == CardStateEnum.NEW:
        raise EngineCalculationError("memory model cannot send a reviewed card back to New")
    return outcome


def _decide(card: CardMemoryState, rating: Rating, outcome: ModelOutcome, step_config: DeckStepConfig) -> StepDecision:
    if outcome.lifecycle_state == CardStateEnum.REVIEW:
        if card.lifecycle_state in LADDER_STATES and rating == Rating.Easy:
            return Graduate(FSRSDefaultConfig.EASY_GRADUATING_INTERVAL)
        return Graduate(max(1, round(outcome.interval_days)))

    steps = step_config.steps_for(outcome.lifecycle_state)
    if card.lifecycle_state in (outcome.lifecycle_state, CardStateEnum.NEW):
        step_index = card.step_index
    else:
        step_index = 0
    return decide_step(steps, step_index, rating)


def schedule_review(
    card: CardMemoryState,
    rating,
    step_config: DeckStepConfig,
    *,
    model: MemoryModel,
    now: Optional[datetime.datetime] = None
) -> CardMemoryState:
    """
    Compute the card's state after one review.

    Args:
        card: Current memory state (left untouched)
        rating: Rating or its integer value (1-4)
        step_config: The deck's learning and relearning steps
        model: Memory model proposing difficulty, stability and state
        now: Review time (defaults to now, UTC)

    Returns:
        The successor CardMemoryState

    Raises:
        InvalidStepConfigError: step_config is not a DeckStepConfig
        InvalidRatingError: rating is not 1-4
        DomainViolationError: the card holds out-of-domain values
        EngineCalculationError: the memory model failed or misbehaved
    """
    if not isinstance(step_config, DeckStepConfig):
        raise InvalidStepConfigError(f"Expected a DeckStepConfig, got {type(step_config).__name__}")
    rating = coerce_rating(rating)
    card = _checked_card(card)
    now = as_utc(now) if now is not None else datetime.datetime.now(datetime.timezone.utc)

    outcome = _checked_outcome(model.next_state(card, rating, now))
    decision = _decide(card, rating, outcome, step_config)

    if isinstance(decision, Graduate):
        lifecycle_state = CardStateEnum.REVIEW
        scheduled_days = max(1, decision.scheduled_days)
        scheduled_in_minutes = None
        step_index = 0
    else:
        lifecycle_state = outcome.lifecycle_state
        scheduled_days = 0
        scheduled_in_minutes = decision.minutes
        step_index = decision.step_index

    return card.evolve(
        lifecycle_state=lifecycle_state,
        difficulty=clamp_unit(outcome.difficulty),
        stability=outcome.stability,
        retrievability=outcome.retrievability,
        elapsed_days=0,
        scheduled_days=scheduled_days,
        scheduled_in_minutes=scheduled_in_minutes,
        step_index=step_index,
        reps=card.reps + 1,
        lapses=card.lapses + 1 if rating == Rating.Again else card.lapses,
        last_reviewed_at=now,
    )
