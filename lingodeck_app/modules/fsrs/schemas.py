# File: lingodeck_app/modules/fsrs/schemas.py
import datetime
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Optional, Sequence, Tuple

from .config import FSRSDefaultConfig
from .exceptions import InvalidStepConfigError


class Rating(IntEnum):
    """Standard FSRS rating (1-4)."""
    Again = 1
    Hard = 2
    Good = 3
    Easy = 4


class CardStateEnum(IntEnum):
    """Card lifecycle state, stored as an integer."""
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


# States that are scheduled by the step ladder rather than in days
LADDER_STATES = (CardStateEnum.NEW, CardStateEnum.LEARNING, CardStateEnum.RELEARNING)


@dataclass(frozen=True)
class CardMemoryState:
    """Per-card memory state. The scheduler never mutates it, it returns a new one."""
    lifecycle_state: CardStateEnum = CardStateEnum.NEW
    difficulty: float = 0.0         # 0 (easy) .. 1 (hard)
    stability: float = 0.0          # days
    retrievability: float = 1.0
    elapsed_days: int = 0
    scheduled_days: int = 0
    scheduled_in_minutes: Optional[int] = None
    step_index: int = 0
    reps: int = 0
    lapses: int = 0
    last_reviewed_at: Optional[datetime.datetime] = None

    @classmethod
    def new(cls) -> "CardMemoryState":
        return cls()

    @property
    def queue(self) -> str:
        if self.lifecycle_state == CardStateEnum.NEW:
            return 'new'
        if self.lifecycle_state == CardStateEnum.REVIEW:
            return 'review'
        return 'learn'

    def due_at(self) -> Optional[datetime.datetime]:
        """When the card is next due, or None if it has never been reviewed."""
        if self.last_reviewed_at is None:
            return None
        if self.scheduled_in_minutes is not None:
            return self.last_reviewed_at + datetime.timedelta(minutes=self.scheduled_in_minutes)
        return self.last_reviewed_at + datetime.timedelta(days=self.scheduled_days)

    def evolve(self, **changes) -> "CardMemoryState":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            'state': int(self.lifecycle_state),
            'queue': self.queue,
            'difficulty': self.difficulty,
            'stability': self.stability,
            'retrievability': self.retrievability,
            'elapsed_days': self.elapsed_days,
            'scheduled_days': self.scheduled_days,
            'scheduled_in_minutes': self.scheduled_in_minutes,
            'step_index': self.step_index,
            'reps': self.reps,
            'lapses': self.lapses,
            'last_reviewed_at': self.last_reviewed_at.isoformat() if self.last_reviewed_at else None,
            'due_at': self.due_at().isoformat() if self.last_reviewed_at else None,
        }


@dataclass(frozen=True)
class DeckStepConfig:
    """Learning and relearning step ladders of a deck, in minutes."""
    learning_steps: Tuple[int, ...]
    relearning_steps: Tuple[int, ...]

    def __post_init__(self):
        object.__setattr__(self, 'learning_steps', _as_steps('learning_steps', self.learning_steps))
        object.__setattr__(self, 'relearning_steps', _as_steps('relearning_steps', self.relearning_steps))

    def steps_for(self, state: CardStateEnum) -> Tuple[int, ...]:
        if state == CardStateEnum.RELEARNING:
            return self.relearning_steps
        return self.learning_steps


def _as_steps(name: str, steps: Optional[Sequence[int]]) -> Tuple[int, ...]:
    if steps is None or isinstance(steps, (str, bytes)):
        raise InvalidStepConfigError(f"{name} must be a sequence of minutes, got {steps!r}")
    steps = tuple(steps)
    if not steps:
        raise InvalidStepConfigError(f"{name} must not be empty")
    for step in steps:
        if isinstance(step, bool) or not isinstance(step, int) or step <= 0:
            raise InvalidStepConfigError(f"{name} must hold positive integer minutes, got {step!r}")
    return steps


@dataclass(frozen=True)
class SchedulerParameters:
    """Fixed memory-model parameters, built once at startup."""
    desired_retention: float = FSRSDefaultConfig.FSRS_DESIRED_RETENTION
    maximum_interval: int = FSRSDefaultConfig.FSRS_MAX_INTERVAL
    enable_fuzz: bool = FSRSDefaultConfig.FSRS_ENABLE_FUZZ
    fuzz_threshold_days: float = FSRSDefaultConfig.FSRS_FUZZ_THRESHOLD
    fuzz_factor: float = FSRSDefaultConfig.FSRS_FUZZ_FACTOR
    weights: Tuple[float, ...] = field(default_factory=lambda: tuple(FSRSDefaultConfig.FSRS_GLOBAL_WEIGHTS))

    def __post_init__(self):
        if not 0.0 < self.desired_retention < 1.0:
            raise ValueError(f"desired_retention must be in (0, 1), got {self.desired_retention}")
        if self.maximum_interval < 1:
            raise ValueError(f"maximum_interval must be at least 1 day, got {self.maximum_interval}")
        if not 0.0 <= self.fuzz_factor < 1.0:
            raise ValueError(f"fuzz_factor must be in [0, 1), got {self.fuzz_factor}")
        object.__setattr__(self, 'weights', tuple(float(w) for w in self.weights))

    def evolve(self, **changes) -> "SchedulerParameters":
        return replace(self, **changes)


@dataclass(frozen=True)
class ModelOutcome:
    """What the memory model proposes for one rating."""
    difficulty: float
    stability: float
    retrievability: float
    lifecycle_state: CardStateEnum
    interval_days: float
