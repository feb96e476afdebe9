from .core import FSRSEngine, as_utc
from .scheduler import MemoryModel, coerce_rating, schedule_review
from .step_ladder import Advance, Graduate, Repeat, Reset, decide_step

__all__ = [
    "FSRSEngine",
    "as_utc",
    "MemoryModel",
    "coerce_rating",
    "schedule_review",
    "Advance",
    "Graduate",
    "Repeat",
    "Reset",
    "decide_step",
]
