"""In-memory queue of the cards in one study session."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from lingodeck_app.modules.fsrs.engine import coerce_rating
from lingodeck_app.modules.fsrs.schemas import Rating

CORRECT_RATINGS = (Rating.Good, Rating.Easy)


class StudyQueue:
    """
    Ordered card ids plus a cursor.

    Again sends the current card to the back of the queue so it comes round
    again in the same session; any other rating moves on to the next card.
    """

    def __init__(
        self,
        card_ids: Iterable[int],
        index: int = 0,
        cards_studied: int = 0,
        correct_responses: int = 0
    ):
        self.card_ids: List[int] = [int(card_id) for card_id in card_ids]
        self.index = index
        self.cards_studied = cards_studied
        self.correct_responses = correct_responses

    def __len__(self) -> int:
        return len(self.card_ids)

    @property
    def current(self) -> Optional[int]:
        if self.finished:
            return None
        return self.card_ids[self.index]

    @property
    def finished(self) -> bool:
        return self.index >= len(self.card_ids)

    @property
    def progress(self) -> float:
        """Percent of the queue behind the cursor."""
        if not self.card_ids:
            return 0.0
        return self.index / len(self.card_ids) * 100

    def record(self, rating) -> bool:
        """Count one answer for the current card. Returns True once the queue is done."""
        if self.finished:
            raise IndexError('study queue is already finished')
        rating = coerce_rating(rating)

        self.cards_studied += 1
        if rating in CORRECT_RATINGS:
            self.correct_responses += 1

        if rating == Rating.Again:
            self.card_ids.append(self.card_ids.pop(self.index))
        else:
            self.index += 1
        return self.finished

    def to_dict(self) -> Dict[str, Any]:
        return {
            'card_ids': list(self.card_ids),
            'index': self.index,
            'cards_studied': self.cards_studied,
            'correct_responses': self.correct_responses,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "StudyQueue":
        data = data or {}
        return cls(
            card_ids=data.get('card_ids', []),
            index=data.get('index', 0),
            cards_studied=data.get('cards_studied', 0),
            correct_responses=data.get('correct_responses', 0),
        )
