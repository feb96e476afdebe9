from datetime import datetime, timezone

from sqlalchemy.orm import validates

from lingodeck_app.core.extensions import db
from lingodeck_app.modules.fsrs.engine import as_utc
from lingodeck_app.modules.fsrs.exceptions import DomainViolationError
from lingodeck_app.modules.fsrs.schemas import CardMemoryState, CardStateEnum


def _utcnow():
    return datetime.now(timezone.utc)


class Deck(db.Model):
    """A named collection of cards with its own step ladders."""
    __tablename__ = 'decks'

    deck_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    language = db.Column(db.String(20), nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)

    # Step ladders, in minutes
    learning_steps = db.Column(db.JSON, nullable=False)
    relearning_steps = db.Column(db.JSON, nullable=False)

    # Review counters, refreshed after each review
    total_cards = db.Column(db.Integer, nullable=False, default=0)
    new_cards = db.Column(db.Integer, nullable=False, default=0)
    cards_to_review = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    last_studied_at = db.Column(db.DateTime(timezone=True), nullable=True)

    cards = db.relationship(
        'Card', backref='deck', lazy='dynamic', cascade='all, delete-orphan', passive_deletes=True
    )

    __table_args__ = (
        db.CheckConstraint('length(name) >= 1 AND length(name) <= 100', name='decks_name_length'),
    )

    def to_dict(self):
        return {
            'deck_id': self.deck_id,
            'name': self.name,
            'description': self.description,
            'language': self.language,
            'tags': list(self.tags or []),
            'learning_steps': list(self.learning_steps or []),
            'relearning_steps': list(self.relearning_steps or []),
            'total_cards': self.total_cards,
            'new_cards': self.new_cards,
            'cards_to_review': self.cards_to_review,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'last_studied_at': self.last_studied_at.isoformat() if self.last_studied_at else None,
        }


class Card(db.Model):
    """
    A flashcard and its scheduling state.

    The FSRS columns mirror CardMemoryState; ``queue`` and ``next_review_at``
    are derived from it whenever the state is written back.
    """
    __tablename__ = 'cards'

    card_id = db.Column(db.Integer, primary_key=True)
    deck_id = db.Column(
        db.Integer, db.ForeignKey('decks.deck_id', ondelete='CASCADE'), nullable=False, index=True
    )
    front = db.Column(db.Text, nullable=False)
    back = db.Column(db.Text, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)

    # FSRS State
    state = db.Column(db.Integer, nullable=False, default=int(CardStateEnum.NEW))
    difficulty = db.Column(db.Float, nullable=False, default=0.0)
    stability = db.Column(db.Float, nullable=False, default=0.0)
    retrievability = db.Column(db.Float, nullable=False, default=1.0)
    elapsed_days = db.Column(db.Integer, nullable=False, default=0)
    scheduled_days = db.Column(db.Integer, nullable=False, default=0)
    scheduled_in_minutes = db.Column(db.Integer, nullable=True)
    step_index = db.Column(db.Integer, nullable=False, default=0)
    reps = db.Column(db.Integer, nullable=False, default=0)
    lapses = db.Column(db.Integer, nullable=False, default=0)

    # Scheduling
    queue = db.Column(db.String(10), nullable=False, default='new', index=True)
    last_reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    next_review_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    # Metrics
    review_count = db.Column(db.Integer, nullable=False, default=0)
    consecutive_correct = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint('length(front) >= 1', name='cards_front_length'),
        db.CheckConstraint('length(back) >= 1', name='cards_back_length'),
        db.CheckConstraint('difficulty >= 0 AND difficulty <= 1', name='cards_difficulty_range'),
        db.CheckConstraint('stability >= 0', name='cards_stability_positive'),
        db.CheckConstraint('retrievability >= 0 AND retrievability <= 1', name='cards_retrievability_range'),
    )

    @validates('front', 'back')
    def _validate_text(self, key, value):
        if value is None or not str(value).strip():
            raise ValueError(f"{key} must not be empty")
        return value

    def memory_state(self) -> CardMemoryState:
        """Read the FSRS columns as a CardMemoryState."""
        last_reviewed_at = self.last_reviewed_at
        if last_reviewed_at is not None and last_reviewed_at.tzinfo is None:
            last_reviewed_at = last_reviewed_at.replace(tzinfo=timezone.utc)
        try:
            lifecycle_state = CardStateEnum(self.state if self.state is not None else CardStateEnum.NEW)
        except ValueError:
            raise DomainViolationError(f"Card {self.card_id} has unknown state {self.state!r}") from None
        return CardMemoryState(
            lifecycle_state=lifecycle_state,
            difficulty=self.difficulty if self.difficulty is not None else 0.0,
            stability=self.stability if self.stability is not None else 0.0,
            retrievability=self.retrievability if self.retrievability is not None else 1.0,
            elapsed_days=self.elapsed_days or 0,
            scheduled_days=self.scheduled_days or 0,
            scheduled_in_minutes=self.scheduled_in_minutes,
            step_index=self.step_index or 0,
            reps=self.reps or 0,
            lapses=self.lapses or 0,
            last_reviewed_at=last_reviewed_at,
        )

    def apply_memory_state(self, memory: CardMemoryState) -> None:
        """Write a CardMemoryState back into the FSRS and queue columns."""
        self.state = int(memory.lifecycle_state)
        self.difficulty = memory.difficulty
        self.stability = memory.stability
        self.retrievability = memory.retrievability
        self.elapsed_days = memory.elapsed_days
        self.scheduled_days = memory.scheduled_days
        self.scheduled_in_minutes = memory.scheduled_in_minutes
        self.step_index = memory.step_index
        self.reps = memory.reps
        self.lapses = memory.lapses
        due_at = memory.due_at()
        self.last_reviewed_at = as_utc(memory.last_reviewed_at) if memory.last_reviewed_at else None
        self.queue = memory.queue
        self.next_review_at = as_utc(due_at) if due_at else None

    def to_dict(self):
        return {
            'card_id': self.card_id,
            'deck_id': self.deck_id,
            'front': self.front,
            'back': self.back,
            'notes': self.notes,
            'tags': list(self.tags or []),
            'state': self.state,
            'queue': self.queue,
            'difficulty': self.difficulty,
            'stability': self.stability,
            'retrievability': self.retrievability,
            'scheduled_days': self.scheduled_days,
            'scheduled_in_minutes': self.scheduled_in_minutes,
            'step_index': self.step_index,
            'reps': self.reps,
            'lapses': self.lapses,
            'review_count': self.review_count,
            'consecutive_correct': self.consecutive_correct,
            'last_reviewed_at': self.last_reviewed_at.isoformat() if self.last_reviewed_at else None,
            'next_review_at': self.next_review_at.isoformat() if self.next_review_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class CardReview(db.Model):
    """Log entry for a single review of a card."""
    __tablename__ = 'card_reviews'

    review_id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(
        db.Integer, db.ForeignKey('cards.card_id', ondelete='CASCADE'), nullable=False, index=True
    )
    deck_id = db.Column(
        db.Integer, db.ForeignKey('decks.deck_id', ondelete='CASCADE'), nullable=False, index=True
    )
    rating = db.Column(db.Integer, nullable=False)  # 1=Again, 2=Hard, 3=Good, 4=Easy
    response_time_ms = db.Column(db.Integer, nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)

    state_before = db.Column(db.Integer, nullable=False)
    state_after = db.Column(db.Integer, nullable=False)
    scheduled_days = db.Column(db.Integer, nullable=False, default=0)
    scheduled_in_minutes = db.Column(db.Integer, nullable=True)
    stability = db.Column(db.Float, nullable=False)
    difficulty = db.Column(db.Float, nullable=False)

    def to_dict(self):
        return {
            'review_id': self.review_id,
            'card_id': self.card_id,
            'deck_id': self.deck_id,
            'rating': self.rating,
            'response_time_ms': self.response_time_ms,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'state_before': self.state_before,
            'state_after': self.state_after,
            'scheduled_days': self.scheduled_days,
            'scheduled_in_minutes': self.scheduled_in_minutes,
        }
