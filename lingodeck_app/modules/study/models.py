from datetime import datetime, timezone

from lingodeck_app.core.extensions import db
from .queue import StudyQueue


class StudySession(db.Model):
    """One sitting over a deck's due cards."""
    __tablename__ = 'study_sessions'

    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'

    session_id = db.Column(db.Integer, primary_key=True)
    deck_id = db.Column(
        db.Integer, db.ForeignKey('decks.deck_id', ondelete='CASCADE'), nullable=False, index=True
    )
    started_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    ended_at = db.Column(db.DateTime(timezone=True), nullable=True)
    duration_seconds = db.Column(db.Integer, nullable=True)
    cards_reviewed = db.Column(db.Integer, nullable=False, default=0)
    correct_responses = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE, index=True)

    # Serialized StudyQueue
    queue_state = db.Column(db.JSON, nullable=False, default=dict)

    def queue(self) -> StudyQueue:
        return StudyQueue.from_dict(self.queue_state)

    def to_dict(self):
        queue = self.queue()
        return {
            'session_id': self.session_id,
            'deck_id': self.deck_id,
            'status': self.status,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'ended_at': self.ended_at.isoformat() if self.ended_at else None,
            'duration_seconds': self.duration_seconds,
            'cards_reviewed': self.cards_reviewed,
            'correct_responses': self.correct_responses,
            'total_cards': len(queue),
            'current_card_id': queue.current,
            'progress': round(queue.progress, 1),
        }
