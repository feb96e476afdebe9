from datetime import datetime, timezone
from typing import Optional

from flask import current_app

from lingodeck_app.core.error_handlers import NotFoundError, ValidationError
from lingodeck_app.core.extensions import db
from lingodeck_app.core.signals import session_completed
from lingodeck_app.modules.decks.services.deck_service import DeckService
from lingodeck_app.modules.fsrs.engine import as_utc, coerce_rating
from lingodeck_app.modules.fsrs.services.scheduler_service import SchedulerService
from ..models import StudySession
from ..queue import StudyQueue


class StudySessionService:
    """
    Service layer for study sessions.
    Each session keeps its StudyQueue serialized on the row.
    """

    @staticmethod
    def get_session(session_id: int) -> StudySession:
        session = db.session.get(StudySession, session_id)
        if session is None:
            raise NotFoundError(f'Study session {session_id} not found', resource='study_session')
        return session

    @staticmethod
    def start_session(deck_id: int, limit: Optional[int] = None, now: Optional[datetime] = None) -> StudySession:
        """Open a session over the deck's currently due cards."""
        now = as_utc(now) if now is not None else datetime.now(timezone.utc)
        if limit is None:
            limit = current_app.config.get('DUE_CARDS_LIMIT', 20)
        cards = DeckService.get_due_cards(deck_id, limit=limit, now=now)
        if not cards:
            raise ValidationError(f'Deck {deck_id} has no cards due for study', errors={'deck_id': deck_id})
        queue = StudyQueue(card.card_id for card in cards)

        session = StudySession(
            deck_id=deck_id,
            started_at=now,
            status=StudySession.STATUS_ACTIVE,
            queue_state=queue.to_dict(),
        )
        try:
            db.session.add(session)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error creating study session for deck {deck_id}: {e}", exc_info=True)
            raise

        current_app.logger.info(f"Started study session {session.session_id} on deck {deck_id} with {len(queue)} cards")
        return session

    @staticmethod
    def answer(
        session_id: int,
        card_id: int,
        rating,
        response_time_ms: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> StudySession:
        """
        Review the session's current card and move the queue on.
        The session completes itself once the queue runs out.
        """
        rating = coerce_rating(rating)
        session = StudySessionService.get_session(session_id)
        if session.status != StudySession.STATUS_ACTIVE:
            raise ValidationError(f'Study session {session_id} is not active')

        queue = session.queue()
        if queue.current != card_id:
            raise ValidationError(
                f'Card {card_id} is not the current card of session {session_id}',
                errors={'expected_card_id': queue.current, 'card_id': card_id},
            )

        SchedulerService.review_card(card_id, rating, response_time_ms=response_time_ms, now=now)

        finished = queue.record(rating)
        session.queue_state = queue.to_dict()
        session.cards_reviewed = queue.cards_studied
        session.correct_responses = queue.correct_responses
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error updating study session {session_id}: {e}", exc_info=True)
            raise

        if finished:
            return StudySessionService.complete_session(session_id, now=now)
        return session

    @staticmethod
    def complete_session(session_id: int, now: Optional[datetime] = None) -> StudySession:
        """Close the session and record how long it took. Completing twice is a no-op."""
        session = StudySessionService.get_session(session_id)
        if session.status == StudySession.STATUS_COMPLETED:
            return session

        ended_at = as_utc(now or datetime.now(timezone.utc))
        session.ended_at = ended_at
        session.duration_seconds = max(0, int((ended_at - as_utc(session.started_at)).total_seconds()))
        session.status = StudySession.STATUS_COMPLETED
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error completing study session {session_id}: {e}", exc_info=True)
            raise

        current_app.logger.info(
            f"Completed study session {session_id}: {session.cards_reviewed} reviewed, "
            f"{session.correct_responses} correct in {session.duration_seconds}s"
        )
        session_completed.send(
            StudySessionService,
            session_id=session.session_id,
            deck_id=session.deck_id,
            cards_reviewed=session.cards_reviewed,
            correct_responses=session.correct_responses,
            duration_seconds=session.duration_seconds,
        )
        return session
