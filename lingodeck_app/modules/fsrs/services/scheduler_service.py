from typing import Dict, Any, Optional, Tuple
import datetime
import logging

from lingodeck_app.core.extensions import db
from lingodeck_app.core.error_handlers import NotFoundError
from lingodeck_app.core.signals import card_reviewed
from lingodeck_app.modules.decks.models import Card, CardReview
from lingodeck_app.modules.decks.services.deck_service import step_config_for
from lingodeck_app.modules.fsrs.engine import FSRSEngine, as_utc, coerce_rating, schedule_review
from lingodeck_app.modules.fsrs.schemas import CardMemoryState, Rating, SchedulerParameters
from lingodeck_app.modules.fsrs.services.settings_service import FSRSSettingsService

logger = logging.getLogger(__name__)


def _fmt_ivl(memory: CardMemoryState) -> str:
    """Short human label for the wait after a review: 10m, 4d, 1.2mo."""
    if memory.scheduled_in_minutes is not None:
        minutes = memory.scheduled_in_minutes
        if minutes < 1440:
            return f"{minutes}m"
        days = minutes / 1440.0
    else:
        days = float(memory.scheduled_days)

    if days >= 30.0:
        return f"{round(days / 30.0, 1)}mo"
    if days == int(days):
        return f"{int(days)}d"
    return f"{round(days, 1)}d"


class SchedulerService:
    """
    Orchestrator for FSRS scheduling.
    Handles DB interactions, Engine calls, and Signal emission.
    """

    @staticmethod
    def _engine(parameters: Optional[SchedulerParameters] = None) -> FSRSEngine:
        return FSRSEngine(parameters or FSRSSettingsService.get_parameters())

    @staticmethod
    def _get_card(card_id: int) -> Card:
        card = db.session.get(Card, card_id)
        if card is None:
            raise NotFoundError(f'Card {card_id} not found', resource='card')
        return card

    @staticmethod
    def review_card(
        card_id: int,
        rating,
        response_time_ms: Optional[int] = None,
        now: Optional[datetime.datetime] = None
    ) -> Tuple[Card, CardReview]:
        """
        Main entry point for processing a review.

        Schedules the card, writes the new state and a review log row in one
        transaction, then emits ``card_reviewed``.
        """
        rating = coerce_rating(rating)
        # Columns hold UTC wall-clock time
        now = as_utc(now) if now is not None else datetime.datetime.now(datetime.timezone.utc)

        # 1. Fetch Data
        card = SchedulerService._get_card(card_id)
        deck = card.deck
        before = card.memory_state()

        try:
            # 2. Schedule (pure)
            after = schedule_review(
                before,
                rating,
                step_config_for(deck),
                model=SchedulerService._engine(),
                now=now,
            )

            # 3. Update DB Model
            card.apply_memory_state(after)
            card.review_count = (card.review_count or 0) + 1
            if rating == Rating.Again:
                card.consecutive_correct = 0
            else:
                card.consecutive_correct = (card.consecutive_correct or 0) + 1

            review = CardReview(
                card_id=card.card_id,
                deck_id=card.deck_id,
                rating=int(rating),
                response_time_ms=response_time_ms,
                reviewed_at=now,
                state_before=int(before.lifecycle_state),
                state_after=int(after.lifecycle_state),
                scheduled_days=after.scheduled_days,
                scheduled_in_minutes=after.scheduled_in_minutes,
                stability=after.stability,
                difficulty=after.difficulty,
            )
            db.session.add(review)

            # 4. Commit
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Review failed for card {card_id} (rating={int(rating)}): {e}")
            raise

        logger.info(
            f"Card {card_id} rated {rating.name}: "
            f"state {before.lifecycle_state.name} -> {after.lifecycle_state.name}, next in {_fmt_ivl(after)}",
            extra={'card_id': card.card_id, 'deck_id': card.deck_id},
        )

        # 5. Emit Signal
        card_reviewed.send(
            SchedulerService,
            card_id=card.card_id,
            deck_id=card.deck_id,
            rating=int(rating),
            state_before=int(before.lifecycle_state),
            new_state=after.to_dict(),
            reviewed_at=now,
        )
        return card, review

    @staticmethod
    def preview_intervals(card_id: int, now: Optional[datetime.datetime] = None) -> Dict[str, Dict[str, Any]]:
        """
        Get preview intervals for all ratings (1-4). Nothing is persisted.
        """
        card = SchedulerService._get_card(card_id)
        memory = card.memory_state()
        step_config = step_config_for(card.deck)

        # Previews must be stable between calls
        parameters = FSRSSettingsService.get_parameters().evolve(enable_fuzz=False)
        engine = SchedulerService._engine(parameters)
        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)

        previews = {}
        for rating in Rating:
            outcome = schedule_review(memory, rating, step_config, model=engine, now=now)
            previews[str(int(rating))] = {
                'interval': _fmt_ivl(outcome),
                'state': int(outcome.lifecycle_state),
                'scheduled_days': outcome.scheduled_days,
                'scheduled_in_minutes': outcome.scheduled_in_minutes,
                'stability': round(outcome.stability, 2),
                'difficulty': round(outcome.difficulty, 2),
                'retrievability': round(outcome.retrievability * 100, 1),
            }
        return previews

    @staticmethod
    def current_retention(card_id: int, now: Optional[datetime.datetime] = None) -> float:
        """Recall probability of the card right now (0 for New cards)."""
        card = SchedulerService._get_card(card_id)
        if now is None:
            now = datetime.datetime.now(datetime.timezone.utc)
        return SchedulerService._engine().retention_at(card.memory_state(), now)
