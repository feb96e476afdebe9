from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import case, or_

from lingodeck_app.core.error_handlers import NotFoundError, ValidationError
from lingodeck_app.core.extensions import db
from lingodeck_app.core.signals import deck_cards_changed
from lingodeck_app.modules.fsrs.exceptions import InvalidStepConfigError
from lingodeck_app.modules.fsrs.schemas import CardMemoryState, DeckStepConfig
from lingodeck_app.modules.fsrs.services.settings_service import FSRSSettingsService
from ..models import Card, Deck

# Learn-queue cards this close to their due time are shown already
LEARN_AHEAD_BUFFER = timedelta(seconds=30)

DECK_FIELDS = ('name', 'description', 'language', 'tags')
CARD_FIELDS = ('front', 'back', 'notes', 'tags')


def _db_now(now: Optional[datetime] = None) -> datetime:
    """Current time as naive UTC, the form SQLite hands back."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


def _validate_name(name) -> str:
    name = (name or '').strip()
    if not 1 <= len(name) <= 100:
        raise ValidationError('Deck name must be 1-100 characters', errors={'name': name})
    return name


def step_config_for(deck: Deck) -> DeckStepConfig:
    """The deck's ladders as a validated DeckStepConfig."""
    return DeckStepConfig(
        learning_steps=deck.learning_steps,
        relearning_steps=deck.relearning_steps,
    )


class DeckService:
    """Decks, their cards and the due-card queues."""

    # ------------------------------------------------------------------
    # Decks
    # ------------------------------------------------------------------

    @staticmethod
    def list_decks() -> List[Deck]:
        return Deck.query.order_by(Deck.created_at.desc(), Deck.deck_id.desc()).all()

    @staticmethod
    def get_deck(deck_id: int) -> Deck:
        deck = db.session.get(Deck, deck_id)
        if deck is None:
            raise NotFoundError(f'Deck {deck_id} not found', resource='deck')
        return deck

    @staticmethod
    def _checked_steps(learning_steps, relearning_steps) -> DeckStepConfig:
        try:
            return DeckStepConfig(learning_steps=learning_steps, relearning_steps=relearning_steps)
        except InvalidStepConfigError as e:
            raise ValidationError(str(e), errors={
                'learning_steps': learning_steps,
                'relearning_steps': relearning_steps,
            }) from e

    @staticmethod
    def create_deck(data: Dict[str, Any]) -> Deck:
        """Create a deck. Missing step ladders fall back to the configured defaults."""
        defaults = FSRSSettingsService.default_step_config()
        steps = DeckService._checked_steps(
            data.get('learning_steps', defaults.learning_steps),
            data.get('relearning_steps', defaults.relearning_steps),
        )

        deck = Deck(
            name=_validate_name(data.get('name')),
            description=data.get('description'),
            language=data.get('language'),
            tags=list(data.get('tags') or []),
            learning_steps=list(steps.learning_steps),
            relearning_steps=list(steps.relearning_steps),
        )
        try:
            db.session.add(deck)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error creating deck: {e}", exc_info=True)
            raise
        current_app.logger.info(f"Created deck {deck.deck_id} ({deck.name})")
        return deck

    @staticmethod
    def update_deck(deck_id: int, data: Dict[str, Any]) -> Deck:
        deck = DeckService.get_deck(deck_id)

        if 'learning_steps' in data or 'relearning_steps' in data:
            steps = DeckService._checked_steps(
                data.get('learning_steps', deck.learning_steps),
                data.get('relearning_steps', deck.relearning_steps),
            )
            deck.learning_steps = list(steps.learning_steps)
            deck.relearning_steps = list(steps.relearning_steps)

        for field in DECK_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == 'name':
                value = _validate_name(value)
            elif field == 'tags':
                value = list(value or [])
            setattr(deck, field, value)

        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error updating deck {deck_id}: {e}", exc_info=True)
            raise
        return deck

    @staticmethod
    def delete_deck(deck_id: int) -> None:
        deck = DeckService.get_deck(deck_id)
        try:
            db.session.delete(deck)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error deleting deck {deck_id}: {e}", exc_info=True)
            raise
        current_app.logger.info(f"Deleted deck {deck_id}")

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    @staticmethod
    def get_card(card_id: int) -> Card:
        card = db.session.get(Card, card_id)
        if card is None:
            raise NotFoundError(f'Card {card_id} not found', resource='card')
        return card

    @staticmethod
    def list_cards(deck_id: int) -> List[Card]:
        deck = DeckService.get_deck(deck_id)
        return deck.cards.order_by(Card.created_at.asc(), Card.card_id.asc()).all()

    @staticmethod
    def create_card(deck_id: int, data: Dict[str, Any]) -> Card:
        """Add a card to a deck. It starts as a fresh New card."""
        deck = DeckService.get_deck(deck_id)
        try:
            card = Card(
                deck_id=deck.deck_id,
                front=data.get('front'),
                back=data.get('back'),
                notes=data.get('notes'),
                tags=list(data.get('tags') or []),
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e
        card.apply_memory_state(CardMemoryState.new())

        try:
            db.session.add(card)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error creating card in deck {deck_id}: {e}", exc_info=True)
            raise

        deck_cards_changed.send(DeckService, deck_id=deck.deck_id)
        return card

    @staticmethod
    def update_card(card_id: int, data: Dict[str, Any]) -> Card:
        """Edit a card's content. Scheduling columns are not touched."""
        card = DeckService.get_card(card_id)
        try:
            for field in CARD_FIELDS:
                if field in data:
                    value = list(data[field] or []) if field == 'tags' else data[field]
                    setattr(card, field, value)
        except ValueError as e:
            db.session.rollback()
            raise ValidationError(str(e)) from e

        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error updating card {card_id}: {e}", exc_info=True)
            raise
        return card

    @staticmethod
    def delete_card(card_id: int) -> None:
        card = DeckService.get_card(card_id)
        deck_id = card.deck_id
        try:
            db.session.delete(card)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error deleting card {card_id}: {e}", exc_info=True)
            raise
        deck_cards_changed.send(DeckService, deck_id=deck_id)

    # ------------------------------------------------------------------
    # Queues
    # ------------------------------------------------------------------

    @staticmethod
    def get_due_cards(deck_id: int, limit: int = 20, now: Optional[datetime] = None) -> List[Card]:
        """
        Cards to study next, one queue at a time.

        Learn-queue cards due within the buffer (or never reviewed) come first,
        overdue ones ahead of the rest. Only when none are due does the review
        queue get a turn, and only when that is empty too do new cards appear.
        """
        DeckService.get_deck(deck_id)
        now = _db_now(now)
        limit = max(1, int(limit))

        learn = (
            Card.query
            .filter(
                Card.deck_id == deck_id,
                Card.queue == 'learn',
                or_(
                    Card.next_review_at <= now + LEARN_AHEAD_BUFFER,
                    Card.last_reviewed_at.is_(None),
                ),
            )
            .order_by(
                case((Card.next_review_at <= now, 0), else_=1),
                Card.next_review_at.is_(None).desc(),
                Card.next_review_at.asc(),
                Card.card_id.asc(),
            )
            .limit(limit)
            .all()
        )
        if learn:
            return learn

        review = (
            Card.query
            .filter(
                Card.deck_id == deck_id,
                Card.queue == 'review',
                Card.next_review_at <= now,
            )
            .order_by(Card.next_review_at.asc(), Card.card_id.asc())
            .limit(limit)
            .all()
        )
        if review:
            return review

        return (
            Card.query
            .filter(Card.deck_id == deck_id, Card.queue == 'new')
            .order_by(Card.created_at.asc(), Card.card_id.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def count_due(deck_id: int, now: Optional[datetime] = None) -> Dict[str, int]:
        now = _db_now(now)
        base = Card.query.filter(Card.deck_id == deck_id)
        learn_due = base.filter(
            Card.queue == 'learn',
            or_(Card.next_review_at <= now + LEARN_AHEAD_BUFFER, Card.last_reviewed_at.is_(None)),
        ).count()
        review_due = base.filter(Card.queue == 'review', Card.next_review_at <= now).count()
        return {
            'new': base.filter(Card.queue == 'new').count(),
            'learn': learn_due,
            'review': review_due,
            'total': base.count(),
        }

    @staticmethod
    def update_deck_review_stats(deck_id: int, now: Optional[datetime] = None) -> Optional[Deck]:
        """Refresh the deck's card counters. A deck deleted in the meantime is skipped."""
        deck = db.session.get(Deck, deck_id)
        if deck is None:
            current_app.logger.warning(f"Review stats skipped: deck {deck_id} no longer exists")
            return None

        counts = DeckService.count_due(deck_id, now)
        deck.total_cards = counts['total']
        deck.new_cards = counts['new']
        deck.cards_to_review = counts['learn'] + counts['review']

        last_reviewed = (
            db.session.query(db.func.max(Card.last_reviewed_at))
            .filter(Card.deck_id == deck_id)
            .scalar()
        )
        if last_reviewed is not None:
            deck.last_studied_at = last_reviewed

        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f"Error updating review stats for deck {deck_id}: {e}", exc_info=True)
            raise
        return deck
