from flask import current_app

from lingodeck_app.core.signals import card_reviewed, deck_cards_changed, session_completed
from .services.deck_service import DeckService


def on_deck_changed(sender, deck_id, **kwargs):
    """
    Event listener: refresh a deck's counters after a review, a finished
    session, or cards being added or removed.
    """
    try:
        DeckService.update_deck_review_stats(deck_id, now=kwargs.get('reviewed_at'))
    except Exception as e:
        current_app.logger.error(f"Failed to refresh review stats for deck {deck_id}: {e}")


def register_events():
    """Connect signals."""
    card_reviewed.connect(on_deck_changed)
    session_completed.connect(on_deck_changed)
    deck_cards_changed.connect(on_deck_changed)
