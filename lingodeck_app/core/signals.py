"""
Central Signal Registry.

Uses blinker so modules can react to study events without importing each
other.

Usage:
    # Publisher (sender)
    from lingodeck_app.core.signals import card_reviewed
    card_reviewed.send(SchedulerService, card_id=1, deck_id=2, ...)

    # Subscriber (receiver) - in a module's events.py
    card_reviewed.connect(on_card_reviewed)
"""
from blinker import Namespace

study_signals = Namespace()

# Fired after a review has been scheduled and committed.
# Payload: card_id, deck_id, rating, state_before, new_state (dict), reviewed_at
card_reviewed = study_signals.signal('card_reviewed')

# Fired when a study session is completed.
# Payload: session_id, deck_id, cards_reviewed, correct_responses, duration_seconds
session_completed = study_signals.signal('session_completed')

content_signals = Namespace()

# Fired when cards are added to or removed from a deck.
# Payload: deck_id
deck_cards_changed = content_signals.signal('deck_cards_changed')
