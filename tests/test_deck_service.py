"""
Tests for DeckService - decks, cards and due-card queues.
"""

import datetime

import pytest

from lingodeck_app import db
from lingodeck_app.core.error_handlers import NotFoundError, ValidationError
from lingodeck_app.modules.decks.models import Card, Deck
from lingodeck_app.modules.decks.services.deck_service import DeckService
from lingodeck_app.modules.fsrs.schemas import CardMemoryState, CardStateEnum


def make_deck(**overrides):
    data = {'name': 'Mandarin HSK1'}
    data.update(overrides)
    return DeckService.create_deck(data)


def make_card(deck, front='ni hao', back='hello'):
    return DeckService.create_card(deck.deck_id, {'front': front, 'back': back})


def place(card, memory):
    """Put a card into a given scheduling state."""
    card.apply_memory_state(memory)
    db.session.commit()
    return card


def learn_state(last_reviewed_at, minutes):
    return CardMemoryState(
        lifecycle_state=CardStateEnum.LEARNING,
        stability=1.0,
        difficulty=0.4,
        scheduled_in_minutes=minutes,
        reps=1,
        last_reviewed_at=last_reviewed_at,
    )


def review_state(last_reviewed_at, days):
    return CardMemoryState(
        lifecycle_state=CardStateEnum.REVIEW,
        stability=float(days),
        difficulty=0.4,
        scheduled_days=days,
        reps=3,
        last_reviewed_at=last_reviewed_at,
    )


class TestDecks:

    def test_create_deck_uses_default_steps(self, app):
        deck = make_deck()
        assert deck.deck_id is not None
        assert deck.learning_steps == [1, 10]
        assert deck.relearning_steps == [10]

    def test_create_deck_with_custom_steps(self, app):
        deck = make_deck(learning_steps=[5, 30, 120], relearning_steps=[15])
        assert deck.learning_steps == [5, 30, 120]
        assert deck.relearning_steps == [15]

    @pytest.mark.parametrize('steps', [[], [0], [-5], 'ten', None])
    def test_invalid_steps_are_rejected(self, app, steps):
        with pytest.raises(ValidationError):
            make_deck(learning_steps=steps)
        assert Deck.query.count() == 0

    @pytest.mark.parametrize('name', ['', '   ', 'x' * 101, None])
    def test_invalid_name(self, app, name):
        with pytest.raises(ValidationError):
            make_deck(name=name)

    def test_update_deck(self, app):
        deck = make_deck()
        DeckService.update_deck(deck.deck_id, {'name': 'HSK2', 'relearning_steps': [5, 20]})

        deck = DeckService.get_deck(deck.deck_id)
        assert deck.name == 'HSK2'
        assert deck.learning_steps == [1, 10]
        assert deck.relearning_steps == [5, 20]

    def test_update_with_invalid_steps_keeps_old_ladder(self, app):
        deck = make_deck()
        with pytest.raises(ValidationError):
            DeckService.update_deck(deck.deck_id, {'learning_steps': []})
        assert DeckService.get_deck(deck.deck_id).learning_steps == [1, 10]

    def test_delete_deck_removes_cards(self, app):
        deck = make_deck()
        make_card(deck)
        make_card(deck, front='xie xie', back='thanks')

        DeckService.delete_deck(deck.deck_id)

        assert Deck.query.count() == 0
        assert Card.query.count() == 0

    def test_missing_deck(self, app):
        with pytest.raises(NotFoundError):
            DeckService.get_deck(999)


class TestCards:

    def test_new_card_starts_new(self, app):
        card = make_card(make_deck())
        assert card.state == CardStateEnum.NEW
        assert card.queue == 'new'
        assert card.next_review_at is None
        assert card.memory_state() == CardMemoryState.new()

    def test_empty_front_is_rejected(self, app):
        deck = make_deck()
        with pytest.raises(ValidationError):
            DeckService.create_card(deck.deck_id, {'front': '', 'back': 'hello'})

    def test_update_card_content_only(self, app, now):
        card = make_card(make_deck())
        place(card, review_state(now, 5))

        DeckService.update_card(card.card_id, {'back': 'hi', 'tags': ['greeting']})

        card = DeckService.get_card(card.card_id)
        assert card.back == 'hi'
        assert card.tags == ['greeting']
        assert card.scheduled_days == 5

    def test_card_changes_refresh_deck_counters(self, app):
        deck = make_deck()
        card = make_card(deck)
        make_card(deck, front='zai jian', back='goodbye')

        deck = DeckService.get_deck(deck.deck_id)
        assert deck.total_cards == 2
        assert deck.new_cards == 2

        DeckService.delete_card(card.card_id)
        assert DeckService.get_deck(deck.deck_id).total_cards == 1


class TestDueCards:

    def test_learning_cards_come_first(self, app, now):
        deck = make_deck()
        make_card(deck, front='new')
        review = place(make_card(deck, front='review'), review_state(now - datetime.timedelta(days=3), 1))
        learn = place(make_card(deck, front='learn'), learn_state(now - datetime.timedelta(minutes=15), 10))

        due = DeckService.get_due_cards(deck.deck_id, now=now)

        assert [card.card_id for card in due] == [learn.card_id]
        assert review.card_id not in [card.card_id for card in due]

    def test_learning_buffer(self, app, now):
        deck = make_deck()
        soon = place(make_card(deck, front='soon'), learn_state(now - datetime.timedelta(seconds=580), 10))
        place(make_card(deck, front='later'), learn_state(now - datetime.timedelta(minutes=5), 10))

        due = DeckService.get_due_cards(deck.deck_id, now=now)

        assert [card.card_id for card in due] == [soon.card_id]

    def test_overdue_learning_cards_before_upcoming(self, app, now):
        deck = make_deck()
        upcoming = place(make_card(deck, front='a'), learn_state(now - datetime.timedelta(seconds=590), 10))
        late = place(make_card(deck, front='b'), learn_state(now - datetime.timedelta(minutes=30), 10))
        overdue = place(make_card(deck, front='c'), learn_state(now - datetime.timedelta(minutes=12), 10))

        due = DeckService.get_due_cards(deck.deck_id, now=now)

        assert [card.card_id for card in due] == [late.card_id, overdue.card_id, upcoming.card_id]

    def test_review_cards_when_no_learning_due(self, app, now):
        deck = make_deck()
        make_card(deck, front='new')
        older = place(make_card(deck, front='older'), review_state(now - datetime.timedelta(days=10), 3))
        newer = place(make_card(deck, front='newer'), review_state(now - datetime.timedelta(days=2), 1))
        place(make_card(deck, front='future'), review_state(now, 4))
        place(make_card(deck, front='learn later'), learn_state(now, 10))

        due = DeckService.get_due_cards(deck.deck_id, now=now)

        assert [card.card_id for card in due] == [older.card_id, newer.card_id]

    def test_new_cards_last_in_creation_order(self, app, now):
        deck = make_deck()
        first = make_card(deck, front='first')
        second = make_card(deck, front='second')
        place(make_card(deck, front='future'), review_state(now, 4))

        due = DeckService.get_due_cards(deck.deck_id, now=now)

        assert [card.card_id for card in due] == [first.card_id, second.card_id]

    def test_limit(self, app, now):
        deck = make_deck()
        for i in range(5):
            make_card(deck, front=f'card {i}')
        assert len(DeckService.get_due_cards(deck.deck_id, limit=3, now=now)) == 3


class TestReviewStats:

    def test_counts(self, app, now):
        deck = make_deck()
        make_card(deck, front='new')
        place(make_card(deck, front='learn'), learn_state(now - datetime.timedelta(minutes=20), 10))
        place(make_card(deck, front='review'), review_state(now - datetime.timedelta(days=2), 1))
        place(make_card(deck, front='future'), review_state(now, 7))

        deck = DeckService.update_deck_review_stats(deck.deck_id, now=now)

        assert deck.total_cards == 4
        assert deck.new_cards == 1
        assert deck.cards_to_review == 2
        assert deck.last_studied_at is not None

    def test_missing_deck_is_skipped(self, app):
        assert DeckService.update_deck_review_stats(12345) is None
