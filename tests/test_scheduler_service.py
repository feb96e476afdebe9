"""
Tests for SchedulerService and StudySessionService - persisted reviews.
"""

import datetime

import pytest

from lingodeck_app import db
from lingodeck_app.core.error_handlers import ValidationError
from lingodeck_app.modules.decks.models import Card, CardReview
from lingodeck_app.modules.decks.services.deck_service import DeckService
from lingodeck_app.modules.fsrs.exceptions import DomainViolationError
from lingodeck_app.modules.fsrs.schemas import CardStateEnum
from lingodeck_app.modules.fsrs.services.scheduler_service import SchedulerService
from lingodeck_app.modules.study.models import StudySession
from lingodeck_app.modules.study.services.session_service import StudySessionService

UTC = datetime.timezone.utc
BANGKOK = datetime.timezone(datetime.timedelta(hours=7))


def make_card(front='hola'):
    deck = DeckService.create_deck({'name': 'Spanish', 'learning_steps': [10]})
    return DeckService.create_card(deck.deck_id, {'front': front, 'back': 'hello'})


class TestReviewTimes:

    def test_offset_review_time_is_stored_as_utc(self, app, now):
        card = make_card()
        local = now.astimezone(BANGKOK)
        assert local.hour == 19

        SchedulerService.review_card(card.card_id, 3, now=local)
        db.session.expire_all()

        stored = db.session.get(Card, card.card_id)
        memory = stored.memory_state()
        assert memory.last_reviewed_at == now
        assert memory.last_reviewed_at.hour == 12
        assert memory.due_at() == now + datetime.timedelta(days=1)

        review = CardReview.query.filter_by(card_id=card.card_id).one()
        assert review.reviewed_at.replace(tzinfo=UTC) == now

    def test_offset_review_time_keeps_card_due_on_time(self, app, now):
        card = make_card()
        SchedulerService.review_card(card.card_id, 1, now=now.astimezone(BANGKOK))
        deck_id = card.deck_id

        before = DeckService.get_due_cards(deck_id, now=now + datetime.timedelta(minutes=5))
        after = DeckService.get_due_cards(deck_id, now=now + datetime.timedelta(minutes=10))

        assert before == []
        assert [c.card_id for c in after] == [card.card_id]

    def test_naive_review_time_is_taken_as_utc(self, app, now):
        card = make_card()
        SchedulerService.review_card(card.card_id, 3, now=now.replace(tzinfo=None))
        db.session.expire_all()

        assert db.session.get(Card, card.card_id).memory_state().last_reviewed_at == now

    def test_corrupt_state_is_a_domain_violation(self, app, now):
        card = make_card()
        card.state = 9
        db.session.commit()

        with pytest.raises(DomainViolationError):
            SchedulerService.review_card(card.card_id, 3, now=now)
        assert CardReview.query.count() == 0


class TestStudySessions:

    def test_session_on_deck_without_due_cards_is_rejected(self, app, now):
        deck = DeckService.create_deck({'name': 'Empty'})

        with pytest.raises(ValidationError):
            StudySessionService.start_session(deck.deck_id, now=now)
        assert StudySession.query.count() == 0

    def test_offset_times_in_a_session(self, app, now):
        card = make_card()
        local = now.astimezone(BANGKOK)

        session = StudySessionService.start_session(card.deck_id, now=local)
        session = StudySessionService.answer(
            session.session_id, card.card_id, 3, now=local + datetime.timedelta(seconds=45)
        )
        db.session.expire_all()

        session = db.session.get(StudySession, session.session_id)
        assert session.status == StudySession.STATUS_COMPLETED
        assert session.started_at.replace(tzinfo=UTC) == now
        assert session.duration_seconds == 45

        stored = db.session.get(Card, card.card_id)
        assert stored.state == CardStateEnum.REVIEW
        assert stored.memory_state().last_reviewed_at == now + datetime.timedelta(seconds=45)
